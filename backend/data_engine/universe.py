"""
data_engine/universe.py
───────────────────────
The fixed list of instruments ingested on every run.
"""

from typing import Tuple

from schemas.market import InstrumentDescriptor

DEFAULT_UNIVERSE: Tuple[InstrumentDescriptor, ...] = (
    InstrumentDescriptor(symbol="NSE:SBIN-EQ", name="SBI", sector="Banking", industry="PSU Bank"),
    InstrumentDescriptor(symbol="NSE:RELIANCE-EQ", name="Reliance", sector="Energy", industry="Oil & Gas"),
    InstrumentDescriptor(symbol="NSE:TCS-EQ", name="TCS", sector="IT", industry="Software"),
    InstrumentDescriptor(symbol="NSE:INFY-EQ", name="Infosys", sector="IT", industry="Software"),
    InstrumentDescriptor(symbol="NSE:HDFCBANK-EQ", name="HDFC Bank", sector="Banking", industry="Private Bank"),
    InstrumentDescriptor(symbol="NSE:ICICIBANK-EQ", name="ICICI Bank", sector="Banking", industry="Private Bank"),
)
