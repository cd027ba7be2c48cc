"""PoSC Sentinel: growth-signal monitoring and funding-trigger evaluation."""

__version__ = "0.1.0"
