"""OTG Control: feed automation for remote touch devices."""

__version__ = "1.0.0"
