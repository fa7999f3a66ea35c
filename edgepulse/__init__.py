"""EdgePulse - real-time traffic analytics for a single web zone."""

__version__ = "0.1.1"
