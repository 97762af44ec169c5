"""Multi-agent planning council."""

__version__ = "0.1.0"
