"""warden: start, stop and inspect background daemons."""

__version__ = "0.1.0"
