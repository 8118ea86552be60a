"""sysfetch - host facts rendered beside an ASCII logo."""

__version__ = "0.4.0"
