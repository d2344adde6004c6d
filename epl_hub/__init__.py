"""EPL Hub - football league site with a cached, live league table."""

__version__ = "0.1.0"
