"""Turn trees of cuts into G-code for hobby CNC routers."""

__version__ = "0.1.0"
