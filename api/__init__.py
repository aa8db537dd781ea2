"""HTTP surface for the NL2SQL gateway."""

__version__ = "0.1.0"
