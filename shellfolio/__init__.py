"""shellfolio - a portfolio presented as a simulated interactive shell."""

__version__ = "0.1.0"
