"""ask CLI project upgrade tooling."""

__version__ = "0.1.0"
