"""buckal — keep Buck2 rules in sync with a Cargo dependency graph."""

__version__ = "0.4.0"
