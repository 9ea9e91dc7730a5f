"""Configuration, defaulting, app-container building, revisions and metrics for application-boot operators."""

__version__ = "0.1.0"

__all__ = [
    "boot",
    "config",
    "handler",
    "merge",
    "metrics",
    "quantity",
    "revision",
    "settings",
]