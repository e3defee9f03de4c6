"""Block-structured document engine with cross-document links."""

__version__ = "0.1.0"
