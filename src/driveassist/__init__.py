"""Drive assistant: chat commands for a cloud file store."""

__version__ = "1.0.0"
