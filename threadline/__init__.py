"""Comment threads, @mentions and notifications for collaboration screens."""

__version__ = "1.0.0"
