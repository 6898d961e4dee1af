"""Collaboration service implementations."""

from .memory import InMemoryCollaborationService
from .http import HttpCollaborationService

__all__ = [
    "InMemoryCollaborationService",
    "HttpCollaborationService",
]
