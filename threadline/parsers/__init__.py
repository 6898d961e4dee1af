"""Text parsers."""

from .mention_parser import MentionParser

__all__ = ["MentionParser"]
