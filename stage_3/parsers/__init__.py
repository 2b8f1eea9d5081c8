"""
Security Tool Parsers
=====================

Each parser converts tool output into Finding objects.
"""

from .base import Parser, ParseResult
from .slither_parser import SlitherParser

__all__ = [
    "Parser",
    "ParseResult",
    "SlitherParser",
]
