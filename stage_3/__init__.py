"""
Stage 3: Security Analysis & Auto-Fix
=====================================

Slither-based detection (host or Docker execution) and LLM repair loop.
"""

from .analyzer import SecurityAnalyzer
from .fixer import SecurityFixer
from .runner import RepairResult, run_detection, run_repair

__all__ = [
    "RepairResult",
    "SecurityAnalyzer",
    "SecurityFixer",
    "run_detection",
    "run_repair",
]
