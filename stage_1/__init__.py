"""
Stage 1: Contract Generation
============================

Language-model generation of Solidity source from a natural-language request.
"""

from .code_generator import GenerationResult, clean_code_block, generate_contract

__all__ = [
    "GenerationResult",
    "clean_code_block",
    "generate_contract",
]
