"""
Stage 2: Compilation
====================

Solidity source -> ABI + bytecode (CompileArtifact).
"""

from .compiler import compile_solidity, extract_contract_name, validate_code

__all__ = [
    "compile_solidity",
    "extract_contract_name",
    "validate_code",
]
