"""
Solidity Compiler
=================

Standard-JSON compilation through py-solc-x. The compiler binary is
installed on first use.
"""

import re
from typing import Dict, Optional

import solcx
from solcx.exceptions import SolcError

import config
from workflow.errors import UpstreamToolError
from workflow.models import CompileArtifact, content_hash, normalize_hex

_CONTRACT_NAME = re.compile(r"\bcontract\s+(\w+)")

_installed = False


def extract_contract_name(code: str, default: str = "Contract") -> str:
    """Name of the first contract declared in the source"""
    match = _CONTRACT_NAME.search(code or "")
    return match.group(1) if match else default


def validate_code(code: str) -> None:
    """
    Cheap structural checks before invoking solc.

    Raises:
        ValueError: If the code is empty or lacks a pragma or contract
    """
    if not code or not code.strip():
        raise ValueError("Contract code must not be empty")
    if "pragma solidity" not in code:
        raise ValueError("Contract code must contain a 'pragma solidity' declaration")
    if "contract" not in code:
        raise ValueError("Contract code must contain a contract definition")


def ensure_solc(version: str = config.SOLC_VERSION) -> None:
    """Install and select the configured solc version"""
    global _installed
    if _installed:
        return
    installed = [str(v) for v in solcx.get_installed_solc_versions()]
    if version not in installed:
        print(f"  📦 Installing solc {version}...")
        solcx.install_solc(version)
    solcx.set_solc_version(version, silent=True)
    _installed = True


def build_input(code: str, contract_name: str) -> Dict:
    return {
        "language": "Solidity",
        "sources": {f"{contract_name}.sol": {"content": code}},
        "settings": {
            "outputSelection": {
                "*": {"*": ["abi", "evm.bytecode.object", "evm.deployedBytecode.object"]}
            },
            "optimizer": {"enabled": True, "runs": config.SOLC_OPTIMIZER_RUNS},
        },
    }


def compile_solidity(code: str, contract_name: Optional[str] = None) -> CompileArtifact:
    """
    Compile source and return the artifact of the requested contract.

    Without a contract name the first contract with non-empty bytecode is
    used. Empty bytecode is a failure even when solc reports success.

    Raises:
        UpstreamToolError: On invalid source, compile errors or missing bytecode
    """
    try:
        validate_code(code)
    except ValueError as e:
        raise UpstreamToolError("solc", str(e))

    source_name = extract_contract_name(code)
    target = contract_name or source_name

    try:
        ensure_solc()
        output = solcx.compile_standard(build_input(code, source_name))
    except SolcError as e:
        raise UpstreamToolError("solc", f"compilation failed:\n{e}")

    errors = [
        err.get("formattedMessage") or err.get("message", "")
        for err in output.get("errors", [])
        if err.get("severity") == "error"
    ]
    if errors:
        raise UpstreamToolError("solc", "compilation errors:\n" + "\n".join(errors))

    contracts = output.get("contracts", {}).get(f"{source_name}.sol", {})
    if not contracts:
        raise UpstreamToolError("solc", "no compiled contract found, check the contract name and code format")

    if target in contracts:
        name = target
    else:
        name = next(
            (n for n, c in contracts.items() if c.get("evm", {}).get("bytecode", {}).get("object")),
            next(iter(contracts)),
        )
    contract = contracts[name]
    evm = contract.get("evm", {})
    bytecode = evm.get("bytecode", {}).get("object", "")
    if not bytecode:
        raise UpstreamToolError("solc", f"no bytecode produced for {name}, is it abstract or an interface?")

    return CompileArtifact(
        success=True,
        abi=contract.get("abi", []),
        bytecode=normalize_hex(bytecode),
        deployed_bytecode=normalize_hex(evm.get("deployedBytecode", {}).get("object", "")),
        contract_name=name,
        source_hash=content_hash(code),
    )
