"""
Contract Generator
==================

Natural-language description -> cleaned Solidity source via the language
model, followed by a compile check.
"""

import re
from dataclasses import dataclass
from typing import Optional

from openai import OpenAI

import config
from stage_2 import compile_solidity
from workflow.errors import UpstreamToolError
from workflow.models import CompileArtifact

from .llm_utils import call_chat_completion, get_client, response_text

SYSTEM_PROMPT = f"""You are an expert Solidity smart contract developer. Generate complete, compilable smart contract code from the user's requirements.

Requirements:
1. Use Solidity version {config.SOLC_VERSION}
2. Include the complete contract logic
3. The code must compile
4. Output code only, no extra explanation

Format example:
// SPDX-License-Identifier: MIT
pragma solidity ^{config.SOLC_VERSION};

contract MyContract {{
    // contract logic
}}"""

_FENCE_OPEN = re.compile(r"```[^\n]*\n")
_PRAGMA = re.compile(r"pragma\s+solidity\s+[^;]*;")


@dataclass
class GenerationResult:
    code: str
    compile_artifact: CompileArtifact

    def to_dict(self) -> dict:
        return {"code": self.code, "compileInfo": self.compile_artifact.to_dict()}


def clean_code_block(raw_code: Optional[str]) -> str:
    """
    Turn model output into Solidity source.

    Strips markdown fences, pins the compiler pragma to the supported version
    and rewrites the @security NatSpec tag, which solc rejects.
    """
    if not raw_code:
        return ""

    code = _FENCE_OPEN.sub("", raw_code)
    code = code.replace("```", "").strip()
    code = _PRAGMA.sub(f"pragma solidity ^{config.SOLC_VERSION};", code, count=1)
    code = code.replace("@security", "Security Note:")
    return code


def generate_contract(
    description: str,
    client: Optional[OpenAI] = None,
    verify_compile: bool = True,
    debug: bool = False,
) -> GenerationResult:
    """
    Generate a contract from a description.

    The code is returned even when compilation fails; the failure is recorded
    on the compile artifact.

    Raises:
        ValueError: If the description is empty
        UpstreamToolError: If the language model call fails
    """
    if not description or not description.strip():
        raise ValueError("Contract description must not be empty")

    client = client or get_client()

    if debug:
        print("    [DEBUG] Sending generation request to the language model...")

    response = call_chat_completion(
        client,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": f"Generate a smart contract: {description.strip()}"},
        ],
        temperature=0.3,
        max_tokens=2000,
        debug=debug,
    )
    code = clean_code_block(response_text(response))
    print(f"  ✓ Contract generated ({len(code)} characters)")

    if not verify_compile:
        return GenerationResult(code=code, compile_artifact=CompileArtifact(success=False, error="not compiled"))

    try:
        artifact = compile_solidity(code)
        print(f"  ✓ Compile check passed: {artifact.contract_name}")
    except UpstreamToolError as e:
        print(f"  ⚠️  Generated code does not compile: {e}")
        artifact = CompileArtifact(success=False, error=str(e))

    return GenerationResult(code=code, compile_artifact=artifact)
