"""
Security Fixer
==============

LLM-based vulnerability fixer
"""

from typing import Iterable, Optional

from openai import OpenAI

from stage_1.code_generator import clean_code_block
from stage_1.llm_utils import call_chat_completion, get_client, response_text
from workflow.models import Finding

SYSTEM_PROMPT = (
    "You are a smart contract security expert. Fix the code according to the detected "
    "vulnerabilities and add security comments describing each fix. "
    "Output only the complete fixed code, no other explanation."
)


class SecurityFixer:
    """LLM-based vulnerability fixer"""

    def __init__(self, client: Optional[OpenAI] = None, verbose: bool = False):
        self._client = client
        self.verbose = verbose

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = get_client()
        return self._client

    def fix_issues(self, solidity_code: str, findings: Iterable[Finding], iteration: int = 1) -> str:
        """
        Generate fixed code.

        Raises:
            UpstreamToolError: If the language model call fails
        """
        findings = list(findings)
        if not findings:
            return solidity_code

        print(f"\n  🔧 Iteration {iteration}: Fixing {len(findings)} issues")

        response = call_chat_completion(
            self.client,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self._build_user_prompt(solidity_code, findings)},
            ],
            temperature=0.2,
            max_tokens=3000,
            debug=self.verbose,
        )
        fixed_code = clean_code_block(response_text(response))
        print("  ✓ Fixes generated")
        return fixed_code

    @staticmethod
    def format_findings(findings: Iterable[Finding]) -> str:
        lines = []
        for i, finding in enumerate(findings, 1):
            lines.append(
                f"{i}. {finding.kind} (line {finding.line}) - severity: {finding.severity.value}\n"
                f"   Suggestion: {finding.suggestion}"
            )
        return "\n".join(lines)

    def _build_user_prompt(self, code: str, findings: Iterable[Finding]) -> str:
        return (
            f"Original code:\n```solidity\n{code}\n```\n\n"
            f"Detected vulnerabilities:\n{self.format_findings(findings)}\n\n"
            "Fix these vulnerabilities and return the complete code."
        )
