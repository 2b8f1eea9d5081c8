"""
Security Analyzer
=================

Runs the static-analysis tool and turns its output into a DetectionReport
bound to the hash of the analyzed code.
"""

from typing import Optional

import config
from workflow.errors import UpstreamToolError
from workflow.gate import refresh_summary
from workflow.models import DetectionReport, content_hash

from .executor import get_executor
from .parsers import SlitherParser
from .tool_loader import load_tool


class SecurityAnalyzer:
    """Static analysis through Slither"""

    PARSERS = {
        "slither": SlitherParser,
    }

    def __init__(self, tool_id: str = "slither", executor=None, verbose: bool = False):
        self.verbose = verbose
        self.tool = load_tool(tool_id)
        if self.tool is None:
            raise UpstreamToolError(tool_id, "tool config not found in stage_3/tools/")
        if tool_id not in self.PARSERS:
            raise UpstreamToolError(tool_id, "no parser available")
        self.parser = self.PARSERS[tool_id]()
        self.executor = executor if executor is not None else get_executor(verbose=verbose)

    def analyze(self, solidity_code: str, timeout: Optional[int] = None) -> DetectionReport:
        """
        Analyze source code.

        Raises:
            UpstreamToolError: If the tool crashes or produces no usable report
        """
        timeout = timeout or config.SLITHER_TIMEOUT
        print(f"    • {self.tool.id}...", end=" ", flush=True)

        try:
            execution = self.executor.execute(solidity_code, self.tool, timeout=timeout)
        except RuntimeError as e:
            print("✗")
            raise UpstreamToolError(self.tool.id, str(e))

        if self.verbose and execution.logs:
            print(f"\n    [DEBUG] Exit code: {execution.exit_code}")
            print("    [DEBUG] Last 10 log lines:\n" + "\n".join(execution.logs[-10:]))

        parsed = self.parser.parse(execution.exit_code, execution.output or "", execution.logs)

        if parsed.fails and not parsed.findings:
            print(f"✗ ({sorted(parsed.fails)[0]})")
            detail = "\n".join(execution.logs[-20:])
            raise UpstreamToolError(
                self.tool.id,
                f"detection failed: {', '.join(sorted(parsed.fails))}" + (f"\n{detail}" if detail else ""),
            )

        warnings = sorted(parsed.errors) + [f"partial: {f}" for f in sorted(parsed.fails)]
        report = refresh_summary(DetectionReport(
            findings=parsed.findings,
            code_hash=content_hash(solidity_code),
            tool=self.tool.id,
            warnings=warnings,
        ))
        print(f"✓ ({report.summary.total} issues)")
        return report
