"""
Slither Parser
==============

Reads the JSON report written by `slither <file> --json <report>`.
"""

import json
from typing import List, Optional

from workflow.models import Finding, Severity

from .base import Parser, ParseResult


class SlitherParser(Parser):
    """Parse Slither JSON output"""

    def __init__(self):
        super().__init__("slither")

    def parse(
        self,
        exit_code: Optional[int],
        output: str,
        logs: List[str]
    ) -> ParseResult:
        result = ParseResult()

        errs, fls = self._extract_errors_fails(exit_code, logs)
        result.errors.update(errs)
        result.fails.update(fls)

        # Slither exits non-zero whenever it reports findings
        result.errors = {e for e in result.errors if not e.startswith("EXIT_CODE_")}

        if not output or not output.strip():
            result.fails.add("no output received")
            return result

        try:
            report = json.loads(output)
        except json.JSONDecodeError:
            result.fails.add("error parsing JSON output")
            return result

        if not report.get("success", False):
            result.fails.add("analysis unsuccessful")
        if report.get("error"):
            result.errors.add(f"analysis reports errors: {str(report['error'])[:200]}")

        detectors = (report.get("results") or {}).get("detectors", [])
        for detector in detectors:
            result.findings.append(self._parse_detector(detector))

        return result

    def _parse_detector(self, detector: dict) -> Finding:
        """Parse a single detector result"""
        line = 0
        elements = detector.get("elements") or []
        if elements:
            lines = (elements[0].get("source_mapping") or {}).get("lines") or []
            if lines:
                line = int(lines[0])

        return Finding(
            kind=detector.get("check") or "unknown",
            line=line,
            severity=Severity.from_label(detector.get("impact")),
            suggestion=(detector.get("description") or "See the detailed report").strip(),
            confidence=detector.get("confidence") or "",
        )
