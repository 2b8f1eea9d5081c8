"""
Severity Gate
=============

Deployment policy: a report is deployable iff it has no High, Medium or Low
findings. Informational and Optimization findings never block.
"""

from typing import Iterable, Optional

from .models import DetectionReport, Finding, Severity, SeveritySummary


def summarize(findings: Iterable[Finding]) -> SeveritySummary:
    """Count findings per severity"""
    counts = {severity: 0 for severity in Severity}
    for finding in findings:
        counts[finding.severity] += 1
    return SeveritySummary(
        high=counts[Severity.HIGH],
        medium=counts[Severity.MEDIUM],
        low=counts[Severity.LOW],
        informational=counts[Severity.INFORMATIONAL],
        optimization=counts[Severity.OPTIMIZATION],
    )


def refresh_summary(report: DetectionReport) -> DetectionReport:
    """Overwrite the report summary with counts recomputed from its findings"""
    report.summary = summarize(report.findings)
    return report


def is_deployable(report: Optional[DetectionReport]) -> bool:
    if report is None:
        return False
    summary = refresh_summary(report).summary
    return summary.high == 0 and summary.medium == 0 and summary.low == 0


def blocked_message(report: Optional[DetectionReport]) -> str:
    """Explain why a report blocks deployment ('' when it does not)"""
    if report is None:
        return "Deployment blocked: contract has not been analyzed"
    if is_deployable(report):
        return ""

    summary = report.summary
    parts = []
    for count, label in (
        (summary.high, "high"),
        (summary.medium, "medium"),
        (summary.low, "low"),
    ):
        if count:
            noun = "finding" if count == 1 else "findings"
            parts.append(f"{count} {label}-severity {noun}")
    return "Deployment blocked: " + ", ".join(parts)
