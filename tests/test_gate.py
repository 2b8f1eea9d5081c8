"""Tests for the severity gate."""

from conftest import make_finding, make_report
from workflow.gate import blocked_message, is_deployable, summarize
from workflow.models import DetectionReport, Severity, SeveritySummary


def test_informational_and_optimization_never_block():
    report = make_report(informational=2, optimization=1)
    assert is_deployable(report)
    assert report.summary.total == 3
    assert blocked_message(report) == ""


def test_single_high_blocks_with_count_in_message():
    report = make_report(high=1)
    assert not is_deployable(report)
    assert "1 high-severity finding" in blocked_message(report)


def test_low_findings_block():
    assert not is_deployable(make_report(low=1))


def test_missing_report_blocks():
    assert not is_deployable(None)
    assert "not been analyzed" in blocked_message(None)


def test_summary_is_recomputed_from_findings():
    """A stale summary on the report must not let blocking findings through."""
    report = DetectionReport(
        findings=(make_finding(Severity.MEDIUM),),
        summary=SeveritySummary(),
    )
    assert not is_deployable(report)
    assert report.summary.medium == 1


def test_blocked_message_lists_every_blocking_level():
    message = blocked_message(make_report(high=1, medium=2, low=3, informational=4))
    assert "1 high-severity finding" in message
    assert "2 medium-severity findings" in message
    assert "3 low-severity findings" in message
    assert "informational" not in message


def test_summarize_counts_each_severity():
    findings = [make_finding(s) for s in Severity] + [make_finding(Severity.HIGH)]
    summary = summarize(findings)
    assert summary.high == 2
    assert summary.optimization == 1
    assert summary.total == 6


def test_empty_findings_are_deployable():
    summary = summarize([])
    assert summary.total == 0
    assert summary == SeveritySummary()
    assert is_deployable(DetectionReport())
    assert blocked_message(DetectionReport()) == ""


def test_unknown_tool_label_is_treated_as_medium():
    assert Severity.from_label("weird") is Severity.MEDIUM
    assert Severity.from_label(None) is Severity.MEDIUM
    assert Severity.from_label("Critical") is Severity.HIGH
    assert Severity.from_label("Informational") is Severity.INFORMATIONAL
