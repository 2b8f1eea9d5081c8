"""Tests for detection and the auto-fix loop (analyzer, fixer and solc are faked)."""

from unittest.mock import MagicMock, patch

import pytest

from conftest import SAMPLE_CODE, make_artifact, make_report
from stage_3.runner import run_detection, run_repair
from workflow.errors import UpstreamToolError
from workflow.models import content_hash

FIXED_CODE = SAMPLE_CODE.replace("+= msg.value;", "+= msg.value; // checked")


class FakeAnalyzer:
    """Returns one report per call, keyed by the analyzed code"""

    def __init__(self, reports):
        self.reports = reports
        self.analyzed = []

    def analyze(self, code):
        self.analyzed.append(code)
        return self.reports[code]


@pytest.fixture
def compile_ok():
    with patch("stage_3.runner.compile_solidity", side_effect=lambda code: make_artifact(code)) as mock:
        yield mock


def test_detection_publishes_report_and_readiness(store, compile_ok):
    store.set_generated_code(SAMPLE_CODE)
    analyzer = FakeAnalyzer({SAMPLE_CODE: make_report(informational=1)})

    report = run_detection(store, analyzer=analyzer)

    state = store.snapshot
    assert state.detection_report is report
    assert state.is_ready_for_deployment
    assert state.compile_artifact.source_hash == content_hash(SAMPLE_CODE)


def test_detection_blocks_on_high_finding(store, compile_ok):
    store.set_generated_code(SAMPLE_CODE)
    run_detection(store, analyzer=FakeAnalyzer({SAMPLE_CODE: make_report(high=1)}))
    assert not store.snapshot.is_ready_for_deployment


def test_detection_without_code_fails(store):
    with pytest.raises(UpstreamToolError):
        run_detection(store, analyzer=FakeAnalyzer({}))


def test_repair_publishes_fixed_code_once_clean(store, compile_ok):
    store.set_generated_code(SAMPLE_CODE)
    analyzer = FakeAnalyzer({
        SAMPLE_CODE: make_report(high=1),
        FIXED_CODE: make_report(code=FIXED_CODE, optimization=1),
    })
    run_detection(store, analyzer=analyzer)
    fixer = MagicMock()
    fixer.fix_issues.return_value = FIXED_CODE

    result = run_repair(store, analyzer=analyzer, fixer=fixer, max_iterations=3)

    assert result.iterations == 1
    assert result.final_code == FIXED_CODE
    assert result.issues_resolved == 0
    state = store.snapshot
    assert state.current_code == FIXED_CODE
    assert state.is_ready_for_deployment
    assert state.compile_artifact.source_hash == content_hash(FIXED_CODE)


def test_repair_stops_at_max_iterations(store, compile_ok):
    still_bad = FIXED_CODE + "\n"
    store.set_generated_code(SAMPLE_CODE)
    analyzer = FakeAnalyzer({
        SAMPLE_CODE: make_report(high=2),
        FIXED_CODE: make_report(code=FIXED_CODE, high=1),
        still_bad: make_report(code=still_bad, medium=1),
    })
    run_detection(store, analyzer=analyzer)
    fixer = MagicMock()
    fixer.fix_issues.side_effect = [FIXED_CODE, still_bad, SAMPLE_CODE]

    result = run_repair(store, analyzer=analyzer, fixer=fixer, max_iterations=2)

    assert result.iterations == 2
    assert fixer.fix_issues.call_count == 2
    assert not store.snapshot.is_ready_for_deployment
    assert store.snapshot.current_code == still_bad


def test_failed_fix_keeps_last_good_version(store, compile_ok):
    store.set_generated_code(SAMPLE_CODE)
    analyzer = FakeAnalyzer({SAMPLE_CODE: make_report(high=1)})
    run_detection(store, analyzer=analyzer)
    fixer = MagicMock()
    fixer.fix_issues.side_effect = UpstreamToolError("llm", "timeout")

    result = run_repair(store, analyzer=analyzer, fixer=fixer)

    assert result.iterations == 0
    assert result.final_report is None
    assert store.snapshot.current_code == SAMPLE_CODE
    assert not store.snapshot.is_ready_for_deployment


def test_unchanged_fix_ends_the_loop(store, compile_ok):
    store.set_generated_code(SAMPLE_CODE)
    analyzer = FakeAnalyzer({SAMPLE_CODE: make_report(low=1)})
    run_detection(store, analyzer=analyzer)
    fixer = MagicMock()
    fixer.fix_issues.return_value = SAMPLE_CODE

    result = run_repair(store, analyzer=analyzer, fixer=fixer)

    assert result.iterations == 0
    assert analyzer.analyzed == [SAMPLE_CODE]


def test_repair_requires_a_report(store):
    store.set_generated_code(SAMPLE_CODE)
    with pytest.raises(UpstreamToolError):
        run_repair(store, analyzer=FakeAnalyzer({}), fixer=MagicMock())
