from dataclasses import dataclass, field
from typing import Dict, List, Optional

from stage_2 import compile_solidity
from workflow.errors import UpstreamToolError
from workflow.gate import blocked_message, is_deployable
from workflow.models import CompileArtifact, DetectionReport, Severity
from workflow.store import WorkflowStateStore

from .analyzer import SecurityAnalyzer
from .fixer import SecurityFixer


@dataclass
class RepairResult:
    """Outcome of the auto-fix loop"""
    original_code: str
    final_code: str
    iterations: int
    initial_report: DetectionReport
    final_report: Optional[DetectionReport]
    compile_artifact: Optional[CompileArtifact] = None
    fixes_applied: List[Dict] = field(default_factory=list)

    @property
    def issues_resolved(self) -> int:
        if self.final_report is None:
            return 0
        return self.initial_report.summary.total - self.final_report.summary.total

    def to_dict(self) -> Dict:
        return {
            "iterations": self.iterations,
            "issues_resolved": self.issues_resolved,
            "initial_report": self.initial_report.to_dict(),
            "final_report": self.final_report.to_dict() if self.final_report else None,
            "fixes_applied": self.fixes_applied,
        }


def print_summary(report: DetectionReport) -> None:
    summary = report.summary
    print(f"\n  Found {summary.total} total issues:")
    print(f"    • High: {summary.high}")
    print(f"    • Medium: {summary.medium}")
    print(f"    • Low: {summary.low}")
    print(f"    • Informational: {summary.informational}")
    print(f"    • Optimization: {summary.optimization}")


def run_detection(
    store: WorkflowStateStore,
    analyzer: Optional[SecurityAnalyzer] = None,
    verbose: bool = False,
) -> DetectionReport:
    """
    Compile-check and analyze the generated code, then publish the report.

    Raises:
        UpstreamToolError: If compilation or analysis fails
    """
    print("\n" + "=" * 80)
    print("STAGE 3: SECURITY ANALYSIS")
    print("=" * 80)

    code = store.snapshot.generated_code
    if not code.strip():
        raise UpstreamToolError("slither", "no contract code to analyze")

    print("\n[1/2] Verifying the contract compiles")
    artifact = compile_solidity(code)
    store.set_compile_artifact(artifact)
    print(f"  ✓ Compiled {artifact.contract_name}")

    print("\n[2/2] Security analysis")
    analyzer = analyzer or SecurityAnalyzer(verbose=verbose)
    report = analyzer.analyze(code)
    store.set_detection_report(report)

    print_summary(report)
    if is_deployable(report):
        print("\n✅ No blocking findings, contract is ready for deployment")
    else:
        print(f"\n⚠️  {blocked_message(report)}")
    return report


def run_repair(
    store: WorkflowStateStore,
    analyzer: Optional[SecurityAnalyzer] = None,
    fixer: Optional[SecurityFixer] = None,
    max_iterations: int = 2,
    verbose: bool = False,
) -> RepairResult:
    """
    Iteratively fix blocking findings: fix, recompile, re-analyze.

    Only a fix that compiles and has been re-analyzed is published to the
    store; a failing iteration ends the loop with the last good version.
    """
    print("\n" + "=" * 80)
    print("STAGE 3: AUTO-FIX")
    print("=" * 80)

    state = store.snapshot
    if state.latest_report is None:
        raise UpstreamToolError("slither", "run detection before repair")

    analyzer = analyzer or SecurityAnalyzer(verbose=verbose)
    fixer = fixer or SecurityFixer(verbose=verbose)

    original_code = state.current_code
    current_code = original_code
    current_report = state.latest_report
    current_artifact = state.compile_artifact
    fixes_applied = []
    iteration = 0

    while iteration < max_iterations:
        blocking = current_report.blocking_findings()
        if not blocking:
            print(f"\n  ✓ No blocking issues after {len(fixes_applied)} iterations")
            break

        iteration += 1
        try:
            fixed_code = fixer.fix_issues(current_code, blocking, iteration)
            if fixed_code == current_code:
                print(f"  ⚠️  No changes in iteration {iteration}")
                break

            print("\n  🔍 Re-compiling and re-analyzing...")
            artifact = compile_solidity(fixed_code)
            report = analyzer.analyze(fixed_code)
        except UpstreamToolError as e:
            print(f"  ⚠️  Iteration {iteration} failed: {e}")
            break

        fixes_applied.append({
            "iteration": iteration,
            "issues_before": len(blocking),
            "issues_after": len(report.blocking_findings()),
        })
        current_code, current_report, current_artifact = fixed_code, report, artifact
        print(f"  ✓ Iteration {iteration}: {report.summary.total} issues remain")

    result = RepairResult(
        original_code=original_code,
        final_code=current_code,
        iterations=len(fixes_applied),
        initial_report=state.latest_report,
        final_report=current_report if fixes_applied else None,
        compile_artifact=current_artifact,
        fixes_applied=fixes_applied,
    )

    if fixes_applied:
        store.set_repair_result(current_code, current_report)
        store.set_compile_artifact(current_artifact)

    print("\n✅ Auto-fix complete:")
    print(f"  • Iterations: {result.iterations}")
    print(f"  • Initial issues: {result.initial_report.summary.total}")
    if result.final_report:
        print(f"  • Final issues: {result.final_report.summary.total}")
        print(f"  • Remaining high: {len(result.final_report.get_by_severity(Severity.HIGH))}")
    print(f"  • Issues resolved: {result.issues_resolved}")
    return result
