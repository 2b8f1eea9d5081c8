"""
Data Models for the Workflow
"""

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# Runtime code of an empty contract; deploying it is pointless
EMPTY_CONTRACT_SENTINELS = {"", "0x", "0x0", "0x00"}


def content_hash(code: str) -> str:
    """SHA-256 of contract source, used to bind reports and artifacts to code"""
    return hashlib.sha256((code or "").encode("utf8")).hexdigest()


class Severity(Enum):
    """Finding severity levels"""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    INFORMATIONAL = "Informational"
    OPTIMIZATION = "Optimization"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "Severity":
        """Map a tool severity label; unknown labels are MEDIUM, never lower"""
        if not label:
            return cls.MEDIUM
        key = str(label).strip().lower()
        if key in ("high", "critical"):
            return cls.HIGH
        if key == "medium":
            return cls.MEDIUM
        if key == "low":
            return cls.LOW
        if key in ("informational", "info"):
            return cls.INFORMATIONAL
        if key in ("optimization", "gas"):
            return cls.OPTIMIZATION
        return cls.MEDIUM

    @property
    def blocks_deployment(self) -> bool:
        return self in (Severity.HIGH, Severity.MEDIUM, Severity.LOW)


@dataclass(frozen=True)
class Finding:
    """A single issue reported by static analysis"""
    kind: str
    line: int
    severity: Severity
    suggestion: str
    confidence: str = ""

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind,
            "line": self.line,
            "severity": self.severity.value,
            "suggestion": self.suggestion,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class SeveritySummary:
    high: int = 0
    medium: int = 0
    low: int = 0
    informational: int = 0
    optimization: int = 0

    @property
    def total(self) -> int:
        return self.high + self.medium + self.low + self.informational + self.optimization

    def to_dict(self) -> Dict:
        return {
            "total": self.total,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
            "informational": self.informational,
            "optimization": self.optimization,
        }


@dataclass
class DetectionReport:
    """Findings for one version of the code plus their severity summary"""
    findings: Tuple[Finding, ...] = ()
    summary: SeveritySummary = field(default_factory=SeveritySummary)
    code_hash: Optional[str] = None
    tool: str = "slither"
    warnings: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.findings = tuple(self.findings)

    def get_by_severity(self, severity: Severity) -> List[Finding]:
        return [f for f in self.findings if f.severity == severity]

    def blocking_findings(self) -> List[Finding]:
        return [f for f in self.findings if f.severity.blocks_deployment]

    def to_dict(self) -> Dict:
        return {
            "tool": self.tool,
            "code_hash": self.code_hash,
            "summary": self.summary.to_dict(),
            "vulnerabilities": [f.to_dict() for f in self.findings],
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class CompileArtifact:
    """Compiler output for one contract"""
    success: bool
    abi: Any = field(default_factory=list)
    bytecode: str = ""
    deployed_bytecode: str = ""
    contract_name: str = "Contract"
    error: Optional[str] = None
    source_hash: Optional[str] = None

    @property
    def is_deployable(self) -> bool:
        return normalize_hex(self.bytecode) not in EMPTY_CONTRACT_SENTINELS

    def to_dict(self) -> Dict:
        return {
            "success": self.success,
            "contractName": self.contract_name,
            "abi": self.abi,
            "bytecode": self.bytecode,
            "deployedBytecode": self.deployed_bytecode,
            "error": self.error,
            "sourceHash": self.source_hash,
        }


@dataclass(frozen=True)
class DeployResult:
    """Terminal outcome of one deployment attempt"""
    success: bool
    contract_address: Optional[str] = None
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "success": self.success,
            "contractAddress": self.contract_address,
            "transactionHash": self.tx_hash,
            "blockNumber": self.block_number,
            "gasUsed": self.gas_used,
            "error": self.error,
        }


@dataclass(frozen=True)
class WorkflowState:
    """Immutable snapshot of pipeline progress"""
    version: int = 0
    generated_code: str = ""
    compile_artifact: Optional[CompileArtifact] = None
    detection_report: Optional[DetectionReport] = None
    repaired_code: str = ""
    final_detection_report: Optional[DetectionReport] = None
    is_ready_for_deployment: bool = False
    deployment_result: Optional[DeployResult] = None

    @property
    def latest_report(self) -> Optional[DetectionReport]:
        return self.final_detection_report or self.detection_report

    @property
    def current_code(self) -> str:
        """The code a deployment would ship: repaired code if any, else generated"""
        return self.repaired_code or self.generated_code

    def to_dict(self) -> Dict:
        return {
            "version": self.version,
            "generatedCode": self.generated_code,
            "compileInfo": self.compile_artifact.to_dict() if self.compile_artifact else None,
            "detectionReport": self.detection_report.to_dict() if self.detection_report else None,
            "repairedCode": self.repaired_code,
            "finalDetectionReport": (
                self.final_detection_report.to_dict() if self.final_detection_report else None
            ),
            "isReadyForDeployment": self.is_ready_for_deployment,
            "deploymentResult": self.deployment_result.to_dict() if self.deployment_result else None,
        }


def normalize_hex(value: Optional[str]) -> str:
    """Lowercase 0x-prefixed hex string ('' for empty input)"""
    if not value:
        return ""
    value = value.strip().lower()
    if not value.startswith("0x"):
        value = "0x" + value
    return value
