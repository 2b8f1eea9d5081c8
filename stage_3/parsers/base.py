from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from workflow.models import Finding

from ..utils import errors_fails


@dataclass
class ParseResult:
    """Result from parsing tool output"""
    findings: List[Finding] = field(default_factory=list)
    errors: Set[str] = field(default_factory=set)
    fails: Set[str] = field(default_factory=set)


class Parser(ABC):
    """Base class for tool output parsers"""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name

    @abstractmethod
    def parse(
        self,
        exit_code: Optional[int],
        output: str,
        logs: List[str]
    ) -> ParseResult:
        """
        Parse tool output into Finding objects

        Args:
            exit_code: Process exit code (None = timeout)
            output: Content of the tool's report file
            logs: Combined stdout/stderr lines

        Returns:
            ParseResult with findings, errors and fails
        """

    def _extract_errors_fails(
        self,
        exit_code: Optional[int],
        logs: List[str]
    ) -> Tuple[Set[str], Set[str]]:
        return errors_fails(exit_code, logs if logs else None, log_expected=False)
