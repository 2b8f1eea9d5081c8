"""
Utility Functions
"""

import os
import shutil
import tempfile
from contextlib import contextmanager
from typing import Iterator, List, Optional, Set, Tuple

CONTRACT_FILENAME = "Contract.sol"


@contextmanager
def contract_workspace(solidity_code: str) -> Iterator[str]:
    """Temporary directory holding the contract; removed on exit"""
    workdir = tempfile.mkdtemp(prefix="sc-pipeline-")
    try:
        with open(os.path.join(workdir, CONTRACT_FILENAME), "w", encoding="utf8") as f:
            f.write(solidity_code)
        yield workdir
    finally:
        shutil.rmtree(workdir, ignore_errors=True)


def read_text(path: str) -> Optional[str]:
    if not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf8", errors="replace") as f:
        return f.read()


def errors_fails(
    exit_code: Optional[int],
    log: Optional[List[str]],
    log_expected: bool = True
) -> Tuple[Set[str], Set[str]]:
    """
    Extract errors and failures from tool execution.

    errors: problems the tool reported and handled
    fails: timeouts, missing commands, uncaught exceptions
    """
    errors = set()
    fails = set()

    if exit_code is None:
        fails.add("TIMEOUT")
    elif exit_code == 0:
        pass
    elif exit_code == 127:
        fails.add("COMMAND_NOT_FOUND")
    else:
        errors.add(f"EXIT_CODE_{exit_code}")

    if log:
        traceback_started = False
        for line in log:
            if "Traceback (most recent call last):" in line:
                traceback_started = True
            elif traceback_started and line.strip() and not line.startswith(" "):
                fails.add(f"exception ({line.strip()})")
                traceback_started = False
    elif log_expected and not fails:
        fails.add("execution failed")

    return errors, fails
