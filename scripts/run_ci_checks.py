#!/usr/bin/env python3
# =============================================================================
# callsign v1.0.0 -- CI CHECKS RUNNER
# File:   scripts/run_ci_checks.py
# =============================================================================
#
# PURPOSE
# -------
# Runs full CI gate in two sequential stages:
#   Stage 1: pytest (all tests + coverage enforcement >= 90%)
#   Stage 2: usage example (public DSL smoke run)
#
# Exit codes:
#   0 -- All stages passed.
#   1 -- Stage 1 (pytest) failed.
#   2 -- Stage 2 (usage example) failed.
#
# Usage:
#   python scripts/run_ci_checks.py
#
# No external dependencies beyond stdlib and the callsign package.
# =============================================================================

from __future__ import annotations

import subprocess
import sys
import pathlib

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
_REPO_ROOT = pathlib.Path(__file__).parent.parent
_PYTHON    = sys.executable


def _separator(char: str = "=", width: int = 72) -> str:
    return char * width


def _run(cmd: list[str], label: str) -> int:
    """
    Run a subprocess command, stream stdout/stderr live, return exit code.
    """
    print(_separator())
    print(f"CI STAGE: {label}")
    print(f"CMD:      {' '.join(cmd)}")
    print(_separator("-"))
    sys.stdout.flush()

    proc = subprocess.run(
        cmd,
        cwd=str(_REPO_ROOT),
    )
    return proc.returncode


def _fail(stage: str, rc: int, code: int) -> int:
    print(_separator())
    print(f"CI RESULT: FAIL  [stage={stage}  exit_code={rc}]")
    print(f"Merge BLOCKED: {stage} stage did not pass.")
    print(_separator())
    sys.stdout.flush()
    return code


def main() -> int:
    print(_separator())
    print("CALLSIGN CI GATE -- starting")
    print(_separator())
    sys.stdout.flush()

    # ------------------------------------------------------------------
    # Stage 1: pytest
    # pyproject.toml provides: --cov=callsign --cov-report=term-missing
    #                          --cov-fail-under=90
    # ------------------------------------------------------------------
    pytest_rc = _run(
        [_PYTHON, "-m", "pytest"],
        "pytest (tests + coverage >= 90%)",
    )
    if pytest_rc != 0:
        return _fail("pytest", pytest_rc, 1)

    print(_separator("-"))
    print("CI STAGE pytest: PASS")
    sys.stdout.flush()

    # ------------------------------------------------------------------
    # Stage 2: usage example
    # Exercises the public DSL end to end outside the test runner.
    # ------------------------------------------------------------------
    example_rc = _run(
        [_PYTHON, str(_REPO_ROOT / "usage_example.py")],
        "usage example (public DSL)",
    )
    if example_rc != 0:
        return _fail("usage example", example_rc, 2)

    print(_separator("-"))
    print("CI STAGE usage example: PASS")

    print(_separator())
    print("CI RESULT: PASS  [stages=pytest,usage_example]")
    print("Merge permitted.")
    print(_separator())
    sys.stdout.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
