#!/usr/bin/env python3
"""Test runner for the tangram CV validation core.

Usage:
    python run_tests.py unit            # unit tests with coverage
    python run_tests.py regression      # pinned matching scenarios
    python run_tests.py ci              # xml coverage + junit report
    python run_tests.py check           # verify the environment
"""
import os
import sys
import subprocess
import argparse
import time
from pathlib import Path
from typing import Dict, List

PACKAGE = "tangram_cv"
COVERAGE_FLOOR = "85"
PROJECT_ROOT = Path(__file__).parent

# Suite name -> pytest selection arguments
SUITES: Dict[str, List[str]] = {
    "unit": ["tests/unit/"],
    "integration": ["tests/integration/", "-m", "integration"],
    "regression": ["-m", "regression"],
    "all": [],
    "quick": ["tests/unit/", "-x", "--tb=short", "-q"],
    "ci": ["--junit-xml=test-results.xml", "--tb=short"],
}

# Suites that collect coverage unless --no-coverage is given
COVERAGE_REPORTS: Dict[str, List[str]] = {
    "unit": ["--cov-report=term-missing"],
    "all": ["--cov-report=html:htmlcov", "--cov-report=term-missing", f"--cov-fail-under={COVERAGE_FLOOR}"],
    "ci": ["--cov-report=xml:coverage.xml", "--cov-report=term", f"--cov-fail-under={COVERAGE_FLOOR}"],
}

REQUIRED_MODULES = {"pytest": "pytest", "pytest-cov": "pytest_cov", "numpy": "numpy", "opencv-python": "cv2"}


def build_command(suite: str, coverage: bool, verbose: bool) -> List[str]:
    cmd = [sys.executable, "-m", "pytest", *SUITES[suite]]
    if verbose and suite not in ("quick", "ci"):
        cmd.append("-v")
    if suite in COVERAGE_REPORTS and (coverage or suite == "ci"):
        cmd.append(f"--cov={PACKAGE}")
        cmd.extend(COVERAGE_REPORTS[suite])
    return cmd


def run_suite(suite: str, coverage: bool = True, verbose: bool = True) -> int:
    """Run one suite from the project root and return pytest's exit code."""
    if suite == "ci":
        os.environ["CI"] = "true"
    cmd = build_command(suite, coverage, verbose)
    print(f"Running {suite} tests: {' '.join(cmd)}")
    return subprocess.run(cmd, cwd=PROJECT_ROOT).returncode


def check_test_environment() -> bool:
    """Report whether pytest, coverage and the runtime libraries are importable."""
    print("Checking test environment...")

    missing = []
    for dist, module in REQUIRED_MODULES.items():
        try:
            __import__(module)
        except ImportError:
            missing.append(dist)
        print(f"{'✗' if dist in missing else '✓'} {dist}")

    if missing:
        print(f"\nMissing packages: {', '.join(missing)}")
        print("Install with: pip install -e .[test]")
        return False

    absent = [d for d in ("tests/unit", "tests/integration") if not (PROJECT_ROOT / d).is_dir()]
    for dir_path in absent:
        print(f"✗ {dir_path} directory missing")
    if not absent:
        print("✓ Test environment ready")
    return not absent


def main():
    parser = argparse.ArgumentParser(description="Test runner for the tangram CV validation core")
    parser.add_argument("test_type", choices=[*SUITES, "check"], help="Suite to run")
    parser.add_argument("--no-coverage", action="store_true", help="Disable coverage reporting")
    parser.add_argument("--quiet", action="store_true", help="Quiet output")
    args = parser.parse_args()

    if args.test_type == "check":
        return 0 if check_test_environment() else 1

    started = time.perf_counter()
    result = run_suite(args.test_type, coverage=not args.no_coverage, verbose=not args.quiet)
    print(f"\nFinished in {time.perf_counter() - started:.2f}s: "
          f"{'all tests passed' if result == 0 else 'failures reported'}")
    return result


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(130)
