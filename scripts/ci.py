#!/usr/bin/env python3
"""
Local CI script for running all checks before committing
Usage: python scripts/ci.py [--fast]
"""

import argparse
import os
import subprocess
import sys
from pathlib import Path

PACKAGES = "cli db health config.py errors.py"


def run_command(cmd: str, description: str) -> bool:
    """Run a command and return True if successful"""
    print(f"\n{'='*60}")
    print(f"Running: {description}")
    print(f"Command: {cmd}")
    print('='*60)

    result = subprocess.run(cmd, shell=True, capture_output=False)

    if result.returncode == 0:
        print(f"✅ {description} - PASSED")
        return True

    print(f"❌ {description} - FAILED")
    return False


def main():
    """Run lint, type and test checks"""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--fast", action="store_true", help="Skip type checking and coverage")
    args = parser.parse_args()

    project_root = Path(__file__).parent.parent
    os.chdir(project_root)

    print("🚀 Running local CI checks...")
    print(f"Project root: {project_root.absolute()}")

    checks = [
        (f"ruff check {PACKAGES} tests", "Ruff linting"),
    ]
    if args.fast:
        checks.append(("pytest -q", "Tests"))
    else:
        checks.extend([
            (f"mypy {PACKAGES} --ignore-missing-imports", "MyPy type checking"),
            ("pytest --cov=cli --cov=db --cov=health --cov-report=term-missing --cov-fail-under=80",
             "Tests with coverage"),
        ])

    results = [(description, run_command(cmd, description)) for cmd, description in checks]

    print(f"\n{'='*60}")
    print("CI RESULTS SUMMARY")
    print('='*60)

    for description, success in results:
        status = "✅ PASSED" if success else "❌ FAILED"
        print(f"{description:<30} {status}")

    print('='*60)

    if all(success for _, success in results):
        print("🎉 All checks passed! Ready to commit.")
        sys.exit(0)

    print("💥 Some checks failed. Please fix before committing.")
    sys.exit(1)


if __name__ == "__main__":
    main()
