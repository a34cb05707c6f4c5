"""
Version information for the rate extractor.

The git commit is appended when the package runs from a checkout.
"""

import subprocess
import sys
from pathlib import Path
from typing import Optional


BASE_VERSION = "0.1.0"


def get_git_commit_hash(short: bool = True) -> Optional[str]:
    """
    Get the current git commit hash.

    Returns:
        Git commit hash string or None if not available
    """
    cmd = ["git", "rev-parse"]
    if short:
        cmd.append("--short")
    cmd.append("HEAD")

    try:
        result = subprocess.run(
            cmd,
            cwd=Path(__file__).parent.parent,
            capture_output=True,
            text=True,
            timeout=5
        )
    except (subprocess.TimeoutExpired, subprocess.SubprocessError, OSError):
        return None

    if result.returncode == 0:
        return result.stdout.strip() or None
    return None


def get_version() -> str:
    """Version string, e.g. 0.1.0 or 0.1.0+g1a2b3c4 inside a git checkout."""
    commit = get_git_commit_hash()
    return f"{BASE_VERSION}+g{commit}" if commit else BASE_VERSION


def get_version_info() -> dict:
    """Version details for the ``version --detailed`` command."""
    commit = get_git_commit_hash(short=False)
    return {
        "version": get_version(),
        "base_version": BASE_VERSION,
        "commit_hash": commit,
        "python_version": sys.version.split()[0],
        "git_available": commit is not None
    }


__version__ = BASE_VERSION
