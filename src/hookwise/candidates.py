"""Candidate file discovery from git."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List

from .exceptions import CoordinatorIOError
from .logging_config import get_logger

logger = get_logger(__name__)

_GIT_TIMEOUT_SECONDS = 10


def _git(repo_path: Path, *args: str) -> str:
    try:
        result = subprocess.run(
            ["git", "-C", str(repo_path), *args],
            capture_output=True,
            text=True,
            timeout=_GIT_TIMEOUT_SECONDS,
        )
    except FileNotFoundError:
        raise CoordinatorIOError("git executable not found")
    except subprocess.TimeoutExpired:
        raise CoordinatorIOError(f"git {args[0]} timed out after {_GIT_TIMEOUT_SECONDS}s")
    if result.returncode != 0:
        raise CoordinatorIOError(result.stderr.strip() or f"git {args[0]} exited {result.returncode}")
    return result.stdout


def repo_root(path: Path) -> Path:
    """Top-level directory of the work tree containing ``path``."""
    return Path(_git(path, "rev-parse", "--show-toplevel").strip())


def staged_files(repo_path: Path) -> List[Path]:
    """Added, copied or modified files in the index.

    Raises:
        CoordinatorIOError: if the repository cannot be read
    """
    root = repo_root(repo_path)
    output = _git(root, "diff", "--cached", "--name-only", "--diff-filter=ACM", "-z")
    files = [root / name for name in output.split("\0") if name]
    logger.debug("Found %d staged file(s) in %s", len(files), root)
    return files
