"""
Git helpers for hosted skill projects.

Hosted skills keep their code in a git repository; after the upgrade the
working copy is switched to the development branch.
"""

import logging
import subprocess
from pathlib import Path

from .errors import GitError

logger = logging.getLogger(__name__)


def _run_git(args: list[str], cwd: Path) -> str:
    """Run a git command in cwd and return stdout.

    Raises:
        GitError: If git is missing, times out or exits non-zero
    """
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=30,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        raise GitError(f"git {' '.join(args)} failed: {e}") from e

    if result.returncode != 0:
        logger.debug("git %s failed (exit %d): %s", " ".join(args), result.returncode, result.stderr.strip())
        raise GitError(f"git {' '.join(args)} failed: {result.stderr.strip()}")
    return result.stdout.strip()


def is_git_repo(root: Path) -> bool:
    return (Path(root) / ".git").exists()


def branch_exists(root: Path, branch: str) -> bool:
    output = _run_git(["branch", "--list", branch], root)
    return bool(output.strip())


def current_branch(root: Path) -> str:
    """Return the checked-out branch name, or "" when HEAD is detached."""
    try:
        return _run_git(["symbolic-ref", "--short", "HEAD"], root)
    except GitError:
        return ""


def checkout_branch(root: Path, branch: str) -> None:
    """Check out branch, creating it from HEAD if it does not exist."""
    if current_branch(root) == branch:
        logger.debug("Already on branch %s", branch)
        return
    if branch_exists(root, branch):
        _run_git(["checkout", branch], root)
    else:
        _run_git(["checkout", "-b", branch], root)
    logger.info("Checked out git branch %s", branch)
