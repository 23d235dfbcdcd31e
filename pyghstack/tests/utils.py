"""Shared utilities for pyghstack tests."""
import subprocess
from typing import Optional, Sequence, Tuple
import logging

from pyghstack.github.types import PullRequest, Review

logger = logging.getLogger(__name__)

def run_cmd(cmd: str, cwd: Optional[str] = None, check: bool = True) -> str:
    """Run shell command and return output.

    Args:
        cmd: Command to run
        cwd: Working directory
        check: Whether to check return code

    Returns:
        str: Command output
    """
    logger.debug(f"Running command: {cmd}")
    result = subprocess.run(
        cmd, shell=True, check=check, cwd=cwd,
        capture_output=True, text=True
    )
    logger.debug(f"Command output: {result.stdout.strip()}")
    if result.stderr:
        logger.debug(f"Command stderr: {result.stderr.strip()}")
    return result.stdout.strip()

def make_pr(number: int, head: str, base: str, title: Optional[str] = None, body: str = "",
            reviews: Sequence[Tuple[str, str]] = ()) -> PullRequest:
    """Build a resolved PullRequest without going through GitHub."""
    return PullRequest(
        number=number,
        title=title if title is not None else f"[STACK-1] Change {number}",
        body=body,
        url=f"https://api.github.com/repos/yang/teststack/pulls/{number}",
        head=head,
        base=base,
        reviews=tuple(Review(login=login, state=state) for login, state in reviews),
    )
