"""Rebuild a stack of branches after an earlier branch changed.

Two flavors share the same stack order: a bash script a human can audit and
run step by step, and an automated cascade that cherry-picks every branch's
own commits onto its freshly rebuilt parent and force-pushes it.
"""

import re
import shlex
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from git.exc import GitCommandError

from ..graph import FlatDep
from ..github.types import PullRequest
from ..typing import GitInterface, ReplayConflict, RemoteRejected, StackError

logger = logging.getLogger(__name__)

SYMREF_REGEX = re.compile(r'^ref:\s+refs/heads/(\S+)\s+HEAD$', re.MULTILINE)
SHA_HEAD_REGEX = re.compile(r'^([0-9a-f]{40})\s+HEAD$', re.MULTILINE)

def _tip_variable(pr: PullRequest) -> str:
    return f"PR_{pr.number}_TIP"

def generate_rebase_script(stack: FlatDep) -> str:
    """Render the stack as a bash script that rebases each branch onto its parent.

    Parent tips are captured up front, before anything moves, so each
    `rebase --onto` only carries the commits unique to its branch.
    """
    parents = {parent.number: parent for _, parent in stack if parent is not None}

    lines = [
        "#!/usr/bin/env bash",
        "set -euo pipefail",
        "set -x",
        "",
    ]
    if parents:
        lines.append("# Tips of every parent branch before the stack is rewritten")
        for pr, _ in stack:
            if pr.number in parents:
                lines.append(f"{_tip_variable(pr)}=$(git rev-parse {shlex.quote('refs/heads/' + pr.head)})")
        lines.append("")

    for pr, parent in stack:
        if parent is None:
            continue
        lines.append(f"# #{pr.number} onto #{parent.number}")
        lines.append(f"git checkout {shlex.quote(pr.head)}")
        lines.append(f"git rebase --onto {shlex.quote(parent.head)} \"${_tip_variable(parent)}\" {shlex.quote(pr.head)}")
        lines.append("")

    lines.append("# Check the result, then push with:")
    for pr, _ in stack:
        lines.append(f"# git push --force-with-lease origin {shlex.quote(pr.head)}")
    return "\n".join(lines)

@dataclass(frozen=True)
class RebasedBranch:
    """Outcome of rebuilding one branch."""
    pr: PullRequest
    old_tip: str
    new_tip: str
    commits: int

class StackRebaser:
    """Sequential state machine over the flattened stack.

    For every entry in order: collect the branch's own commits, replay them
    onto the rebuilt parent, move the branch and force-push it. Any failure
    stops the machine where it is; nothing is rolled back or discarded.
    """

    def __init__(self, stack: FlatDep, git_cmd: GitInterface, remote: str,
                 boundary: Optional[str] = None):
        self.stack = stack
        self.git_cmd = git_cmd
        self.remote = remote
        self.boundary = boundary
        self.default_branch = ""
        self.default_tip = ""
        self.original_tips: Dict[int, str] = {}
        self.new_tips: Dict[int, str] = {}
        self.original_ref = ""

    def prepare(self) -> None:
        """Fetch, resolve the remote default branch and snapshot every branch tip."""
        self.git_cmd.must_git_args("fetch", self.remote)

        symref = self.git_cmd.must_git_args("ls-remote", "--symref", self.remote, "HEAD")
        branch_match = SYMREF_REGEX.search(symref)
        sha_match = SHA_HEAD_REGEX.search(symref)
        if not branch_match or not sha_match:
            raise StackError(f"Cannot determine the default branch of remote '{self.remote}'")
        self.default_branch = branch_match.group(1)
        self.default_tip = sha_match.group(1)
        logger.info(f"Remote default branch: {self.remote}/{self.default_branch} at {self.default_tip[:8]}")

        for pr, _ in self.stack:
            if pr.head == self.default_branch:
                raise RemoteRejected(pr.head, self.remote,
                                     f"PR #{pr.number} uses the default branch as its head; refusing to force-push it")

        if self.git_cmd.must_git("status --porcelain --untracked-files=no").strip():
            raise StackError("Working tree has uncommitted changes; commit or stash them first")

        for pr, _ in self.stack:
            try:
                tip = self.git_cmd.run_args("rev-parse", "--verify", f"refs/heads/{pr.head}").strip()
            except GitCommandError:
                raise StackError(f"Local branch '{pr.head}' for PR #{pr.number} not found; fetch it first")
            self.original_tips[pr.number] = tip
            logger.debug(f"  #{pr.number} {pr.head} at {tip[:8]}")

        try:
            self.original_ref = self.git_cmd.run_cmd("symbolic-ref --short -q HEAD").strip()
        except GitCommandError:
            self.original_ref = self.git_cmd.must_git("rev-parse HEAD").strip()

    def replay_range(self, index: int, pr: PullRequest, parent: Optional[PullRequest]) -> str:
        """Exclusive lower bound of the commits that belong to pr alone."""
        if parent is not None:
            return self.original_tips[parent.number]
        if index == 0 and self.boundary:
            return self.boundary
        base = self.git_cmd.must_git_args(
            "merge-base", self.default_tip, self.original_tips[pr.number]).strip()
        logger.info(f"No boundary for #{pr.number}, replaying from merge-base {base[:8]}")
        return base

    def replay(self, pr: PullRequest, onto: str, since: str) -> Tuple[str, int]:
        """Cherry-pick pr's commits after since onto onto.

        Returns the new tip and the number of commits replayed.
        """
        tip = self.original_tips[pr.number]
        commits = [c for c in self.git_cmd.must_git_args("rev-list", "--reverse", f"{since}..{tip}").split("\n") if c]
        logger.info(f"Rebuilding #{pr.number} {pr.head}: {len(commits)} commit(s) onto {onto[:8]}")

        self.git_cmd.must_git_args("checkout", "--detach", onto)
        for commit in commits:
            try:
                self.git_cmd.run_args("cherry-pick", commit)
            except GitCommandError as e:
                raise ReplayConflict(pr.head, commit, str(e.stderr).strip())
        return self.git_cmd.must_git("rev-parse HEAD").strip(), len(commits)

    def advance(self, pr: PullRequest, new_tip: str) -> None:
        """Point the local branch at new_tip and force-push only that branch."""
        self.git_cmd.must_git_args("branch", "-f", pr.head, new_tip)
        try:
            self.git_cmd.run_args("push", "--force", self.remote, f"refs/heads/{pr.head}:refs/heads/{pr.head}")
        except GitCommandError as e:
            raise RemoteRejected(pr.head, self.remote, str(e.stderr).strip())
        self.new_tips[pr.number] = new_tip

    def run(self) -> List[RebasedBranch]:
        """Rebuild the whole stack, parent before child."""
        self.prepare()
        results: List[RebasedBranch] = []
        for index, (pr, parent) in enumerate(self.stack):
            onto = self.new_tips[parent.number] if parent is not None else self.default_tip
            since = self.replay_range(index, pr, parent)
            new_tip, count = self.replay(pr, onto, since)
            self.advance(pr, new_tip)
            results.append(RebasedBranch(pr, self.original_tips[pr.number], new_tip, count))
        self.git_cmd.must_git_args("checkout", self.original_ref)
        return results

def perform_rebase(stack: FlatDep, git_cmd: GitInterface, remote: str,
                   boundary: Optional[str] = None) -> List[RebasedBranch]:
    """Cascade a rebase through the stack and force-push every rebuilt branch."""
    return StackRebaser(stack, git_cmd, remote, boundary).run()
