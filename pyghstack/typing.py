"""Common types and errors used across the codebase."""

from typing import Iterable, List, Protocol


class GitInterface(Protocol):
    """Protocol for what the rebase machinery expects from a git runner."""

    def run_cmd(self, command: str) -> str:
        ...

    def must_git(self, command: str) -> str:
        ...

    def run_args(self, *args: str) -> str:
        ...

    def must_git_args(self, *args: str) -> str:
        ...


class StackError(Exception):
    """Base class for every error raised while resolving or rewriting a stack."""


class NetworkFailure(StackError):
    """A GitHub call failed at the transport or HTTP level."""


class MalformedResponse(StackError):
    """A GitHub response did not match the expected schema."""


class MissingCredential(StackError):
    """No GitHub token could be found."""


class AmbiguousStack(StackError):
    """The parent of a PR cannot be resolved unambiguously."""

    def __init__(self, reason: str, numbers: Iterable[int]):
        self.numbers: List[int] = sorted(set(numbers))
        cited = ", ".join(f"#{n}" for n in self.numbers)
        super().__init__(f"{reason} (PRs: {cited})")


class ReplayConflict(StackError):
    """A commit could not be cherry-picked cleanly onto its new parent."""

    def __init__(self, branch: str, commit: str, detail: str = ""):
        self.branch = branch
        self.commit = commit
        message = (f"Could not replay {commit[:8]} onto the rebuilt parent of '{branch}'. "
                   f"The repository was left as-is; resolve the conflict manually "
                   f"(git status) and re-run once the branch is fixed.")
        if detail:
            message += f"\n{detail}"
        super().__init__(message)


class RemoteRejected(StackError):
    """A force-push was refused, or would have targeted a protected branch."""

    def __init__(self, branch: str, remote: str, detail: str = ""):
        self.branch = branch
        self.remote = remote
        message = f"Push of '{branch}' to '{remote}' was rejected"
        if detail:
            message += f": {detail}"
        super().__init__(message)

