"""Git interfaces and implementation."""

import os
import re
import shlex
import logging
from dataclasses import dataclass
from typing import List, Optional
import git
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from ..config.models import StackConfig
from ..typing import StackError

logger = logging.getLogger(__name__)

# git@github.com:owner/repo.git, ssh://git@github.com/owner/repo, https://github.com/owner/repo.git
GITHUB_URL_REGEX = re.compile(r'github\.com[:/]+([^/\s]+)/([^/\s]+?)(?:\.git)?/?$')

@dataclass(frozen=True)
class Remote:
    """A GitHub repository searched for stack PRs."""
    organization: str
    repository: str

    def __str__(self) -> str:
        return f"{self.organization}/{self.repository}"

def parse_remote_url(url: str) -> Optional[Remote]:
    """Extract owner/repo from a GitHub remote URL, or None for non-GitHub URLs."""
    match = GITHUB_URL_REGEX.search(url.strip())
    if not match:
        return None
    return Remote(match.group(1), match.group(2))

def parse_remote_slug(slug: str) -> Remote:
    """Parse an "org/repo" string from the config file."""
    parts = slug.strip().strip('/').split('/')
    if len(parts) != 2 or not all(parts):
        raise StackError(f"Invalid remote '{slug}' in repo.remotes, expected 'org/repo'")
    return Remote(parts[0], parts[1])

class RealGit:
    """Real Git implementation backed by GitPython."""
    def __init__(self, config: StackConfig, directory: Optional[str] = None):
        """Initialize with config and the repository to operate on."""
        self.config = config
        self.directory = os.path.abspath(directory or os.getcwd())
        try:
            self.repo = git.Repo(self.directory, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError):
            raise Exception(f"Not a git repository: {self.directory}")

    def run_cmd(self, command: str) -> str:
        """Run git command, raising GitCommandError on failure."""
        return self.run_args(*shlex.split(command.strip()))

    def run_args(self, *args: str) -> str:
        """Run git with an argument list, so ref names are never re-split."""
        logger.info(f"> git {shlex.join(args)}")
        method = getattr(self.repo.git, args[0].replace('-', '_'))
        result = method(*args[1:], kill_after_timeout=self.config.tool.git_timeout)
        return result if isinstance(result, str) else str(result)

    def must_git(self, command: str) -> str:
        """Run git command, failing on error with a readable message."""
        return self.must_git_args(*shlex.split(command.strip()))

    def must_git_args(self, *args: str) -> str:
        try:
            return self.run_args(*args)
        except GitCommandError as e:
            raise Exception(f"Git command failed: {str(e)}")

def get_remotes(config: StackConfig, git_cmd: Optional[RealGit]) -> List[Remote]:
    """Get the GitHub repositories to search.

    Explicit config entries win; otherwise every git remote pointing at
    GitHub contributes one repository, in `git remote` order.
    """
    if config.repo.remotes:
        remotes = [parse_remote_slug(slug) for slug in config.repo.remotes]
    elif git_cmd is not None:
        remotes = []
        for name in git_cmd.must_git("remote").split():
            url = git_cmd.must_git_args("remote", "get-url", name)
            remote = parse_remote_url(url)
            if remote is None:
                logger.debug(f"Skipping non-GitHub remote {name}: {url}")
                continue
            remotes.append(remote)
    else:
        remotes = []

    # Collapse duplicates, first one wins
    unique: List[Remote] = []
    for remote in remotes:
        if remote not in unique:
            unique.append(remote)
    logger.debug(f"Searching remotes: {[str(r) for r in unique]}")
    return unique
