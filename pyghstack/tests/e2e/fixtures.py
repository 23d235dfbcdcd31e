"""Real git repositories for end-to-end rebase tests.

Every test gets a bare "remote" whose default branch is `base`, a working
clone holding a two-branch stack, and a second clone used to move `base`
forward behind the working clone's back.
"""

import os
import shlex
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Generator

import pytest

from pyghstack.tests.utils import run_cmd

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "base"

@dataclass
class StackRepo:
    """Paths and original tips of one test stack."""
    remote_dir: str
    repo_dir: str
    other_dir: str
    tips: Dict[str, str]

    def git(self, cmd: str, cwd: str = "") -> str:
        return run_cmd(f"git {cmd}", cwd=cwd or self.repo_dir)

    def commit(self, filename: str, content: str, message: str, cwd: str = "") -> str:
        """Write a file, commit it and return the new commit hash."""
        directory = cwd or self.repo_dir
        with open(os.path.join(directory, filename), "w") as f:
            f.write(content)
        self.git(f"add {filename}", directory)
        self.git(f"commit -q -m '{message}'", directory)
        return self.git("rev-parse HEAD", directory)

    def remote_tip(self, branch: str) -> str:
        return self.git(f"rev-parse {shlex.quote('refs/heads/' + branch)}", self.remote_dir)

    def advance_default_branch(self, filename: str = "upstream.txt",
                               content: str = "upstream\n") -> str:
        """Land a commit on the remote default branch from the other clone."""
        self.git(f"pull -q origin {DEFAULT_BRANCH}", self.other_dir)
        tip = self.commit(filename, content, "Upstream change", self.other_dir)
        self.git(f"push -q origin {DEFAULT_BRANCH}", self.other_dir)
        return tip

def configure_identity(directory: str) -> None:
    run_cmd("git config user.name 'Stack Tester'", cwd=directory)
    run_cmd("git config user.email 'tester@example.com'", cwd=directory)
    run_cmd("git config commit.gpgsign false", cwd=directory)

def create_stack_repo(root: Path) -> Generator[StackRepo, None, None]:
    """Build base <- feat/a (2 commits) <- feat/b (1 commit), pushed to a bare remote."""
    remote_dir = str(root / "remote.git")
    repo_dir = str(root / "work")
    other_dir = str(root / "other")

    run_cmd(f"git init -q --bare {remote_dir}")
    run_cmd(f"git symbolic-ref HEAD refs/heads/{DEFAULT_BRANCH}", cwd=remote_dir)

    run_cmd(f"git init -q {repo_dir}")
    run_cmd(f"git symbolic-ref HEAD refs/heads/{DEFAULT_BRANCH}", cwd=repo_dir)
    configure_identity(repo_dir)
    run_cmd(f"git remote add origin {remote_dir}", cwd=repo_dir)

    ctx = StackRepo(remote_dir, repo_dir, other_dir, {})
    ctx.tips[DEFAULT_BRANCH] = ctx.commit("base.txt", "line 1\nline 2\n", "Initial commit")
    ctx.git(f"push -q origin {DEFAULT_BRANCH}")

    ctx.git("checkout -q -b feat/a")
    ctx.commit("a1.txt", "a1\n", "Add a1")
    ctx.tips["feat/a"] = ctx.commit("a2.txt", "a2\n", "Add a2")
    ctx.git("checkout -q -b feat/b")
    ctx.tips["feat/b"] = ctx.commit("b.txt", "b\n", "Add b")
    ctx.git("push -q origin feat/a feat/b")
    ctx.git(f"checkout -q {DEFAULT_BRANCH}")

    run_cmd(f"git clone -q -b {DEFAULT_BRANCH} {remote_dir} {other_dir}")
    configure_identity(other_dir)

    logger.info(f"Created stack repo in {root}: {ctx.tips}")
    yield ctx

@pytest.fixture
def stack_repo(tmp_path: Path) -> Generator[StackRepo, None, None]:
    """A fresh stack of real git branches with a local bare remote."""
    yield from create_stack_repo(tmp_path)
