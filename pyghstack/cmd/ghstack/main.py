"""CLI entry point."""

import os
import sys
import click
import logging
from typing import Any, Callable, List, NoReturn, Optional, Tuple
from click import Context

from ...annotate import DescriptionUpdate, persist
from ...config import Config, default_config
from ...config.config_parser import parse_config
from ...git import RealGit, get_remotes
from ...github import GitHubClient
from ...github.adapters import create_github
from ...graph import FlatDep, build_stack
from ...pretty import build_table, format_log_line
from ...rebase import generate_rebase_script, perform_rebase
from ...typing import StackError

# Get module logger
logger = logging.getLogger(__name__)

def check(err: Exception) -> NoReturn:
    """Report an error and exit."""
    logger.error(f"Error: {err}")
    sys.exit(1)

def common_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Arguments shared by every subcommand."""
    fn = click.option('-v', '--verbose', count=True,
                      help="Increase verbosity (can be used multiple times for more verbosity)")(fn)
    fn = click.option('--excl', '-e', 'exclude', multiple=True, metavar='ISSUE',
                      help="Exclude an issue from consideration (by number). Pass multiple times")(fn)
    fn = click.argument('identifier')(fn)
    return fn

@click.group()
@click.pass_context
def cli(ctx: Context) -> None:
    """gh-stack - manage stacks of dependent pull requests on GitHub.

    All pull requests containing IDENTIFIER in their title form a stack.
    """
    ctx.obj = {}

def setup_git(directory: Optional[str] = None, required: bool = False) -> Tuple[Config, Optional[RealGit]]:
    """Load config and open the local repository, if there is one."""
    directory = os.path.abspath(directory or os.getcwd())
    root = directory
    git_cmd: Optional[RealGit] = None
    try:
        git_cmd = RealGit(default_config(), directory)
        root = git_cmd.repo.working_tree_dir or directory
    except Exception as e:
        if required:
            check(e)
        logger.debug(f"No local repository: {e}")

    config = Config(parse_config(root))
    if git_cmd is not None:
        git_cmd = RealGit(config, root)
    return config, git_cmd

def build_pr_stack(config: Config, git_cmd: Optional[RealGit], identifier: str,
                   exclude: List[str]) -> Tuple[FlatDep, GitHubClient]:
    """Resolve the PRs matching identifier and order them as a stack."""
    remotes = get_remotes(config, git_cmd)
    if not remotes:
        raise StackError("No GitHub repositories to search: add a GitHub remote "
                         "or list 'repo.remotes' in .gh-stack.yaml")
    github = GitHubClient(config, create_github(config))
    prs = github.fetch_pull_requests_matching(identifier, remotes)
    return build_stack(prs, exclude), github

@cli.command(name="annotate", help="Annotate the descriptions of all PRs in a stack with metadata about all PRs in the stack")
@common_options
@click.option('--prelude', '-p', type=click.Path(exists=True, dir_okay=False), metavar='FILE',
              help="Prepend the annotation with the contents of this file")
@click.option('--yes', '-y', is_flag=True, help="Don't ask for confirmation before updating PRs")
def annotate(identifier: str, exclude: List[str], verbose: int, prelude: Optional[str], yes: bool) -> None:
    """Annotate command."""
    from ... import setup_logging
    setup_logging(verbose)

    config, git_cmd = setup_git()
    try:
        stack, github = build_pr_stack(config, git_cmd, identifier, list(exclude))
        prelude_text = None
        if prelude:
            with open(prelude, 'r') as f:
                prelude_text = f.read()
        table = build_table(stack, identifier, prelude_text)

        def confirm(updates: List[DescriptionUpdate]) -> None:
            for update in updates:
                click.echo(f"{update.pr.number}: {update.pr.title}")
            if not yes:
                click.confirm("Going to update these PRs ☝️ ", abort=True)

        if not persist(stack, table, github, confirm):
            click.echo("All PR descriptions are up to date")
            return
        click.echo("Done!")
    except (StackError, OSError) as e:
        check(e)

@cli.command(name="log", help="Print a list of all pull requests in a stack to STDOUT")
@common_options
def log(identifier: str, exclude: List[str], verbose: int) -> None:
    """Log command."""
    from ... import setup_logging
    setup_logging(verbose)

    config, git_cmd = setup_git()
    try:
        stack, _ = build_pr_stack(config, git_cmd, identifier, list(exclude))
    except StackError as e:
        check(e)
    for pr, parent in stack:
        click.echo(format_log_line(pr, parent))

@cli.command(name="rebase", help="Print a bash script to STDOUT that can rebase/update the stack (with a little help)")
@common_options
def rebase(identifier: str, exclude: List[str], verbose: int) -> None:
    """Rebase script command."""
    from ... import setup_logging
    setup_logging(verbose)

    config, git_cmd = setup_git()
    try:
        stack, _ = build_pr_stack(config, git_cmd, identifier, list(exclude))
    except StackError as e:
        check(e)
    click.echo(generate_rebase_script(stack))

@cli.command(name="autorebase", help="Rebuild a stack based on changes to local branches and mirror these changes up to the remote")
@common_options
@click.option('--remote', '-r', default=None, metavar='REMOTE',
              help="Name of the remote to (force-)push the updated stack to [default: repo.github_remote, origin]")
@click.option('--repo', '-C', 'repo', required=True, metavar='PATH_TO_REPO',
              type=click.Path(exists=True, file_okay=False, dir_okay=True),
              help="Path to a local copy of the repository")
@click.option('--initial-cherry-pick-boundary', '-b', 'boundary', metavar='SHA',
              help="Stop the initial cherry-pick at this SHA (exclusive)")
def autorebase(identifier: str, exclude: List[str], verbose: int, remote: Optional[str],
               repo: str, boundary: Optional[str]) -> None:
    """Autorebase command."""
    from ... import setup_logging
    setup_logging(verbose)

    config, git_cmd = setup_git(repo, required=True)
    assert git_cmd is not None
    try:
        remote = remote or config.repo.github_remote
        remotes = git_cmd.must_git("remote").split()
        if remote not in remotes:
            raise StackError(f"Remote '{remote}' not found. Available remotes: {', '.join(remotes)}")

        stack, _ = build_pr_stack(config, git_cmd, identifier, list(exclude))
        results = perform_rebase(stack, git_cmd, remote, boundary)
    except Exception as e:
        check(e)
    for result in results:
        click.echo(f"#{result.pr.number} {result.pr.head}: {result.old_tip[:8]} -> {result.new_tip[:8]} "
                   f"({result.commits} commit(s))")
    click.echo("All done")

def main() -> None:
    """Main entry point."""
    cli(obj={})

if __name__ == "__main__":
    main()
