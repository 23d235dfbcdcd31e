"""Adapter wrapping PyGithub with our transport protocol."""

from typing import Any, Dict, List, Optional, cast
import logging

from github import Auth, Github, GithubException, GithubRetry

from . import PyGithubProtocol, find_github_token
from ..config.models import StackConfig
from ..typing import NetworkFailure
from .types import GitHubRequester

logger = logging.getLogger(__name__)


class PyGithubAdapter(PyGithubProtocol):
    """Adapter for the main PyGithub object."""

    def __init__(self, github: Github) -> None:
        self._github = github

    @property
    def _requester(self) -> GitHubRequester:
        # Raw JSON calls go through PyGithub's private requester
        return cast(GitHubRequester, getattr(self._github, '_Github__requester'))

    def search_issues(self, query: str) -> List[Dict[str, Any]]:
        """Run an issue search and return url/title of every hit."""
        try:
            # Reading url/title does not trigger a lazy per-item fetch
            return [{"url": issue.url, "title": issue.title}
                    for issue in self._github.search_issues(query)]
        except (GithubException, OSError) as e:
            raise NetworkFailure(f"Issue search failed: {e}") from e

    def request_json(self, verb: str, url: str,
                     parameters: Optional[Dict[str, Any]] = None,
                     input: Optional[Dict[str, Any]] = None) -> Any:
        """Make a request and return the decoded JSON body."""
        try:
            _headers, data = self._requester.requestJsonAndCheck(
                verb, url, parameters=parameters, input=input
            )
        except (GithubException, OSError) as e:
            raise NetworkFailure(f"{verb} {url} failed: {e}") from e
        return data


def create_github(config: StackConfig, token: Optional[str] = None) -> PyGithubAdapter:
    """Create an authenticated PyGithub client wrapped in our adapter."""
    if token is None:
        token = find_github_token()
    github = Github(
        auth=Auth.Token(token),
        timeout=config.tool.http_timeout,
        retry=GithubRetry(),
    )
    logger.debug("Using real GitHub client")
    return PyGithubAdapter(github)
