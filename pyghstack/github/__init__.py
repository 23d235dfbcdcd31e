"""GitHub interfaces and implementation."""

import os
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from .types import (
    PullRequest, Review, SearchItemPayload,
    parse_pull_request, parse_reviews, parse_search_item
)
from ..config.models import StackConfig
from ..git import Remote
from ..typing import MalformedResponse, MissingCredential
from ..util import join_all

# Get module logger
logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ("GHSTACK_OAUTH_TOKEN", "GH_TOKEN", "GITHUB_TOKEN")
DOTENV_FILE_NAME = ".gh-stack"
REVIEWS_PER_PAGE = 100

@runtime_checkable
class PyGithubProtocol(Protocol):
    """Protocol for the GitHub transport (real PyGithub or a fake).

    Implementations raise NetworkFailure for transport and HTTP errors.
    """
    def search_issues(self, query: str) -> List[Dict[str, Any]]:
        """Run an issue search and return the raw hits."""
        ...

    def request_json(self, verb: str, url: str,
                     parameters: Optional[Dict[str, Any]] = None,
                     input: Optional[Dict[str, Any]] = None) -> Any:
        """Issue an authenticated JSON request against an API URL."""
        ...

def find_github_token(directory: Optional[str] = None) -> str:
    """Find GitHub token from env vars, a .gh-stack file or the gh CLI config.

    The .gh-stack file in directory (default: the working directory) holds
    KEY=value lines; a variable already set in the environment wins over it.

    Raises:
        MissingCredential: If no token is configured anywhere
    """
    import yaml
    from pathlib import Path
    from dotenv import dotenv_values

    dotenv_path = os.path.join(directory or os.getcwd(), DOTENV_FILE_NAME)
    file_values = dotenv_values(dotenv_path) if os.path.isfile(dotenv_path) else {}

    for var in TOKEN_ENV_VARS:
        token = os.environ.get(var)
        if token:
            logger.debug(f"Using GitHub token from ${var}")
            return token
        token = file_values.get(var)
        if token:
            logger.debug(f"Using GitHub token {var} from {dotenv_path}")
            return token

    # Then try gh CLI config at ~/.config/gh/hosts.yml
    gh_config_path = Path.home() / ".config" / "gh" / "hosts.yml"
    try:
        if gh_config_path.exists():
            with open(gh_config_path, "r") as f:
                gh_config = yaml.safe_load(f)
            if gh_config and "github.com" in gh_config:
                token = gh_config["github.com"].get("oauth_token")
                if isinstance(token, str) and token:
                    return token
    except (OSError, yaml.YAMLError, AttributeError) as e:
        logger.error(f"Error reading gh CLI config: {e}")

    raise MissingCredential(
        "No GitHub token found. Try one of:\n"
        "1. Set GHSTACK_OAUTH_TOKEN, GH_TOKEN or GITHUB_TOKEN\n"
        f"2. Put GHSTACK_OAUTH_TOKEN=... in a {DOTENV_FILE_NAME} file\n"
        "3. Log in with 'gh auth login'")

def form_search_query(pattern: str, remotes: Sequence[Remote]) -> str:
    """Build the issue search query scoping PR titles to every remote."""
    repo_filters = [f"repo:{remote.organization}/{remote.repository}" for remote in remotes]
    return f"{pattern} in:title {' '.join(repo_filters)}".strip()

def pull_url_from_issue_url(url: str) -> str:
    """Rewrite .../repos/o/r/issues/12 to .../repos/o/r/pulls/12."""
    if "/issues/" not in url:
        raise MalformedResponse(f"Search hit is not an issue URL: {url}")
    return "/pulls/".join(url.rsplit("/issues/", 1))

def exclude_pull_requests(prs: Sequence[PullRequest], excluded: Sequence[Any]) -> List[PullRequest]:
    """Drop PRs whose number is in excluded (ints or numeric strings)."""
    numbers = {str(n).lstrip('#') for n in excluded}
    kept = [pr for pr in prs if str(pr.number) not in numbers]
    if len(kept) != len(prs):
        logger.info(f"Excluded PRs: {sorted(pr.number for pr in prs if str(pr.number) in numbers)}")
    return kept

class GitHubClient:
    """GitHub client implementation."""
    def __init__(self, config: StackConfig, github_client: PyGithubProtocol):
        """Initialize with config and GitHub client implementation.

        Args:
            config: The configuration
            github_client: GitHub transport implementation (real or fake)
        """
        self.config = config
        self.client = github_client
        self.concurrency: int = config.tool.concurrency

    def search(self, pattern: str, remotes: Sequence[Remote]) -> List[SearchItemPayload]:
        """Find every issue/PR whose title matches pattern."""
        query = form_search_query(pattern, remotes)
        logger.info(f"> github search: {query}")
        items = [parse_search_item(hit) for hit in self.client.search_issues(query)]
        logger.debug(f"Search returned {len(items)} items")
        return items

    def fetch_pull_request(self, item: SearchItemPayload) -> PullRequest:
        """Fetch the full pull request resource behind a search hit."""
        url = pull_url_from_issue_url(item.url)
        logger.debug(f"> github get {url}")
        data = self.client.request_json("GET", url)
        if not isinstance(data, dict):
            raise MalformedResponse(f"Expected an object from {url}, got {type(data).__name__}")
        return parse_pull_request(data)

    def fetch_reviews(self, pr: PullRequest) -> PullRequest:
        """Fetch every page of reviews for a pull request and return it with them attached."""
        url = f"{pr.url}/reviews"
        reviews: List[Review] = []
        page = 1
        while True:
            logger.debug(f"> github get {url} (page {page})")
            data = self.client.request_json(
                "GET", url, parameters={"per_page": REVIEWS_PER_PAGE, "page": page})
            if not isinstance(data, list):
                raise MalformedResponse(f"Expected a list from {url}, got {type(data).__name__}")
            reviews.extend(parse_reviews(data))
            if len(data) < REVIEWS_PER_PAGE:
                break
            page += 1
        return pr.with_reviews(reviews)

    def fetch_pull_requests_matching(self, pattern: str, remotes: Sequence[Remote]) -> List[PullRequest]:
        """Resolve every PR whose title contains pattern, reviews attached.

        Both the item stage and the review stage fan out concurrently and
        join as one batch. Any failed fetch or schema mismatch fails the
        whole call; a partial stack is never returned.
        """
        items = self.search(pattern, remotes)
        prs = join_all(self.fetch_pull_request, items, self.concurrency)
        prs = join_all(self.fetch_reviews, prs, self.concurrency)
        prs.sort(key=lambda pr: pr.number)
        logger.info(f"Resolved {len(prs)} pull requests matching '{pattern}'")
        for pr in prs:
            logger.debug(f"  PR #{pr.number}: base={pr.base} head={pr.head}")
        return prs

    def update_description(self, pr: PullRequest, body: str) -> None:
        """Replace the description of a pull request."""
        logger.info(f"> github update #{pr.number} : {pr.title}")
        self.client.request_json("PATCH", pr.url, input={"body": body})
