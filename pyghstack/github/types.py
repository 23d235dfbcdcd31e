"""Type definitions for GitHub API responses."""

from typing import Any, Dict, List, Optional, Protocol, Tuple
from pydantic import BaseModel, ValidationError, field_validator

from ..typing import MalformedResponse

# REST response shapes, only the fields we read
class RefPayload(BaseModel):
    ref: str

class UserPayload(BaseModel):
    login: str

class ReviewPayload(BaseModel):
    state: str
    user: Optional[UserPayload] = None

class PullRequestPayload(BaseModel):
    number: int
    title: str
    body: Optional[str] = None
    url: str
    head: RefPayload
    base: RefPayload

class SearchItemPayload(BaseModel):
    url: str
    title: str

class Review(BaseModel):
    """A review left on a pull request."""
    state: str
    login: Optional[str] = None

    class Config:
        frozen = True

class PullRequest(BaseModel):
    """Pull request as resolved for one run. Never mutated after resolution."""
    number: int
    title: str
    body: str = ""
    url: str
    head: str
    base: str
    reviews: Tuple[Review, ...] = ()

    class Config:
        frozen = True

    @field_validator('body', mode='before')
    @classmethod
    def _none_body(cls, value: Optional[str]) -> str:
        return value or ""

    def with_reviews(self, reviews: List[Review]) -> 'PullRequest':
        """Return a copy with reviews attached."""
        return self.model_copy(update={'reviews': tuple(reviews)})

def parse_pull_request(data: Dict[str, Any]) -> PullRequest:
    """Validate a raw pull request resource into our model."""
    try:
        payload = PullRequestPayload.model_validate(data)
    except ValidationError as e:
        raise MalformedResponse(f"Invalid pull request response: {e}")
    return PullRequest(
        number=payload.number,
        title=payload.title,
        body=payload.body or "",
        url=payload.url,
        head=payload.head.ref,
        base=payload.base.ref,
    )

def parse_reviews(data: List[Dict[str, Any]]) -> List[Review]:
    """Validate a raw review list into our model."""
    reviews: List[Review] = []
    for item in data:
        try:
            payload = ReviewPayload.model_validate(item)
        except ValidationError as e:
            raise MalformedResponse(f"Invalid review response: {e}")
        reviews.append(Review(state=payload.state, login=payload.user.login if payload.user else None))
    return reviews

def parse_search_item(data: Dict[str, Any]) -> SearchItemPayload:
    """Validate one issue search hit."""
    try:
        return SearchItemPayload.model_validate(data)
    except ValidationError as e:
        raise MalformedResponse(f"Invalid search response: {e}")

class GitHubRequester(Protocol):
    """Type for PyGithub's private requester used for raw JSON calls.

    We use a Protocol since the requester is a private implementation detail.
    PyGithub returns (headers, data).
    """
    def requestJsonAndCheck(
        self,
        verb: str,
        url: str,
        parameters: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        input: Optional[Dict[str, Any]] = None
    ) -> Tuple[Dict[str, Any], Any]:
        ...
