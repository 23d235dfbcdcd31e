"""Keep the stack navigation table in every PR description up to date."""

import re
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from ..github import GitHubClient
from ..github.types import PullRequest
from ..graph import FlatDep
from ..util import join_all

logger = logging.getLogger(__name__)

# Invisible in rendered markdown; everything outside them belongs to the author
SHIELD_OPEN = "<!---GHSTACKOPEN-->"
SHIELD_CLOSE = "<!---GHSTACKCLOSE-->"

CURRENT_MARKER = "👉 "

ROW_REGEX = re.compile(r'^\|#(\d+)\|')
TITLE_PREFIX_REGEX = re.compile(r'^(\|#\d+\|(?:' + re.escape(CURRENT_MARKER) + r')?)(?:\[[^\]]+\]\s*)+')

@dataclass(frozen=True)
class DescriptionUpdate:
    """A new description computed for one PR."""
    pr: PullRequest
    body: str

def find_managed_span(body: str) -> Optional[Tuple[int, int]]:
    """Locate the first complete OPEN...CLOSE pair as a [start, end) span.

    The pair is the first close marker that has an open marker before it,
    matched with the nearest such open marker, so a stray marker elsewhere
    never widens the span.
    """
    close = body.find(SHIELD_CLOSE)
    while close != -1:
        start = body.rfind(SHIELD_OPEN, 0, close)
        if start != -1:
            return start, close + len(SHIELD_CLOSE)
        close = body.find(SHIELD_CLOSE, close + len(SHIELD_CLOSE))
    return None

def safe_replace(body: str, table: str) -> str:
    """Merge table into body between the sentinel markers.

    Replaces the existing managed block if there is one, else appends a new
    block after the body. Applying the same table twice is a no-op.
    """
    block = f"{SHIELD_OPEN}\n{table}\n{SHIELD_CLOSE}"
    span = find_managed_span(body)
    if span is None:
        return f"{body}\n{block}\n"
    start, end = span
    return body[:start] + block + body[end:]

def remove_title_prefixes(table: str) -> str:
    """Strip leading [TAG] prefixes from the title cell of every PR row."""
    return "\n".join(TITLE_PREFIX_REGEX.sub(r'\1', line) for line in table.split("\n"))

def mark_current(table: str, pr: PullRequest) -> str:
    """Flag the row of pr with a "you are here" marker."""
    lines: List[str] = []
    for line in table.split("\n"):
        match = ROW_REGEX.match(line)
        if match and int(match.group(1)) == pr.number:
            prefix = match.group(0)
            line = prefix + CURRENT_MARKER + line[len(prefix):]
        lines.append(line)
    return "\n".join(lines)

def annotated_body(pr: PullRequest, table: str) -> str:
    """Compute the description pr should have for this table."""
    rendered = mark_current(remove_title_prefixes(table), pr)
    return safe_replace(pr.body, rendered)

def plan_updates(stack: FlatDep, table: str) -> List[DescriptionUpdate]:
    """Compute new descriptions, keeping only PRs whose body would change."""
    updates: List[DescriptionUpdate] = []
    for pr, _ in stack:
        body = annotated_body(pr, table)
        if body == pr.body:
            logger.info(f"PR #{pr.number} is already up to date")
            continue
        updates.append(DescriptionUpdate(pr, body))
    return updates

def apply_updates(updates: List[DescriptionUpdate], github: GitHubClient) -> None:
    """Write every description concurrently.

    All updates are attempted before the first failure is raised; updates
    that already succeeded stay applied.
    """
    join_all(lambda update: github.update_description(update.pr, update.body),
             updates, github.concurrency)

def persist(stack: FlatDep, table: str, github: GitHubClient,
            confirm: Optional[Callable[[List[DescriptionUpdate]], None]] = None) -> List[DescriptionUpdate]:
    """Annotate every PR of the stack with table. Returns what was written.

    confirm is shown the planned updates before anything is written and may
    raise to abort. It is not called when every description is up to date.
    """
    updates = plan_updates(stack, table)
    if not updates:
        return updates
    if confirm is not None:
        confirm(updates)
    apply_updates(updates, github)
    return updates
