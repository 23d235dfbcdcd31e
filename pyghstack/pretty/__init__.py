"""Pretty formatting utilities for CLI output and PR descriptions."""

from typing import Dict, Optional, Sequence

import click

from ..github.types import PullRequest, Review
from ..graph import FlatDep

APPROVED = "✅ Approved"
CHANGES_REQUESTED = "❌ Changes Requested"
REVIEWED = "💬 Reviewed"
PENDING = "⏳ Pending"

# Review states that replace a reviewer's earlier verdict
DECISIVE_STATES = ("APPROVED", "CHANGES_REQUESTED", "DISMISSED")


def review_status(reviews: Sequence[Review]) -> str:
    """Summarize reviews (oldest first) into one status label."""
    latest: Dict[Optional[str], str] = {}
    for review in reviews:
        state = review.state.upper()
        if state in DECISIVE_STATES or review.login not in latest:
            latest[review.login] = state

    states = set(latest.values())
    if "CHANGES_REQUESTED" in states:
        return CHANGES_REQUESTED
    if "APPROVED" in states:
        return APPROVED
    if states - {"PENDING", "DISMISSED"}:
        return REVIEWED
    return PENDING


def build_table(stack: FlatDep, identifier: str,
                prelude: Optional[str] = None) -> str:
    """Render the navigation table embedded in every PR description."""
    lines = []
    if prelude:
        lines.append(prelude.rstrip("\n"))
        lines.append("")
    lines.append(f"### Stacked PR Chain: {identifier}")
    lines.append("| PR | Title | Status | Merges Into |")
    lines.append("|:--:|:------|:-------|:-----------:|")
    for pr, parent in stack:
        into = f"#{parent.number}" if parent else "**N/A**"
        title = pr.title.replace("|", "\\|")
        lines.append(f"|#{pr.number}|{title}|{review_status(pr.reviews)}|{into}|")
    return "\n".join(lines)


def format_log_line(pr: PullRequest, parent: Optional[PullRequest]) -> str:
    """One line of `log` output."""
    if parent is not None:
        into = click.style(f"(Merges into #{parent.number})", fg="green")
    else:
        into = click.style("(Base)", fg="red")
    return f"#{pr.number}: {pr.title} {into}"
