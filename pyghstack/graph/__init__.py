"""Stack graph reconstruction.

The stack is derived from live branch names on every run: a PR's parent is
the candidate whose head branch equals the PR's base branch. Nothing about
the graph is stored between runs, since anyone may retarget a PR in the
meantime.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..github import exclude_pull_requests
from ..github.types import PullRequest
from ..typing import AmbiguousStack

logger = logging.getLogger(__name__)

# (pr, parent) pairs in parent-before-child order
FlatDep = List[Tuple[PullRequest, Optional[PullRequest]]]

@dataclass
class StackGraph:
    """Parent and children links for one candidate set, keyed by PR number."""
    prs: Dict[int, PullRequest]
    parents: Dict[int, Optional[int]]
    children: Dict[int, List[int]]

    def roots(self) -> List[PullRequest]:
        """PRs whose base branch is no other candidate's head, by number."""
        return [self.prs[n] for n in sorted(self.prs) if self.parents[n] is None]

    def parent_of(self, pr: PullRequest) -> Optional[PullRequest]:
        parent = self.parents[pr.number]
        return self.prs[parent] if parent is not None else None

def _check_cycles(parents: Dict[int, Optional[int]]) -> None:
    """Raise AmbiguousStack if following parent links ever loops."""
    done: Dict[int, bool] = {}
    for start in sorted(parents):
        path: List[int] = []
        seen_on_path = set()
        current: Optional[int] = start
        while current is not None and current not in done:
            if current in seen_on_path:
                cycle = path[path.index(current):]
                raise AmbiguousStack("Base/head branches form a cycle", cycle)
            seen_on_path.add(current)
            path.append(current)
            current = parents[current]
        for number in path:
            done[number] = True

def build(prs: Sequence[PullRequest]) -> StackGraph:
    """Resolve every PR's parent from branch names.

    Raises:
        AmbiguousStack: If two candidates share a head branch, or the
            base/head links form a cycle
    """
    heads: Dict[str, List[PullRequest]] = {}
    for pr in prs:
        heads.setdefault(pr.head, []).append(pr)

    duplicates = {head: owners for head, owners in heads.items() if len(owners) > 1}
    if duplicates:
        head = sorted(duplicates)[0]
        numbers = [pr.number for owners in duplicates.values() for pr in owners]
        raise AmbiguousStack(
            f"Several PRs share the head branch '{head}', cannot pick a parent", numbers)

    by_head = {head: owners[0] for head, owners in heads.items()}
    by_number: Dict[int, PullRequest] = {pr.number: pr for pr in prs}
    parents: Dict[int, Optional[int]] = {}
    children: Dict[int, List[int]] = {n: [] for n in by_number}

    for pr in prs:
        parent = by_head.get(pr.base)
        if parent is not None and parent.number == pr.number:
            logger.warning(f"PR #{pr.number} targets its own head branch '{pr.head}', treating as root")
            parent = None
        parents[pr.number] = parent.number if parent else None
        if parent is not None:
            children[parent.number].append(pr.number)

    _check_cycles(parents)

    for siblings in children.values():
        siblings.sort()

    return StackGraph(by_number, parents, children)

def flatten(graph: StackGraph) -> FlatDep:
    """Order the graph parent-before-child.

    Roots ascending by number, each followed by a depth-first walk of its
    descendants. The walk uses an explicit stack so deep chains don't hit
    the recursion limit.
    """
    stack: FlatDep = []
    for root in graph.roots():
        work: List[int] = [root.number]
        while work:
            number = work.pop()
            pr = graph.prs[number]
            stack.append((pr, graph.parent_of(pr)))
            # Reversed so the lowest-numbered child is visited first
            work.extend(reversed(graph.children[number]))
    return stack

def build_stack(prs: Sequence[PullRequest], excluded: Sequence[object] = ()) -> FlatDep:
    """Apply exclusions, build the graph and flatten it."""
    candidates = exclude_pull_requests(prs, excluded)
    stack = flatten(build(candidates))
    logger.debug(f"Stack order: {[pr.number for pr, _ in stack]}")
    return stack
