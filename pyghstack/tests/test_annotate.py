"""Tests for keeping the stack table in PR descriptions."""

import pytest

from pyghstack.annotate import (
    CURRENT_MARKER, SHIELD_CLOSE, SHIELD_OPEN,
    annotated_body, apply_updates, find_managed_span, mark_current,
    persist, plan_updates, remove_title_prefixes, safe_replace,
)
from pyghstack.config import default_config
from pyghstack.github import GitHubClient
from pyghstack.graph import build_stack
from pyghstack.pretty import build_table
from pyghstack.typing import NetworkFailure
from pyghstack.tests.fake_pygithub import FakeGithub
from pyghstack.tests.utils import make_pr

TABLE = "### Stacked PR Chain: STACK-1\n|#1|A|⏳ Pending|**N/A**|"


class TestSafeReplace:
    """Tests for the sentinel-delimited string edit."""

    def test_appends_when_absent(self) -> None:
        """Test that a body without markers gets the block appended."""
        body = "Some description"
        result = safe_replace(body, TABLE)
        assert result == f"Some description\n{SHIELD_OPEN}\n{TABLE}\n{SHIELD_CLOSE}\n"

    def test_appends_to_empty_body(self) -> None:
        """Test that an empty description still gets a complete block."""
        result = safe_replace("", TABLE)
        assert find_managed_span(result) is not None
        assert TABLE in result

    def test_replaces_existing_block(self) -> None:
        """Test that only the managed span changes and the rest stays byte-identical."""
        before = "Intro\r\n\n  with spacing  \n"
        after = "\n\nFooter `code` 🎉"
        body = f"{before}{SHIELD_OPEN}\nold table\n{SHIELD_CLOSE}{after}"
        result = safe_replace(body, TABLE)
        assert result == f"{before}{SHIELD_OPEN}\n{TABLE}\n{SHIELD_CLOSE}{after}"

    def test_idempotent(self) -> None:
        """Test that applying the same table twice gives identical output."""
        once = safe_replace("Body text\n", TABLE)
        twice = safe_replace(once, TABLE)
        assert once == twice

    def test_stray_open_marker_before_pair(self) -> None:
        """Test that an unmatched open marker earlier in the body is preserved."""
        body = f"Note: {SHIELD_OPEN} was pasted here\n{SHIELD_OPEN}\nold\n{SHIELD_CLOSE}\nEnd"
        result = safe_replace(body, TABLE)
        assert result.startswith(f"Note: {SHIELD_OPEN} was pasted here\n")
        assert result.endswith(f"{SHIELD_OPEN}\n{TABLE}\n{SHIELD_CLOSE}\nEnd")
        assert "old" not in result

    def test_stray_close_marker_only(self) -> None:
        """Test that a lone close marker is not a complete pair."""
        body = f"Broken {SHIELD_CLOSE} marker"
        assert find_managed_span(body) is None
        result = safe_replace(body, TABLE)
        assert result.startswith(body + "\n")
        assert result.count(SHIELD_OPEN) == 1

    def test_close_before_open(self) -> None:
        """Test that a close marker preceding the open marker is skipped."""
        body = f"{SHIELD_CLOSE} x {SHIELD_OPEN}\nold\n{SHIELD_CLOSE}"
        result = safe_replace(body, TABLE)
        assert result == f"{SHIELD_CLOSE} x {SHIELD_OPEN}\n{TABLE}\n{SHIELD_CLOSE}"


class TestTableRows:
    """Tests for per-PR table rewriting."""

    def test_remove_title_prefixes(self) -> None:
        """Test that [TAG] prefixes are stripped from title cells only."""
        table = "\n".join([
            "### Stacked PR Chain: STACK-1",
            "|#1|[STACK-1] First|⏳ Pending|**N/A**|",
            "|#2|[STACK-1] [wip] Second [keep]|✅ Approved|#1|",
            "|#3|No prefix|⏳ Pending|#2|",
        ])
        result = remove_title_prefixes(table).split("\n")
        assert result[0] == "### Stacked PR Chain: STACK-1"
        assert result[1] == "|#1|First|⏳ Pending|**N/A**|"
        assert result[2] == "|#2|Second [keep]|✅ Approved|#1|"
        assert result[3] == "|#3|No prefix|⏳ Pending|#2|"

    def test_mark_current(self) -> None:
        """Test that only the row of the given PR is marked."""
        table = "|#1|First|⏳ Pending|**N/A**|\n|#12|Second|⏳ Pending|#1|"
        result = mark_current(table, make_pr(1, "a", "main")).split("\n")
        assert result[0] == f"|#1|{CURRENT_MARKER}First|⏳ Pending|**N/A**|"
        assert result[1] == "|#12|Second|⏳ Pending|#1|"

    def test_annotated_body_strips_prefix_after_marker(self) -> None:
        """Test that the marked row also loses its title prefix."""
        pr = make_pr(2, "feat/b", "feat/a", body="Desc")
        table = "|#1|[STACK-1] First|⏳ Pending|**N/A**|\n|#2|[STACK-1] Second|⏳ Pending|#1|"
        body = annotated_body(pr, table)
        assert f"|#2|{CURRENT_MARKER}Second|" in body
        assert "|#1|First|" in body
        assert body.startswith("Desc\n")


class TestPlanAndApply:
    """Tests for planning and writing description updates."""

    def stack_and_fake(self):
        fake = FakeGithub()
        fake.add_pull(1, "[STACK-1] First", "feat/a", "main", body="One")
        fake.add_pull(2, "[STACK-1] Second", "feat/b", "feat/a", body="Two")
        fake.add_pull(3, "[STACK-1] Third", "feat/c", "feat/b", body=None)
        stack = build_stack([
            make_pr(1, "feat/a", "main", title="[STACK-1] First", body="One"),
            make_pr(2, "feat/b", "feat/a", title="[STACK-1] Second", body="Two"),
            make_pr(3, "feat/c", "feat/b", title="[STACK-1] Third"),
        ])
        return stack, fake

    def test_plan_skips_up_to_date(self) -> None:
        """Test that PRs whose description already matches are not planned."""
        stack, _ = self.stack_and_fake()
        table = build_table(stack, "STACK-1")
        first = plan_updates(stack, table)
        assert [u.pr.number for u in first] == [1, 2, 3]

        updated = build_stack([u.pr.model_copy(update={"body": u.body}) for u in first])
        assert plan_updates(updated, table) == []

    def test_persist_writes_every_body(self) -> None:
        """Test that persist PATCHes each PR with its own marked table."""
        stack, fake = self.stack_and_fake()
        github = GitHubClient(default_config(), fake)
        table = build_table(stack, "STACK-1")

        updates = persist(stack, table, github)
        assert len(updates) == 3
        assert sorted(fake.patched_numbers()) == [1, 2, 3]
        for number in (1, 2, 3):
            body = fake.pull_requests[number].body
            assert body is not None
            assert body.count(SHIELD_OPEN) == 1
            assert body.count(CURRENT_MARKER) == 1
            assert f"|#{number}|{CURRENT_MARKER}" in body
        assert fake.pull_requests[1].body.startswith("One\n")

    def test_persist_confirm_can_abort(self) -> None:
        """Test that persist shows the plan first and writes nothing when it is refused."""
        stack, fake = self.stack_and_fake()
        github = GitHubClient(default_config(), fake)
        seen = []

        def refuse(updates) -> None:
            seen.extend(u.pr.number for u in updates)
            raise RuntimeError("declined")

        with pytest.raises(RuntimeError):
            persist(stack, build_table(stack, "STACK-1"), github, refuse)
        assert seen == [1, 2, 3]
        assert fake.patched_numbers() == []

    def test_persist_skips_confirm_when_up_to_date(self) -> None:
        """Test that nothing is asked or written when every description matches."""
        stack, fake = self.stack_and_fake()
        github = GitHubClient(default_config(), fake)
        table = build_table(stack, "STACK-1")
        updated = build_stack([u.pr.model_copy(update={"body": u.body}) for u in plan_updates(stack, table)])

        def never(updates) -> None:
            raise AssertionError("confirm called with nothing to do")

        assert persist(updated, table, github, never) == []
        assert fake.requests == []

    def test_failure_fails_the_batch(self) -> None:
        """Test that one failed write fails the call while the others still land."""
        stack, fake = self.stack_and_fake()
        fake.patch_failures[fake.pull_requests[2].pull_url] = "502 Bad Gateway"
        github = GitHubClient(default_config(), fake)
        updates = plan_updates(stack, build_table(stack, "STACK-1"))

        with pytest.raises(NetworkFailure) as exc_info:
            apply_updates(updates, github)
        assert "502" in str(exc_info.value)
        assert sorted(fake.patched_numbers()) == [1, 2, 3]
        assert SHIELD_OPEN in (fake.pull_requests[1].body or "")
        assert SHIELD_OPEN in (fake.pull_requests[3].body or "")
        assert fake.pull_requests[2].body == "Two"
