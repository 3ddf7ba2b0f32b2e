"""Tests for pr-review.py — prompts, listing output, submission flow, main."""

import json
from unittest.mock import patch

import pytest

from review_comments import Comment, ReviewResult

DIFF = (
    "diff --git a/app.js b/app.js\n"
    "--- a/app.js\n"
    "+++ b/app.js\n"
    "@@ -10,3 +10,4 @@\n"
    " same\n"
    "+added\n"
    " same2\n"
    " same3"
)

PRS = [
    {"number": 7, "title": "Add login", "headRefName": "feat/login",
     "author": {"login": "dev"}, "updatedAt": "2026-10-18T09:31:00Z"},
    {"number": 9, "title": "Fix typo", "headRefName": None, "author": None, "updatedAt": ""},
]


def _answers(monkeypatch, *answers):
    """Feed scripted answers to input(); EOF once they run out."""
    it = iter(answers)

    def fake_input(_prompt=""):
        try:
            return next(it)
        except StopIteration:
            raise EOFError

    monkeypatch.setattr("builtins.input", fake_input)


@pytest.fixture
def mod():
    import importlib
    return importlib.import_module("pr-review")


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

class TestPromptYesNo:
    @pytest.mark.parametrize("answer", ["y", "Y", "yes", " YES "])
    def test_yes(self, mod, monkeypatch, answer):
        _answers(monkeypatch, answer)
        assert mod.prompt_yes_no("? ") is True

    @pytest.mark.parametrize("answer", ["", "n", "no", "yep"])
    def test_no(self, mod, monkeypatch, answer):
        _answers(monkeypatch, answer)
        assert mod.prompt_yes_no("? ") is False

    def test_eof_is_no(self, mod, monkeypatch):
        _answers(monkeypatch)
        assert mod.prompt_yes_no("? ") is False


class TestPromptPrNumber:
    def test_retries_until_valid(self, mod, monkeypatch, capsys):
        _answers(monkeypatch, "abc", "8", "9")
        assert mod.prompt_pr_number({7, 9}) == 9
        assert capsys.readouterr().out.count("Invalid PR number") == 2

    @pytest.mark.parametrize("answer", ["q", "Q", ""])
    def test_quit(self, mod, monkeypatch, answer):
        _answers(monkeypatch, answer)
        assert mod.prompt_pr_number({7}) is None

    def test_eof_quits(self, mod, monkeypatch):
        _answers(monkeypatch)
        assert mod.prompt_pr_number({7}) is None


# ---------------------------------------------------------------------------
# Output formatting
# ---------------------------------------------------------------------------

class TestFormatting:
    def test_format_date_empty(self, mod):
        assert mod.format_date("") == "unknown"
        assert mod.format_date(None) == "unknown"

    def test_format_date_unparsable(self, mod):
        assert mod.format_date("yesterday") == "yesterday"

    def test_format_date_naive(self, mod):
        assert mod.format_date("2026-03-05T14:07:00") == "Mar 5, 2026, 2:07 PM"

    def test_pr_line(self, mod):
        line = mod.format_pr_line(PRS[0])
        assert line.startswith("#7 Add login | feat/login | dev | updated ")

    def test_pr_line_missing_fields(self, mod):
        assert mod.format_pr_line(PRS[1]) == "#9 Fix typo | ? | unknown | updated unknown"


# ---------------------------------------------------------------------------
# submit_flow
# ---------------------------------------------------------------------------

class TestSubmitFlow:
    def _review(self, *comments, summary="Looks fine"):
        return ReviewResult(summary=summary, comments=tuple(comments))

    def test_no_comments(self, mod, capsys):
        with patch.object(mod, "submit_review") as submit:
            assert mod.submit_flow("o/r", 7, DIFF, self._review(), {}) is False
        submit.assert_not_called()
        assert "No comments to submit." in capsys.readouterr().out

    def test_nothing_matches_diff(self, mod, capsys):
        far = Comment(path="app.js", line=999, severity="Minor", body="far away")
        with patch.object(mod, "submit_review") as submit:
            assert mod.submit_flow("o/r", 7, DIFF, self._review(far), {}) is False
        submit.assert_not_called()
        out = capsys.readouterr().out
        assert "nothing was submitted" in out
        assert "- app.js:999 (far away)" in out

    def test_submits_only_visible_comments(self, mod, capsys):
        near = Comment(path="app.js", line=11, severity="Major", body="check this")
        far = Comment(path="app.js", line=999, severity="Minor", body="far away")
        with patch.object(mod, "submit_review", return_value=(True, None)) as submit:
            assert mod.submit_flow("o/r", 7, DIFF, self._review(near, far), {}) is True
        owner, name, number, payload = submit.call_args[0]
        assert (owner, name, number) == ("o", "r", 7)
        assert payload == {
            "event": "COMMENT",
            "body": "Looks fine",
            "comments": [{
                "path": "app.js", "line": 11, "side": "RIGHT",
                "body": "[Severity: Major]\n\ncheck this",
            }],
        }
        out = capsys.readouterr().out
        assert "Submitted 1 inline comment(s)" in out
        assert "- app.js:999 (far away)" in out

    def test_default_body_from_config(self, mod):
        near = Comment(path="app.js", line=10, severity="Minor", body="x")
        config = {"review": {"default_body": "Local model review."}}
        with patch.object(mod, "submit_review", return_value=(True, None)) as submit:
            mod.submit_flow("o/r", 7, DIFF, self._review(near, summary=""), config)
        assert submit.call_args[0][3]["body"] == "Local model review."

    def test_submission_failure_reported(self, mod, capsys):
        near = Comment(path="app.js", line=10, severity="Minor", body="x")
        with patch.object(mod, "submit_review", return_value=(False, "422 Unprocessable")):
            assert mod.submit_flow("o/r", 7, DIFF, self._review(near), {}) is False
        assert "Failed to submit GitHub review: 422 Unprocessable" in capsys.readouterr().out

    def test_dry_run_prints_payload(self, mod, capsys):
        near = Comment(path="app.js", line=13, severity="Nitpick", body="x")
        with patch.object(mod, "submit_review") as submit:
            assert mod.submit_flow("o/r", 7, DIFF, self._review(near), {"review": {"dry_run": True}}) is True
        submit.assert_not_called()
        out = capsys.readouterr().out
        assert "[DRY RUN]" in out
        payload = json.loads(out[out.index("{"):out.rindex("}") + 1])
        assert payload["comments"][0]["line"] == 13


# ---------------------------------------------------------------------------
# review_pull_request / main
# ---------------------------------------------------------------------------

class TestReviewPullRequest:
    def test_declined(self, mod, monkeypatch):
        _answers(monkeypatch, "n")
        with patch.object(mod, "fetch_pr_diff") as fetch:
            mod.review_pull_request("o/r", PRS, {})
        fetch.assert_not_called()

    def test_full_flow(self, mod, monkeypatch, capsys):
        _answers(monkeypatch, "y", "7", "yes")
        review = ReviewResult(
            summary="ok",
            comments=(Comment(path="app.js", line=12, severity="Minor", body="nit"),),
        )
        with patch.object(mod, "fetch_pr_diff", return_value=DIFF), \
             patch.object(mod, "review_diff", return_value=review) as oracle, \
             patch.object(mod, "submit_review", return_value=(True, None)) as submit:
            mod.review_pull_request("o/r", PRS, {})
        assert oracle.call_args[0][:3] == ("o/r", 7, DIFF)
        assert submit.call_args[0][3]["comments"][0]["line"] == 12
        out = capsys.readouterr().out
        assert "[Minor] app.js:12 -> nit" in out
        assert "1 file(s) changed, +1 -0" in out

    def test_submission_declined(self, mod, monkeypatch, capsys):
        _answers(monkeypatch, "y", "7", "n")
        review = ReviewResult(summary="ok", comments=())
        with patch.object(mod, "fetch_pr_diff", return_value=DIFF), \
             patch.object(mod, "review_diff", return_value=review), \
             patch.object(mod, "submit_review") as submit:
            mod.review_pull_request("o/r", PRS, {})
        submit.assert_not_called()
        assert "Skipping GitHub submission." in capsys.readouterr().out

    def test_unusable_review_stops(self, mod, monkeypatch):
        _answers(monkeypatch, "y", "7")
        with patch.object(mod, "fetch_pr_diff", return_value=DIFF), \
             patch.object(mod, "review_diff", return_value=None), \
             patch.object(mod, "submit_review") as submit:
            mod.review_pull_request("o/r", PRS, {})
        submit.assert_not_called()


class TestMain:
    def test_invalid_repo(self, mod, capsys):
        with patch.object(mod, "load_config", return_value={}):
            assert mod.main(["not-a-repo"]) == 1
        assert "owner/name" in capsys.readouterr().out

    def test_missing_repo(self, mod, capsys):
        with patch.object(mod, "load_config", return_value={}):
            assert mod.main([]) == 1
        assert "No repository given" in capsys.readouterr().out

    def test_no_open_prs(self, mod, capsys):
        with patch.object(mod, "load_config", return_value={"github": {"repo": "o/r"}}), \
             patch.object(mod, "list_open_pull_requests", return_value=[]):
            assert mod.main([]) == 0
        assert "No open pull requests found for o/r." in capsys.readouterr().out

    def test_lists_prs_and_uses_limit(self, mod, monkeypatch, capsys):
        _answers(monkeypatch, "n")
        config = {"github": {"list_limit": 5}}
        with patch.object(mod, "load_config", return_value=config), \
             patch.object(mod, "list_open_pull_requests", return_value=PRS) as lister:
            assert mod.main(["o/r"]) == 0
        assert lister.call_args[1]["limit"] == 5
        out = capsys.readouterr().out
        assert "Open pull requests for o/r (2):" in out
        assert "#9 Fix typo | ? | unknown | updated unknown" in out

    def test_gh_failure_exits_1(self, mod, capsys):
        with patch.object(mod, "load_config", return_value={}), \
             patch.object(mod, "list_open_pull_requests", side_effect=mod.GhError("gh: not logged in")):
            assert mod.main(["o/r"]) == 1
        assert "ERROR: gh: not logged in" in capsys.readouterr().out
