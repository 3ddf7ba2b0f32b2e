#!/usr/bin/env python3
"""
pr-review.py — Triage open pull requests with a local model review.

Usage:
    python scripts/pr-review.py [owner/repo]

Flow:
1. List open PRs for the repository (gh pr list)
2. Ask whether to review one and which PR number
3. Fetch and print its diff (gh pr diff)
4. Ask the Ollama model for a JSON review and print it
5. On confirmation, keep only comments on lines visible in the diff and
   post them as a single COMMENT review (gh api)

The repository falls back to GITHUB_REPO / github.repo in the config.
Requires: GitHub CLI (`gh`) with an authenticated session, and `ollama`.
"""

import json
import re
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))
from config_loader import load_config, parse_repo, resolve_repo
from diff_index import build_diff_index, compute_diff_stats
from gh_cli import GhError, fetch_pr_diff, list_open_pull_requests, submit_review
from ollama_review import review_diff
from review_comments import (
    DEFAULT_REVIEW_BODY,
    Comment,
    ReviewResult,
    assemble_review_payload,
    partition_comments,
)

YES_RE = re.compile(r"^y(es)?$", re.IGNORECASE)
QUIT_RE = re.compile(r"^q$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def _ask(message: str) -> str | None:
    """Read one line from the user; None on EOF/interrupt."""
    try:
        return input(message)
    except (EOFError, KeyboardInterrupt):
        print()
        return None


def prompt_yes_no(message: str) -> bool:
    answer = _ask(message)
    return answer is not None and bool(YES_RE.match(answer.strip()))


def prompt_pr_number(valid_numbers: set[int]) -> int | None:
    """Loop until the user enters one of valid_numbers; None means quit."""
    while True:
        answer = _ask("Enter PR number (or q to quit): ")
        if answer is None:
            return None
        answer = answer.strip()
        if not answer or QUIT_RE.match(answer):
            return None
        try:
            number = int(answer)
        except ValueError:
            number = None
        if number is None or number not in valid_numbers:
            print("Invalid PR number. Try again.")
            continue
        return number


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def format_date(iso_string: str | None) -> str:
    """Render an ISO timestamp like "Oct 18, 2026, 9:31 AM" in local time."""
    if not iso_string:
        return "unknown"
    try:
        dt = datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
    except ValueError:
        return iso_string
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    hour = dt.hour % 12 or 12
    return f"{dt:%b} {dt.day}, {dt.year}, {hour}:{dt:%M %p}"


def format_pr_line(pr: dict) -> str:
    author = (pr.get("author") or {}).get("login") or "unknown"
    branch = pr.get("headRefName") or "?"
    return f"#{pr.get('number')} {pr.get('title', '')} | {branch} | {author} | updated {format_date(pr.get('updatedAt'))}"


def display_review(review: ReviewResult):
    print("\nOllama review suggestions:\n")
    print(f"Summary: {review.summary or 'No summary provided.'}")
    if not review.comments:
        print("No inline comments produced.")
    else:
        for c in review.comments:
            print(f"[{c.severity}] {c.path}:{c.line} -> {c.body}")
    print("\n--- End Ollama review ---\n")


def _print_skipped(title: str, skipped: tuple[Comment, ...]):
    if not skipped:
        return
    print(title)
    for c in skipped:
        print(f"- {c.path}:{c.line} ({c.body})")


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------

def submit_flow(repo: str, pr_number: int, diff_text: str, review: ReviewResult, config: dict) -> bool:
    """Filter the review against the diff and post what remains.

    Returns True only when a review was actually posted (or printed in dry run).
    """
    if not review.comments:
        print("No comments to submit.")
        return False

    partition = partition_comments(review.comments, build_diff_index(diff_text))

    if not partition.accepted:
        print("No comments matched diff lines, so nothing was submitted to GitHub.")
        _print_skipped("Skipped comments:", partition.skipped)
        return False

    owner, name = parse_repo(repo)
    review_config = config.get("review", {})
    payload = assemble_review_payload(
        review.summary, partition.accepted,
        default_body=review_config.get("default_body") or DEFAULT_REVIEW_BODY,
    )

    if review_config.get("dry_run", False):
        print(f"[DRY RUN] Would post review to {owner}/{name} PR #{pr_number}:")
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        _print_skipped("Skipped comments (outside diff):", partition.skipped)
        return True

    timeout = int(config.get("github", {}).get("timeout", 60))
    ok, error = submit_review(owner, name, pr_number, payload, timeout=timeout)
    if not ok:
        print(f"Failed to submit GitHub review: {error}")
        return False

    print(f"Submitted {len(partition.accepted)} inline comment(s) to GitHub for PR #{pr_number}.")
    _print_skipped("Skipped comments (outside diff):", partition.skipped)
    return True


def review_pull_request(repo: str, prs: list[dict], config: dict):
    """Interactive part: pick a PR, review it, optionally submit."""
    if not prompt_yes_no("Review a PR? (y/N) "):
        return

    selected = prompt_pr_number({pr.get("number") for pr in prs})
    if selected is None:
        return

    print(f"\nFetching diff for PR #{selected}...\n")
    timeout = int(config.get("github", {}).get("timeout", 60))
    diff_text = fetch_pr_diff(repo, selected, timeout=timeout)
    if not diff_text:
        print("No diff available for this pull request.")
    else:
        print(diff_text)
        stats = compute_diff_stats(diff_text)
        print(
            f"\n  {stats['files_changed']} file(s) changed, "
            f"+{stats['lines_added']} -{stats['lines_removed']}"
        )

    review = review_diff(repo, selected, diff_text, config)
    if review is None:
        return

    display_review(review)

    if not prompt_yes_no("Submit these AI-generated comments to GitHub? (y/N) "):
        print("Skipping GitHub submission.")
        return

    submit_flow(repo, selected, diff_text, review, config)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    config = load_config()

    repo = resolve_repo(argv[0] if argv else None, config)
    if not repo:
        print("ERROR: No repository given. Pass owner/repo or set GITHUB_REPO.")
        return 1
    try:
        parse_repo(repo)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1

    github_config = config.get("github", {})
    try:
        prs = list_open_pull_requests(
            repo,
            limit=int(github_config.get("list_limit", 200)),
            timeout=int(github_config.get("timeout", 60)),
        )
        if not prs:
            print(f"No open pull requests found for {repo}.")
            return 0

        print(f"Open pull requests for {repo} ({len(prs)}):")
        for pr in prs:
            print(format_pr_line(pr))

        review_pull_request(repo, prs, config)
    except GhError as e:
        print(f"ERROR: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
