"""
gh_cli.py — Thin wrappers around the GitHub CLI.

Requires `gh` on PATH with an authenticated session. Listing and diff
fetching raise GhError (the flow cannot continue without them); review
submission reports failure through its return value.
"""

import json
import subprocess

PR_LIST_FIELDS = "number,title,headRefName,author,updatedAt"


class GhError(Exception):
    """A gh command failed."""


def _gh(args: list[str], timeout: int = 60, input_text: str | None = None) -> tuple[int, str, str]:
    """Run a gh command. Never raises; failures come back as rc -1."""
    try:
        result = subprocess.run(
            ["gh"] + args,
            input=input_text, capture_output=True, text=True, timeout=timeout,
        )
        return result.returncode, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return -1, "", f"gh {args[0] if args else ''} timed out after {timeout}s"
    except FileNotFoundError:
        return -1, "", ""
    except (OSError, subprocess.SubprocessError) as e:
        return -1, "", str(e)


def list_open_pull_requests(repo: str, limit: int = 200, timeout: int = 60) -> list[dict]:
    """Return open PRs as dicts with number/title/headRefName/author/updatedAt."""
    rc, stdout, stderr = _gh([
        "pr", "list",
        "--repo", repo,
        "--state", "open",
        "--limit", str(limit),
        "--json", PR_LIST_FIELDS,
    ], timeout=timeout)
    if rc != 0:
        raise GhError(
            stderr.strip()
            or "Failed to run `gh pr list`. Ensure GitHub CLI is installed and authenticated."
        )
    try:
        prs = json.loads(stdout or "[]")
    except json.JSONDecodeError as e:
        raise GhError(f"Unexpected output from `gh pr list`: {e}") from e
    return prs if isinstance(prs, list) else []


def fetch_pr_diff(repo: str, pr_number: int, timeout: int = 60) -> str:
    """Return the unified diff of a PR, stripped. Empty string when there is none."""
    rc, stdout, stderr = _gh(["pr", "diff", "--repo", repo, str(pr_number)], timeout=timeout)
    if rc != 0:
        raise GhError(
            stderr.strip()
            or "Failed to run `gh pr diff`. Ensure the pull request is accessible."
        )
    return stdout.strip()


def submit_review(
    owner: str, name: str, pr_number: int, payload: dict, timeout: int = 60,
) -> tuple[bool, str | None]:
    """POST a review to repos/{owner}/{name}/pulls/{n}/reviews.

    The payload goes to gh on stdin. Returns (ok, error message).
    """
    rc, _, stderr = _gh([
        "api",
        "--method", "POST",
        f"repos/{owner}/{name}/pulls/{pr_number}/reviews",
        "--input", "-",
    ], timeout=timeout, input_text=json.dumps(payload, indent=2, ensure_ascii=False))
    if rc != 0:
        return False, stderr.strip() or f"gh api exited with code {rc}"
    return True, None
