"""
review_comments.py — Turn model output into a postable GitHub review.

Pipeline (all pure, no I/O):
1. parse_review_output: pull the JSON object out of free-form model text
2. normalize_comments: keep only well-typed comments, drop the rest silently
3. partition_comments: split comments into those on visible diff lines and
   those GitHub would reject
4. assemble_review_payload: build the body for POST /pulls/{n}/reviews
"""

import json
import math
from dataclasses import dataclass
from typing import Any, Iterable

DEFAULT_SEVERITY = "Minor"
DEFAULT_REVIEW_BODY = "Automated review comments."
REVIEW_EVENT = "COMMENT"
RIGHT_SIDE = "RIGHT"


@dataclass(frozen=True)
class Comment:
    path: str
    line: int
    severity: str
    body: str


@dataclass(frozen=True)
class PostableComment:
    path: str
    line: int
    side: str
    body: str

    def to_api(self) -> dict:
        return {"path": self.path, "line": self.line, "side": self.side, "body": self.body}


@dataclass(frozen=True)
class ReviewResult:
    summary: str
    comments: tuple[Comment, ...] = ()


@dataclass(frozen=True)
class Partition:
    accepted: tuple[PostableComment, ...] = ()
    skipped: tuple[Comment, ...] = ()


# ---------------------------------------------------------------------------
# Model output extraction
# ---------------------------------------------------------------------------

def extract_json(raw_text: str) -> Any:
    """Parse the slice from the first "{" to the last "}" of model output.

    Returns None when there is no such slice or it is not valid JSON.
    Markdown fences and chatter around the object are cut away by the slice.
    """
    raw_text = raw_text.strip()
    json_start = raw_text.find("{")
    json_end = raw_text.rfind("}")
    if json_start == -1 or json_end < json_start:
        return None
    try:
        return json.loads(raw_text[json_start:json_end + 1])
    except json.JSONDecodeError:
        return None


def parse_review_output(raw_text: str) -> ReviewResult | None:
    """Build a ReviewResult from model output, or None if it is unusable.

    The object must carry a string "summary" and a list "comments"; the
    individual comments are then validated one by one.
    """
    parsed = extract_json(raw_text)
    if not isinstance(parsed, dict):
        return None
    summary = parsed.get("summary")
    raw_comments = parsed.get("comments")
    if not isinstance(summary, str) or not isinstance(raw_comments, list):
        return None
    return ReviewResult(summary=summary, comments=tuple(normalize_comments(raw_comments)))


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _positive_line(value: Any) -> int | None:
    # JSON true/false would otherwise pass as 1/0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    line = int(value)
    return line if line > 0 else None


def validate_comment(raw: Any) -> tuple[Comment | None, str | None]:
    """Validate one untrusted comment.

    Returns (comment, None) on success, (None, reason) otherwise. Never raises.
    An empty path is allowed through; it cannot match any diff entry.
    """
    if not isinstance(raw, dict):
        return None, "not an object"

    path = raw.get("path")
    if not isinstance(path, str):
        return None, "path is not a string"

    line = _positive_line(raw.get("line"))
    if line is None:
        return None, "line is not a positive number"

    body = raw.get("body")
    if not isinstance(body, str) or not body.strip():
        return None, "body is missing or empty"

    severity = raw.get("severity")
    if isinstance(severity, str) and severity.strip():
        severity = severity.strip()
    else:
        severity = DEFAULT_SEVERITY

    return Comment(path=path.strip(), line=line, severity=severity, body=body.strip()), None


def normalize_comments(raw_comments: Iterable[Any]) -> list[Comment]:
    """Keep the valid comments, in input order."""
    comments = []
    for raw in raw_comments:
        comment, _ = validate_comment(raw)
        if comment is not None:
            comments.append(comment)
    return comments


# ---------------------------------------------------------------------------
# Diff-aware filtering
# ---------------------------------------------------------------------------

def format_comment_body(comment: Comment) -> str:
    """Prefix the body with its severity tag, once."""
    prefix = f"[Severity: {comment.severity or DEFAULT_SEVERITY}]"
    if comment.body.startswith(prefix):
        return comment.body
    return f"{prefix}\n\n{comment.body}"


def partition_comments(
    comments: Iterable[Comment], diff_index: dict[str, set[int]],
) -> Partition:
    """Split comments into postable ones and ones outside the diff.

    A comment is postable when its path is in the index and its line is one of
    the visible new-file lines. Missing paths and invisible lines both land in
    skipped.
    """
    accepted: list[PostableComment] = []
    skipped: list[Comment] = []

    for comment in comments:
        available_lines = diff_index.get(comment.path)
        if not available_lines or comment.line not in available_lines:
            skipped.append(comment)
            continue
        accepted.append(PostableComment(
            path=comment.path,
            line=comment.line,
            side=RIGHT_SIDE,
            body=format_comment_body(comment),
        ))

    return Partition(accepted=tuple(accepted), skipped=tuple(skipped))


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------

def assemble_review_payload(
    summary: str | None,
    accepted: Iterable[PostableComment],
    default_body: str = DEFAULT_REVIEW_BODY,
) -> dict:
    """Build the review creation payload.

    Callers must not submit a payload without comments; this function does
    not check.
    """
    return {
        "event": REVIEW_EVENT,
        "body": summary or default_body,
        "comments": [c.to_api() for c in accepted],
    }
