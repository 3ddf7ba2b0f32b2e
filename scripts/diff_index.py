"""
diff_index.py — Map a unified diff to the new-file lines that can carry comments.

GitHub only accepts inline review comments on lines that are visible in the
diff on the RIGHT side: context lines and added lines of the post-change file.
build_diff_index() walks the diff once and records exactly those lines.
"""

import re

HUNK_HEADER_RE = re.compile(r"@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")
NO_NEWLINE_MARKER = "\\ No newline at end of file"
DEV_NULL = "/dev/null"


def build_diff_index(diff_text: str) -> dict[str, set[int]]:
    """Parse diff to find which new-file line numbers are commentable.

    Returns {path: {line, ...}} keyed by the "b/" path with the prefix
    stripped. Deleted files (+++ /dev/null) are never keys. Unrecognised or
    malformed lines are ignored, so truncated diffs index what they can.
    """
    index: dict[str, set[int]] = {}
    current_path: str | None = None
    head_line = 0

    for line in diff_text.split("\n"):
        if line.startswith("diff --git "):
            current_path = None
            head_line = 0
            continue

        if line.startswith("+++ "):
            path = line[4:].strip()
            if path == DEV_NULL:
                current_path = None
                continue
            current_path = path[2:] if path.startswith("b/") else path
            index.setdefault(current_path, set())
            continue

        if current_path is None:
            continue

        if line.startswith("@@"):
            match = HUNK_HEADER_RE.match(line)
            if match:
                head_line = int(match.group(1))
            continue

        if line.startswith(NO_NEWLINE_MARKER):
            continue

        if line.startswith("+") or line.startswith(" "):
            index[current_path].add(head_line)
            head_line += 1
        # "-" lines only exist in the old file: not recorded, cursor stays

    return index


def compute_diff_stats(diff_text: str) -> dict:
    """Count files and added/removed lines for the status output."""
    lines_added = 0
    lines_removed = 0
    files = set()

    for line in diff_text.split("\n"):
        if line.startswith("+++ "):
            path = line[4:].strip()
            if path != DEV_NULL:
                files.add(path[2:] if path.startswith("b/") else path)
        elif line.startswith("--- "):
            # Old-file header; deletions are picked up from "diff --git"
            continue
        elif line.startswith("diff --git "):
            parts = line.split(" b/", 1)
            if len(parts) == 2:
                files.add(parts[1].strip())
        elif line.startswith("+"):
            lines_added += 1
        elif line.startswith("-"):
            lines_removed += 1

    return {
        "files_changed": len(files),
        "lines_added": lines_added,
        "lines_removed": lines_removed,
    }
