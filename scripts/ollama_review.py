"""
ollama_review.py — Ask a local Ollama model to review a PR diff.

The model is a black box: it gets the diff plus instructions on stdin and is
expected to answer with a JSON object {"summary": ..., "comments": [...]}.
Whatever it prints is validated by review_comments.parse_review_output.
"""

import subprocess

from review_comments import ReviewResult, parse_review_output

DEFAULT_MODEL = "deepseek-coder-v2:lite"
DEFAULT_TIMEOUT = 600


class OllamaError(Exception):
    """`ollama run` could not be started or did not finish cleanly."""


def truncate_diff(diff_text: str, max_lines: int) -> str:
    """Cut the diff down to max_lines for the prompt (0 or less keeps it all)."""
    if max_lines <= 0:
        return diff_text
    lines = diff_text.split("\n")
    if len(lines) <= max_lines:
        return diff_text
    kept = "\n".join(lines[:max_lines])
    return f"{kept}\n\n[... truncated — {len(lines) - max_lines} additional lines not shown ...]"


def build_review_prompt(repo: str, pr_number: int, diff_text: str, max_diff_lines: int = 0) -> str:
    """Build the review instructions followed by the diff."""
    parts = [
        "You are a senior front-end engineer performing an inline code review.",
        f"Review GitHub pull request #{pr_number} for repository {repo}.",
        "Focus on correctness, UX impact, maintainability, and missing tests.",
        "Only comment on lines that appear in the provided diff.",
        "Respond with JSON matching this exact schema and nothing else:",
        "{",
        '  "summary": "one or two sentences summarizing the overall feedback",',
        '  "comments": [',
        "    {",
        '      "path": "relative/path/to/file.js",',
        '      "line": 123,',
        '      "severity": "Major" | "Minor" | "Nitpick",',
        '      "body": "Concise inline review comment addressed to the author."',
        "    }",
        "  ]",
        "}",
        "Output valid JSON only. Use newline characters in bodies when needed.",
        "",
        "Diff to review (unified format):",
        truncate_diff(diff_text, max_diff_lines),
    ]
    return "\n".join(parts)


def run_ollama(model: str, prompt: str, timeout: int = DEFAULT_TIMEOUT) -> str:
    """Run `ollama run <model>` with the prompt on stdin and return stdout."""
    try:
        result = subprocess.run(
            ["ollama", "run", model],
            input=prompt, capture_output=True, text=True, timeout=timeout,
        )
    except FileNotFoundError as e:
        raise OllamaError("ollama CLI not found on PATH") from e
    except subprocess.TimeoutExpired as e:
        raise OllamaError(f"ollama run timed out after {timeout}s") from e
    except (OSError, subprocess.SubprocessError) as e:
        raise OllamaError(str(e)) from e

    if result.returncode != 0:
        raise OllamaError(
            result.stderr.strip() or f'Command "ollama" exited with code {result.returncode}'
        )
    return result.stdout


def review_diff(repo: str, pr_number: int, diff_text: str, config: dict) -> ReviewResult | None:
    """Review a diff with the configured model.

    Returns None when there is nothing to review or the model output is
    unusable; the reason is printed.
    """
    if not diff_text:
        print("Skipping Ollama review because no diff was returned.")
        return None

    review_config = config.get("review", {})
    model = review_config.get("model", DEFAULT_MODEL)
    timeout = int(review_config.get("timeout", DEFAULT_TIMEOUT))
    max_diff_lines = int(review_config.get("max_diff_lines", 0))

    print(f'\nRunning Ollama review with model "{model}"...\n')
    prompt = build_review_prompt(repo, pr_number, diff_text, max_diff_lines)

    try:
        output = run_ollama(model, prompt, timeout=timeout)
    except OllamaError as e:
        print(f"Ollama review failed: {e}")
        return None

    if not output.strip():
        print("Ollama produced no review output.")
        return None

    review = parse_review_output(output)
    if review is None:
        print("Unable to parse Ollama output. Raw response:")
        print(output.strip())
        return None

    return review
