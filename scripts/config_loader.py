"""
config_loader.py — Load and merge pr-triage configuration.

Configuration is resolved in this order (later overrides earlier):
1. Built-in defaults (defaults/config.yaml next to the scripts directory)
2. Project config (.github/pr-triage/config.yaml in the current repo)
3. Environment variable overrides

Imported by pr-review.py; the diff and comment modules never read config.
"""

import os
import subprocess
from pathlib import Path

import yaml


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base. Override wins for leaf values."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> dict:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        print(f"  Warning: ignoring {path} (expected a mapping at top level)")
        return {}
    return data


def load_config() -> dict:
    """Load configuration from defaults + project config + env overrides.

    Environment variables:
        PR_TRIAGE_HOME: Directory holding defaults/config.yaml
        PR_TRIAGE_CONFIG: Path to project config (relative to repo root)
        GITHUB_REPO: owner/repo to triage when none is given on the command line
        OLLAMA_MODEL: Ollama model used for the review
        PR_TRIAGE_LIST_LIMIT: Maximum number of open PRs to list
        PR_TRIAGE_DRY_RUN: "true" to print the review payload instead of posting it
    """
    # 1. Built-in defaults
    home = Path(os.environ.get("PR_TRIAGE_HOME", Path(__file__).resolve().parent.parent))
    defaults_path = home / "defaults" / "config.yaml"

    config = {}
    if defaults_path.exists():
        config = _read_yaml(defaults_path)

    # 2. Project-specific config from the repo being worked on
    repo_root = _find_repo_root()
    config_rel_path = os.environ.get("PR_TRIAGE_CONFIG", ".github/pr-triage/config.yaml")
    project_config_path = repo_root / config_rel_path

    if project_config_path.exists():
        config = _deep_merge(config, _read_yaml(project_config_path))
        print(f"  Loaded project config from {config_rel_path}")

    # 3. Environment variable overrides
    if os.environ.get("GITHUB_REPO", "").strip():
        config.setdefault("github", {})["repo"] = os.environ["GITHUB_REPO"].strip()
    if os.environ.get("PR_TRIAGE_LIST_LIMIT"):
        config.setdefault("github", {})["list_limit"] = int(os.environ["PR_TRIAGE_LIST_LIMIT"])
    if os.environ.get("OLLAMA_MODEL", "").strip():
        config.setdefault("review", {})["model"] = os.environ["OLLAMA_MODEL"].strip()
    if os.environ.get("PR_TRIAGE_DRY_RUN"):
        config.setdefault("review", {})["dry_run"] = (
            os.environ["PR_TRIAGE_DRY_RUN"].lower() == "true"
        )

    return config


def resolve_repo(repo_arg: str | None, config: dict) -> str:
    """Pick the repository: command-line argument first, then config/env."""
    if repo_arg and repo_arg.strip():
        return repo_arg.strip()
    return str(config.get("github", {}).get("repo", "") or "").strip()


def parse_repo(identifier: str) -> tuple[str, str]:
    """Split an owner/name identifier, rejecting anything else."""
    owner, sep, name = identifier.partition("/")
    if not sep or not owner or not name or "/" in name:
        raise ValueError(
            f'Expected repository in "owner/name" format but received "{identifier}".'
        )
    return owner, name


def _find_repo_root() -> Path:
    """Find the Git repository root."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            capture_output=True, text=True, timeout=5,
        )
        if result.returncode == 0 and result.stdout.strip():
            return Path(result.stdout.strip())
    except (OSError, subprocess.SubprocessError):
        pass

    # Not in a git checkout (or git missing): use the current directory
    return Path.cwd()
