"""Configuration loader for the brevoza TUI.

Settings live in the ``[tool.brevoza]`` table of the project's
pyproject.toml. Only the presentation layer reads them; the content core
receives every value as an explicit argument.
"""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .github import DEFAULT_API_URL
from .items import DEFAULT_MAX_WORKERS
from .site_loader import DEFAULT_CONFIG_PATH

EXAMPLE_CONFIG = (
    "[tool.brevoza]\n"
    'owner = "my-org"\n'
    'repo = "my-site"\n'
    'branch = "main"'
)


@dataclass
class BrevozaConfig:
    """Resolved TUI settings."""

    owner: str
    repo: str
    branch: str = "main"
    config_path: str = DEFAULT_CONFIG_PATH
    api_url: str = DEFAULT_API_URL
    token_env: str = "GITHUB_TOKEN"
    max_workers: int = DEFAULT_MAX_WORKERS
    page_size: int = 50
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @property
    def token(self) -> Optional[str]:
        """The API token, read from the configured environment variable."""
        return os.environ.get(self.token_env) or None

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"


def read_tool_table(project_root: Optional[Path] = None) -> Dict[str, Any]:
    """Read pyproject.toml and extract the [tool.brevoza] table.

    Args:
        project_root: Directory containing pyproject.toml (defaults to cwd)

    Returns:
        The raw settings table

    Raises:
        FileNotFoundError: If pyproject.toml doesn't exist
        KeyError: If [tool.brevoza] section is missing
    """
    pyproject_path = (project_root or Path.cwd()) / "pyproject.toml"
    if not pyproject_path.exists():
        raise FileNotFoundError(
            f"pyproject.toml not found at {pyproject_path}. "
            "Make sure you're running from a project directory."
        )

    with open(pyproject_path, "rb") as f:
        pyproject = tomllib.load(f)

    if "tool" not in pyproject or "brevoza" not in pyproject["tool"]:
        raise KeyError(
            "[tool.brevoza] section not found in pyproject.toml. "
            f"Add configuration like:\n{EXAMPLE_CONFIG}"
        )

    return pyproject["tool"]["brevoza"]


def load_settings(project_root: Optional[Path] = None) -> BrevozaConfig:
    """Load and validate TUI settings.

    Raises:
        FileNotFoundError: If pyproject.toml doesn't exist
        KeyError: If [tool.brevoza] section is missing
        ValueError: If owner/repo are missing or a numeric value is invalid
    """
    table = read_tool_table(project_root)

    owner = table.get("owner")
    repo = table.get("repo")
    if not owner or not repo:
        raise ValueError(
            "[tool.brevoza] must specify both 'owner' and 'repo'.\n"
            f"Example:\n{EXAMPLE_CONFIG}"
        )

    settings = BrevozaConfig(
        owner=str(owner),
        repo=str(repo),
        branch=str(table.get("branch", "main")),
        config_path=str(table.get("config_path", DEFAULT_CONFIG_PATH)),
        api_url=str(table.get("api_url", DEFAULT_API_URL)),
        token_env=str(table.get("token_env", "GITHUB_TOKEN")),
        max_workers=int(table.get("max_workers", DEFAULT_MAX_WORKERS)),
        page_size=int(table.get("page_size", 50)),
        log_level=str(table.get("log_level", "INFO")).upper(),
        log_file=table.get("log_file"),
    )

    if settings.max_workers < 1 or settings.page_size < 1:
        raise ValueError("'max_workers' and 'page_size' must be >= 1")

    return settings
