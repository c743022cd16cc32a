from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, Field

from costdelta.render import DEFAULT_TITLE

DEFAULT_BACKEND_URL = "https://cloudcost-action-api.vercel.app/"

# Action input name -> config field
_INPUTS = {
    "region": "region",
    "usage_profile": "usage_profile",
    "analyzer_version": "analyzer_version",
    "comment_title": "comment_title",
    "update_existing_comment": "update_existing_comment",
    "enable_usage_reporting": "enable_usage_reporting",
    "github_token": "github_token",
    "api_key": "api_key",
    "working_directory": "working_directory",
    "verbose": "verbose",
}


class ConfigError(ValueError):
    """Raised when required action settings are missing."""


class ActionConfig(BaseModel):
    region: str = "us-east-1"
    usage_profile: str = "small"
    analyzer_version: str = "v0.1.0"
    comment_title: str = DEFAULT_TITLE
    update_existing_comment: bool = True
    enable_usage_reporting: bool = False
    github_token: Optional[str] = Field(default=None, repr=False)
    api_key: Optional[str] = Field(default=None, repr=False)
    backend_url: str = DEFAULT_BACKEND_URL
    working_directory: Optional[str] = None
    verbose: bool = False

    def require_credentials(self) -> None:
        if not self.github_token:
            raise ConfigError(
                "GitHub token is required to post PR comments. Provide github_token input "
                "(usually secrets.GITHUB_TOKEN) or set GITHUB_TOKEN env."
            )
        if not self.api_key:
            raise ConfigError("api_key input (or CLOUDCOST_API_KEY env) is required but not set.")


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _input(environ: Mapping[str, str], name: str) -> Optional[str]:
    """Read a GitHub Actions input (INPUT_<NAME>); empty means unset."""
    value = environ.get(f"INPUT_{name.upper()}", "").strip()
    return value or None


def _parse_flag(field: str, value: Any) -> Any:
    if not isinstance(value, str):
        return value
    if field == "update_existing_comment":
        return value != "false"
    if field == "enable_usage_reporting":
        return value not in ("", "false")
    if field == "verbose":
        return value.lower() in ("1", "true", "yes")
    return value


def load_config(config_path: Optional[str] = None,
                environ: Optional[Mapping[str, str]] = None) -> ActionConfig:
    """Load action configuration.

    Resolution order:
      1. GitHub Actions inputs (INPUT_* environment variables)
      2. Values from the YAML file at config_path (or $CLOUDCOST_CONFIG)
      3. GITHUB_TOKEN / CLOUDCOST_API_KEY for the credentials
      4. Defaults defined in the pydantic model
    """
    env = os.environ if environ is None else environ

    raw: Dict[str, Any] = {}
    path = config_path or env.get("CLOUDCOST_CONFIG")
    if path:
        cfg_path = Path(path)
        if not cfg_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {cfg_path}")
        raw = _load_yaml(cfg_path)

    data = {k: v for k, v in raw.items() if k in ActionConfig.model_fields}
    for name, field in _INPUTS.items():
        value = _input(env, name)
        if value is not None:
            data[field] = value

    if not data.get("github_token") and env.get("GITHUB_TOKEN"):
        data["github_token"] = env["GITHUB_TOKEN"]
    if not data.get("api_key") and env.get("CLOUDCOST_API_KEY"):
        data["api_key"] = env["CLOUDCOST_API_KEY"]

    return ActionConfig(**{k: _parse_flag(k, v) for k, v in data.items()})
