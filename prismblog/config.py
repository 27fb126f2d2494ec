"""Configuration loading for prismblog.

Settings are assembled once at startup from three layers, later layers
winning: built-in defaults, ``prismblog.yaml`` in the project root, then
environment variables. The result is an immutable Settings object that is
handed to every component that needs it.

Key functions:
- load_config: Build Settings for a project root.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILENAME = "prismblog.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "port": 3000,
    "output_dir": "deploy",
    "webhook_secret": "",
    "webhook_bucket": "",
    "api_endpoint": "",
    "access_token": "",
    "api_timeout": 30.0,
    "deploy_repo": "",
    "deploy_remote": "origin",
    "deploy_branch": "master",
    "document_type": "blog",
    "site_title": "",
    "site_url": "",
    "lang": "fr",
    "views_dir": "views",
    "public_dir": "public",
    "git_author_name": "",
    "git_author_email": "",
}

# Environment variable -> setting key
ENV_OVERRIDES = {
    "PORT": "port",
    "HTML_OUTPUT_DIR": "output_dir",
    "PRISMIC_WEBHOOK_SECRET": "webhook_secret",
    "AWS_PRISMIC_WEBHOOK_BUCKET": "webhook_bucket",
    "PRISMIC_API_ENDPOINT": "api_endpoint",
    "PRISMIC_ACCESS_TOKEN": "access_token",
    "DEPLOY_REPO_URL": "deploy_repo",
    "DEPLOY_REMOTE": "deploy_remote",
    "DEPLOY_BRANCH": "deploy_branch",
}


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration.

    Attributes:
        project_root: Directory the project was loaded from.
        port: Port of the live server.
        output_dir: Working copy of the deploy repository.
        webhook_secret: Shared secret expected on webhook calls.
        webhook_bucket: S3 bucket that receives archived webhook payloads.
        api_endpoint: Prismic API v2 endpoint URL.
        access_token: Optional Prismic access token.
        api_timeout: Timeout in seconds for CMS requests.
        deploy_repo: Remote URL of the deploy repository.
        deploy_remote: Remote name to push to.
        deploy_branch: Branch to push to.
        document_type: Prismic custom type holding blog posts.
        site_title: Title used on every page.
        site_url: Public base URL, used for canonical links.
        lang: Value of the ``<html lang>`` attribute.
        views_dir: Project template directory.
        public_dir: Static assets copied verbatim into the output.
        git_author_name: Optional commit author name.
        git_author_email: Optional commit author email.
    """

    project_root: Path
    port: int
    output_dir: Path
    webhook_secret: str
    webhook_bucket: str
    api_endpoint: str
    access_token: str
    api_timeout: float
    deploy_repo: str
    deploy_remote: str
    deploy_branch: str
    document_type: str
    site_title: str
    site_url: str
    lang: str
    views_dir: Path
    public_dir: Path
    git_author_name: str
    git_author_email: str


def load_config(
    project_root: Path, environ: Mapping[str, str] | None = None
) -> Settings:
    """Load settings for a project.

    Args:
        project_root: Root directory of the project.
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        Settings with defaults, file values and environment overrides applied.

    Raises:
        ValueError: If a numeric setting cannot be parsed.
    """
    environ = os.environ if environ is None else environ
    config = DEFAULT_CONFIG.copy()
    config_path = project_root / CONFIG_FILENAME
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
            if isinstance(loaded, dict):
                config.update({k: v for k, v in loaded.items() if k in DEFAULT_CONFIG})
    for env_name, key in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            config[key] = value

    return Settings(
        project_root=project_root,
        port=_as_number(config, "port", int),
        output_dir=_resolve(project_root, config["output_dir"]),
        webhook_secret=str(config["webhook_secret"] or ""),
        webhook_bucket=str(config["webhook_bucket"] or ""),
        api_endpoint=str(config["api_endpoint"] or "").rstrip("/"),
        access_token=str(config["access_token"] or ""),
        api_timeout=_as_number(config, "api_timeout", float),
        deploy_repo=str(config["deploy_repo"] or ""),
        deploy_remote=str(config["deploy_remote"] or "origin"),
        deploy_branch=str(config["deploy_branch"] or "master"),
        document_type=str(config["document_type"] or "blog"),
        site_title=str(config["site_title"] or ""),
        site_url=str(config["site_url"] or ""),
        lang=str(config["lang"] or ""),
        views_dir=_resolve(project_root, config["views_dir"]),
        public_dir=_resolve(project_root, config["public_dir"]),
        git_author_name=str(config["git_author_name"] or ""),
        git_author_email=str(config["git_author_email"] or ""),
    )


def _as_number(config: dict[str, Any], key: str, kind: type):
    try:
        return kind(config[key])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value for {key}: {config[key]!r}") from exc


def _resolve(project_root: Path, value: Any) -> Path:
    path = Path(str(value))
    return path if path.is_absolute() else project_root / path
