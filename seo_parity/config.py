# seo_parity/config.py
"""
Centralized configuration management.

Handles loading defaults, merging in settings from pyproject.toml,
and applying runtime overrides.
"""
from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, MutableMapping

import tomli

log = logging.getLogger(__name__)

# Image hosts of the legacy (Webflow) site. fnmatch patterns matched against
# the og:image URL's host and host+path.
DEFAULT_LEGACY_CDN_HOSTS = [
    "cdn.prod.website-files.com",
    "uploads.webflow.com",
    "assets.website-files.com",
    "*webflow-prod-assets*",
]

# Image hosts of the new platform.
DEFAULT_NEW_CDN_HOSTS = [
    "cdn.sanity.io",
]

# Two-letter path prefixes treated as locale variants of a page.
DEFAULT_LOCALES = [
    "ar", "es", "de", "fr", "pt", "it", "zh", "ko", "ja", "nl", "en",
    "ru", "pl", "sv", "tr", "he", "hi", "th", "vi", "id", "ms", "uk",
    "ro", "cs",
]

# Languages every page is expected to exist in when two sitemaps are compared.
DEFAULT_SITEMAP_LANGUAGES = ["ar", "es", "de", "fr", "pt", "it", "zh", "ko", "ja", "nl", "en"]

# Page templates (regular expressions on the path). A path list built from a
# sitemap keeps one example page per template.
DEFAULT_TEMPLATE_PATTERNS = [
    r"^/rto-materials/[^/]+$",
    r"^/alternatives/[^/]+$",
    r"^/blog/[^/]+$",
    r"^/features/[^/]+$",
    r"^/team/[^/]+$",
]

# This is the baseline configuration dictionary.
DEFAULT_CONFIG: dict[str, Any] = {
    "prod_url": "https://www.coursebox.ai",
    "dev_url": "https://coursebox-ai.vercel.app",
    "user_agent": "SEO-Parity-Checker/1.0",
    "timeout": 10.0,
    "status_timeout": 15.0,
    "max_redirects": 5,
    # --- Scheduling ---
    "batch_size": 5,  # paths per batch; 2x this many requests in flight
    "batch_delay": 1.0,  # seconds between batches
    "sequential": False,
    "request_delay": 1.0,  # seconds after each request in sequential mode
    "checks": {
        "title": True,
        "description": True,
        "h1": True,
        "og_image": True,
    },
    "legacy_cdn_hosts": DEFAULT_LEGACY_CDN_HOSTS,
    "new_cdn_hosts": DEFAULT_NEW_CDN_HOSTS,
    "locales": DEFAULT_LOCALES,
    # [prefix, replacement] pairs applied to dev-side request paths only.
    "dev_path_rewrites": [],
    "sitemap_languages": DEFAULT_SITEMAP_LANGUAGES,
    "template_patterns": DEFAULT_TEMPLATE_PATTERNS,
    # The one localized page kept in a path list built from a sitemap.
    "localization_example": "/ar",
    "output_dir": "result",
    "cache": {
        "enabled": False,
        "directory": ".seo_parity_cache",
        "expire_seconds": 24 * 3600,  # 1 day
        "store_errors": False,
    },
}


def _deep_merge_dict(
    base: MutableMapping[str, Any], overrides: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Recursively merge dicts."""
    for key, value in overrides.items():
        if isinstance(value, MutableMapping) and isinstance(
            base.get(key), MutableMapping
        ):
            base[key] = _deep_merge_dict(base[key], value)
        else:
            base[key] = value
    return base


def load_config(pyproject_path: Path | None = None) -> dict[str, Any]:
    """
    Loads configuration from defaults and merges settings from pyproject.toml.

    1. Starts with a deep copy of DEFAULT_CONFIG.
    2. Looks for `pyproject.toml` (current directory unless a path is given).
    3. If found, merges settings from `[tool.seo_parity]` over the defaults.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if pyproject_path is None:
        pyproject_path = Path.cwd() / "pyproject.toml"

    if not pyproject_path.exists():
        log.debug(
            "No pyproject.toml found at %s. Using default config.", pyproject_path
        )
        return config

    try:
        with pyproject_path.open("rb") as f:
            toml_data = tomli.load(f)
    except (OSError, tomli.TOMLDecodeError) as e:
        log.warning(
            "Failed to load or parse %s: %s. Using default config.",
            pyproject_path,
            e,
        )
        return config

    project_config = toml_data.get("tool", {}).get("seo_parity", {})
    if project_config:
        log.info("Loading config from %s", pyproject_path)
        config = _deep_merge_dict(config, copy.deepcopy(project_config))  # type: ignore
    else:
        log.debug("No [tool.seo_parity] section in %s.", pyproject_path)

    return config
