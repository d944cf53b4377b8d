"""Helpers for reading and normalizing export branding overrides."""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

LOGO_COUNT = 3

DEFAULT_TITLE_LINES = [
    "Republic of the Philippines",
    "CEBU TECHNOLOGICAL UNIVERSITY",
    "Main Campus",
    "College of Technology",
]

DEFAULT_EXPORT_CONFIG = {
    "institution_name": "Cebu Technological University",
    "campus_line": "Main Campus - M.J. Cuenco Ave., Cor. R. Palma St., Cebu City",
    "product_name": "CHRONIX",
    "title_lines": DEFAULT_TITLE_LINES,
    "document_title": "CLASS SCHEDULE",
    "logos": [
        "img/CTU_new_logo.png",
        "img/CHRONIX_LOGO.png",
        "img/bagong_pilipinas.png",
    ],
    "footer_image": "img/footer.png",
    "footer_text": "Generated by CHRONIX - CTU Class Scheduling System",
    "filename_base": "schedule",
    "asset_root": None,
}

STRING_KEYS = [
    "institution_name",
    "campus_line",
    "product_name",
    "document_title",
    "footer_text",
    "filename_base",
]


def _optional_source(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_export_config(data: dict | None) -> dict:
    config = copy.deepcopy(DEFAULT_EXPORT_CONFIG)
    if not isinstance(data, dict):
        return config

    for key in STRING_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            config[key] = value.strip()

    title_lines = data.get("title_lines")
    if isinstance(title_lines, list):
        normalized = [str(line).strip() for line in title_lines if str(line).strip()]
        if normalized:
            config["title_lines"] = normalized

    logos = data.get("logos")
    if isinstance(logos, list):
        normalized_logos = [_optional_source(logo) for logo in logos[:LOGO_COUNT]]
        normalized_logos.extend([None] * (LOGO_COUNT - len(normalized_logos)))
        config["logos"] = normalized_logos

    if "footer_image" in data:
        config["footer_image"] = _optional_source(data.get("footer_image"))

    if "asset_root" in data:
        config["asset_root"] = _optional_source(data.get("asset_root"))

    return config


def load_export_config(path: Path | None) -> dict:
    if path is None or not path.exists():
        return copy.deepcopy(DEFAULT_EXPORT_CONFIG)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring malformed export config %s: %s", path, exc)
        return copy.deepcopy(DEFAULT_EXPORT_CONFIG)
    config = normalize_export_config(data)
    if config["asset_root"] is None:
        config["asset_root"] = str(path.resolve().parent)
    return config


def save_export_config(path: Path, config: dict) -> None:
    normalized = normalize_export_config(config)
    path.write_text(json.dumps(normalized, indent=2), encoding="utf-8")


def base_filename(config: dict, override: str | None = None) -> str:
    return (override or "").strip() or config.get("filename_base") or "schedule"
