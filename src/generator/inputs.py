"""Loading of personal info and experience files for the CLI."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from src.content.models import ExperienceEntry, PersonalInfo


def load_document(path: Path | str) -> Any:
    """Load a YAML or JSON document, choosing the parser by file suffix."""
    doc_path = Path(path)
    if not doc_path.exists():
        raise FileNotFoundError(f"File not found: {doc_path}")

    raw = doc_path.read_text(encoding="utf-8")
    if doc_path.suffix.lower() == ".json":
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON: {doc_path}") from e
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML: {doc_path}") from e


def load_personal_info(path: Path | str) -> PersonalInfo:
    """Load personal info; a top-level `personal_info` key is optional."""
    data = load_document(path) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Profile must be a mapping/dict: {path}")
    data = data.get("personal_info", data)
    try:
        return PersonalInfo.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid profile {path}: {e}") from e


def load_experience(path: Path | str | None) -> list[ExperienceEntry]:
    """Load experience entries from a list or an `experience` key."""
    if path is None:
        return []
    data = load_document(path) or []
    if isinstance(data, dict):
        data = data.get("experience", [])
    if not isinstance(data, list):
        raise ValueError(f"Experience must be a list: {path}")
    try:
        return [ExperienceEntry.model_validate(item) for item in data]
    except ValidationError as e:
        raise ValueError(f"Invalid experience entry in {path}: {e}") from e
