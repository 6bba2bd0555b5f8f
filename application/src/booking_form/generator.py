"""Publish-time entry point: raw stored config -> static HTML artifact."""

from __future__ import annotations

import hashlib
from typing import Any

from .assembler import assemble_document
from .models import FormConfig
from .normalizer import normalize_config


def generate_html(config: FormConfig, form_id: str = "", store_id: str = "") -> str:
    return assemble_document(config, form_id, store_id)


def generate(raw: Any, form_id: str = "", store_id: str = "") -> str:
    """
    Normalize then assemble. Pure and deterministic: the same input always yields the
    same bytes. Raises TypeError when raw is not an object-shaped config.
    """
    return generate_html(normalize_config(raw), form_id, store_id)


def content_hash(html: str) -> str:
    return hashlib.sha256(html.encode("utf-8")).hexdigest()
