"""
Event metadata normalization.

Metadata arrives either as a mapping or as a serialized JSON string. A single
normalization step turns any of them into a plain mapping; a string that does
not parse to a JSON object yields an empty mapping.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from .models import (
    EMPTY_METADATA,
    EmptyMetadata,
    Metadata,
    RawMetadata,
    StructuredMetadata,
)

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


def coerce_metadata(value: Any) -> Metadata:
    """Wrap a raw stored metadata value in the Metadata sum type."""
    if value is None:
        return EMPTY_METADATA
    if isinstance(value, EmptyMetadata | StructuredMetadata | RawMetadata):
        return value
    if isinstance(value, Mapping):
        return StructuredMetadata(data=dict(value))
    if isinstance(value, str | bytes):
        text = value.decode("utf-8", errors="replace") if isinstance(value, bytes) else value
        return RawMetadata(text=text) if text.strip() else EMPTY_METADATA
    return EMPTY_METADATA


def normalize_metadata(metadata: Metadata) -> Mapping[str, Any]:
    """Resolve metadata to a mapping. Never raises."""
    if isinstance(metadata, StructuredMetadata):
        return metadata.data
    if isinstance(metadata, RawMetadata):
        try:
            parsed = json.loads(metadata.text)
        except (ValueError, RecursionError):
            logger.debug("Unparsable event metadata treated as empty: %.80r", metadata.text)
            return {}
        if isinstance(parsed, Mapping):
            return parsed
        logger.debug("Non-object event metadata treated as empty: %.80r", metadata.text)
        return {}
    return {}


def metadata_label(data: Mapping[str, Any], *keys: str, default: str = UNKNOWN) -> str:
    """First non-empty value among keys, as a string label."""
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return str(value)
    return default
