"""
Report Decoding

Turns the JSON written by the Gradle dependency report plugin into a
ProjectManifest. Unknown keys are ignored; anything structurally wrong
is reported as a ManifestDecodeError.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from src.depgraph.models import ProjectManifest
from src.shared.exceptions import ManifestDecodeError

logger = logging.getLogger("depgraph.report")


def _format_validation_error(err: ValidationError) -> str:
    """Condense pydantic errors into 'path: message' fragments."""
    parts = []
    for item in err.errors():
        location = ".".join(str(p) for p in item.get("loc", ()))
        parts.append(f"{location or '<root>'}: {item.get('msg', 'invalid')}")
    return "; ".join(parts)


def parse_report(data: str | bytes | dict[str, Any]) -> ProjectManifest:
    """
    Decode a dependency report.

    Args:
        data: Raw JSON text/bytes, or an already-parsed JSON object.

    Returns:
        The decoded ProjectManifest.

    Raises:
        ManifestDecodeError: Invalid JSON, or required fields missing / mistyped.
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ManifestDecodeError(f"Report is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ManifestDecodeError(
            f"Report root must be a JSON object, got {type(data).__name__}"
        )

    try:
        manifest = ProjectManifest.model_validate(data)
    except ValidationError as e:
        raise ManifestDecodeError(
            f"Invalid dependency report: {_format_validation_error(e)}"
        ) from e

    logger.debug(
        "Decoded report for %s with %d configurations",
        manifest.identity,
        len(manifest.configurations),
    )
    return manifest


def load_report(path: str | Path) -> ProjectManifest:
    """Read and decode a report file."""
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ManifestDecodeError(f"Cannot read report {path}: {e}") from e
    logger.info("Loaded dependency report %s (%d bytes)", path, len(raw))
    return parse_report(raw)
