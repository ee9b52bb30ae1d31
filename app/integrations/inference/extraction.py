"""
Text extraction from a model response envelope.

The envelope's shape depends on which API mode produced it, so extraction is
an ordered list of probes. Each probe returns the text it found or None; the
first non-None answer wins, and the stringified envelope is the last resort.
`extract_text` never raises.
"""

import json
import logging
from typing import Any, Callable, Optional

from app.config import settings

logger = logging.getLogger(__name__)


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _part_text(part: Any) -> str:
    text = _get(part, "text")
    if text is None:
        text = _get(part, "plain_text")
    return "" if text is None else str(text)


def _from_output_items(envelope: Any) -> Optional[str]:
    output = _get(envelope, "output")
    if not isinstance(output, (list, tuple)):
        return None

    chunks = []
    for item in output:
        content = _get(item, "content")
        if isinstance(content, (list, tuple)):
            chunks.append("".join(_part_text(part) for part in content))
        elif content is not None:
            chunks.append(_part_text(content))
        else:
            chunks.append("")
    return "\n".join(chunks)


def _from_output_text(envelope: Any) -> Optional[str]:
    output_text = _get(envelope, "output_text")
    if output_text:
        return str(output_text)
    return None


def _from_choices(envelope: Any) -> Optional[str]:
    choices = _get(envelope, "choices")
    if not isinstance(choices, (list, tuple)):
        return None

    chunks = []
    for choice in choices:
        text = _get(choice, "text")
        if text is None:
            text = _get(_get(choice, "message"), "content")
        chunks.append("" if text is None else str(text))
    return "\n".join(chunks)


PROBES: list[Callable[[Any], Optional[str]]] = [
    _from_output_items,
    _from_output_text,
    _from_choices,
]


def stringify_envelope(envelope: Any, limit: int = None) -> str:
    limit = settings.raw_output_truncate_chars if limit is None else limit
    try:
        dumped = json.dumps(envelope, default=str)
    except (TypeError, ValueError):
        dumped = repr(envelope)
    return dumped[:limit]


def extract_text(envelope: Any) -> str:
    try:
        for probe in PROBES:
            text = probe(envelope)
            if text is not None:
                return text
    except Exception as e:
        logger.warning(f"[EXTRACT] Envelope probing failed ({e.__class__.__name__}); using raw dump")
    return stringify_envelope(envelope)
