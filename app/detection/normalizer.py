"""
Model-output normalization.

`extract_json` pulls the JSON object out of free-form model text and
`normalize` turns whatever it found into a DetectionVerdict that always
satisfies:

  * both probabilities are integers in [0, 100]
  * deepfake_probability + natural_probability == 100
  * media_type is one of image / video / audio / text / unknown

Neither function raises, whatever the input.
"""

import json
import math
from typing import Any, Optional

from app.core.media_classifier import MEDIA_KINDS
from app.schemas.detection import DetectionVerdict, Reasoning


REASONING_FIELDS = ("content_analysis", "deepfake_indicators", "authentic_indicators", "overall")
NOT_AVAILABLE = "not available"
UNPARSEABLE_OVERALL = "Model did not return parseable JSON. See raw_model_output for details."


def _loads_object(candidate: str) -> Optional[dict]:
    try:
        value = json.loads(candidate)
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def extract_json(text: Any) -> Optional[dict]:
    """Parse the span between the first '{' and the last '}', else the whole text."""
    if not isinstance(text, str):
        return None

    first = text.find("{")
    last = text.rfind("}")
    if first >= 0 and last > first:
        parsed = _loads_object(text[first:last + 1])
        if parsed is not None:
            return parsed

    return _loads_object(text)


def _to_number(value: Any) -> Optional[float]:
    """Finite float for numbers and numeric strings, None for everything else."""
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str) and value.strip():
            number = float(value.strip())
        else:
            return None
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


def _media_type(parsed_value: Any, fallback_media_kind: Any) -> str:
    if isinstance(parsed_value, str) and parsed_value.lower() in MEDIA_KINDS:
        return parsed_value.lower()
    if fallback_media_kind in MEDIA_KINDS:
        return fallback_media_kind
    return "unknown"


def _reasoning_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError, RecursionError):
        return str(value)


def normalize(parsed: Any, fallback_media_kind: Any = None) -> DetectionVerdict:
    if not isinstance(parsed, dict):
        parsed = {}

    deepfake = _to_number(parsed.get("deepfake_probability"))
    natural = _to_number(parsed.get("natural_probability"))

    if deepfake is None and natural is not None:
        deepfake = _round_half_up(100 - natural)
    elif deepfake is None:
        # Nothing usable: report 0 / 100
        deepfake = 0

    deepfake = _clamp(_round_half_up(deepfake))
    natural = _clamp(100 - deepfake)

    reasoning = parsed.get("reasoning")
    if not isinstance(reasoning, dict):
        reasoning = {}

    return DetectionVerdict(
        media_type=_media_type(parsed.get("media_type"), fallback_media_kind),
        deepfake_probability=deepfake,
        natural_probability=natural,
        reasoning=Reasoning(**{
            field: _reasoning_text(reasoning[field]) if field in reasoning else NOT_AVAILABLE
            for field in REASONING_FIELDS
        }),
    )


def uncertain_verdict(media_kind: Any = None) -> DetectionVerdict:
    """Verdict returned when the model text held no JSON object."""
    return DetectionVerdict(
        media_type=_media_type(None, media_kind),
        deepfake_probability=0,
        natural_probability=100,
        reasoning=Reasoning(overall=UNPARSEABLE_OVERALL),
    )
