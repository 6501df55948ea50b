"""Feature extraction from request lines and raw payloads."""

import re

from .models import FeatureVector, InputValidation

SCRIPT_MARKERS = ("<script>", "javascript:")
SQL_KEYWORDS_RE = re.compile(r"\b(select|union|insert|delete|drop|or|and|where)\b", re.IGNORECASE)
SPECIAL_CHARS_RE = re.compile(r"[<>\"'&;]")
SANITIZE_RE = re.compile(r"[<>\"'&]")

DEFAULT_METHOD = "GET"
DEFAULT_ENDPOINT = "/unknown"
MAX_INPUT_LENGTH = 5000


def extract_features(text: str | None) -> FeatureVector:
    """Derive the feature vector for a "METHOD path" line or any payload string.

    Empty or missing input yields the zero vector; this never raises.
    """
    if not text:
        return FeatureVector()

    # a lone token is a payload, not a request line
    method, endpoint = DEFAULT_METHOD, DEFAULT_ENDPOINT
    parts = text.split(None, 2)
    if len(parts) >= 2:
        method, endpoint = parts[0], parts[1]

    lowered = text.lower()
    return FeatureVector(
        payload_size=len(text),
        has_script=any(marker in lowered for marker in SCRIPT_MARKERS),
        has_sql_keywords=SQL_KEYWORDS_RE.search(text) is not None,
        has_special_chars=SPECIAL_CHARS_RE.search(text) is not None,
        method=method,
        endpoint=endpoint,
    )


def validate_input(text: str | None) -> InputValidation:
    """Check that an input is usable for scoring and return a sanitized copy."""
    text = text or ""
    return InputValidation(
        is_valid=0 < len(text) <= MAX_INPUT_LENGTH,
        input_length=len(text),
        has_special_chars=SANITIZE_RE.search(text) is not None,
        sanitized=SANITIZE_RE.sub("", text),
    )
