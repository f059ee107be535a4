"""
Sensitive data redaction for captured request and response bodies.

Bodies are parsed as JSON, every value stored under a sensitive key is
replaced with a fixed marker at any depth, and the result re-serialized.
Anything that is not valid JSON passes through untouched.
"""

import json
from typing import Any, FrozenSet, Iterable

import structlog

logger = structlog.get_logger(__name__)

REDACTED_MARKER = "***REDACTED***"

DEFAULT_SENSITIVE_KEYS: FrozenSet[str] = frozenset(
    {"email", "phone_number", "password", "token", "api_key"}
)


def _reject_constant(name: str) -> Any:
    # json accepts NaN/Infinity by default; they are not JSON
    raise ValueError(f"Invalid JSON constant: {name}")


class Redactor:
    """
    Replaces the values of sensitive JSON keys with ``REDACTED_MARKER``.

    Instances hold only an immutable key set and are safe to share across
    concurrent requests.
    """

    def __init__(self, sensitive_keys: Iterable[str] = DEFAULT_SENSITIVE_KEYS) -> None:
        self.sensitive_keys: FrozenSet[str] = frozenset(sensitive_keys)

    def redact(self, data: bytes) -> bytes:
        """
        Redact a JSON document.

        Args:
            data: Raw body bytes, expected to hold JSON

        Returns:
            Compact re-serialized JSON with sensitive values masked, or the
            original bytes if they cannot be parsed or re-encoded
        """
        if not data:
            return data

        try:
            parsed = json.loads(data, parse_constant=_reject_constant)
        except (ValueError, RecursionError):
            return data

        try:
            redacted = self.redact_value(parsed)
            return json.dumps(
                redacted,
                ensure_ascii=False,
                allow_nan=False,
                separators=(",", ":"),
            ).encode("utf-8")
        except (ValueError, TypeError, RecursionError) as e:
            logger.warning(
                "Failed to re-serialize redacted body",
                error=str(e),
                error_type=type(e).__name__,
            )
            return data

    def redact_value(self, obj: Any) -> Any:
        """
        Recursively traverse and mask sensitive data in nested structures.

        Returns a new structure; the input is not modified.
        """
        if isinstance(obj, dict):
            masked_dict = {}
            for key, value in obj.items():
                if key in self.sensitive_keys:
                    masked_dict[key] = REDACTED_MARKER
                else:
                    masked_dict[key] = self.redact_value(value)
            return masked_dict

        elif isinstance(obj, list):
            return [self.redact_value(item) for item in obj]

        else:
            # Scalars pass through
            return obj
