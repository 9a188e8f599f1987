"""Schema-validated parsing of backend hazard confirmations."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from detection.normalizer import normalize_confirmations


class ParseErrorKind(str, Enum):
    """Why a backend payload could not be used."""
    MISSING = 'missing'
    INVALID_JSON = 'invalid_json'
    SCHEMA_MISMATCH = 'schema_mismatch'


class BackendHazardPayload(BaseModel):
    """Backend answer: the hazard labels its semantic pass confirmed."""
    model_config = ConfigDict(extra='ignore')

    hazards: List[str] = []

    @field_validator('hazards')
    @classmethod
    def lowercase_labels(cls, v: List[str]) -> List[str]:
        return [label.strip().lower() for label in v]


@dataclass(frozen=True)
class BackendParseResult:
    """Confirmed labels plus the reason they are empty, if parsing failed.

    Attributes:
        labels: Lowercase confirmed labels
        error: ParseErrorKind when the payload was unusable, else None
    """
    labels: FrozenSet[str] = frozenset()
    error: Optional[ParseErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _unwrap_analysis(obj: Any) -> Any:
    """Decode an 'analysis' field carrying the real payload as a JSON string."""
    if isinstance(obj, dict) and isinstance(obj.get('analysis'), str):
        try:
            inner = json.loads(obj['analysis'])
        except ValueError:
            return obj
        if isinstance(inner, dict):
            return inner
    return obj


def parse_backend_confirmation(raw: Any) -> BackendParseResult:
    """Parse a backend response into a set of confirmed labels.

    Args:
        raw: Response body as bytes or str, an already decoded JSON object, or None

    Returns:
        BackendParseResult; malformed or missing payloads give an empty label set
    """
    if raw is None:
        return BackendParseResult(error=ParseErrorKind.MISSING)

    if isinstance(raw, (bytes, bytearray, str)):
        if not raw.strip():
            return BackendParseResult(error=ParseErrorKind.MISSING)
        try:
            raw = json.loads(raw)
        except ValueError:
            return BackendParseResult(error=ParseErrorKind.INVALID_JSON)

    raw = _unwrap_analysis(raw)
    if not isinstance(raw, dict):
        return BackendParseResult(error=ParseErrorKind.SCHEMA_MISMATCH)

    try:
        payload = BackendHazardPayload.model_validate(raw)
    except ValidationError:
        return BackendParseResult(error=ParseErrorKind.SCHEMA_MISMATCH)

    return BackendParseResult(labels=normalize_confirmations(payload.hazards))
