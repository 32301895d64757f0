"""
Field interpreter.

Holds the only place where the meaning of unconfirmed fields is decided.
Each rule maps (stream, record kind, field index) to an interpret function
and a confidence tag. Field indices count the tag as field 0, so a GPS
delta line `D,500,?,?,-150,3.2,180` has raw field 2 == "?".

Fields without a rule, and fields whose rule rejects the raw text, are
passed through untouched and tagged UNKNOWN. No unit conversion is applied
unless a rule says so.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from tracksalvage.models.records import RecordKind, StreamKind
from tracksalvage.models.track import Confidence, Interpreted


logger = logging.getLogger(__name__)

FieldKey = tuple[StreamKind, RecordKind, int]


def passthrough(raw: str) -> str:
    return raw


def microdegrees(raw: str) -> float:
    return int(raw) / 1_000_000.0


@dataclass(frozen=True)
class FieldRule:
    """How to read one field, and how far to trust the result."""

    name: str
    interpret: Callable[[str], Any]
    confidence: Confidence
    unit: Optional[str] = None


DEFAULT_RULES: dict[FieldKey, FieldRule] = {
    # GPS delta: D, delta_ms, field_2, field_3, delta_elevation_mm, speed, heading
    (StreamKind.GPS, RecordKind.DELTA, 2): FieldRule("field_2", passthrough, Confidence.UNKNOWN),
    (StreamKind.GPS, RecordKind.DELTA, 3): FieldRule("field_3", passthrough, Confidence.UNKNOWN),
    (StreamKind.GPS, RecordKind.DELTA, 6): FieldRule("heading", float, Confidence.PROBABLE, "deg"),
    # Accelerometer delta: D, delta_ms, x, y, z (axis mapping and unit unconfirmed)
    (StreamKind.ACC, RecordKind.DELTA, 2): FieldRule("accel_x", float, Confidence.UNKNOWN),
    (StreamKind.ACC, RecordKind.DELTA, 3): FieldRule("accel_y", float, Confidence.UNKNOWN),
    (StreamKind.ACC, RecordKind.DELTA, 4): FieldRule("accel_z", float, Confidence.UNKNOWN),
}

# Reading of GPS delta fields 2/3 as microdegree position changes since the
# anchor. Matches the older converter's behaviour; not validated against
# recorded tracks, hence PROBABLE.
POSITION_DELTA_RULES: dict[FieldKey, FieldRule] = {
    (StreamKind.GPS, RecordKind.DELTA, 2): FieldRule(
        "latitude_delta", microdegrees, Confidence.PROBABLE, "deg"
    ),
    (StreamKind.GPS, RecordKind.DELTA, 3): FieldRule(
        "longitude_delta", microdegrees, Confidence.PROBABLE, "deg"
    ),
}


class FieldInterpreter:
    """Resolves raw field text to Interpreted values using a rule table."""

    def __init__(self, rules: Optional[Mapping[FieldKey, FieldRule]] = None):
        self._rules: dict[FieldKey, FieldRule] = dict(DEFAULT_RULES if rules is None else rules)

    @property
    def rules(self) -> dict[FieldKey, FieldRule]:
        return dict(self._rules)

    def rule_for(self, stream: StreamKind, kind: RecordKind, index: int) -> Optional[FieldRule]:
        return self._rules.get((stream, kind, index))

    def with_rules(self, overrides: Mapping[FieldKey, FieldRule]) -> "FieldInterpreter":
        """A new interpreter with some rules replaced; this one is unchanged."""
        merged = dict(self._rules)
        merged.update(overrides)
        return FieldInterpreter(merged)

    def resolve(
        self,
        stream: StreamKind,
        kind: RecordKind,
        index: int,
        raw: str,
        default_name: Optional[str] = None,
    ) -> Interpreted:
        rule = self.rule_for(stream, kind, index)
        name = default_name or f"field_{index}"
        if rule is None:
            return Interpreted(name=name, value=raw, raw=raw, confidence=Confidence.UNKNOWN)

        try:
            value = rule.interpret(raw)
        except (ValueError, TypeError) as e:
            logger.debug(f"Rule {rule.name} rejected {raw!r} ({e}); passing through")
            return Interpreted(name=rule.name, value=raw, raw=raw, confidence=Confidence.UNKNOWN)

        return Interpreted(
            name=rule.name,
            value=value,
            raw=raw,
            confidence=rule.confidence,
            unit=rule.unit,
        )


DEFAULT_INTERPRETER = FieldInterpreter()
