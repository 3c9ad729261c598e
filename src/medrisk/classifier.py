"""
Risk classification for patient records.

Three independent scoring functions (blood pressure, temperature, age) each
return a FieldScore. None of them raise or keep state: an unusable input
scores 0 points with `valid=False`, and the caller decides what to do with the
flag. `classify_all` folds those flags into a DataQualityRegistry and,
optionally, a stairval Notepad.
"""

from __future__ import annotations

import math
import numbers
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from stairval.notepad import Notepad

from .patient import PatientRecord

HIGH_RISK_THRESHOLD = 4
FEVER_MIN_POINTS = 1

# Placeholder strings the service uses for an unreadable blood pressure
_BP_PLACEHOLDERS = {"INVALID_BP_FORMAT", "N/A"}
_DECIMAL = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class FieldScore:
    """
    Points for one clinical dimension.

    Attributes:
        points: Points contributed to the total (0 when invalid).
        valid: False when the raw input could not be scored.
        reason: Why the input was rejected; empty when valid.
    """

    points: int
    valid: bool = True
    reason: str = ""

    @classmethod
    def invalid(cls, reason: str) -> "FieldScore":
        return cls(points=0, valid=False, reason=reason)


def _real_number(value: Any) -> Optional[float]:
    # bool is an int subclass but never a measurement
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    return float(value)


# ------------------------------------------------------------------------------
# Scoring functions
# ------------------------------------------------------------------------------


def score_blood_pressure(value: Any) -> FieldScore:
    """
    Score a "systolic/diastolic" reading.

    <120 and <80 → 0; 120–129 and <80 → 1; 130–139 or 80–89 → 2; ≥140 or ≥90 → 3.
    The higher band always wins when systolic and diastolic disagree.
    """
    if not isinstance(value, str) or value == "":
        return FieldScore.invalid(f"blood_pressure {value!r} is missing or not a string")
    if value in _BP_PLACEHOLDERS:
        return FieldScore.invalid(f"blood_pressure is the placeholder {value!r}")

    parts = value.split("/")
    if len(parts) != 2:
        return FieldScore.invalid(f"blood_pressure {value!r} is not in 'systolic/diastolic' form")

    readings = []
    for part in parts:
        text = part.strip()
        if not _DECIMAL.match(text):
            return FieldScore.invalid(f"blood_pressure {value!r} has a non-numeric side")
        reading = float(text)
        # "1e400" parses to inf
        if not math.isfinite(reading):
            return FieldScore.invalid(f"blood_pressure {value!r} has a non-finite side")
        readings.append(reading)
    systolic, diastolic = readings
    if systolic == 0 or diastolic == 0:
        return FieldScore.invalid(f"blood_pressure {value!r} has a zero reading")

    if systolic >= 140 or diastolic >= 90:
        return FieldScore(3)
    if systolic >= 130 or diastolic >= 80:
        return FieldScore(2)
    if systolic >= 120:
        return FieldScore(1)
    return FieldScore(0)


def score_temperature(value: Any) -> FieldScore:
    """
    Score a temperature in °F: ≤99.5 → 0; 99.6–100.9 → 1; ≥101 → 2.
    Only real numbers are accepted; numeric-looking strings are rejected.
    """
    temperature = _real_number(value)
    if temperature is None:
        return FieldScore.invalid(f"temperature {value!r} is not a number")
    if math.isnan(temperature):
        return FieldScore.invalid("temperature is NaN")

    if temperature >= 101:
        return FieldScore(2)
    if temperature >= 99.6:
        return FieldScore(1)
    return FieldScore(0)


def score_age(value: Any) -> FieldScore:
    """Score an age in years: <40 → 0; 40–65 → 1; >65 → 2."""
    if value is None or value == "":
        return FieldScore.invalid("age is missing")

    if isinstance(value, str):
        # leading integer, the rest of the string is ignored ("45 years" → 45)
        m = _INT_PREFIX.match(value)
        if not m:
            return FieldScore.invalid(f"age {value!r} is not numeric")
        age = float(int(m.group(1)))
    else:
        age = _real_number(value)
        if age is None or not math.isfinite(age):
            return FieldScore.invalid(f"age {value!r} is not numeric")

    if age > 65:
        return FieldScore(2)
    if age >= 40:
        return FieldScore(1)
    return FieldScore(0)


# ------------------------------------------------------------------------------
# Per-patient classification
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class ClassificationResult:
    """Scores for one patient across all three dimensions."""

    patient_id: Any
    blood_pressure: FieldScore
    temperature: FieldScore
    age: FieldScore

    @property
    def total(self) -> int:
        return self.blood_pressure.points + self.temperature.points + self.age.points

    @property
    def is_high_risk(self) -> bool:
        return self.total >= HIGH_RISK_THRESHOLD

    @property
    def has_fever(self) -> bool:
        return self.temperature.points >= FEVER_MIN_POINTS

    @property
    def invalid_fields(self) -> Tuple[Tuple[str, FieldScore], ...]:
        scores = (
            ("blood_pressure", self.blood_pressure),
            ("temperature", self.temperature),
            ("age", self.age),
        )
        return tuple((name, score) for name, score in scores if not score.valid)

    @property
    def has_data_quality_issue(self) -> bool:
        return bool(self.invalid_fields)


def classify(record: PatientRecord) -> ClassificationResult:
    return ClassificationResult(
        patient_id=record.patient_id,
        blood_pressure=score_blood_pressure(record.blood_pressure),
        temperature=score_temperature(record.temperature),
        age=score_age(record.age),
    )


class DataQualityRegistry:
    """
    Insertion-ordered set of patient identifiers with at least one unusable field.
    Adding an identifier twice is a no-op.
    """

    def __init__(self, patient_ids: Iterable[Any] = ()):
        self._ids: Dict[Any, None] = {}
        for patient_id in patient_ids:
            self.add(patient_id)

    def add(self, patient_id: Any) -> None:
        self._ids.setdefault(patient_id, None)

    def record(self, result: ClassificationResult) -> bool:
        """Add `result`'s patient if it has an invalid field; return whether it did."""
        if result.has_data_quality_issue:
            self.add(result.patient_id)
            return True
        return False

    def __contains__(self, patient_id: Any) -> bool:
        return patient_id in self._ids

    def __iter__(self) -> Iterator[Any]:
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def as_list(self) -> List[Any]:
        return list(self._ids)


def classify_all(
    records: Iterable[PatientRecord],
    notepad: Optional[Notepad] = None,
) -> Tuple[List[ClassificationResult], DataQualityRegistry]:
    """
    Classify every record in order.

    Returns the per-patient results and a registry of patients with unusable
    fields. When `notepad` is given, each unusable field is added to it as a warning.
    """
    results: List[ClassificationResult] = []
    registry = DataQualityRegistry()
    for record in records:
        result = classify(record)
        results.append(result)
        if registry.record(result) and notepad is not None:
            for _, score in result.invalid_fields:
                notepad.add_warning(f"Patient {result.patient_id!r}: {score.reason}")
    return results, registry
