"""
Patient domain model.

Defines the PatientRecord dataclass for one entry of the patient collection.
Clinical fields are kept exactly as the service sent them; judging them is the
classifier's job, so building a record never fails on bad field values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


@dataclass
class PatientRecord:
    """
    Represents a single patient as returned by the patients endpoint.

    Attributes:
        patient_id: Opaque unique identifier (string or number).
        blood_pressure: Raw value, expected as "systolic/diastolic".
        temperature: Raw value, expected as a number in °F.
        age: Raw value, expected as a number or numeric string.
        name: Patient name, if present.
        gender: Reported gender, if present.
        visit_date: Visit date string, if present.
        diagnosis: Free-text diagnosis, if present.
        medications: Free-text medication list, if present.
        raw: The untouched source mapping.
    """

    patient_id: Any
    blood_pressure: Any = None
    temperature: Any = None
    age: Any = None
    name: Optional[str] = None
    gender: Optional[str] = None
    visit_date: Optional[str] = None
    diagnosis: Optional[str] = None
    medications: Optional[str] = None
    raw: dict = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PatientRecord":
        """
        Build a record from one element of a page's patient array.
        Missing keys become None.
        """
        if not isinstance(payload, Mapping):
            raise TypeError(f"patient entry must be an object, got {type(payload).__name__}")
        return cls(
            patient_id=payload.get("patient_id"),
            blood_pressure=payload.get("blood_pressure"),
            temperature=payload.get("temperature"),
            age=payload.get("age"),
            name=payload.get("name"),
            gender=payload.get("gender"),
            visit_date=payload.get("visit_date"),
            diagnosis=payload.get("diagnosis"),
            medications=payload.get("medications"),
            raw=dict(payload),
        )

    def to_payload(self) -> dict:
        """Return the source mapping (or a rebuilt one if the record was built by hand)."""
        if self.raw:
            return dict(self.raw)
        return {
            "patient_id": self.patient_id,
            "blood_pressure": self.blood_pressure,
            "temperature": self.temperature,
            "age": self.age,
        }
