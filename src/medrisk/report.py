"""
Assessment report assembly.

Partitions classified patients into the three identifier lists the
submit-assessment endpoint expects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List

from .classifier import ClassificationResult, DataQualityRegistry


@dataclass
class AssessmentReport:
    """
    Attributes:
        high_risk_patients: Patients whose total risk score is at least 4, in collection order.
        fever_patients: Patients with a temperature score of at least 1, in collection order.
        data_quality_issues: Patients with any unusable field, first-seen order, no duplicates.
    """

    high_risk_patients: List[Any] = field(default_factory=list)
    fever_patients: List[Any] = field(default_factory=list)
    data_quality_issues: List[Any] = field(default_factory=list)

    def to_payload(self) -> dict[str, list]:
        return {
            "high_risk_patients": list(self.high_risk_patients),
            "fever_patients": list(self.fever_patients),
            "data_quality_issues": list(self.data_quality_issues),
        }

    def counts(self) -> dict[str, int]:
        return {key: len(ids) for key, ids in self.to_payload().items()}


def build_report(
    results: Iterable[ClassificationResult],
    registry: DataQualityRegistry,
) -> AssessmentReport:
    report = AssessmentReport(data_quality_issues=registry.as_list())
    for result in results:
        if result.is_high_risk:
            report.high_risk_patients.append(result.patient_id)
        if result.has_fever:
            report.fever_patients.append(result.patient_id)
    return report
