"""
Signal extraction from raw observations.

Reduces a unit's symptom reports to a label frequency table and a
district's water tests to a contamination ratio. Both functions are pure:
the same input multiset always yields the same output.
"""

from collections import Counter
from typing import Dict, Iterable

from .models import SymptomReport, WaterTest

UNKNOWN_SYMPTOM = "unknown"


def normalize_symptom(label: str) -> str:
    return label.strip().lower()


def symptom_frequency(reports: Iterable[SymptomReport]) -> Dict[str, int]:
    """
    Count how many reports mention each normalized symptom label.

    Reports with no symptoms are skipped, as are blank labels. A label
    repeated within one report counts once.

    Returns:
        Mapping of label to count, every count >= 1
    """
    counts: Counter = Counter()
    for report in reports:
        if not report.symptoms:
            continue
        labels = {normalize_symptom(s) for s in report.symptoms}
        labels.discard("")
        counts.update(labels)
    return dict(counts)


def most_common_symptom(frequency: Dict[str, int]) -> str:
    """Most frequent label; ties go to the lexicographically first label."""
    if not frequency:
        return UNKNOWN_SYMPTOM
    label, _ = min(frequency.items(), key=lambda item: (-item[1], item[0]))
    return label


def water_risk(tests: Iterable[WaterTest]) -> float:
    """
    Fraction of tests classified HIGH_RISK or CONTAMINATED.

    No tests means no evidence of risk, so the ratio is 0.0.
    """
    total = 0
    unsafe = 0
    for test in tests:
        total += 1
        if test.quality_status.is_unsafe:
            unsafe += 1

    if total == 0:
        return 0.0
    return unsafe / total
