"""Heuristic field extractors for free-text prescription analyses.

Each extractor maps the raw model output to one field of ``AnalysisResult`` and
degrades to a fixed fallback instead of failing, so callers always get a
usable value even from noisy text.
"""
from __future__ import annotations

import re

from .models import Medication

UNIDENTIFIED_MEDICATION = Medication(
    name="Could not clearly identify medication",
    dosage="Please consult healthcare provider",
    frequency="Please consult healthcare provider",
    duration="Please consult healthcare provider",
)
AS_DIRECTED = "As directed"
UNKNOWN_MEDICATION_NAME = "Unknown medication"
CONDITION_NOT_SPECIFIED = "Not specified"
DEFAULT_RECOMMENDATIONS = (
    "Take medication as prescribed",
    "Contact your healthcare provider with any questions or concerns",
    "Complete the full course of medication even if symptoms improve",
)
GENERIC_SUMMARY = "Analysis completed. Please review the extracted medication details and recommendations."

# Terms that suggest exercise should wait. Keyword matching only, not a
# clinical assessment.
WORKOUT_DENYLIST = (
    "fracture",
    "broken",
    "respiratory",
    "infection",
    "surgery",
    "acute",
    "injury",
    "concussion",
    "fever",
    "flu",
    "covid",
    "pneumonia",
)

_MIN_ADVICE_CLAUSE_CHARS = 10
_MIN_SUMMARY_CHARS = 20

_STRUCTURED_MEDICATION_RE = re.compile(
    r"medication:\s*([^,\n]+).*?dosage:\s*([^,\n]+).*?frequency:\s*([^,\n]+).*?duration:\s*([^,\n]+)",
    re.IGNORECASE,
)
_MEDICATION_CUE_RE = re.compile(r"(?:prescribed|medication|drug|tablet|capsule):\s*([^,\n.]+)", re.IGNORECASE)
_CONDITION_RE = re.compile(r"(?:condition|diagnosis|treating|for|indicated for):\s*([^,\n.]+)", re.IGNORECASE)
_LIST_MARKER_RE = re.compile(r"\n-|\n•|\n\d+\.")
_ADVICE_RES = (
    re.compile(r"should\s+([^,.]+)", re.IGNORECASE),
    re.compile(r"advised\s+to\s+([^,.]+)", re.IGNORECASE),
    re.compile(r"recommended\s+to\s+([^,.]+)", re.IGNORECASE),
)
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


def _section_patterns(heading: str) -> tuple[re.Pattern[str], ...]:
    # A "heading:" form wins over a bare mention of the heading word.
    flags = re.IGNORECASE | re.DOTALL
    return (
        re.compile(rf"{heading}:(.*?)(?:\n\n|\Z)", flags),
        re.compile(rf"{heading}(.*?)(?:\n\n|\Z)", flags),
    )


_RECOMMENDATION_SECTION = _section_patterns("recommendations?")
_SUMMARY_SECTION = _section_patterns("summary")


def _section_body(text: str, patterns: tuple[re.Pattern[str], ...]) -> str:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return ""


def extract_medications(text: str) -> list[Medication]:
    medications = [
        Medication(
            name=match.group(1).strip(),
            dosage=match.group(2).strip(),
            frequency=match.group(3).strip(),
            duration=match.group(4).strip(),
        )
        for match in _STRUCTURED_MEDICATION_RE.finditer(text)
    ]
    if medications:
        return medications

    for match in _MEDICATION_CUE_RE.finditer(text):
        name = match.group(1).split(":", 1)[0].strip() or UNKNOWN_MEDICATION_NAME
        medications.append(Medication(name=name, dosage=AS_DIRECTED, frequency=AS_DIRECTED, duration=AS_DIRECTED))
    if medications:
        return medications

    return [UNIDENTIFIED_MEDICATION]


def extract_condition(text: str) -> str:
    match = _CONDITION_RE.search(text)
    if not match:
        return CONDITION_NOT_SPECIFIED
    return match.group(1).strip() or CONDITION_NOT_SPECIFIED


def extract_recommendations(text: str) -> list[str]:
    recommendations: list[str] = []
    section = _section_body(text, _RECOMMENDATION_SECTION)
    if section:
        recommendations = [item.strip() for item in _LIST_MARKER_RE.split(section) if item.strip()]

    if not recommendations:
        for pattern in _ADVICE_RES:
            for match in pattern.finditer(text):
                if len(match.group(1)) > _MIN_ADVICE_CLAUSE_CHARS:
                    recommendations.append(f"{match.group(0).strip()}.")

    if not recommendations:
        recommendations = list(DEFAULT_RECOMMENDATIONS)
    return recommendations


def extract_summary(text: str) -> str:
    body = _section_body(text, _SUMMARY_SECTION).strip()
    if len(body) > _MIN_SUMMARY_CHARS:
        return body

    sentences = [sentence.strip() for sentence in _SENTENCE_SPLIT_RE.split(text) if sentence.strip()]
    if len(sentences) > 2:
        return ". ".join(sentences[:2]) + "."
    return GENERIC_SUMMARY


def needs_workout(condition: str, text: str) -> bool:
    lowered_condition = condition.lower()
    lowered_text = text.lower()
    for term in WORKOUT_DENYLIST:
        if term in lowered_condition or term in lowered_text:
            return False
    return True
