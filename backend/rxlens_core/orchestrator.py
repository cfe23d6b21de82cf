from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from . import extractors
from .models import AnalysisResult, Medication


@dataclass(frozen=True)
class AnalysisExtractor:
    """Runs every field extractor over one model response.

    Each field is a plain ``str -> value`` callable so a heuristic can be
    replaced (for example by a structured-output parser) without touching
    persistence or the request pipeline.
    """

    medications: Callable[[str], list[Medication]] = extractors.extract_medications
    condition: Callable[[str], str] = extractors.extract_condition
    recommendations: Callable[[str], list[str]] = extractors.extract_recommendations
    summary: Callable[[str], str] = extractors.extract_summary
    workout: Callable[[str, str], bool] = extractors.needs_workout

    def extract(self, text: str) -> AnalysisResult:
        source = text or ""
        condition = self.condition(source)
        return AnalysisResult(
            medication_list=tuple(self.medications(source)),
            condition=condition,
            summary=self.summary(source),
            recommendations=tuple(self.recommendations(source)),
            needs_workout=self.workout(condition, source),
        )


DEFAULT_EXTRACTOR = AnalysisExtractor()


def extract_analysis(text: str) -> AnalysisResult:
    return DEFAULT_EXTRACTOR.extract(text)
