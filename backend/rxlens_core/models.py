from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Medication:
    name: str
    dosage: str
    frequency: str
    duration: str

    def as_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "dosage": self.dosage,
            "frequency": self.frequency,
            "duration": self.duration,
        }


@dataclass(frozen=True)
class AnalysisResult:
    medication_list: tuple[Medication, ...]
    condition: str
    summary: str
    recommendations: tuple[str, ...]
    needs_workout: bool

    @property
    def primary_medication(self) -> Medication | None:
        return self.medication_list[0] if self.medication_list else None

    def as_payload(self) -> dict[str, Any]:
        return {
            "medicationList": [medication.as_dict() for medication in self.medication_list],
            "condition": self.condition,
            "summary": self.summary,
            "recommendations": list(self.recommendations),
            "needsWorkout": self.needs_workout,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> AnalysisResult:
        medications = tuple(
            Medication(
                name=str(item.get("name") or ""),
                dosage=str(item.get("dosage") or ""),
                frequency=str(item.get("frequency") or ""),
                duration=str(item.get("duration") or ""),
            )
            for item in payload.get("medicationList") or []
            if isinstance(item, dict)
        )
        return cls(
            medication_list=medications,
            condition=str(payload.get("condition") or ""),
            summary=str(payload.get("summary") or ""),
            recommendations=tuple(str(item) for item in payload.get("recommendations") or []),
            needs_workout=bool(payload.get("needsWorkout")),
        )


class PipelineState(str, enum.Enum):
    AWAITING_REQUEST = "awaiting_request"
    AUTHENTICATING = "authenticating"
    VALIDATING = "validating"
    ANALYZING = "analyzing"
    PERSISTING = "persisting"
    RESPONDING = "responding"
    FAILED = "failed"


TERMINAL_STATES = {PipelineState.RESPONDING, PipelineState.FAILED}


@dataclass
class PipelineRun:
    request_id: str
    state: PipelineState = PipelineState.AWAITING_REQUEST
    history: list[str] = field(default_factory=lambda: [PipelineState.AWAITING_REQUEST.value])
    user_id: str | None = None
    error: str | None = None

    def advance(self, state: PipelineState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Pipeline run {self.request_id} already finished in state {self.state.value}")
        self.state = state
        self.history.append(state.value)

    def fail(self, message: str) -> None:
        self.error = message
        self.advance(PipelineState.FAILED)


@dataclass(frozen=True)
class PipelineOutcome:
    analysis: AnalysisResult
    prescription_id: str | None
    run: PipelineRun

    def as_response(self) -> dict[str, Any]:
        return {
            "analysis": self.analysis.as_payload(),
            "prescriptionId": self.prescription_id,
        }
