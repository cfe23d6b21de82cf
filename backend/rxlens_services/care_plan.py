"""Care-plan material derived from a stored prescription analysis."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from records.time_utils import to_iso, utc_now
from rxlens_core.models import AnalysisResult

from .medication_info import medication_info

FOLLOW_UP_DAYS = 7
BASE_DIETARY_RECOMMENDATIONS = (
    "Stay hydrated by drinking at least 8 glasses of water daily",
    "Maintain a balanced diet rich in fruits and vegetables",
    "Limit processed foods and excess sugar",
    "Consider foods rich in antioxidants to support your immune system",
)

_RESPIRATORY_PLAN: dict[str, Any] = {
    "title": "Upper Respiratory Tract Infection Workout Plan",
    "description": "Gentle respiratory strengthening and recovery",
    "goal": "Gentle respiratory strengthening and recovery",
    "duration": "2 weeks",
    "frequency": "3-4 times per week",
    "intensity": "Low",
    "exercises": [
        {
            "name": "Deep Breathing",
            "sets": 3,
            "reps": 10,
            "description": "Sit comfortably, inhale deeply through nose for 4 counts, hold for 2, exhale slowly for 6 counts",
        },
        {
            "name": "Gentle Walking",
            "sets": 1,
            "reps": 1,
            "description": "10-15 minutes of gentle walking outdoors (weather permitting) or indoors",
        },
        {
            "name": "Shoulder Rolls",
            "sets": 2,
            "reps": 10,
            "description": "Roll shoulders forward and backward to release tension",
        },
    ],
    "recommendations": "Follow all instructions carefully",
    "precautions": [
        "Stop if you feel dizzy or short of breath",
        "Avoid exercise during active fever",
        "Gradually increase intensity as you recover",
    ],
}

_GENERAL_PLAN: dict[str, Any] = {
    "title": "General Recovery Workout Plan",
    "description": "Gentle exercises to support recovery and maintain mobility",
    "goal": "Support recovery while maintaining strength and mobility",
    "duration": "2-3 weeks",
    "frequency": "2-3 times per week",
    "intensity": "Low",
    "exercises": [
        {
            "name": "Gentle Stretching",
            "sets": 1,
            "reps": 5,
            "description": "Full body stretching focusing on major muscle groups, hold each stretch for 15-30 seconds",
        },
        {
            "name": "Light Walking",
            "sets": 1,
            "reps": 1,
            "description": "10-20 minutes of walking at a comfortable pace",
        },
        {
            "name": "Chair Squats",
            "sets": 2,
            "reps": 8,
            "description": "Using a chair for support, perform gentle squats within a comfortable range of motion",
        },
    ],
    "recommendations": "Listen to your body and adjust intensity as needed",
    "precautions": [
        "Stop any exercise that causes pain",
        "Ensure proper hydration before, during, and after exercise",
        "Consult with your healthcare provider before starting any exercise program",
    ],
}


def _todo(todo_id: str, task: str, category: str, due: datetime | None = None) -> dict[str, Any]:
    return {
        "id": todo_id,
        "task": task,
        "category": category,
        "dueDate": to_iso(due) if due else None,
        "completed": False,
    }


def build_todo_list(analysis: AnalysisResult, *, now: datetime | None = None) -> list[dict[str, Any]]:
    reference = now or utc_now()
    todos = [
        _todo(f"med-{index}", f"Take {med.name} {med.dosage} {med.frequency}", "medication")
        for index, med in enumerate(analysis.medication_list)
    ]
    todos.append(
        _todo(
            "appointment-1",
            f"Schedule follow-up appointment in {FOLLOW_UP_DAYS} days",
            "appointment",
            reference + timedelta(days=FOLLOW_UP_DAYS),
        )
    )
    todos.append(_todo("lifestyle-1", "Drink at least 8 glasses of water daily", "lifestyle"))
    todos.append(_todo("lifestyle-2", "Get at least 8 hours of sleep each night", "lifestyle"))
    return todos


def build_workout_plan(condition: str) -> dict[str, Any]:
    if "respiratory" in (condition or "").lower():
        template = _RESPIRATORY_PLAN
        plan_condition = "Upper respiratory tract infection"
    else:
        template = _GENERAL_PLAN
        plan_condition = condition or "General health maintenance"
    plan = {key: value for key, value in template.items() if key != "exercises"}
    plan["exercises"] = [dict(exercise) for exercise in template["exercises"]]
    plan["precautions"] = list(template["precautions"])
    plan["condition"] = plan_condition
    return plan


def side_effects(analysis: AnalysisResult) -> list[dict[str, Any]]:
    return [
        {"medication": med.name, "effects": medication_info(med.name)["sideEffects"]}
        for med in analysis.medication_list
    ]


def dietary_recommendations(analysis: AnalysisResult) -> list[str]:
    recommendations = list(BASE_DIETARY_RECOMMENDATIONS)
    for med in analysis.medication_list:
        lowered = med.name.lower()
        if "antibiotic" in lowered:
            recommendations.append("Consume probiotic-rich foods like yogurt to maintain gut health")
        if "steroid" in lowered:
            recommendations.append("Limit sodium intake to reduce potential fluid retention")
            recommendations.append("Ensure adequate calcium and vitamin D intake to protect bone health")
    return recommendations


def build_care_plan(analysis: AnalysisResult, *, now: datetime | None = None) -> dict[str, Any]:
    return {
        "todos": build_todo_list(analysis, now=now),
        "sideEffects": side_effects(analysis),
        "dietaryRecommendations": dietary_recommendations(analysis),
        "needsWorkout": analysis.needs_workout,
        "workoutPlan": build_workout_plan(analysis.condition),
    }
