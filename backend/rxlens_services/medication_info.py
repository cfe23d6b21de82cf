from __future__ import annotations

from typing import Any

_MEDICATION_INFO: dict[str, dict[str, Any]] = {
    "amoxicillin": {
        "name": "Amoxicillin",
        "description": (
            "Amoxicillin is a penicillin antibiotic that fights bacteria. It is used to treat many different "
            "types of infection caused by bacteria, such as tonsillitis, bronchitis, pneumonia, and infections "
            "of the ear, nose, throat, skin, or urinary tract."
        ),
        "sideEffects": [
            "Diarrhea or loose stools",
            "Stomach pain or discomfort",
            "Nausea or vomiting",
            "Headache",
            "Rash, itching, or hives",
            "Oral thrush (white patches in mouth)",
        ],
        "precautions": [
            "Tell your doctor if you have a history of allergic reactions to penicillin antibiotics",
            "Complete the full course even if you feel better",
            "Take with or without food but at evenly spaced intervals",
            "May reduce the effectiveness of birth control pills",
        ],
        "interactions": [
            "Probenecid (increases amoxicillin levels)",
            "Allopurinol (increased risk of rash)",
            "Blood thinners like warfarin",
            "Methotrexate (increased toxicity)",
            "Certain antibiotics may decrease effectiveness",
        ],
    },
    "ibuprofen": {
        "name": "Ibuprofen",
        "description": (
            "Ibuprofen is a nonsteroidal anti-inflammatory drug (NSAID) that reduces hormones causing "
            "inflammation and pain in the body. It's commonly used to reduce fever and treat pain or "
            "inflammation from headaches, toothaches, back pain, arthritis, or minor injury."
        ),
        "sideEffects": [
            "Stomach pain, heartburn, or indigestion",
            "Nausea or vomiting",
            "Diarrhea or constipation",
            "Dizziness or headache",
            "Drowsiness or fatigue",
            "Ringing in ears (tinnitus)",
            "Mild rash or itching",
        ],
        "precautions": [
            "Take with food or milk to prevent stomach upset",
            "Use the lowest effective dose for the shortest duration",
            "Avoid alcohol while taking this medication",
            "Not recommended for use during pregnancy, especially in the third trimester",
            "May increase risk of heart attack or stroke with long-term use",
        ],
        "interactions": [
            "Aspirin or other NSAIDs (increased bleeding risk)",
            "Blood pressure medications (may decrease effectiveness)",
            "Blood thinners like warfarin (increased bleeding risk)",
            "Lithium (increased lithium levels)",
            "Diuretics (reduced effectiveness)",
            "SSRIs (increased bleeding risk)",
        ],
    },
    "lisinopril": {
        "name": "Lisinopril",
        "description": (
            "Lisinopril is an ACE inhibitor that helps relax blood vessels, lowering blood pressure and "
            "decreasing workload on the heart. It's used to treat high blood pressure, heart failure, and to "
            "improve survival after a heart attack."
        ),
        "sideEffects": [
            "Dry, persistent cough",
            "Dizziness or lightheadedness",
            "Headache",
            "Fatigue",
            "Nausea or vomiting",
            "Diarrhea",
            "Skin rash",
            "Increased potassium levels",
        ],
        "precautions": [
            "Monitor blood pressure regularly",
            "Report swelling of face, lips, tongue, or difficulty breathing immediately (may indicate angioedema)",
            "Avoid pregnancy (can cause serious birth defects)",
            "May cause sudden drops in blood pressure when standing up",
            "Maintain adequate hydration but avoid potassium supplements unless prescribed",
        ],
        "interactions": [
            "Potassium supplements or potassium-sparing diuretics",
            "NSAIDs (may reduce effectiveness)",
            "Lithium (increased lithium levels)",
            "Diabetes medications (may cause low blood sugar)",
            "Salt substitutes containing potassium",
        ],
    },
}


def medication_info(name: str) -> dict[str, Any]:
    cleaned = (name or "").strip()
    known = _MEDICATION_INFO.get(cleaned.lower())
    if known is not None:
        return {
            "name": known["name"],
            "description": known["description"],
            "sideEffects": list(known["sideEffects"]),
            "precautions": list(known["precautions"]),
            "interactions": list(known["interactions"]),
            "known": True,
        }
    return {
        "name": cleaned,
        "description": (
            f"{cleaned} is a medication prescribed by your doctor. "
            "Always follow your doctor's instructions when taking this medication."
        ),
        "sideEffects": ["Consult your healthcare provider about potential side effects"],
        "precautions": [
            "Take as directed by your healthcare provider",
            "Do not stop taking without consulting your doctor",
        ],
        "interactions": ["Consult your healthcare provider about potential drug interactions"],
        "known": False,
    }
