from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Tuple

# Self-harm ideation and acute medical crisis phrasing (en + hi)
EMERGENCY_KEYWORDS: Tuple[str, ...] = (
    "suicide",
    "kill myself",
    "end my life",
    "want to die",
    "heart attack",
    "stroke",
    "can't breathe",
    "chest pain",
    "overdose",
    "poisoning",
    "severe bleeding",
    "unconscious",
    "emergency",
    "ambulance",
    "dying",
    "आत्महत्या",
    "मरना चाहता",
    "दिल का दौरा",
    "सांस नहीं",
)

# Conditions where general information is not enough
CONSULT_KEYWORDS: Tuple[str, ...] = (
    "pregnant",
    "pregnancy",
    "cancer",
    "tumor",
    "diabetes",
    "hiv",
    "aids",
    "hepatitis",
    "surgery",
    "transplant",
    "medication",
    "prescription",
    "dosage",
    "chronic",
)

EmergencySeverity = Literal["low", "medium", "high"]


@dataclass(frozen=True)
class EmergencyAssessment:
    is_emergency: bool = False
    matched_keywords: List[str] = field(default_factory=list)
    severity: EmergencySeverity = "low"


def check_emergency(text: str | None) -> EmergencyAssessment:
    """Scan text for crisis language.

    Severity follows the count of distinct matched keywords:
    none -> low (not an emergency), one -> medium, two or more -> high.
    """
    if not text:
        return EmergencyAssessment()
    lowered = text.lower()
    matches = [k for k in EMERGENCY_KEYWORDS if k in lowered]
    if not matches:
        return EmergencyAssessment()
    return EmergencyAssessment(
        is_emergency=True,
        matched_keywords=matches,
        severity="high" if len(matches) >= 2 else "medium",
    )


def requires_consultation(text: str | None) -> bool:
    if not text:
        return False
    lowered = text.lower()
    return any(k in lowered for k in CONSULT_KEYWORDS)


EMERGENCY_RESPONSES = {
    "en": (
        "🚨 **I'm concerned about what you've shared.**\n\n"
        "If you're in immediate danger, please:\n"
        "- Call emergency services: **112** (India) / **911** (US)\n"
        "- Go to the nearest emergency room\n"
        "- Call a helpline:\n"
        "  - Vandrevala Foundation: **1860-2662-345** (India, 24/7)\n"
        "  - iCall: **9152987821** (India)\n"
        "  - National Suicide Prevention: **988** (US)\n\n"
        "You matter, and help is available. Please reach out to someone who can support you right now."
    ),
    "hi": (
        "🚨 **मुझे आपकी बात सुनकर चिंता हुई।**\n\n"
        "यदि आप तत्काल खतरे में हैं, कृपया:\n"
        "- आपातकालीन सेवा कॉल करें: **112**\n"
        "- निकटतम अस्पताल जाएं\n"
        "- हेल्पलाइन पर कॉल करें:\n"
        "  - वंद्रेवाला फाउंडेशन: **1860-2662-345** (24/7)\n"
        "  - iCall: **9152987821**\n\n"
        "आप महत्वपूर्ण हैं। कृपया किसी से मदद लें।"
    ),
}


def get_emergency_response(language: str | None = "en") -> str:
    """Full crisis-resource message; unknown languages get English."""
    return EMERGENCY_RESPONSES.get((language or "").lower(), EMERGENCY_RESPONSES["en"])
