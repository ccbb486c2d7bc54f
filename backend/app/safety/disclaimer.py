from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal, Tuple

from .emergency import EMERGENCY_KEYWORDS

DisclaimerCategory = Literal["general", "medical", "mental", "emergency"]

DEFAULT_LANGUAGE = "en"

MEDICAL_KEYWORDS: Tuple[str, ...] = ("disease", "symptom", "treatment", "diagnosis", "medicine")
MENTAL_KEYWORDS: Tuple[str, ...] = ("anxiety", "depression", "stress", "mental health", "therapy")

DISCLAIMERS: Dict[str, Dict[str, str]] = {
    "en": {
        "general": "💡 This information is for educational purposes only.",
        "medical": "⚕️ This is not medical advice. Please consult a healthcare professional for diagnosis and treatment.",
        "mental": "🧠 If you're struggling, please reach out to a mental health professional. You're not alone.",
        "emergency": "🚨 If this is an emergency, please call emergency services immediately: 112 (India) / 911 (US)",
    },
    "hi": {
        "general": "💡 यह जानकारी केवल शैक्षिक उद्देश्यों के लिए है।",
        "medical": "⚕️ यह चिकित्सा सलाह नहीं है। निदान और उपचार के लिए कृपया डॉक्टर से परामर्श लें।",
        "mental": "🧠 यदि आप कठिनाई में हैं, कृपया मानसिक स्वास्थ्य विशेषज्ञ से संपर्क करें।",
        "emergency": "🚨 यदि यह आपातकाल है, तो कृपया तुरंत 112 पर कॉल करें।",
    },
}


@dataclass(frozen=True)
class DisclaimerDecision:
    category: DisclaimerCategory
    requires_professional: bool
    text: str
    language: str


def resolve_language(language: str | None) -> str:
    lang = (language or "").strip().lower()
    return lang if lang in DISCLAIMERS else DEFAULT_LANGUAGE


def get_disclaimer(text: str | None, language: str | None = DEFAULT_LANGUAGE) -> DisclaimerDecision:
    """Pick the safety notice for a text.

    First matching category wins: emergency > medical > mental > general.
    """
    lowered = (text or "").lower()
    category: DisclaimerCategory = "general"
    if any(k in lowered for k in EMERGENCY_KEYWORDS):
        category = "emergency"
    elif any(k in lowered for k in MEDICAL_KEYWORDS):
        category = "medical"
    elif any(k in lowered for k in MENTAL_KEYWORDS):
        category = "mental"

    lang = resolve_language(language)
    return DisclaimerDecision(
        category=category,
        requires_professional=category in ("medical", "emergency"),
        text=DISCLAIMERS[lang][category],
        language=lang,
    )
