from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..policies.validator import validate_response
from ..safety.disclaimer import get_disclaimer, resolve_language
from ..safety.emergency import check_emergency
from .llm import SYSTEM_PROMPTS, Provider, ProviderResult

logger = logging.getLogger(__name__)

FALLBACK_PROVIDER = "fallback"

FALLBACK_TEXT = (
    "I apologize, but I'm unable to process your request at the moment. Please try again later "
    "or consult a healthcare professional for health-related questions.\n\n"
    "⚠️ **Tip**: For emergencies, call 112 (India) / 911 (US) immediately, or reach a crisis "
    "helpline such as iCall (9152987821) or 988 (US)."
)

EMERGENCY_BLOCKS = {
    "en": (
        "🚨 **EMERGENCY**: If you or someone else is in immediate danger, please call emergency services immediately:\n"
        "- India: 112 (Emergency) | 108 (Ambulance)\n"
        "- US: 911 | Suicide & Crisis Lifeline: 988\n"
        "- For mental health crisis: iCall - 9152987821"
    ),
    "hi": (
        "🚨 **आपातकाल**: यदि आप या कोई और तत्काल खतरे में है, तो कृपया तुरंत आपातकालीन सेवा को कॉल करें:\n"
        "- भारत: 112 (आपातकाल) | 108 (एम्बुलेंस)\n"
        "- मानसिक स्वास्थ्य संकट के लिए: iCall - 9152987821"
    ),
}

HEALTH_DISCLAIMERS = {
    "en": (
        "⚠️ **Health Disclaimer**: This information is for educational purposes only and should not replace "
        "professional medical advice. Please consult a qualified healthcare provider for any health concerns."
    ),
    "hi": (
        "⚠️ **स्वास्थ्य अस्वीकरण**: यह जानकारी केवल शैक्षिक उद्देश्यों के लिए है और पेशेवर चिकित्सा सलाह का "
        "विकल्प नहीं है। किसी भी स्वास्थ्य समस्या के लिए कृपया योग्य डॉक्टर से परामर्श लें।"
    ),
}

# Topic check for the disclaimer, separate from the moderation lexicon
HEALTH_TOPIC_KEYWORDS = (
    "health", "medical", "doctor", "medicine", "symptom", "disease", "illness",
    "pain", "treatment", "diagnosis", "hospital", "sick", "fever", "infection",
    "स्वास्थ्य", "डॉक्टर", "दवा", "बीमारी", "इलाज", "दर्द", "बुखार",
)


def is_health_related(message: str | None) -> bool:
    lowered = (message or "").lower()
    return any(k in lowered for k in HEALTH_TOPIC_KEYWORDS)


@dataclass
class GenerationResult:
    text: str
    provider: str
    has_disclaimer: bool = False
    is_emergency: bool = False
    emergency_severity: str = "low"
    disclaimer_category: str = "general"
    requires_professional: bool = False
    issues: List[str] = field(default_factory=list)
    attempts: List[ProviderResult] = field(default_factory=list)


class ResponseChain:
    """Try generation providers in configured order; first success wins.

    Every attempt has its own timeout. An optional chain-wide deadline caps the
    total. If nothing answers, a local fallback text is used and attributed to
    "fallback", never to a provider.
    """

    def __init__(
        self,
        providers: Sequence[Provider],
        max_tokens: int = 500,
        temperature: float = 0.7,
        deadline: Optional[float] = None,
    ):
        self.providers = list(providers)
        self.max_tokens = int(max_tokens)
        self.temperature = float(temperature)
        self.deadline = deadline

    async def _attempt(
        self, provider: Provider, prompt: str, system_prompt: str, timeout: float
    ) -> ProviderResult:
        try:
            return await asyncio.wait_for(
                provider.invoke(prompt, system_prompt, self.max_tokens, self.temperature),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            return ProviderResult.failure(provider.name, f"timeout after {timeout:.1f}s")
        except Exception as e:
            # Adapter bug; the chain moves on regardless
            logger.exception("provider_crashed", extra={"provider": provider.name})
            return ProviderResult.failure(provider.name, f"{type(e).__name__}: {e}")

    async def _first_success(self, prompt: str, system_prompt: str) -> List[ProviderResult]:
        loop = asyncio.get_running_loop()
        started = loop.time()
        attempts: List[ProviderResult] = []
        for provider in self.providers:
            timeout = float(provider.timeout)
            if self.deadline is not None:
                remaining = self.deadline - (loop.time() - started)
                if remaining <= 0:
                    logger.warning("chain_deadline_exceeded", extra={"attempted": len(attempts)})
                    break
                timeout = min(timeout, remaining)
            result = await self._attempt(provider, prompt, system_prompt, timeout)
            attempts.append(result)
            if result.ok:
                logger.info("provider_served", extra={"provider": provider.name})
                break
            logger.warning("provider_failed", extra={"provider": provider.name, "error": result.error})
        return attempts

    async def generate_response(
        self,
        prompt: str,
        original_user_text: str = "",
        language: str = "en",
        system_prompt: Optional[str] = None,
    ) -> GenerationResult:
        lang = resolve_language(language)
        attempts = await self._first_success(prompt, system_prompt or SYSTEM_PROMPTS["assistant"])

        served = attempts[-1] if attempts and attempts[-1].ok else None
        if served is not None:
            text, provider = served.text, served.provider
        else:
            logger.error("all_providers_failed", extra={"attempted": [a.provider for a in attempts]})
            text, provider = FALLBACK_TEXT, FALLBACK_PROVIDER

        emergency = check_emergency(original_user_text)
        decision = get_disclaimer(original_user_text, lang)
        has_disclaimer = provider == FALLBACK_PROVIDER
        if emergency.is_emergency:
            # Prepend, the model's own text stays below the crisis block
            text = f"{EMERGENCY_BLOCKS[lang]}\n\n{text}"
            has_disclaimer = True
        elif is_health_related(original_user_text):
            text = f"{text}\n\n---\n{HEALTH_DISCLAIMERS[lang]}"
            has_disclaimer = True

        ok, issues = validate_response(text, original_user_text)
        if not ok:
            logger.warning("response_validation", extra={"provider": provider, "issues": issues})

        return GenerationResult(
            text=text,
            provider=provider,
            has_disclaimer=has_disclaimer,
            is_emergency=emergency.is_emergency,
            emergency_severity=emergency.severity,
            disclaimer_category=decision.category,
            requires_professional=decision.requires_professional,
            issues=issues,
            attempts=attempts,
        )
