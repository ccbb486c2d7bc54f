from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence
import json
import logging

import httpx

from ..config import ProviderConfig

logger = logging.getLogger(__name__)


SYSTEM_PROMPTS = {
    "assistant": """You are a concise, cautious health & education assistant. Always include a short safety disclaimer for health-related queries. If the user asks for medical advice beyond general information, advise consulting a qualified professional and provide emergency contacts when indicated. Cite sources if available. Use simple language for non-specialists.

IMPORTANT RULES:
1. Never diagnose medical conditions
2. Always recommend professional consultation for health concerns
3. For emergencies, immediately advise calling emergency services
4. Provide factual, evidence-based information only
5. Acknowledge limitations in your knowledge""",
    "summarization": "Summarize the content into 3 bullet points in non-technical language. Be concise and focus on key takeaways.",
}


def build_user_prompt(
    message: str,
    lang: str = "en",
    prefs: Optional[Dict[str, Any]] = None,
    context: str = "",
) -> str:
    prefs = prefs or {}
    prefs_json = json.dumps(
        {"topics": list(prefs.get("topics") or []), "voiceEnabled": bool(prefs.get("voice_enabled", False))},
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return (
        f"[METADATA: lang={lang}, user_prefs={prefs_json}, context={context}]\n"
        f"USER: {message}\n"
        "INSTRUCTIONS: Answer concisely. If the message appears to be an emergency, instruct user to seek "
        "immediate care. If content is beyond general info, refuse and suggest professional consultation."
    )


class ProviderError(RuntimeError):
    pass


@dataclass
class ProviderResult:
    """Tagged outcome of one provider attempt."""

    provider: str
    text: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.text and self.text.strip())

    @classmethod
    def success(cls, provider: str, text: str) -> "ProviderResult":
        return cls(provider=provider, text=text)

    @classmethod
    def failure(cls, provider: str, error: str) -> "ProviderResult":
        return cls(provider=provider, error=error)


class Provider(Protocol):
    name: str
    timeout: float

    async def invoke(
        self,
        prompt: str,
        system_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> ProviderResult: ...


class ChatCompletionsProvider:
    """Any OpenAI-compatible /chat/completions endpoint (Groq, OpenAI, a local server)."""

    def __init__(self, config: ProviderConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.name = config.name
        self.timeout = float(config.timeout)
        self._client = client

    async def _complete(self, payload: Dict[str, Any]) -> str:
        headers = {"Content-Type": "application/json"}
        if self.config.credential:
            headers["Authorization"] = f"Bearer {self.config.credential}"
        if self._client is not None:
            resp = await self._client.post(self.config.endpoint, json=payload, headers=headers, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.config.endpoint, json=payload, headers=headers)
        if resp.status_code in (401, 403):
            raise ProviderError(f"auth failed ({resp.status_code})")
        if resp.status_code // 100 != 2:
            raise ProviderError(f"HTTP {resp.status_code}")
        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"malformed payload: {type(e).__name__}") from e
        if not isinstance(content, str) or not content.strip():
            raise ProviderError("empty content")
        return content

    async def invoke(
        self,
        prompt: str,
        system_prompt: str = SYSTEM_PROMPTS["assistant"],
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> ProviderResult:
        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": int(max_tokens),
            "temperature": float(temperature),
        }
        try:
            text = await self._complete(payload)
        except ProviderError as e:
            return ProviderResult.failure(self.name, str(e))
        except httpx.HTTPError as e:
            return ProviderResult.failure(self.name, f"{type(e).__name__}: {e}")
        return ProviderResult.success(self.name, text)


def build_providers(
    configs: Sequence[ProviderConfig], client: Optional[httpx.AsyncClient] = None
) -> List[Provider]:
    providers: List[Provider] = [ChatCompletionsProvider(c, client=client) for c in configs]
    logger.info("providers_configured", extra={"providers": [p.name for p in providers]})
    return providers
