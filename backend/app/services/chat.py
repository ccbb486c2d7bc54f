import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

import httpx

from ..config import Settings, get_settings, moderation_config, provider_configs
from ..db.base import SessionLocal
from ..orchestration.classify import RemoteClassifier
from ..orchestration.fallback import ResponseChain
from ..orchestration.graph import Orchestrator, TurnState
from ..orchestration.llm import build_providers
from ..safety.emergency import check_emergency, get_emergency_response
from .flags import FlagRepository, SqlFlagRepository
from .moderation import ModerationService

# Configure logging
logger = logging.getLogger(__name__)

EMERGENCY_QUICK_MESSAGE = (
    "If you are experiencing a medical emergency, please call 112 (Emergency) or 108 (Ambulance) immediately."
)


class ChatService:
    """Wires settings into the moderation pipeline and the provider chain."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        repository: Optional[FlagRepository] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = settings or get_settings()
        self.settings = settings
        self.repository = repository or SqlFlagRepository(SessionLocal)

        classifier = None
        if settings.MODERATION_ENABLED:
            classifier = RemoteClassifier(
                settings.CLASSIFIER_URL,
                api_key=settings.CLASSIFIER_API_KEY,
                model=settings.CLASSIFIER_MODEL,
                timeout=settings.CLASSIFIER_TIMEOUT_S,
                client=client,
            )
        self.moderation = ModerationService(self.repository, moderation_config(settings), classifier)

        self.chain = ResponseChain(
            build_providers(provider_configs(settings), client=client),
            max_tokens=settings.LLM_MAX_TOKENS,
            temperature=settings.LLM_TEMPERATURE,
            deadline=settings.LLM_CHAIN_DEADLINE_S,
        )
        self.orchestrator = Orchestrator(
            self.moderation,
            self.chain,
            use_remote_classifier=bool(settings.MODERATION_STRICT_MODE),
        )
        logger.info(
            "ChatService config: providers=%s classifier=%s strict=%s",
            [p.name for p in self.chain.providers],
            bool(classifier),
            settings.MODERATION_STRICT_MODE,
        )

    async def generate_response(
        self,
        conversation_id: str,
        user_id: Optional[str],
        message: str,
        message_history: Optional[List[Dict[str, str]]] = None,
        language: Optional[str] = None,
        prefs: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        st = TurnState(
            conversation_id=conversation_id,
            user_message=message,
            actor_id=user_id,
            language=language or self.settings.DEFAULT_LANGUAGE,
            history=list(message_history or []),
            prefs=dict(prefs or {}),
        )
        return await self.orchestrator.run(st)

    @staticmethod
    def emergency_check(message: str, language: str = "en") -> Dict[str, Any]:
        assessment = check_emergency(message)
        return {
            "is_emergency": assessment.is_emergency,
            "severity": assessment.severity,
            "matched_keywords": list(assessment.matched_keywords),
            "message": EMERGENCY_QUICK_MESSAGE if assessment.is_emergency else None,
            "response": get_emergency_response(language) if assessment.is_emergency else None,
        }


@lru_cache()
def get_chat_service() -> ChatService:
    return ChatService()
