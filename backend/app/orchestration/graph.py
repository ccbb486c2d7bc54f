from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
import logging

from ..safety.guard import VerdictAction
from ..services.moderation import ModerationService
from .fallback import ResponseChain
from .llm import build_user_prompt
from .metadata import normalize_meta
from .triage import triage_route

logger = logging.getLogger(__name__)


@dataclass
class TurnState:
    conversation_id: str
    user_message: str
    actor_id: Optional[str] = None
    language: str = "en"
    # Recent turns as {"role", "content"}, oldest first
    history: List[Dict[str, str]] = field(default_factory=list)
    prefs: Dict[str, Any] = field(default_factory=dict)


def _context_string(history: List[Dict[str, str]], max_turns: int = 5) -> str:
    recent = history[-max_turns:] if max_turns else history
    return "\n".join(f"{m.get('role', 'user')}: {m.get('content', '')}" for m in recent)


class Orchestrator:
    """One chat turn: moderate the inbound text, then generate a safe reply."""

    def __init__(
        self,
        moderation: ModerationService,
        chain: ResponseChain,
        use_remote_classifier: bool = False,
    ):
        self.moderation = moderation
        self.chain = chain
        self.use_remote_classifier = use_remote_classifier

    async def run(self, st: TurnState) -> Dict[str, Any]:
        # 1) moderate inbound text
        verdict = await self.moderation.moderate(
            st.user_message,
            actor_id=st.actor_id,
            target_conversation_id=st.conversation_id,
            use_remote_classifier=self.use_remote_classifier,
        )
        # 1a) hard block short-circuit
        if verdict.action == VerdictAction.DENY:
            triaged = triage_route(st.user_message, verdict, st.language)
            logger.info(
                "turn_blocked",
                extra={
                    "cid": st.conversation_id,
                    "severity": verdict.severity,
                    "is_emergency": triaged["metadata"]["is_emergency"],
                },
            )
            return {"content": triaged["content"], "metadata": normalize_meta(triaged["metadata"])}

        # 2) generate through the provider chain
        prompt = build_user_prompt(
            st.user_message,
            lang=st.language,
            prefs=st.prefs,
            context=_context_string(st.history),
        )
        result = await self.chain.generate_response(
            prompt,
            original_user_text=st.user_message,
            language=st.language,
        )

        md = normalize_meta({
            "path": "generated",
            "provider": result.provider,
            "flagged": verdict.action == VerdictAction.FLAG,
            "reasons": list(verdict.reasons) if verdict.action == VerdictAction.FLAG else [],
            "moderation_action": verdict.action.value,
            "moderation_severity": verdict.severity,
            "has_disclaimer": result.has_disclaimer,
            "is_emergency": result.is_emergency,
            "emergency_severity": result.emergency_severity,
            "disclaimer_category": result.disclaimer_category,
            "requires_professional": result.requires_professional,
            "validation_issues": result.issues,
            "language": st.language,
        })
        logger.info(
            "turn_generated",
            extra={
                "cid": st.conversation_id,
                "provider": result.provider,
                "flagged": md["flagged"],
                "is_emergency": result.is_emergency,
                "issues": len(result.issues),
            },
        )
        return {"content": result.text, "metadata": md}
