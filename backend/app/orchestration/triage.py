from typing import Any, Dict

from ..safety.emergency import check_emergency, get_emergency_response
from ..safety.guard import Verdict

BLOCKED_MESSAGE = "Your message was blocked by our safety system."


def triage_route(user_message: str, verdict: Verdict, language: str = "en") -> Dict[str, Any]:
    """Build the reply for a turn the moderation pipeline denied.

    Shows the accumulated reasons, never internal diagnostics. When the user
    is in crisis territory the crisis resources are attached regardless.
    """
    emergency = check_emergency(user_message)
    content_lines = [BLOCKED_MESSAGE]
    if emergency.is_emergency:
        content_lines.append("")
        content_lines.append(get_emergency_response(language))
    md: Dict[str, Any] = {
        "path": "blocked",
        "blocked": True,
        "flagged": False,
        "moderation_action": verdict.action.value,
        "moderation_severity": int(verdict.severity),
        "reasons": list(verdict.reasons),
        "provider": None,
        "has_disclaimer": emergency.is_emergency,
        "is_emergency": emergency.is_emergency,
        "emergency_severity": emergency.severity,
    }
    return {"content": "\n".join(content_lines), "metadata": md}
