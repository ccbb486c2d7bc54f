from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import asyncio
import json
import logging

import httpx

from ..safety.guard import VerdictAction

logger = logging.getLogger(__name__)

CLASSIFIER_SYSTEM = """
Classify the following text into one of: ALLOW, FLAG, DENY.
Return ONLY valid JSON: {"action":"ALLOW"|"FLAG"|"DENY","reasons":["..."],"severity":0-10}

Classification guidelines:
- ALLOW: Safe, appropriate content
- FLAG: Potentially concerning, needs human review
- DENY: Harmful, dangerous, or inappropriate content

Consider: hate speech, violence, self-harm, medical misinformation, spam.
"""

UNAVAILABLE_REASON = "classifier unavailable"


class ClassifierUnavailable(RuntimeError):
    """The endpoint could not be reached or refused the call."""


@dataclass
class ClassifierResult:
    action: VerdictAction = VerdictAction.ALLOW
    severity: int = 0
    reasons: List[str] = field(default_factory=list)
    # False when the defaults below were used instead of a legible answer
    parsed: bool = True


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced {...} span in text, or None.

    Braces inside JSON string literals do not count towards the balance.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def parse_classifier_output(raw: str) -> ClassifierResult:
    """Normalize classifier prose into a result.

    Anything illegible defaults open: ALLOW, severity 0.
    """
    span = extract_json_object(raw or "")
    if span is None:
        return ClassifierResult(parsed=False)
    try:
        js = json.loads(span)
    except ValueError:
        return ClassifierResult(parsed=False)
    if not isinstance(js, dict):
        return ClassifierResult(parsed=False)

    action_raw = str(js.get("action", "")).strip().upper()
    if action_raw not in VerdictAction.__members__:
        return ClassifierResult(parsed=False)

    try:
        # Clamp before int(); json allows Infinity and 1e400
        raw_severity = float(js.get("severity", 0))
        severity = int(round(min(10.0, max(0.0, raw_severity))))
    except (TypeError, ValueError, OverflowError):
        severity = 0

    reasons_raw = js.get("reasons") or []
    if isinstance(reasons_raw, str):
        reasons_raw = [reasons_raw]
    reasons = [str(r) for r in reasons_raw if str(r).strip()] if isinstance(reasons_raw, list) else []

    return ClassifierResult(action=VerdictAction[action_raw], severity=severity, reasons=reasons)


def _message_content(data: Any) -> str:
    try:
        choice0 = (data.get("choices") or [])[0]
        msg_obj = choice0.get("message") if isinstance(choice0, dict) else None
        return (msg_obj or {}).get("content") or ""
    except (AttributeError, IndexError, TypeError):
        return ""


class RemoteClassifier:
    """Text-in / verdict-out wrapper around an external chat-completions endpoint.

    Two failure modes with different defaults:
    - endpoint reachable but answer illegible -> ALLOW, severity 0
    - endpoint unreachable (network, timeout, non-2xx) -> FLAG, severity 5
    """

    def __init__(
        self,
        url: str,
        api_key: str = "",
        model: str = "gpt-4o-mini",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.api_key = (api_key or "").strip()
        self.model = model
        self.timeout = float(timeout)
        self._client = client

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            if self._client is not None:
                resp = await self._client.post(self.url, json=payload, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(self.url, json=payload, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise ClassifierUnavailable(f"{type(e).__name__}: {e}") from e
        return resp

    @staticmethod
    def _unavailable() -> ClassifierResult:
        return ClassifierResult(
            action=VerdictAction.FLAG, severity=5, reasons=[UNAVAILABLE_REASON], parsed=False
        )

    async def classify(self, text: str) -> ClassifierResult:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": CLASSIFIER_SYSTEM},
                {"role": "user", "content": text or ""},
            ],
            "temperature": 0.1,
            "max_tokens": 100,
        }
        try:
            # httpx timeouts apply per read step; wait_for bounds the whole call
            resp = await asyncio.wait_for(self._post(payload), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("classifier_unreachable", extra={"error": f"timeout after {self.timeout:.1f}s"})
            return self._unavailable()
        except ClassifierUnavailable as e:
            logger.warning("classifier_unreachable", extra={"error": str(e)})
            return self._unavailable()

        try:
            data = resp.json()
        except ValueError:
            data = {}
        result = parse_classifier_output(_message_content(data))
        if not result.parsed:
            logger.info("classifier_unparseable", extra={"status": resp.status_code})
        return result
