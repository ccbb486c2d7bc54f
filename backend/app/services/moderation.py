import asyncio
import logging
from typing import Optional, Set

from pydantic import ValidationError

from ..config import ModerationConfig
from ..models.flag import (
    DetectionMethod,
    FlagAction,
    FlagCreate,
    FlaggedBy,
    FlagReason,
    FlagRecord,
)
from ..orchestration.classify import UNAVAILABLE_REASON, RemoteClassifier
from ..safety.guard import DetectionStage, Verdict, VerdictAction
from ..safety.lexicon import check_blocklist
from ..safety.misinformation import check_medical_misinformation
from .flags import FlagRepository

logger = logging.getLogger(__name__)

MISINFORMATION_SEVERITY = 7
USER_REPORT_SEVERITY = 5


class ModerationService:
    """Runs the moderation stages in order and records flags.

    lexicon -> misinformation -> remote classifier (optional) -> spam flag -> allow.
    A DENY from the lexicon and any misinformation match end the pipeline early.
    moderate() never raises; an internal failure yields ALLOW with a diagnostic.
    """

    def __init__(
        self,
        repository: FlagRepository,
        config: ModerationConfig = ModerationConfig(),
        classifier: Optional[RemoteClassifier] = None,
    ):
        self.repository = repository
        self.config = config
        self.classifier = classifier
        self._pending: Set[asyncio.Task] = set()

    async def moderate(
        self,
        text: Optional[str],
        actor_id: Optional[str] = None,
        target_content_id: Optional[str] = None,
        target_conversation_id: Optional[str] = None,
        use_remote_classifier: Optional[bool] = None,
    ) -> Verdict:
        try:
            verdict = await self._run(
                text or "",
                actor_id,
                target_content_id,
                target_conversation_id,
                use_remote_classifier,
            )
        except Exception as e:
            logger.exception("moderation_internal_error")
            verdict = Verdict.allow(diagnostic=f"internal_error: {type(e).__name__}")
        logger.info(
            "moderation_verdict",
            extra={
                "action": verdict.action.value,
                "severity": verdict.severity,
                "method": verdict.method.value,
                "actor_id": actor_id,
            },
        )
        return verdict

    def _remote_enabled(self, requested: Optional[bool]) -> bool:
        if not self.config.remote_classifier_enabled or self.classifier is None:
            return False
        return True if requested is None else bool(requested)

    async def _run(
        self,
        text: str,
        actor_id: Optional[str],
        content_id: Optional[str],
        conversation_id: Optional[str],
        use_remote_classifier: Optional[bool],
    ) -> Verdict:
        target = {"content_id": content_id, "conversation_id": conversation_id, "user_id": actor_id}

        # 1) keyword tiers
        lexicon = check_blocklist(text)
        if lexicon.blocked:
            reason = FlagReason.HARMFUL_CONTENT if "severe" in lexicon.tiers else FlagReason.MEDICAL_MISINFORMATION
            await self._record_flag(
                reason=reason,
                reason_details="; ".join(lexicon.reasons),
                severity=lexicon.severity,
                text_snippet=text,
                detection_method=DetectionMethod.KEYWORD,
                **target,
            )
            return Verdict(VerdictAction.DENY, lexicon.severity, list(lexicon.reasons), DetectionStage.KEYWORD)

        # 2) health misinformation rules take priority over the remote classifier
        misinfo = check_medical_misinformation(text)
        if misinfo.flagged:
            await self._record_flag(
                reason=FlagReason.MEDICAL_MISINFORMATION,
                reason_details="; ".join(misinfo.reasons),
                severity=MISINFORMATION_SEVERITY,
                text_snippet=text,
                detection_method=DetectionMethod.KEYWORD,
                **target,
            )
            return Verdict(
                VerdictAction.FLAG, MISINFORMATION_SEVERITY, list(misinfo.reasons), DetectionStage.MISINFORMATION
            )

        # 3) remote classifier
        if self._remote_enabled(use_remote_classifier):
            result = None
            try:
                result = await self.classifier.classify(text)
            except Exception:
                logger.exception("classifier_failed")
            if result is not None and result.action in (VerdictAction.DENY, VerdictAction.FLAG):
                # An outage is not a finding about the text
                unavailable = result.reasons == [UNAVAILABLE_REASON]
                await self._record_flag(
                    reason=FlagReason.OTHER if unavailable else FlagReason.HARMFUL_CONTENT,
                    reason_details="; ".join(result.reasons),
                    severity=result.severity,
                    text_snippet=text,
                    detection_method=DetectionMethod.ML_MODEL,
                    detection_score=result.severity / 10,
                    **target,
                )
                return Verdict(result.action, result.severity, list(result.reasons), DetectionStage.ML_MODEL)

        # 4) spam tier flags without blocking
        if lexicon.flagged:
            return Verdict(VerdictAction.FLAG, lexicon.severity, list(lexicon.reasons), DetectionStage.KEYWORD)

        return Verdict.allow()

    # -- flag ledger ---------------------------------------------------------

    async def _record_flag(self, **fields) -> None:
        try:
            record = FlagCreate(flagged_by=FlaggedBy.SYSTEM, **fields)
        except ValidationError as e:
            logger.warning(
                "flag_rejected",
                extra={"errors": [err["msg"] for err in e.errors(include_input=False)]},
            )
            return

        task = asyncio.create_task(self._write(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        if not self.config.flag_writes_background:
            # A started write finishes even if the caller is cancelled
            await asyncio.shield(task)

    async def _write(self, record: FlagCreate) -> Optional[str]:
        try:
            flag_id = await asyncio.to_thread(self.repository.create_flag, record)
        except Exception:
            logger.error(
                "flag_write_failed",
                extra={"reason": record.reason.value, "severity": record.severity},
                exc_info=True,
            )
            return None
        logger.info("flag_written", extra={"flag_id": flag_id, "reason": record.reason.value})
        return flag_id

    async def drain(self) -> None:
        """Wait for background flag writes still in flight."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    # -- reports and review --------------------------------------------------

    async def submit_report(
        self,
        actor_id: Optional[str],
        reason: FlagReason,
        content_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
        details: Optional[str] = None,
    ) -> str:
        """Record an end-user report. Invalid targets raise to the caller."""
        record = FlagCreate(
            flagged_by=FlaggedBy.USER,
            user_id=actor_id,
            content_id=content_id,
            conversation_id=conversation_id,
            reason=reason,
            reason_details=details,
            severity=USER_REPORT_SEVERITY,
            detection_method=DetectionMethod.USER_REPORT,
        )
        return await asyncio.to_thread(self.repository.create_flag, record)

    async def review_flag(
        self, flag_id: str, reviewer_id: str, action: FlagAction, notes: str = ""
    ) -> FlagRecord:
        return await asyncio.to_thread(self.repository.mark_flag_reviewed, flag_id, reviewer_id, action, notes)
