import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

from sqlalchemy import func

from ..models.flag import FlagAction, FlagCreate, FlagRecord, REVIEW_ACTIONS
from ..models.sql_models import Flag as SQLFlag

logger = logging.getLogger(__name__)


class FlagNotFound(LookupError):
    pass


class InvalidReviewAction(ValueError):
    """Reviewers may not move a flag back to pending."""


class FlagRepository(Protocol):
    def create_flag(self, record: FlagCreate) -> str: ...

    def mark_flag_reviewed(
        self, flag_id: str, reviewer_id: str, action: FlagAction, notes: str = ""
    ) -> FlagRecord: ...

    def list_flags(
        self,
        status: Optional[FlagAction] = FlagAction.PENDING,
        min_severity: int = 0,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[FlagRecord], int]: ...

    def get_stats(self) -> Dict[str, Any]: ...


class SqlFlagRepository:
    """Flag ledger backed by SQLAlchemy.

    Calls are synchronous; async callers go through asyncio.to_thread.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def create_flag(self, record: FlagCreate) -> str:
        db = self._session_factory()
        try:
            row = SQLFlag(**record.model_dump(mode="json"))
            row.action = FlagAction.PENDING.value
            db.add(row)
            db.commit()
            db.refresh(row)
            return row.id
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def get_flag(self, flag_id: str) -> FlagRecord:
        db = self._session_factory()
        try:
            row = db.get(SQLFlag, flag_id)
            if row is None:
                raise FlagNotFound(flag_id)
            return FlagRecord.model_validate(row)
        finally:
            db.close()

    def mark_flag_reviewed(
        self, flag_id: str, reviewer_id: str, action: FlagAction, notes: str = ""
    ) -> FlagRecord:
        action = FlagAction(action)
        if action not in REVIEW_ACTIONS:
            raise InvalidReviewAction(f"invalid review action: {action.value}")
        db = self._session_factory()
        try:
            row = db.get(SQLFlag, flag_id)
            if row is None:
                raise FlagNotFound(flag_id)
            row.reviewed_by = reviewer_id
            row.reviewed_at = datetime.now(timezone.utc)
            row.action = action.value
            row.review_notes = (notes or "")[:1000]
            db.commit()
            db.refresh(row)
            logger.info("flag_reviewed", extra={"flag_id": flag_id, "action": action.value})
            return FlagRecord.model_validate(row)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def get_pending_flags(self, limit: int = 50, min_severity: int = 0) -> List[FlagRecord]:
        items, _total = self.list_flags(
            status=FlagAction.PENDING, min_severity=min_severity, page=1, limit=limit
        )
        return items

    def list_flags(
        self,
        status: Optional[FlagAction] = FlagAction.PENDING,
        min_severity: int = 0,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[FlagRecord], int]:
        """Return one page of flags, most severe first, oldest first within a severity."""
        page = max(1, int(page))
        limit = max(1, int(limit))
        db = self._session_factory()
        try:
            q = db.query(SQLFlag)
            if status is not None:
                q = q.filter(SQLFlag.action == FlagAction(status).value)
            if min_severity:
                q = q.filter(SQLFlag.severity >= int(min_severity))
            total = q.count()
            rows = (
                q.order_by(SQLFlag.severity.desc(), SQLFlag.created_at.asc())
                .offset((page - 1) * limit)
                .limit(limit)
                .all()
            )
            return [FlagRecord.model_validate(r) for r in rows], total
        finally:
            db.close()

    def get_stats(self) -> Dict[str, Any]:
        db = self._session_factory()
        try:
            total = db.query(func.count(SQLFlag.id)).scalar() or 0
            pending = (
                db.query(func.count(SQLFlag.id))
                .filter(SQLFlag.action == FlagAction.PENDING.value)
                .scalar()
                or 0
            )
            avg_sev, max_sev = db.query(func.avg(SQLFlag.severity), func.max(SQLFlag.severity)).one()
            by_reason = (
                db.query(SQLFlag.reason, func.count(SQLFlag.id))
                .group_by(SQLFlag.reason)
                .order_by(func.count(SQLFlag.id).desc())
                .limit(10)
                .all()
            )
            return {
                "total": int(total),
                "pending": int(pending),
                "avgSeverity": float(avg_sev or 0),
                "maxSeverity": int(max_sev or 0),
                "byReason": {reason: int(count) for reason, count in by_reason},
            }
        finally:
            db.close()
