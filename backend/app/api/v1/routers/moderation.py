import logging
import math
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from ....models.flag import FlagAction, FlagReason, FlagRecord
from ....services.chat import ChatService, get_chat_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/moderate", tags=["moderation"])


# Models


class ModerateRequest(BaseModel):
    text: str
    actor_id: Optional[str] = None
    content_id: Optional[str] = None
    conversation_id: Optional[str] = None
    use_remote_classifier: Optional[bool] = None


class VerdictResponse(BaseModel):
    action: str
    severity: int
    reasons: List[str]
    method: str


class ReportRequest(BaseModel):
    actor_id: Optional[str] = None
    reason: FlagReason
    content_id: Optional[str] = None
    conversation_id: Optional[str] = None
    details: Optional[str] = None


class ReviewRequest(BaseModel):
    reviewer_id: str
    action: FlagAction
    notes: str = ""


class FlagPage(BaseModel):
    items: List[FlagRecord]
    pagination: Dict[str, int]


@router.post("", response_model=VerdictResponse)
async def moderate(body: ModerateRequest, service: ChatService = Depends(get_chat_service)):
    verdict = await service.moderation.moderate(
        body.text,
        actor_id=body.actor_id,
        target_content_id=body.content_id,
        target_conversation_id=body.conversation_id,
        use_remote_classifier=body.use_remote_classifier,
    )
    return verdict.to_dict()


@router.post("/report", status_code=201)
async def report(body: ReportRequest, service: ChatService = Depends(get_chat_service)):
    # An invalid target raises ValidationError, mapped to 400 by the app
    flag_id = await service.moderation.submit_report(
        body.actor_id,
        body.reason,
        content_id=body.content_id,
        conversation_id=body.conversation_id,
        details=body.details,
    )
    logger.info("report_received", extra={"flag_id": flag_id, "reason": body.reason.value})
    return {"id": flag_id}


@router.get("/flags", response_model=FlagPage)
def list_flags(
    status: str = Query("pending"),
    min_severity: int = Query(0, ge=0, le=10),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: ChatService = Depends(get_chat_service),
):
    if status == "all":
        action = None
    else:
        try:
            action = FlagAction(status)
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown status: {status}")
    items, total = service.repository.list_flags(
        status=action, min_severity=min_severity, page=page, limit=limit
    )
    return {
        "items": items,
        "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)},
    }


@router.put("/flags/{flag_id}", response_model=FlagRecord)
async def review(flag_id: str, body: ReviewRequest, service: ChatService = Depends(get_chat_service)):
    return await service.moderation.review_flag(flag_id, body.reviewer_id, body.action, body.notes)


@router.get("/stats")
def stats(service: ChatService = Depends(get_chat_service)) -> Dict[str, Any]:
    return service.repository.get_stats()
