import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict

from ....orchestration.triage import BLOCKED_MESSAGE
from ....services.chat import ChatService, get_chat_service

router = APIRouter(prefix="/chat", tags=["chat"])


# Models


class Message(BaseModel):
    role: str  # 'user' or 'assistant'
    content: str
    timestamp: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None

    model_config = ConfigDict()


class ChatRequest(BaseModel):
    messages: List[Message]
    user_id: str
    conversation_id: Optional[str] = None
    language: Optional[str] = None
    preferences: Dict[str, Any] = {}


class ChatResponse(BaseModel):
    message: Message
    conversation_id: str


class EmergencyRequest(BaseModel):
    message: str
    language: str = "en"


@router.post("", response_model=ChatResponse)
async def chat(chat_request: ChatRequest, service: ChatService = Depends(get_chat_service)):
    """
    Moderate the latest user message and return the assistant's reply.
    """
    if not chat_request.messages:
        raise HTTPException(status_code=400, detail="No messages provided")

    last_message = chat_request.messages[-1]
    conversation_id = chat_request.conversation_id or str(uuid.uuid4())
    history = [{"role": m.role.lower(), "content": m.content} for m in chat_request.messages[:-1]]

    result = await service.generate_response(
        conversation_id=conversation_id,
        user_id=chat_request.user_id,
        message=last_message.content,
        message_history=history or None,
        language=chat_request.language,
        prefs=chat_request.preferences,
    )
    metadata = result["metadata"]

    if metadata.get("blocked"):
        raise HTTPException(
            status_code=400,
            detail={
                "message": BLOCKED_MESSAGE,
                "reasons": metadata.get("reasons", []),
                "content": result["content"],
                "is_emergency": metadata.get("is_emergency", False),
            },
        )

    return {
        "message": Message(
            role="assistant",
            content=result["content"],
            timestamp=datetime.now(timezone.utc),
            metadata=metadata,
        ),
        "conversation_id": conversation_id,
    }


@router.post("/emergency")
async def emergency(body: EmergencyRequest, service: ChatService = Depends(get_chat_service)):
    return service.emergency_check(body.message, body.language)
