from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..crud.inventory import list_items
from ..db.session import get_db
from ..deps.auth import get_principal
from ..schemas.assistant import AssistantReply, ChatRequest
from ..services import advisor

router = APIRouter(prefix="/api/v1/assistant", tags=["assistant"], dependencies=[Depends(get_principal)])


@router.post("/analyze", response_model=AssistantReply)
async def api_analyze_inventory(db: Session = Depends(get_db)):
    text = await advisor.analyze_inventory(list_items(db))
    return AssistantReply(text=text)


@router.post("/chat", response_model=AssistantReply)
async def api_chat(payload: ChatRequest):
    text = await advisor.chat(payload.history, payload.message)
    return AssistantReply(text=text)
