"""Natural-language recall endpoint."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..core.auth import Identity
from ..errors import InternalError, RecallBinError
from ..services import ServiceContainer
from .dependencies import get_current_user, get_services

logger = logging.getLogger(__name__)

router = APIRouter()


class ChatRequest(BaseModel):
    query: Optional[str] = None


@router.post("/chat")
async def chat(
    request: ChatRequest,
    user: Identity = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Answer a question about saved items, degrading to keyword match."""
    try:
        answer = await services.chat.ask(user.user_id, request.query or "")
        return {
            "response": answer.response,
            "items": [item.model_dump(mode="json") for item in answer.items],
        }
    except RecallBinError:
        raise
    except Exception as e:
        logger.error(f"Chat fallback also failed: {e}")
        raise InternalError("Chat failed", e) from e
