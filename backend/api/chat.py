from fastapi import APIRouter, Depends, Request

from ai.health_assistant import analyze_image, chat_reply
from api.schemas import ChatRequest, ChatResponse, ImageAnalysisRequest, ImageAnalysisResponse
from auth.utils import client_ip, get_current_user
from db.models import User
from services.errors import ValidationError
from services.rate_limit_service import chat_rule, require_within_rate_limit
from utils.image_utils import decode_image_data_url, to_data_url

router = APIRouter(prefix="/chat", tags=["chat"], dependencies=[Depends(get_current_user)])


def _enforce_chat_limit(request: Request, user: User) -> None:
    require_within_rate_limit(chat_rule(), f"user:{user.id}", user_id=user.id, ip_address=client_ip(request))


@router.post("", response_model=ChatResponse)
async def chat(req: ChatRequest, request: Request, user: User = Depends(get_current_user)):
    """Text chat with the health assistant. AI failures yield a fixed fallback reply."""
    _enforce_chat_limit(request, user)
    reply = await chat_reply(user, req.message.strip())
    return ChatResponse(reply=reply)


@router.post("/image", response_model=ImageAnalysisResponse)
async def chat_image(req: ImageAnalysisRequest, request: Request, user: User = Depends(get_current_user)):
    _enforce_chat_limit(request, user)
    try:
        image_bytes, mime = decode_image_data_url(req.image)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    analysis = await analyze_image(user, to_data_url(image_bytes, mime), req.context)
    return ImageAnalysisResponse(analysis=analysis)
