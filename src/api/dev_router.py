"""
Development Router

Endpoints for exercising the conversation core without a messaging
transport: inspect/reset sessions, run a turn, test extraction.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from src.pipeline.components import Components
from src.pipeline.message_handler import IncomingMessage
from src.utils.logger import setup_logger

logger = setup_logger(__name__)

router = APIRouter(prefix="/dev", tags=["Development"])


# -----------------------------------------------------------------------------
# REQUEST/RESPONSE MODELS
# -----------------------------------------------------------------------------

class MessageRequest(BaseModel):
    """Simulated incoming message"""
    user_id: str = Field(..., min_length=1, description="User identifier (phone number)")
    text: str = Field(..., description="Message text")
    message_id: Optional[str] = Field(None, description="Transport message id")


class TurnResponse(BaseModel):
    decision: str
    reply: str
    slugs: List[str] = Field(default_factory=list)
    intent: Optional[str] = None
    state: str


class ResetRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class ResetResponse(BaseModel):
    user_id: str
    cleared: bool


class ExtractResponse(BaseModel):
    text: str
    slugs: List[str]
    match_slug: Optional[str] = None
    teams: List[str] = Field(default_factory=list)


class SessionResponse(BaseModel):
    user_id: str
    exists: bool
    state: str
    session: Optional[Dict[str, Any]] = None


# -----------------------------------------------------------------------------
# HELPERS
# -----------------------------------------------------------------------------

def get_components(request: Request) -> Components:
    components = getattr(request.app.state, "components", None)
    if components is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return components


async def _reset(components: Components, user_id: str) -> ResetResponse:
    cleared = await components.store.reset(user_id)
    logger.info(f"[Dev] Reset {user_id} (cleared: {cleared})")
    return ResetResponse(user_id=user_id, cleared=cleared)


# -----------------------------------------------------------------------------
# ENDPOINTS
# -----------------------------------------------------------------------------

@router.get("/session", response_model=SessionResponse)
async def get_session(request: Request, user_id: str = Query(..., min_length=1)):
    """Snapshot of a user's session"""
    components = get_components(request)
    snapshot = components.store.get_snapshot(user_id)
    return SessionResponse(
        user_id=user_id,
        exists=snapshot is not None,
        state=components.handler.state_for(user_id).value,
        session=snapshot,
    )


@router.post("/reset", response_model=ResetResponse)
async def reset_session(request: Request, body: ResetRequest):
    return await _reset(get_components(request), body.user_id)


@router.get("/reset", response_model=ResetResponse)
async def reset_session_get(request: Request, user_id: str = Query(..., min_length=1)):
    return await _reset(get_components(request), user_id)


@router.post("/message", response_model=TurnResponse)
async def post_message(request: Request, body: MessageRequest):
    """Run a full conversation turn"""
    components = get_components(request)
    result = await components.handler.handle_message(
        IncomingMessage(user_id=body.user_id, text=body.text, message_id=body.message_id)
    )
    return TurnResponse(**result.to_dict())


@router.get("/extract", response_model=ExtractResponse)
async def extract(request: Request, text: str = Query(...)):
    """Deterministic extraction only (no LLM, no session)"""
    extractor = get_components(request).extractor
    slugs = extractor.extract_slugs(text)
    return ExtractResponse(
        text=text,
        slugs=slugs,
        match_slug=extractor.build_match_slug(slugs),
        teams=[extractor.team_name(s) for s in slugs],
    )
