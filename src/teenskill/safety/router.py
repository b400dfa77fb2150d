"""Safety screening endpoint, called by the UI before posting a task."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from teenskill.auth.dependencies import get_current_user
from teenskill.db.models import User
from teenskill.safety.classifier import SafetyScreen
from teenskill.safety.schemas import SafetyCheckRequest, SafetyCheckResponse

router = APIRouter(prefix="/api/v1/safety", tags=["Safety"])


def get_safety_screen(request: Request) -> SafetyScreen:
    """The screen built at application construction."""
    return request.app.state.safety_screen


@router.post("/check", response_model=SafetyCheckResponse)
async def safety_check_endpoint(
    body: SafetyCheckRequest,
    user: User = Depends(get_current_user),
    screen: SafetyScreen = Depends(get_safety_screen),
) -> SafetyCheckResponse:
    """Screen a draft task. Always answers; degrades to safe when the classifier is down."""
    verdict = await screen.check(body.title, body.description)
    return SafetyCheckResponse(**verdict)
