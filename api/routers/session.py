"""
Session API Endpoints.

Login, logout and session state.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_context
from api.models import LoginRequest, SessionResponse, UserResponse
from repositories.auth_repository import InvalidCredentials
from repositories.client import ApiError
from services.app_context import AppContext
from services.errors import ConfirmationRequired

router = APIRouter()


def _session_response(context: AppContext) -> SessionResponse:
    user = context.session.user
    return SessionResponse(
        state=context.session.state.value,
        user=UserResponse.from_domain(user) if user else None,
    )


@router.get("/session", response_model=SessionResponse, summary="Current Session")
def get_session(context: AppContext = Depends(get_context)):
    return _session_response(context)


@router.post(
    "/session/login",
    response_model=SessionResponse,
    summary="Log In",
    description="Check credentials with the CRM service and open a session."
)
async def login(request: LoginRequest, context: AppContext = Depends(get_context)):
    try:
        await context.login(request.username, request.password)
    except InvalidCredentials as e:
        raise HTTPException(status_code=401, detail=str(e))
    except ApiError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return _session_response(context)


@router.post("/session/logout", response_model=SessionResponse, summary="Log Out")
async def logout(
    confirm: bool = Query(False, description="Must be true to log out"),
    context: AppContext = Depends(get_context),
):
    try:
        await context.logout(confirmed=confirm)
    except ConfirmationRequired as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _session_response(context)
