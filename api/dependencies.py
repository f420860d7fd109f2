"""
Shared API dependencies.

The application context lives on app.state; routers reach it through these helpers.
"""

from fastapi import Depends, HTTPException, Request

from domain.user import User
from services.app_context import AppContext
from services.errors import (
    ConfirmationRequired,
    DashboardError,
    LeadNotFound,
    MutationFailed,
    NotAuthenticated,
    PermissionDenied,
)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def require_user(context: AppContext = Depends(get_context)) -> User:
    """Gate for dashboard routes: 401 until a session is authenticated."""
    try:
        return context.session.require_user()
    except NotAuthenticated as e:
        raise HTTPException(status_code=401, detail=str(e))


_STATUS_BY_ERROR = (
    (NotAuthenticated, 401),
    (PermissionDenied, 403),
    (LeadNotFound, 404),
    (ConfirmationRequired, 409),
    (MutationFailed, 502),
)


def to_http_error(error: DashboardError) -> HTTPException:
    """Convert a service error into the notice returned to the dashboard."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))
