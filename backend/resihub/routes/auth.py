"""
ResiHub Backend — Auth Route Handler
======================================

What:  POST /api/auth/login for residents, managers and service providers.
How:   Parses the JSON body and delegates to AuthService; all failures are
       raised as ResiHubError subclasses and formatted by the global handlers.

Responses:
    200 {token, user}
    400 {message}  missing fields / unknown email / wrong password
    403 {message}  registration pending or rejected
    500 {message: "Server error", error}
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from resihub.dependencies import get_auth_service
from resihub.schemas.auth import ErrorResponse, LoginRequest, LoginResponse, MessageResponse
from resihub.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        400: {"description": "Missing or incorrect credentials", "model": MessageResponse},
        403: {"description": "Registration pending or rejected", "model": MessageResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Log in with email and password",
)
async def login(
    body: Optional[LoginRequest] = None,
    auth: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """
    Resolve the account behind `email` across the central database and every
    apartment database, check the password and approval status, and return a
    one-hour session token.

    A request without a body is treated like one with both fields missing.
    """
    body = body or LoginRequest()
    return await auth.login(body.email, body.password)
