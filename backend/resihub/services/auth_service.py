"""
ResiHub Backend — Auth Service (Login Orchestrator)
=====================================================

What:  The login flow: validate input → resolve identity → verify password →
       status gate → issue token.
How:   Composes IdentityResolver, the bcrypt verifier and TokenIssuer. Each
       step either passes or raises; the first failure ends the flow.
Who:   Called by POST /api/auth/login.

Login Flow:
    ┌────────┐   ┌─────────┐   ┌────────┐   ┌─────────────┐   ┌───────┐
    │ INPUT  │──▶│ RESOLVE │──▶│ VERIFY │──▶│ STATUS GATE │──▶│ ISSUE │
    └────────┘   └─────────┘   └────────┘   └─────────────┘   └───────┘
      400            400           400            403

    Unknown email and wrong password raise the same InvalidCredentialsError.
    A pending or rejected Resident/Manager never receives a token.
"""

import logging
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from resihub.exceptions import (
    InvalidCredentialsError,
    MissingCredentialsError,
    RegistrationPendingError,
)
from resihub.schemas.auth import LoginResponse, UserView
from resihub.services.credentials import verify_password
from resihub.services.identity import Status
from resihub.services.identity_resolver import IdentityResolver
from resihub.services.tokens import TokenIssuer

logger = logging.getLogger(__name__)


class AuthService:
    """
    Login orchestration over injected collaborators.

    Stateless apart from its collaborators; one instance is built per request
    because the resolver is bound to that request's central session.
    """

    def __init__(self, resolver: IdentityResolver, tokens: TokenIssuer):
        self.resolver = resolver
        self.tokens = tokens

    async def login(self, email: Optional[str], password: Optional[str]) -> LoginResponse:
        """
        Authenticate `email`/`password` and return a token with the user view.

        Raises:
            MissingCredentialsError:  email or password absent (400)
            InvalidCredentialsError:  unknown email or wrong password (400)
            RegistrationPendingError: resident/manager not approved (403)
            DatabaseError:            account databases unreachable (500)
        """
        if not email or not password:
            raise MissingCredentialsError()

        identity = await self.resolver.resolve(email)
        if identity is None:
            logger.info("Login rejected: no account for submitted email")
            raise InvalidCredentialsError()

        # keep bcrypt off the event loop
        matches = await run_in_threadpool(verify_password, password, identity.password_hash)
        if not matches:
            logger.info("Login rejected: password mismatch for %s %s", identity.role.value, identity.id)
            raise InvalidCredentialsError()

        if identity.role.requires_approval and identity.status is not Status.APPROVED:
            logger.info(
                "Login blocked: %s %s has status %s",
                identity.role.value,
                identity.id,
                identity.status.value if identity.status else None,
            )
            raise RegistrationPendingError(context={"identity_id": identity.id})

        token = self.tokens.issue(identity, identity.role)
        logger.info(
            "Login succeeded: %s %s (tenant=%s)",
            identity.role.value,
            identity.id,
            identity.tenant_name,
        )
        return LoginResponse(token=token, user=UserView(**identity.public_view()))
