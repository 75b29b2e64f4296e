"""
ResiHub Backend — Session Token Issuer
========================================

What:  Issues and verifies the signed session tokens returned by login.
How:   HS256 JWT via python-jose. Claims:
           id, role, apartmentComplexName (or null), status (or null),
           phone, name, iat, exp
       Tokens live for `token_ttl_seconds` (default one hour) and cannot be
       refreshed or revoked; verification is a signature + expiry check with
       no server-side session store.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from resihub.config import settings
from resihub.services.identity import Identity, Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPayload:
    """Verified claims of a session token."""

    id: str
    role: str
    apartment_complex_name: Optional[str]
    status: Optional[str]
    phone: Optional[str]
    name: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "TokenPayload":
        return cls(
            id=claims["id"],
            role=claims["role"],
            apartment_complex_name=claims.get("apartmentComplexName"),
            status=claims.get("status"),
            phone=claims.get("phone"),
            name=claims.get("name"),
        )


class TokenIssuer:
    """
    Signs and verifies session tokens with one process-wide secret.

    Args:
        secret:      HMAC signing secret
        algorithm:   JWT algorithm (HS256)
        ttl_seconds: lifetime of every issued token
    """

    def __init__(self, secret: str, algorithm: str = "HS256", ttl_seconds: int = 3600):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = timedelta(seconds=ttl_seconds)

    def issue(self, identity: Identity, role: Optional[Role] = None) -> str:
        """Encode `identity` (with `role`, defaulting to its own) into a token."""
        now = datetime.now(timezone.utc)
        claims = {
            "id": identity.id,
            "role": (role or identity.role).value,
            "apartmentComplexName": identity.tenant_name,
            "status": identity.status.value if identity.status else None,
            "phone": identity.phone,
            "name": identity.name,
            "iat": now,
            "exp": now + self.ttl,
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Optional[TokenPayload]:
        """Return the token's payload, or None if it is forged, malformed or expired."""
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
            return TokenPayload.from_claims(claims)
        except (JWTError, KeyError) as e:
            logger.debug("Rejected session token: %s", type(e).__name__)
            return None


token_issuer = TokenIssuer(
    secret=settings.jwt_secret,
    algorithm=settings.jwt_algorithm,
    ttl_seconds=settings.token_ttl_seconds,
)
