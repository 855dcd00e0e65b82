"""
JWT token adapter - Implements TokenService protocol with PyJWT.

Tokens are HS256-signed and carry the user id as ``sub`` plus whichever of
``email`` / ``phone`` the user verified. Expiry is checked against the
injected clock rather than the process clock so it can be tested.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt

from src.domain.exceptions import Unauthorized
from src.domain.ports import Clock, TokenClaims

logger = logging.getLogger(__name__)


class JwtTokenService:
    """
    Implements TokenService protocol via PyJWT.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Verification is stateless and never touches the store.
    """

    def __init__(
        self, secret: str, clock: Clock, ttl_seconds: int = 3600, algorithm: str = "HS256"
    ) -> None:
        self._secret = secret
        self._clock = clock
        self._ttl = timedelta(seconds=ttl_seconds)
        self._algorithm = algorithm

    def issue_token(
        self, user_id: str, email: str | None, phone: str | None
    ) -> tuple[str, TokenClaims]:
        issued_at = self._clock.now().replace(microsecond=0)
        expires_at = issued_at + self._ttl
        payload = {
            "sub": user_id,
            "email": email,
            "phone": phone,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        claims = TokenClaims(
            subject=user_id,
            email=email,
            phone=phone,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        return token, claims

    def verify_token(self, token: str) -> TokenClaims:
        """
        Decode a token and check its signature and expiry.

        Raises:
            Unauthorized: Bad signature, malformed token, missing claims, expired
        """
        # Clients sometimes send the token JSON-quoted
        token = token.strip().strip("\"'")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "require": ["sub", "iat", "exp"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            logger.info("Rejected bearer token: %s", e)
            raise Unauthorized() from None

        try:
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            raise Unauthorized() from None

        if self._clock.now() >= expires_at:
            logger.info("Rejected expired bearer token for %s", payload["sub"])
            raise Unauthorized()

        subject = payload["sub"]
        if not isinstance(subject, str) or not subject:
            raise Unauthorized()

        return TokenClaims(
            subject=subject,
            email=payload.get("email"),
            phone=payload.get("phone"),
            issued_at=issued_at,
            expires_at=expires_at,
        )
