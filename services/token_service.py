"""
Token codec: opaque tokens and signed access/refresh JWTs.

Opaque tokens (email verification, password reset) are random strings whose
validity is decided by the account store; revoking one means clearing the
stored digest. Access and refresh tokens are HS256 JWTs validated offline by
signature, issuer, audience and expiry, so ordinary API calls need no
storage round-trip.

The signing key is checked once when the codec is built. A secret shorter
than 32 bytes raises ConfigError, which aborts startup.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional, Tuple

import jwt
from pydantic import ValidationError as PydanticValidationError

from config import JWTSettings
from errors import (
    ConfigError,
    ExpiredTokenError,
    InvalidTokenError,
    MalformedTokenError,
)
from schemas.models.token import SIGNED_PURPOSES, TokenClaims, TokenPurpose
from shared.datetime_utils import Clock, utcnow
from shared.generators import generate_secure_token
from shared.logging import get_logger

log = get_logger(__name__)

JWT_ALGORITHM = "HS256"
MIN_SECRET_BYTES = 32  # 256 bits for HS256


class TokenCodec:
    def __init__(self, settings: JWTSettings, clock: Clock = utcnow) -> None:
        secret = settings.jwt_secret or ""
        if len(secret.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ConfigError(
                f"JWT_SECRET must be at least {MIN_SECRET_BYTES} bytes long for {JWT_ALGORITHM}",
                field="jwt_secret",
            )
        self._secret = secret
        self._issuer = settings.jwt_issuer
        self._audience = settings.jwt_audience
        self.access_ttl_seconds = settings.access_token_ttl_seconds
        self.refresh_ttl_seconds = settings.refresh_token_ttl_seconds
        self._clock = clock

    # ── Opaque tokens ────────────────────────────────────────────────────────

    @staticmethod
    def new_opaque_token() -> str:
        """Random URL-safe token (256 bits) for verify/reset links."""
        return generate_secure_token()

    # ── Signed tokens ────────────────────────────────────────────────────────

    def _encode(self, claims: dict, ttl_seconds: int) -> str:
        now = self._clock()
        payload = {
            "iss": self._issuer,
            "aud": self._audience,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
            **claims,
        }
        return jwt.encode(payload, self._secret, algorithm=JWT_ALGORITHM)

    def issue_access_token(self, account_id: str, email: str) -> Tuple[str, int]:
        """Return ``(token, expires_in_seconds)`` for a short-lived access token."""
        token = self._encode(
            {
                "sub": str(account_id),
                "email": email,
                "type": TokenPurpose.ACCESS.value,
            },
            self.access_ttl_seconds,
        )
        return token, self.access_ttl_seconds

    def issue_refresh_token(self, account_id: str) -> str:
        return self._encode(
            {"sub": str(account_id), "type": TokenPurpose.REFRESH.value},
            self.refresh_ttl_seconds,
        )

    def parse_and_verify(self, token: str) -> TokenClaims:
        """Verify *token* and return its claims.

        Raises:
            ExpiredTokenError: signature is fine but ``exp`` has passed.
            MalformedTokenError: not a decodable JWT.
            InvalidTokenError: bad signature, wrong issuer/audience, or a
                type claim that is not ACCESS/REFRESH.
        """
        if not token:
            raise MalformedTokenError("malformed token")
        try:
            raw = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                # exp is checked below against the codec clock
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["exp", "iat", "sub"],
                },
            )
        except jwt.DecodeError as e:
            # InvalidSignatureError is a DecodeError subclass; keep it generic
            if isinstance(e, jwt.InvalidSignatureError):
                raise InvalidTokenError("invalid or expired token")
            raise MalformedTokenError("malformed token")
        except jwt.InvalidTokenError as e:
            log.debug("jwt_rejected", reason=type(e).__name__)
            raise InvalidTokenError("invalid or expired token")

        try:
            claims = TokenClaims.model_validate(raw)
        except PydanticValidationError:
            raise InvalidTokenError("invalid or expired token")

        if claims.type not in SIGNED_PURPOSES:
            raise InvalidTokenError("invalid or expired token")
        if claims.exp <= int(self._clock().timestamp()):
            raise ExpiredTokenError("token has expired")
        return claims

    def verify_refresh_token(self, token: str) -> TokenClaims:
        claims = self.parse_and_verify(token)
        if claims.type is not TokenPurpose.REFRESH:
            raise InvalidTokenError("not a refresh token")
        return claims

    def token_type(self, token: str) -> Optional[str]:
        """Type claim of a valid token, ``None`` when the token does not verify."""
        try:
            return self.parse_and_verify(token).type.value
        except InvalidTokenError:
            return None
