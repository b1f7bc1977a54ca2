"""
Token purposes and signed-token claims.

ACCESS / REFRESH tokens are self-contained JWTs verified by signature and
expiry. VERIFY / RESET tokens are opaque random strings whose validity lives
on the account document (see AccountDoc).
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TokenPurpose(str, Enum):
    ACCESS = "ACCESS"
    REFRESH = "REFRESH"
    VERIFY = "VERIFY"
    RESET = "RESET"


SIGNED_PURPOSES = (TokenPurpose.ACCESS, TokenPurpose.REFRESH)


class TokenClaims(BaseModel):
    """Decoded claims of a verified access or refresh token."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sub: str  # account id
    type: TokenPurpose
    iat: int
    exp: int
    email: Optional[str] = None  # access tokens only

    @property
    def account_id(self) -> str:
        return self.sub
