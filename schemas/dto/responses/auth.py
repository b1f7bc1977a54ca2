"""
Response DTOs returned by the account service.

UserInfoResponse       : sanitized account projection (no hash, no tokens)
AuthTokensResponse     : login / refresh result
ForgotPasswordResponse : constant shape regardless of account existence
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemas.models.account import AccountDoc

FORGOT_PASSWORD_MESSAGE = "if the email exists, a password reset link has been sent"


class UserInfoResponse(BaseModel):
    """Public view of an account: used in login, refresh and profile calls."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    first_name: str
    last_name: str
    email: str
    is_verified: bool
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @classmethod
    def from_account(cls, account: AccountDoc) -> "UserInfoResponse":
        return cls(
            id=account.account_id,
            first_name=account.first_name,
            last_name=account.last_name,
            email=account.email,
            is_verified=account.is_verified,
            created_at=account.created_at,
            last_login_at=account.last_login_at,
        )


class AuthTokensResponse(BaseModel):
    """Access + refresh pair with the caller's user info."""

    model_config = ConfigDict(populate_by_name=True)

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int  # access token lifetime, seconds
    issued_at: datetime
    user: UserInfoResponse


class ForgotPasswordResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str = FORGOT_PASSWORD_MESSAGE
