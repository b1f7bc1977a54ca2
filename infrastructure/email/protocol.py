"""EmailProvider protocol: the notification worker depends on this, not the concrete implementation."""

from typing import Optional, Protocol


class EmailProvider(Protocol):
    async def send_verification_email(
        self, email: str, first_name: Optional[str], token: str
    ) -> bool: ...

    async def send_welcome_email(
        self, email: str, first_name: Optional[str]
    ) -> bool: ...

    async def send_password_reset_email(
        self, email: str, first_name: Optional[str], token: str
    ) -> bool: ...
