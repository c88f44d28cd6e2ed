"""EmailProvider protocol. Services depend on this rather than on a concrete sender."""

from typing import Protocol


class EmailProvider(Protocol):
    async def send_verification_email(self, email: str, link: str) -> bool: ...

    async def send_password_reset_email(self, email: str, link: str) -> bool: ...
