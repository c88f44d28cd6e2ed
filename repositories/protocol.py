"""UserStore protocol. Services depend on this rather than on UserRepository."""

from datetime import datetime
from typing import Any, Optional, Protocol

from schemas.models.user import UserDoc


class UserStore(Protocol):
    async def find_by_email(self, email: str) -> Optional[UserDoc]: ...

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]: ...

    async def find_by_verification_token(self, token_hash: str) -> Optional[UserDoc]: ...

    async def find_by_reset_token(self, token_hash: str) -> Optional[UserDoc]: ...

    async def create(self, user: UserDoc) -> UserDoc: ...

    async def update_fields(self, user_id: str, fields: dict[str, Any]) -> bool: ...

    async def clear_expired_locks(self, now: datetime) -> int: ...

    async def list_users(self, text_filter: str = "", limit: int = 100) -> list[UserDoc]: ...

    async def delete(self, user_id: str) -> bool: ...
