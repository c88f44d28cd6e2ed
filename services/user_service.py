"""User-admin operations: list with a text filter, edit profile fields, delete."""

from __future__ import annotations

from errors import NotFoundError, ValidationError
from repositories.protocol import UserStore
from schemas.dto.requests.users import EditUserRequest
from schemas.models.user import UserDoc
from shared.logging import get_logger

log = get_logger(__name__)

MAX_LISTED_USERS = 100


class UserService:
    def __init__(self, store: UserStore) -> None:
        self._store = store

    async def list_users(self, text_filter: str = "") -> list[UserDoc]:
        return await self._store.list_users(text_filter.strip(), limit=MAX_LISTED_USERS)

    async def edit_user(self, user_id: str, data: EditUserRequest, actor_id: str) -> UserDoc:
        fields = data.to_update()
        if not fields:
            raise ValidationError("no fields to update")

        if not await self._store.update_fields(user_id, fields):
            raise NotFoundError("user not found")

        log.info("user_edited", user_id=user_id, actor_id=actor_id, fields=sorted(fields))
        user = await self._store.find_by_id(user_id)
        if user is None:
            raise NotFoundError("user not found")
        return user

    async def delete_user(self, user_id: str, actor_id: str) -> None:
        if not await self._store.delete(user_id):
            raise NotFoundError("user not found")
        log.info("user_deleted", user_id=user_id, actor_id=actor_id)
