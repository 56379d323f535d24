from __future__ import annotations

import uuid
from abc import ABC, abstractmethod

from ..kvstore import KeyValueStore

USER_ID_KEY = "weather_diary_user_id"


class IdentityProvider(ABC):
    @abstractmethod
    def get_or_create_user_id(self) -> str:
        """Return a user id that stays the same across sessions."""


class LocalIdentity(IdentityProvider):
    """Anonymous identity persisted in the key-value store."""

    def __init__(self, state: KeyValueStore) -> None:
        self.state = state

    def get_or_create_user_id(self) -> str:
        user_id = self.state.get(USER_ID_KEY)
        if isinstance(user_id, str) and user_id:
            return user_id
        user_id = f"user_{uuid.uuid4().hex}"
        self.state.set(USER_ID_KEY, user_id)
        return user_id


__all__ = ["IdentityProvider", "LocalIdentity", "USER_ID_KEY"]
