"""Owner-scope providers consumed by the engine."""

from abc import ABC, abstractmethod
from typing import Optional

from common.config import Config


class SessionProvider(ABC):
    """Source of the signed-in user's owner scope."""

    @abstractmethod
    def current_owner_scope(self) -> Optional[str]:
        """Return the owner identifier, or None when nobody is signed in."""


class StaticSession(SessionProvider):
    def __init__(self, owner_scope: Optional[str]):
        self.owner_scope = owner_scope

    def current_owner_scope(self) -> Optional[str]:
        return self.owner_scope


class ConfigSession(SessionProvider):
    """Reads the owner scope from the config file on every call, so sign-in changes apply immediately."""

    def __init__(self, config: Config):
        self.config = config

    def current_owner_scope(self) -> Optional[str]:
        return self.config.get_owner_id()
