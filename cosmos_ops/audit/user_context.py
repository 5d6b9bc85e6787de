"""
User Context

Supplies the principal recorded in created_by/updated_by. The audit field
manager asks for it once per stamping call.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)

SYSTEM_USER = "System"


class UserContext(ABC):
    """Source of the current principal name."""

    @abstractmethod
    def get_current_user(self) -> Optional[str]:
        """Return the current principal, or None when unknown."""


class SystemUserContext(UserContext):
    """Fixed principal, for background jobs and services without a caller identity."""

    def __init__(self, name: str = SYSTEM_USER):
        self._name = name

    def get_current_user(self) -> Optional[str]:
        return self._name


class DelegateUserContext(UserContext):
    """
    Principal resolved by a caller-supplied function.

    A failing provider never fails the write: the error is logged and the
    system principal is used instead.

    Example:
        ```python
        current_user = contextvars.ContextVar("current_user", default=None)
        context = DelegateUserContext(current_user.get)
        ```
    """

    def __init__(self, provider: Callable[[], Optional[str]], fallback: str = SYSTEM_USER):
        self._provider = provider
        self._fallback = fallback

    def get_current_user(self) -> Optional[str]:
        try:
            return self._provider()
        except Exception as e:
            logger.warning(f"[get_current_user] User provider failed, using '{self._fallback}': {e}")
            return self._fallback
