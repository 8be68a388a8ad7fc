"""
Delivery of temporary passwords.

There is no real email channel; the default notifier only logs that a
temporary password was issued.
"""
import logging
from abc import ABC, abstractmethod

from backend.app.models.user_orm import UserORM

logger = logging.getLogger(__name__)


class TemporaryPasswordNotifier(ABC):
    """Interface for handing a temporary password to its owner."""

    @abstractmethod
    async def notify(self, user: UserORM, temporary_password: str) -> None:
        ...


class LoggingNotifier(TemporaryPasswordNotifier):

    def __init__(self, include_password: bool = False):
        self.include_password = include_password

    async def notify(self, user: UserORM, temporary_password: str) -> None:
        if self.include_password:
            logger.warning(f"Temporary password for {user.email}: {temporary_password}")
        else:
            logger.info(f"Temporary password issued for user {user.id}")
