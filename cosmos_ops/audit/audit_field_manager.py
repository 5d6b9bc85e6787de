"""
Audit Field Manager

Stamps created/updated metadata onto documents before they are written.
Every write path of DocumentManager and the bulk engine goes through it,
so audit fields are never set by hand anywhere else.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import TypeAdapter

from ..data_management_operations.models.entities import CosmosDocument
from .user_context import SYSTEM_USER, SystemUserContext, UserContext

logger = logging.getLogger(__name__)

_DATETIME_ADAPTER = TypeAdapter(datetime)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AuditFieldManager:
    """
    Applies audit metadata for create, update and upsert writes.

    The principal is resolved once per call and the clock is read once per
    call, so every document stamped by one call (a whole bulk batch, for
    example) carries the same user and instant.

    Args:
        user_context: Source of the current principal; defaults to "System"
        clock: Zero-argument callable returning an aware UTC datetime
    """

    def __init__(
        self,
        user_context: Optional[UserContext] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self._user_context = user_context or SystemUserContext()
        self._clock = clock

    def _resolve_user(self) -> str:
        user = self._user_context.get_current_user()
        return user if user else SYSTEM_USER

    def set_create_audit_fields(self, item: CosmosDocument) -> None:
        """Create stamp: all four audit fields set to (now, user); item marked active."""
        self._stamp_create(item, self._clock(), self._resolve_user())

    def set_update_audit_fields(self, item: CosmosDocument) -> None:
        """
        Update stamp: updated_on_utc/updated_by change.

        A document that somehow lacks created_on_utc has it backfilled
        with the same instant and principal.
        """
        now = self._clock()
        user = self._resolve_user()
        if item.created_on_utc is None:
            item.created_on_utc = now
            item.created_by = user
        item.updated_on_utc = now
        item.updated_by = user

    def set_upsert_audit_fields(self, item: CosmosDocument) -> None:
        """
        Upsert stamp.

        A document without created_on_utc is treated as new and gets the
        create stamp; otherwise created_* is left untouched and only
        updated_* is refreshed.
        """
        self._stamp_upsert(item, self._clock(), self._resolve_user())

    def set_bulk_audit_fields(self, items: Sequence[CosmosDocument], is_create_operation: bool) -> None:
        """
        Stamp a batch with one instant and one principal.

        Create operations get the create stamp; otherwise each document is
        upsert-stamped on its own, since a bulk upsert may mix new and
        existing documents.
        """
        now = self._clock()
        user = self._resolve_user()
        for item in items:
            if is_create_operation:
                self._stamp_create(item, now, user)
            else:
                self._stamp_upsert(item, now, user)
        logger.debug(
            f"[set_bulk_audit_fields] Stamped {len(items)} documents "
            f"(create={is_create_operation}, user={user})"
        )

    @staticmethod
    def _stamp_create(item: CosmosDocument, now: datetime, user: str) -> None:
        item.created_on_utc = now
        item.updated_on_utc = now
        item.created_by = user
        item.updated_by = user
        item.deleted = False

    @classmethod
    def _stamp_upsert(cls, item: CosmosDocument, now: datetime, user: str) -> None:
        if item.created_on_utc is None:
            cls._stamp_create(item, now, user)
            return
        item.updated_on_utc = now
        item.updated_by = user

    def update_patch_operations(self) -> List[Dict[str, Any]]:
        """Store patch operations that update-stamp a document in place."""
        now = _DATETIME_ADAPTER.dump_python(self._clock(), mode="json")
        return [
            {"op": "set", "path": "/updated_on_utc", "value": now},
            {"op": "set", "path": "/updated_by", "value": self._resolve_user()},
        ]
