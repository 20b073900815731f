"""Catalog reads, rename/delete mutations, and lineage event recording."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from common.constants import CATALOG_DEFAULT_PAGE_SIZE, CATALOG_MAX_PAGE_SIZE, UPLOADER_METADATA_KEY
from common.types import CatalogObject, LineageAction, LineageEvent, ObjectPage, RenameResult
from coordinator.exceptions import (
    BackendUnavailableError,
    DestinationExistsError,
    InvalidInputError,
    ObjectNotFoundError,
    SourceNotFoundError,
)
from coordinator.naming import PrefixPredicate, derive_destination_key, is_synthetic_prefix, validate_object_name
from coordinator.object_store import ObjectStore
from coordinator.repositories.audit_repository import AuditRepository
from coordinator.utils import utc_now

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Mutations against the object store plus the audit trail they leave.

    Rename is check-then-copy-then-delete. The backend has no atomic rename
    and nothing here serializes concurrent renames of the same key, so two
    racing requests can both pass the existence checks.
    """

    def __init__(
        self,
        object_store: ObjectStore,
        audit_repo: AuditRepository = None,
        is_synthetic: PrefixPredicate = is_synthetic_prefix,
    ):
        self.object_store = object_store
        self.audit_repo = audit_repo or AuditRepository()
        self.is_synthetic = is_synthetic

    def record_event(
        self,
        action: LineageAction,
        key: str,
        from_key: Optional[str] = None,
        user: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> LineageEvent:
        """
        Append one immutable lineage event to the audit log.
        """
        event = LineageEvent(
            timestamp=utc_now(),
            action=action,
            key=key,
            from_key=from_key,
            user=user,
            meta=meta or {},
        )
        return self.audit_repo.append(event)

    async def rename(self, from_key: str, new_name: str, user: Optional[str] = None) -> RenameResult:
        """
        Rename an object to `new_name`, keeping organizational prefixes and
        dropping synthetic ones.

        Args:
            from_key: Current key of the object
            new_name: New leaf name (no path separators)
            user: Who asked for the rename, recorded on the event

        Returns:
            RenameResult; unchanged=True when the destination equals the source

        Raises:
            InvalidNameError: If new_name is not a plain name
            SourceNotFoundError: If from_key does not exist
            DestinationExistsError: If the destination key is taken
            BackendUnavailableError: If any store call fails
        """
        if not isinstance(from_key, str) or not from_key.strip():
            raise InvalidInputError("fromKey is required")
        new_name = validate_object_name(new_name)

        to_key = derive_destination_key(from_key, new_name, self.is_synthetic)
        if to_key == from_key:
            logger.info(f"Rename of {from_key} is a no-op")
            return RenameResult(from_key=from_key, key=to_key, unchanged=True)

        if await self.object_store.head_object(from_key) is None:
            raise SourceNotFoundError(f"Object not found: {from_key}")
        if await self.object_store.head_object(to_key) is not None:
            raise DestinationExistsError(f"Destination already exists: {to_key}")

        await self.object_store.copy_object(from_key, to_key)
        logger.info(f"Copied {from_key} -> {to_key}")

        try:
            await self.object_store.delete_object(from_key)
        except BackendUnavailableError:
            # No rollback: both keys now exist until someone reconciles them.
            logger.error(f"Rename left a duplicate: copied to {to_key} but could not delete {from_key}")
            raise

        self.record_event(LineageAction.RENAME, key=to_key, from_key=from_key, user=user)
        logger.info(f"Renamed {from_key} -> {to_key}")
        return RenameResult(
            from_key=from_key,
            key=to_key,
            unchanged=False,
            last_modified=await self._lookup_last_modified(to_key),
        )

    async def _lookup_last_modified(self, key: str) -> Optional[datetime]:
        # The rename already happened; a failed read only loses the timestamp.
        try:
            head = await self.object_store.head_object(key)
        except BackendUnavailableError as e:
            logger.warning(f"Could not read last-modified time of {key}: {e}")
            return None
        return head.last_modified if head else None

    async def delete(self, key: str, user: Optional[str] = None) -> None:
        """
        Delete an object and record a delete event.

        Raises:
            ObjectNotFoundError: If the key does not exist
            BackendUnavailableError: If a store call fails
        """
        head = await self.object_store.head_object(key)
        if head is None:
            raise ObjectNotFoundError(f"Object not found: {key}")

        await self.object_store.delete_object(key)
        self.record_event(
            LineageAction.DELETE,
            key=key,
            user=user,
            meta={"size": head.size, "cid": head.content_identifier},
        )
        logger.info(f"Deleted {key}")

    async def list_catalog(
        self,
        prefix: str = "",
        page_token: Optional[str] = None,
        max_items: Optional[int] = None,
    ) -> ObjectPage:
        if not max_items or max_items < 1:
            max_items = CATALOG_DEFAULT_PAGE_SIZE
        max_items = min(max_items, CATALOG_MAX_PAGE_SIZE)
        return await self.object_store.list_objects(prefix or "", page_token, max_items)

    async def get_item(self, key: str) -> CatalogObject:
        if not key:
            raise InvalidInputError("key is required")

        head = await self.object_store.head_object(key)
        if head is None:
            raise ObjectNotFoundError(f"Object not found: {key}")

        return CatalogObject(
            key=key,
            size=head.size,
            last_modified=head.last_modified,
            content_type=head.content_type,
            content_identifier=head.content_identifier,
            uploader=head.metadata.get(UPLOADER_METADATA_KEY),
        )
