"""Upload session coordination: create, sign chunks, complete, abort."""

import logging
from datetime import timedelta
from typing import List, Optional

from common.constants import DEFAULT_CONTENT_TYPE, MAX_PARTS, MIN_PART_NUMBER, UPLOADER_METADATA_KEY
from common.types import (
    ChunkAuthorization,
    ChunkReceipt,
    CompletedUpload,
    LineageAction,
    SessionState,
    UploadSession,
)
from coordinator import config
from coordinator.exceptions import (
    BackendUnavailableError,
    IncompleteManifestError,
    InvalidChunkNumberError,
    InvalidSizeError,
    SessionAlreadyFinalizedError,
    SessionNotFoundError,
)
from coordinator.naming import validate_object_name
from coordinator.object_store import ObjectStore
from coordinator.part_planner import count_parts, plan_part_size
from coordinator.repositories.session_repository import SessionRepository
from coordinator.services.catalog_service import CatalogService
from coordinator.utils import utc_now

logger = logging.getLogger(__name__)

OPEN_STATES = (SessionState.CREATED, SessionState.SIGNING)


def validate_chunk_number(chunk_number) -> int:
    if isinstance(chunk_number, bool) or not isinstance(chunk_number, int):
        raise InvalidChunkNumberError(f"Chunk number must be an integer, got {chunk_number!r}")
    if not MIN_PART_NUMBER <= chunk_number <= MAX_PARTS:
        raise InvalidChunkNumberError(
            f"Chunk number must be between {MIN_PART_NUMBER} and {MAX_PARTS}, got {chunk_number}"
        )
    return chunk_number


def validate_manifest(receipts: List[ChunkReceipt], total_chunks: int) -> None:
    """
    Require exactly one receipt with a non-empty integrity tag for every
    chunk number in 1..total_chunks.

    Raises:
        IncompleteManifestError: On an empty manifest, empty tag, duplicate,
            gap or out-of-range chunk number
    """
    if not receipts:
        raise IncompleteManifestError("At least one part receipt is required")

    seen = set()
    for receipt in receipts:
        number = receipt.chunk_number
        if isinstance(number, bool) or not isinstance(number, int):
            raise IncompleteManifestError(f"Invalid part number {number!r}")
        if not receipt.integrity_tag or not str(receipt.integrity_tag).strip():
            raise IncompleteManifestError(f"Part {number} has no ETag")
        if number in seen:
            raise IncompleteManifestError(f"Part {number} is listed more than once")
        if not 1 <= number <= total_chunks:
            raise IncompleteManifestError(f"Part {number} is outside 1..{total_chunks}")
        seen.add(number)

    missing = [n for n in range(1, total_chunks + 1) if n not in seen]
    if missing:
        shown = ", ".join(str(n) for n in missing[:10])
        raise IncompleteManifestError(
            f"Missing {len(missing)} of {total_chunks} parts: {shown}"
            + (" ..." if len(missing) > 10 else "")
        )


class UploadService:
    """
    Owns the lifecycle of chunked uploads. Chunk bytes never pass through
    here; clients PUT them straight to the backend with presigned URLs.

    CREATED -> SIGNING* -> COMPLETING -> COMPLETED
    CREATED | SIGNING -> ABORTING -> ABORTED
    """

    def __init__(
        self,
        object_store: ObjectStore,
        catalog_service: CatalogService = None,
        session_repo: SessionRepository = None,
    ):
        self.object_store = object_store
        self.catalog_service = catalog_service or CatalogService(object_store)
        self.session_repo = session_repo or SessionRepository()

    async def create_session(
        self,
        name: str,
        content_type: Optional[str],
        declared_size,
    ) -> UploadSession:
        """
        Reserve a multipart upload for `name` and plan its chunking.

        Raises:
            InvalidNameError: If name is not a plain file name
            InvalidSizeError: If declared_size is not a positive whole number
            BackendUnavailableError: If the backend cannot reserve the upload
        """
        key = validate_object_name(name)
        if isinstance(declared_size, float) and declared_size.is_integer():
            declared_size = int(declared_size)
        chunk_size = plan_part_size(declared_size)
        if not isinstance(declared_size, int):
            raise InvalidSizeError(f"Upload size must be a whole number of bytes, got {declared_size}")

        total_chunks = count_parts(declared_size, chunk_size)
        if total_chunks > MAX_PARTS:
            logger.warning(
                f"Upload of {declared_size} bytes needs {total_chunks} parts, above the {MAX_PARTS} part limit"
            )

        content_type = content_type or DEFAULT_CONTENT_TYPE
        session_id = await self.object_store.reserve_multipart_upload(key, content_type)

        try:
            session = self.session_repo.create_session(
                session_id=session_id,
                object_key=key,
                content_type=content_type,
                declared_size=declared_size,
                chunk_size=chunk_size,
                total_chunks=total_chunks,
            )
        except BaseException:
            # No row means the reaper can never find this reservation.
            await self._release_reservation(session_id, key)
            raise

        logger.info(
            f"Created upload session {session_id} for {key} "
            f"({declared_size} bytes, {total_chunks} x {chunk_size} byte parts)"
        )
        return session

    async def sign_chunk(self, session_id: str, key: str, chunk_number) -> ChunkAuthorization:
        """
        Issue a presigned URL for one chunk. Re-signing a chunk number is
        allowed and does not touch parts already stored.

        Raises:
            InvalidChunkNumberError: If chunk_number is outside 1..10000
            SessionNotFoundError: If the session is unknown
            SessionAlreadyFinalizedError: If the session is completed or aborted
            BackendUnavailableError: If signing fails
        """
        chunk_number = validate_chunk_number(chunk_number)
        session = self._get_session(session_id, key)

        if not self.session_repo.transition(session.session_id, OPEN_STATES, SessionState.SIGNING):
            raise self._finalized_error(session_id)

        expires_in = config.PRESIGN_EXPIRY_SECONDS
        url = await self.object_store.authorize_chunk_upload(session_id, key, chunk_number, expires_in)

        logger.debug(f"Signed part {chunk_number} of session {session_id}")
        return ChunkAuthorization(
            session_id=session_id,
            chunk_number=chunk_number,
            url=url,
            expires_at=utc_now() + timedelta(seconds=expires_in),
        )

    async def complete_session(
        self,
        session_id: str,
        key: str,
        receipts: List[ChunkReceipt],
        uploader: Optional[str] = None,
    ) -> CompletedUpload:
        """
        Assemble the uploaded chunks into the final object and record an
        upload (or replace) lineage event.

        The returned content identifier may be None when the backend has not
        published it yet.

        Raises:
            SessionNotFoundError: If the session is unknown
            SessionAlreadyFinalizedError: If the session was already completed or aborted
            IncompleteManifestError: If receipts do not cover 1..N exactly once
            BackendUnavailableError: If assembly fails; the session stays open for a retry
        """
        session = self._get_session(session_id, key)
        if not session.state.is_open:
            raise self._finalized_error(session_id)
        validate_manifest(receipts, session.total_chunks)

        uploader = uploader or config.DEFAULT_UPLOADER

        if not self.session_repo.transition(session_id, OPEN_STATES, SessionState.COMPLETING):
            raise self._finalized_error(session_id)

        try:
            existing = await self.object_store.head_object(key)
            content_identifier = await self.object_store.assemble_upload(
                session_id, key, receipts, {UPLOADER_METADATA_KEY: uploader}
            )
        except BaseException:
            self.session_repo.transition(session_id, [SessionState.COMPLETING], SessionState.SIGNING)
            logger.warning(f"Completion of session {session_id} failed; session reopened for retry")
            raise

        self.session_repo.transition(session_id, [SessionState.COMPLETING], SessionState.COMPLETED)

        if content_identifier is None:
            content_identifier = await self._lookup_content_identifier(key)

        action = LineageAction.REPLACE if existing is not None else LineageAction.UPLOAD
        self.catalog_service.record_event(
            action,
            key=key,
            user=uploader,
            meta={
                "size": session.declared_size,
                "cid": content_identifier,
                "uploadId": session_id,
            },
        )

        logger.info(f"Completed upload session {session_id} for {key} ({action.value}, cid={content_identifier})")
        return CompletedUpload(
            key=key,
            content_identifier=content_identifier,
            uploader=uploader,
            action=action,
        )

    async def abort_session(self, session_id: str, key: str) -> bool:
        """
        Release backend storage held by an unfinished session.

        Safe to repeat: aborting an aborted session, or one the backend no
        longer knows, is a no-op.

        Returns:
            True if the session is (now) aborted, False if it had already completed

        Raises:
            SessionAlreadyFinalizedError: If the session is being completed right now
            BackendUnavailableError: If the backend abort call fails
        """
        session = self.session_repo.get_session(session_id)
        if session is not None and session.object_key != key:
            raise SessionNotFoundError(f"Upload session {session_id} does not belong to {key}")

        if session is None:
            await self.object_store.abort_multipart_upload(session_id, key)
            logger.info(f"Aborted untracked upload session {session_id} for {key}")
            return True

        if not self.session_repo.transition(session_id, OPEN_STATES, SessionState.ABORTING):
            current = self.session_repo.get_session(session_id)
            if current.state in (SessionState.ABORTED, SessionState.ABORTING):
                return True
            if current.state == SessionState.COMPLETED:
                logger.info(f"Abort ignored for completed session {session_id}")
                return False
            raise self._finalized_error(session_id)

        try:
            await self.object_store.abort_multipart_upload(session_id, key)
        except BaseException:
            self.session_repo.transition(session_id, [SessionState.ABORTING], session.state)
            logger.warning(f"Abort of session {session_id} failed; session left {session.state.value}")
            raise

        self.session_repo.transition(session_id, [SessionState.ABORTING], SessionState.ABORTED)
        logger.info(f"Aborted upload session {session_id} for {key}")
        return True

    async def _release_reservation(self, session_id: str, key: str) -> None:
        try:
            await self.object_store.abort_multipart_upload(session_id, key)
        except BackendUnavailableError as e:
            logger.error(f"Could not release reservation {session_id} for {key}: {e}")
            return
        logger.warning(f"Released reservation {session_id} for {key} after the session could not be stored")

    def _get_session(self, session_id: str, key: str) -> UploadSession:
        session = self.session_repo.get_session(session_id)
        if session is None or session.object_key != key:
            raise SessionNotFoundError(f"Upload session {session_id} not found for {key}")
        return session

    def _finalized_error(self, session_id: str) -> SessionAlreadyFinalizedError:
        current = self.session_repo.get_session(session_id)
        state = current.state.value if current else "UNKNOWN"
        return SessionAlreadyFinalizedError(f"Upload session {session_id} is {state}")

    async def _lookup_content_identifier(self, key: str) -> Optional[str]:
        try:
            head = await self.object_store.head_object(key)
        except BackendUnavailableError as e:
            logger.warning(f"Could not read content identifier for {key} yet: {e}")
            return None
        return head.content_identifier if head else None
