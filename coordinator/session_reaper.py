"""Background task that aborts upload sessions abandoned by their clients."""

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from coordinator import config
from coordinator.exceptions import VaultError
from coordinator.repositories.session_repository import SessionRepository
from coordinator.services.upload_service import UploadService
from coordinator.utils import utc_now

logger = logging.getLogger(__name__)


class StaleSessionReaper:
    """
    Periodically aborts sessions left open longer than the session TTL so
    the backend releases their reserved parts.
    """

    def __init__(
        self,
        upload_service_factory,
        ttl_seconds: int = None,
        interval_seconds: int = None,
        session_repo: SessionRepository = None,
    ):
        """
        Args:
            upload_service_factory: Callable returning an UploadService
            ttl_seconds: Idle time after which an open session is aborted
            interval_seconds: Time between sweeps
        """
        self.upload_service_factory = upload_service_factory
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.SESSION_TTL_SECONDS
        self.interval_seconds = interval_seconds if interval_seconds is not None else config.REAPER_INTERVAL_SECONDS
        self.session_repo = session_repo or SessionRepository()
        self._running = False
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._running:
            logger.warning("Session reaper already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(
            f"Started stale session reaper (ttl: {self.ttl_seconds}s, interval: {self.interval_seconds}s)"
        )

    async def stop(self) -> None:
        """Stop the background sweep task."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Stopped stale session reaper")

    async def _run(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)

                if not self._running:
                    break

                await self.sweep()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in session reaper: {e}", exc_info=True)

    async def sweep(self) -> int:
        """
        Abort every stale open session once.

        Returns:
            Number of sessions aborted in this sweep
        """
        cutoff = utc_now() - timedelta(seconds=self.ttl_seconds)
        stale = self.session_repo.find_stale_sessions(cutoff)
        if not stale:
            logger.debug("No stale upload sessions")
            return 0

        logger.info(f"Reaping {len(stale)} stale upload sessions")
        upload_service = self.upload_service_factory()
        aborted = 0

        for session in stale:
            try:
                if await upload_service.abort_session(session.session_id, session.object_key):
                    aborted += 1
                    logger.info(f"Reaped upload session {session.session_id} for {session.object_key}")
            except VaultError as e:
                logger.warning(f"Could not reap upload session {session.session_id}: {e}")

        return aborted
