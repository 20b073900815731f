"""Tests for the stale session reaper."""

import pytest

from common.types import SessionState
from coordinator.repositories.session_repository import SessionRepository
from coordinator.services.upload_service import UploadService
from coordinator.session_reaper import StaleSessionReaper


@pytest.fixture
def upload_service(test_db, object_store):
    return UploadService(object_store)


def make_reaper(upload_service, ttl_seconds):
    return StaleSessionReaper(lambda: upload_service, ttl_seconds=ttl_seconds, interval_seconds=3600)


@pytest.mark.asyncio
async def test_sweep_aborts_stale_sessions(upload_service, object_store):
    first = await upload_service.create_session("a.bin", "application/octet-stream", 10)
    second = await upload_service.create_session("b.bin", "application/octet-stream", 10)

    # A negative TTL puts the cutoff in the future so every open session is stale.
    aborted = await make_reaper(upload_service, -60).sweep()

    assert aborted == 2
    assert SessionRepository.get_session(first.session_id).state == SessionState.ABORTED
    assert SessionRepository.get_session(second.session_id).state == SessionState.ABORTED
    assert object_store.uploads == {}


@pytest.mark.asyncio
async def test_sweep_leaves_fresh_sessions(upload_service, object_store):
    session = await upload_service.create_session("a.bin", "application/octet-stream", 10)

    aborted = await make_reaper(upload_service, 3600).sweep()

    assert aborted == 0
    assert SessionRepository.get_session(session.session_id).state == SessionState.CREATED
    assert session.session_id in object_store.uploads


@pytest.mark.asyncio
async def test_sweep_skips_finished_sessions(upload_service, object_store):
    session = await upload_service.create_session("a.bin", "application/octet-stream", 10)
    await upload_service.abort_session(session.session_id, "a.bin")

    assert await make_reaper(upload_service, -60).sweep() == 0


@pytest.mark.asyncio
async def test_sweep_survives_backend_failure(upload_service, object_store):
    session = await upload_service.create_session("a.bin", "application/octet-stream", 10)
    object_store.failing.add("abort_multipart_upload")

    aborted = await make_reaper(upload_service, -60).sweep()

    assert aborted == 0
    assert SessionRepository.get_session(session.session_id).state == SessionState.CREATED


@pytest.mark.asyncio
async def test_start_and_stop(upload_service):
    reaper = make_reaper(upload_service, 3600)

    await reaper.start()
    assert reaper._running is True

    await reaper.stop()
    assert reaper._running is False
