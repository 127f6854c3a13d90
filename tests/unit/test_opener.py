from __future__ import annotations

import asyncio
import errno
import os
import stat
from typing import TYPE_CHECKING

import pytest

from sfifo.cancellation import CancellationToken
from sfifo.endpoint import Direction
from sfifo.errors import FifoDeletedError, FifoTimeoutError, OpenCancelledError
from sfifo.opener import open_nonblocking, open_receiver, open_sender, open_with_retry
from sfifo.paths import create_fifo

if TYPE_CHECKING:
    from pathlib import Path


def _other_tasks() -> set[asyncio.Task[object]]:
    return asyncio.all_tasks() - {asyncio.current_task()}


@pytest.mark.asyncio
async def test_receiver_opens_without_a_writer(fifo_path: Path) -> None:
    with await open_receiver(fifo_path, create=True) as endpoint:
        assert endpoint.direction is Direction.RECEIVE
        assert not endpoint.closed
    assert endpoint.closed
    assert stat.S_ISFIFO(fifo_path.stat().st_mode)
    assert stat.S_IMODE(fifo_path.stat().st_mode) & 0o077 == 0


@pytest.mark.asyncio
async def test_receiver_without_create_requires_the_node(fifo_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        await open_receiver(fifo_path)


@pytest.mark.asyncio
async def test_sender_opens_once_a_reader_exists(fifo_path: Path) -> None:
    create_fifo(fifo_path)
    with await open_receiver(fifo_path) as receiver:
        with await open_sender(fifo_path, timeout=1.0) as sender:
            assert sender.direction is Direction.SEND
            await sender.write_all(b"ping")
        assert await receiver.read_exact(4) == b"ping"


@pytest.mark.asyncio
async def test_sender_waits_for_late_reader(fifo_path: Path) -> None:
    create_fifo(fifo_path)

    async def _late_reader() -> bytes:
        await asyncio.sleep(0.3)
        with await open_receiver(fifo_path) as receiver:
            return await receiver.read_exact(2)

    reader = asyncio.ensure_future(_late_reader())
    with await open_sender(fifo_path, timeout=3.0) as sender:
        await sender.write_all(b"ok")
    assert await reader == b"ok"


@pytest.mark.asyncio
async def test_sender_times_out_without_reader(fifo_path: Path) -> None:
    create_fifo(fifo_path)
    loop = asyncio.get_running_loop()
    started = loop.time()

    with pytest.raises(FifoTimeoutError) as exc_info:
        await open_sender(fifo_path, timeout=0.3)

    assert exc_info.value.code == "TIMEOUT"
    assert exc_info.value.timeout == 0.3
    assert isinstance(exc_info.value, TimeoutError)
    assert loop.time() - started < 2.0
    assert not _other_tasks()


@pytest.mark.asyncio
async def test_notify_sender_fails_when_fifo_is_deleted(fifo_path: Path) -> None:
    create_fifo(fifo_path)

    async def _delete_later() -> None:
        await asyncio.sleep(0.2)
        fifo_path.unlink()

    deleter = asyncio.ensure_future(_delete_later())
    with pytest.raises(FifoDeletedError) as exc_info:
        await asyncio.wait_for(open_sender(fifo_path, notify=True), timeout=3.0)
    await deleter

    assert exc_info.value.code == "DELETED"
    assert exc_info.value.path == fifo_path
    assert not _other_tasks()


@pytest.mark.asyncio
async def test_notify_sender_ignores_the_timeout(fifo_path: Path) -> None:
    create_fifo(fifo_path)

    async def _late_reader() -> None:
        await asyncio.sleep(0.4)
        with await open_receiver(fifo_path) as receiver:
            await receiver.read_exact(1)

    reader = asyncio.ensure_future(_late_reader())
    with await open_sender(fifo_path, timeout=0.1, notify=True) as sender:
        await sender.write_all(b"!")
    await reader


@pytest.mark.asyncio
async def test_missing_node_is_retried_until_created(fifo_path: Path) -> None:
    async def _create_and_read() -> bytes:
        await asyncio.sleep(0.2)
        with await open_receiver(fifo_path, create=True) as receiver:
            return await receiver.read_exact(3)

    reader = asyncio.ensure_future(_create_and_read())
    with await open_sender(fifo_path, timeout=3.0) as sender:
        await sender.write_all(b"abc")
    assert await reader == b"abc"


@pytest.mark.asyncio
async def test_non_transient_errors_propagate(tmp_path: Path) -> None:
    plain_dir = tmp_path / "dir"
    plain_dir.mkdir()

    with pytest.raises(OSError) as exc_info:
        await open_sender(plain_dir, timeout=1.0)

    assert exc_info.value.errno == errno.EISDIR


@pytest.mark.asyncio
async def test_retry_loop_honours_cancellation(fifo_path: Path) -> None:
    create_fifo(fifo_path)
    token = CancellationToken()
    asyncio.get_running_loop().call_later(0.15, token.cancel)

    with pytest.raises(OpenCancelledError) as exc_info:
        await open_with_retry(fifo_path, token, interval=0.05)

    assert exc_info.value.code == "CANCELLED"


@pytest.mark.asyncio
async def test_raw_nonblocking_sender_open_fails_without_reader(fifo_path: Path) -> None:
    create_fifo(fifo_path)
    with pytest.raises(OSError) as exc_info:
        open_nonblocking(fifo_path, Direction.SEND)
    assert exc_info.value.errno == errno.ENXIO


@pytest.mark.asyncio
async def test_many_timed_out_opens_leave_no_descriptors(fifo_path: Path) -> None:
    create_fifo(fifo_path)
    before = len(os.listdir("/proc/self/fd")) if os.path.isdir("/proc/self/fd") else None

    for _ in range(5):
        with pytest.raises(FifoTimeoutError):
            await open_sender(fifo_path, timeout=0.05)

    if before is not None:
        assert len(os.listdir("/proc/self/fd")) == before
    assert not _other_tasks()
