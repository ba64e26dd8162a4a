"""Tests for a single relay connection and its outbox."""

import asyncio

import pytest

from chatrelay.core.relay import Connection

from fakes import RecordingSocket


class TestConnection:
    @pytest.mark.asyncio
    async def test_delivers_in_fifo_order(self):
        socket = RecordingSocket()
        connection = Connection(socket.send)
        connection.start()

        for i in range(10):
            assert connection.deliver(f'{{"type": "t", "n": {i}}}')
        await connection.flush()

        assert [f["n"] for f in socket.frames] == list(range(10))
        await connection.close()

    @pytest.mark.asyncio
    async def test_deliver_after_close_is_refused(self):
        socket = RecordingSocket()
        connection = Connection(socket.send)
        connection.start()
        await connection.close()

        assert connection.deliver('{"type": "t"}') is False
        assert connection.state == "closed"
        assert socket.frames == []

    @pytest.mark.asyncio
    async def test_send_failure_keeps_writer_alive(self):
        calls: list[str] = []

        async def flaky_send(payload: str) -> None:
            calls.append(payload)
            if len(calls) == 1:
                raise ConnectionError("transient")

        connection = Connection(flaky_send)
        connection.start()
        connection.deliver("first")
        connection.deliver("second")
        await connection.flush()

        assert calls == ["first", "second"]
        await connection.close()

    @pytest.mark.asyncio
    async def test_close_releases_pending_flush(self):
        gate = asyncio.Event()

        async def blocked_send(payload: str) -> None:
            await gate.wait()

        connection = Connection(blocked_send)
        connection.start()
        connection.deliver("a")
        connection.deliver("b")
        flushing = asyncio.create_task(connection.flush())
        await asyncio.sleep(0)

        await connection.close()

        await asyncio.wait_for(flushing, timeout=1)

    def test_ids_are_prefixed_and_unique(self):
        ids = {Connection(RecordingSocket().send).id for _ in range(50)}
        assert len(ids) == 50
        assert all(i.startswith("conn_") for i in ids)
