"""Tests for the SQL backing store's behaviour under concurrent requests."""

import asyncio
import time

import pytest
from sqlalchemy import event

from conftest import USER_ID


@pytest.mark.asyncio
async def test_store_io_does_not_block_event_loop(store) -> None:
    def slow_query(conn, cursor, statement, parameters, context, executemany):
        time.sleep(0.3)

    event.listen(store.engine, "before_cursor_execute", slow_query)
    ticks = 0
    running = True

    async def heartbeat():
        nonlocal ticks
        while running:
            ticks += 1
            await asyncio.sleep(0.01)

    beat = asyncio.create_task(heartbeat())
    try:
        await store.select("chats", filters={"user_id": USER_ID})
        await store.select("folders", filters={"user_id": USER_ID})
    finally:
        running = False
        await beat
        event.remove(store.engine, "before_cursor_execute", slow_query)

    assert ticks >= 10


@pytest.mark.asyncio
async def test_concurrent_writes_are_serialised(store) -> None:
    await asyncio.gather(*[
        store.insert("folders", {"user_id": USER_ID, "name": f"folder {i}"})
        for i in range(5)
    ])

    rows = await store.select("folders", filters={"user_id": USER_ID})
    assert sorted(r["name"] for r in rows) == [f"folder {i}" for i in range(5)]
