"""Tests for the per-key lock registry."""

import asyncio
import gc

import pytest

from streamhouse.core.locks import KeyedLock


class TestKeyedLock:

    @pytest.mark.asyncio
    async def test_same_key_runs_one_at_a_time(self):
        locks = KeyedLock()
        trace = []

        async def worker(name):
            async with locks.hold("actor"):
                trace.append(f"{name}:in")
                await asyncio.sleep(0.01)
                trace.append(f"{name}:out")

        await asyncio.gather(worker("a"), worker("b"))

        assert trace == ["a:in", "a:out", "b:in", "b:out"]

    @pytest.mark.asyncio
    async def test_different_keys_do_not_block(self):
        locks = KeyedLock()

        async with locks.hold("a"):
            await asyncio.wait_for(self._enter(locks, "b"), timeout=1)

    @pytest.mark.asyncio
    async def test_idle_keys_are_dropped(self):
        locks = KeyedLock()

        async with locks.hold("a"):
            assert len(locks) == 1

        gc.collect()
        assert len(locks) == 0

    @staticmethod
    async def _enter(locks, key):
        async with locks.hold(key):
            return True
