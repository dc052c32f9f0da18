"""Tests for the walker/worker test pool."""

import asyncio
from pathlib import Path

import pytest

from elmdedup.testing.models import ElmTestVersion, RunResult, RunResults
from elmdedup.testing.pool import TestPool

_PASSING = RunResults(ElmTestVersion.V1, RunResult.PASSED, RunResult.PASSED, RunResult.PASSED)


def make_tree(repos: Path, count: int) -> list[Path]:
    roots = []
    for i in range(count):
        root = repos / f"author{i:02}" / "project" / "1.0.0"
        (root / "tests").mkdir(parents=True)
        (root / "elm.json").write_text("{}")
        roots.append(root)
    return roots


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class TestRun:
    async def test_every_root_tested_once(self, tmp_path: Path):
        roots = make_tree(tmp_path, 5)
        seen: list[Path] = []

        async def check(path: Path) -> RunResults:
            seen.append(path)
            await asyncio.sleep(0)
            return _PASSING

        pool = TestPool(tmp_path, check, concurrency=3)
        await pool.run()

        assert sorted(seen) == roots
        assert sorted(d.path for d in pool.dones) == roots
        assert pool.in_progress == {}
        assert pool.pending == 0
        assert pool.progress == 1.0

    async def test_concurrency_bounded(self, tmp_path: Path):
        make_tree(tmp_path, 8)
        in_flight = 0
        peak = 0

        async def check(path: Path) -> RunResults:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return _PASSING

        pool = TestPool(tmp_path, check, concurrency=2)
        await pool.run()

        assert len(pool.dones) == 8
        assert peak <= 2

    async def test_in_progress_tracked(self, tmp_path: Path):
        (root,) = make_tree(tmp_path, 1)
        release = asyncio.Event()

        async def check(path: Path) -> RunResults:
            await release.wait()
            return _PASSING

        pool = TestPool(tmp_path, check, concurrency=1)
        task = asyncio.create_task(pool.run())
        for _ in range(50):
            await asyncio.sleep(0)
        assert list(pool.in_progress) == [root]

        release.set()
        await task
        assert pool.in_progress == {}

    async def test_stop_prevents_new_work(self, tmp_path: Path):
        make_tree(tmp_path, 6)
        started = asyncio.Event()
        release = asyncio.Event()

        async def check(path: Path) -> RunResults:
            started.set()
            await release.wait()
            return _PASSING

        pool = TestPool(tmp_path, check, concurrency=1)
        task = asyncio.create_task(pool.run())
        await started.wait()
        pool.stop()
        release.set()
        await task

        assert pool.stopping
        assert len(pool.dones) == 1

    async def test_empty_tree(self, tmp_path: Path):
        async def check(path: Path) -> RunResults:
            raise AssertionError("nothing to test")

        pool = TestPool(tmp_path, check, concurrency=4)
        await pool.run()
        assert pool.dones == []
        assert pool.progress == 0.0

    async def test_check_error_propagates(self, tmp_path: Path):
        make_tree(tmp_path, 1)

        async def check(path: Path) -> RunResults:
            raise OSError("elm.json unreadable")

        pool = TestPool(tmp_path, check, concurrency=1)
        with pytest.raises(ExceptionGroup):
            await pool.run()
        assert pool.in_progress == {}


class TestDerivedState:
    def test_fresh_pool(self, tmp_path: Path):
        pool = TestPool(tmp_path, check=None, concurrency=1)
        assert pool.total == 0
        assert pool.progress == 0.0
        assert pool.eta_seconds is None
        assert pool.elapsed == 0.0

    async def test_eta_extrapolates(self, tmp_path: Path):
        make_tree(tmp_path, 4)
        clock = FakeClock()

        async def check(path: Path) -> RunResults:
            clock.now += 10
            return _PASSING

        pool = TestPool(tmp_path, check, concurrency=1, clock=clock)
        await pool.run()
        assert pool.elapsed == 40.0
        assert pool.eta_seconds == 0
        assert all(d.elapsed == 10.0 for d in pool.dones)

    def test_eta_half_done(self, tmp_path: Path):
        clock = FakeClock()
        pool = TestPool(tmp_path, check=None, concurrency=1, clock=clock)
        pool._started_at = 0.0
        clock.now = 60.0
        pool.dones.extend([None, None])  # only counted
        pool.in_progress[tmp_path / "a"] = 50.0
        pool.in_progress[tmp_path / "b"] = 55.0

        assert pool.total == 4
        assert pool.progress == 0.5
        assert pool.eta_seconds == 60
        assert pool.elapsed_for(tmp_path / "a") == 10.0
