"""Tests for bounded-concurrency dispatch."""

import asyncio
from decimal import Decimal

import pytest

from balance_checker.dispatcher import batches, dispatch
from balance_checker.models import CredentialRecord


class _Recorder:
    """Fake check that tracks calls and peak concurrency."""

    def __init__(self, delay=0.001, fail=()):
        self.calls = []
        self.in_flight = 0
        self.peak = 0
        self.delay = delay
        self.fail = set(fail)

    async def __call__(self, token):
        self.calls.append(token)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if token in self.fail:
                raise RuntimeError(f"boom {token}")
            return CredentialRecord(token=token, is_valid=True, balance=Decimal(1))
        finally:
            self.in_flight -= 1


def _tokens(n):
    return [f"sk-{i:03d}" for i in range(n)]


class TestBatches:
    def test_sizes(self):
        assert [len(b) for b in batches(_tokens(45), 20)] == [20, 20, 5]

    def test_empty(self):
        assert batches([], 20) == []

    def test_bad_size(self):
        with pytest.raises(ValueError):
            batches(["a"], 0)


class TestDispatch:
    @pytest.mark.parametrize("pipelined", [False, True])
    def test_each_token_checked_once(self, pipelined):
        check = _Recorder()
        tokens = _tokens(53)
        records = asyncio.run(dispatch(tokens, check, limit=20, pipelined=pipelined))
        assert sorted(check.calls) == tokens
        assert [r.token for r in records] == tokens

    @pytest.mark.parametrize("pipelined", [False, True])
    def test_concurrency_capped(self, pipelined):
        check = _Recorder(delay=0.01)
        asyncio.run(dispatch(_tokens(65), check, limit=20, pipelined=pipelined))
        assert check.peak == 20

    def test_batch_barrier(self):
        seen_batches = []
        check = _Recorder()
        asyncio.run(dispatch(_tokens(45), check, limit=20,
                             on_batch=lambda recs: seen_batches.append([r.token for r in recs])))
        assert [len(b) for b in seen_batches] == [20, 20, 5]
        assert seen_batches[0] == _tokens(45)[:20]

    def test_progress_monotonic(self):
        progress = []
        asyncio.run(dispatch(_tokens(25), _Recorder(), limit=20,
                             on_progress=lambda done, total: progress.append((done, total))))
        assert [d for d, _ in progress] == list(range(1, 26))
        assert all(t == 25 for _, t in progress)

    def test_failure_isolated(self):
        check = _Recorder(fail={"sk-002"})
        records = asyncio.run(dispatch(_tokens(5), check, limit=20))
        by_token = {r.token: r for r in records}
        assert not by_token["sk-002"].is_valid
        assert by_token["sk-002"].message == "request failed: RuntimeError: boom sk-002"
        assert sum(r.is_valid for r in records) == 4

    def test_no_tokens_no_calls(self):
        check = _Recorder()
        assert asyncio.run(dispatch([], check)) == []
        assert check.calls == []
