"""Tests for the bounded poll used by gateway health and ledger checks."""

import pytest

from drivebook.core.retry import RetryBudget, poll_until

pytestmark = pytest.mark.unit


class _Exhausted(Exception):
    pass


def _raise_exhausted():
    raise _Exhausted()


class TestPollUntil:
    def test_returns_first_truthy_result_without_sleeping(self):
        sleeps = []
        result = poll_until(
            lambda: "ready", RetryBudget(3, 2.0), on_exhausted=_raise_exhausted, sleep=sleeps.append
        )
        assert result == "ready"
        assert sleeps == []

    def test_sleeps_only_between_attempts(self):
        answers = iter([None, False, True])
        sleeps = []
        assert poll_until(
            lambda: next(answers), RetryBudget(5, 1.5), on_exhausted=_raise_exhausted, sleep=sleeps.append
        )
        assert sleeps == [1.5, 1.5]

    def test_exceptions_count_as_failed_attempts(self):
        calls = {"n": 0}

        def check():
            calls["n"] += 1
            if calls["n"] < 3:
                raise ConnectionError("refused")
            return True

        assert poll_until(check, RetryBudget(3, 0), on_exhausted=_raise_exhausted, sleep=lambda _: None)
        assert calls["n"] == 3

    def test_exhaustion_calls_handler_after_full_budget(self):
        calls = {"n": 0}
        sleeps = []

        def check():
            calls["n"] += 1
            return None

        with pytest.raises(_Exhausted):
            poll_until(check, RetryBudget(4, 3.0), on_exhausted=_raise_exhausted, sleep=sleeps.append)
        assert calls["n"] == 4
        assert sleeps == [3.0, 3.0, 3.0]

    def test_budget_total(self):
        assert RetryBudget(20, 3.0).total_s == 60.0
