"""
Cascade Retry Policy Tests
==========================

Pure state-machine tests: no clock, no network.
"""

import pytest

from retry_policy import CascadeRetryPolicy, RetryAction


class TestBackoffSchedule:

    @pytest.mark.readonly
    def test_default_schedule(self):
        policy = CascadeRetryPolicy(["a"])
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [5.0, 10.0, 20.0]

    @pytest.mark.readonly
    def test_transient_failures_retry_with_growing_delay(self):
        policy = CascadeRetryPolicy(["a", "b"], max_attempts=3)

        first = policy.on_failure(transient=True)
        second = policy.on_failure(transient=True)

        assert first.action == RetryAction.RETRY and first.model == "a"
        assert second.action == RetryAction.RETRY and second.model == "a"
        assert second.delay > first.delay
        assert policy.attempt == 3

    @pytest.mark.readonly
    def test_attempts_run_out_then_next_model(self):
        policy = CascadeRetryPolicy(["a", "b"], max_attempts=3)
        for _ in range(2):
            policy.on_failure(transient=True)

        decision = policy.on_failure(transient=True)

        assert decision.action == RetryAction.NEXT_MODEL
        assert decision.model == "b"
        assert policy.attempt == 1

    @pytest.mark.readonly
    def test_schedule_restarts_for_each_model(self):
        policy = CascadeRetryPolicy(["a", "b"], max_attempts=2)
        policy.on_failure(transient=True)
        policy.on_failure(transient=True)

        decision = policy.on_failure(transient=True)

        assert decision.model == "b"
        assert decision.delay == policy.delay_for(1)


class TestCascade:

    @pytest.mark.readonly
    def test_permanent_failure_skips_retries(self):
        policy = CascadeRetryPolicy(["a", "b"])
        decision = policy.on_failure(transient=False)
        assert decision.action == RetryAction.NEXT_MODEL
        assert policy.current_model == "b"

    @pytest.mark.readonly
    def test_last_model_failure_exhausts(self):
        policy = CascadeRetryPolicy(["a"])
        decision = policy.on_failure(transient=False)

        assert decision.action == RetryAction.EXHAUSTED
        assert policy.exhausted
        assert policy.current_model is None
        assert policy.on_failure(transient=True).action == RetryAction.EXHAUSTED

    @pytest.mark.readonly
    def test_reset(self):
        policy = CascadeRetryPolicy(["a", "b"])
        policy.on_failure(transient=False)
        policy.reset()
        assert policy.current_model == "a"
        assert policy.attempt == 1

    @pytest.mark.readonly
    def test_total_calls_bounded(self):
        """Two models, three attempts each: at most six calls before exhaustion."""
        policy = CascadeRetryPolicy(["a", "b"], max_attempts=3)
        calls = 0
        while not policy.exhausted:
            calls += 1
            policy.on_failure(transient=True)
        assert calls == 6


class TestValidation:

    @pytest.mark.readonly
    def test_requires_models(self):
        with pytest.raises(ValueError):
            CascadeRetryPolicy([])

    @pytest.mark.readonly
    def test_requires_positive_attempts(self):
        with pytest.raises(ValueError):
            CascadeRetryPolicy(["a"], max_attempts=0)

    @pytest.mark.readonly
    def test_rejects_shrinking_backoff(self):
        with pytest.raises(ValueError):
            CascadeRetryPolicy(["a"], backoff_factor=0.5)

    @pytest.mark.readonly
    def test_from_config_uses_configured_models(self):
        from config import CHAT_MODELS
        policy = CascadeRetryPolicy.from_config()
        assert policy.models == list(CHAT_MODELS)
