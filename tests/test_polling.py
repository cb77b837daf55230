"""
Unit tests for fixed-delay polling.
"""

from unittest.mock import Mock

import pytest

from juicefs_client import PollTimeoutError, poll_until


class TestPollUntil:

    def test_immediate_success(self):
        sleep = Mock()

        assert poll_until(lambda: "ready", sleep=sleep) == "ready"
        sleep.assert_not_called()

    def test_retries_with_fixed_interval(self):
        check = Mock(side_effect=[False, None, 0, True])
        sleep = Mock()

        assert poll_until(check, interval=2.5, sleep=sleep) is True
        assert check.call_count == 4
        assert [c[0][0] for c in sleep.call_args_list] == [2.5, 2.5, 2.5]

    def test_attempt_limit(self):
        check = Mock(return_value=False)
        sleep = Mock()

        with pytest.raises(PollTimeoutError):
            poll_until(check, max_attempts=2, sleep=sleep)

        assert check.call_count == 2
        assert sleep.call_count == 1

    def test_success_on_last_attempt(self):
        check = Mock(side_effect=[False, True])

        assert poll_until(check, max_attempts=2, sleep=Mock()) is True

    def test_check_errors_propagate(self):
        check = Mock(side_effect=RuntimeError("boom"))
        sleep = Mock()

        with pytest.raises(RuntimeError):
            poll_until(check, sleep=sleep)

        sleep.assert_not_called()

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            poll_until(lambda: True, interval=-1)

        with pytest.raises(ValueError):
            poll_until(lambda: True, max_attempts=0)
