"""Tests for the poll loop in astra_client.polling."""

import unittest
from astra_client.errors import (
    ConvergenceTimeout,
    DecodeFailure,
    RemoteRejection,
    TransportFailure,
)
from astra_client.models import Database, StatusEnum
from astra_client.polling import RetryPolicy, as_targets, poll_until


def scripted_fetch(*outcomes):
    """Build a fetch function returning statuses or raising errors in order."""
    calls = []
    remaining = list(outcomes)

    def fetch(database_id):
        calls.append(database_id)
        outcome = remaining.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return Database(id=database_id, status=outcome)

    return fetch, calls


def gone_on_401(error):
    return error.status_code == 401


class TestRetryPolicy(unittest.TestCase):
    """Tests for RetryPolicy."""

    def test_budget(self):
        self.assertEqual(RetryPolicy(attempts=3, interval_seconds=1).budget_seconds, 3)
        self.assertEqual(RetryPolicy(attempts=5, interval_seconds=0).budget_seconds, 0)

    def test_rejects_zero_attempts(self):
        with self.assertRaises(ValueError):
            RetryPolicy(attempts=0, interval_seconds=1)

    def test_rejects_negative_interval(self):
        with self.assertRaises(ValueError):
            RetryPolicy(attempts=1, interval_seconds=-1)


class TestAsTargets(unittest.TestCase):
    """Tests for as_targets."""

    def test_single_status(self):
        self.assertEqual(as_targets(StatusEnum.ACTIVE), frozenset([StatusEnum.ACTIVE]))

    def test_plain_string(self):
        self.assertEqual(as_targets("PARKED"), frozenset([StatusEnum.PARKED]))

    def test_unknown_status_string(self):
        """A misspelled target must not silently wait for UNKNOWN."""
        with self.assertRaises(ValueError):
            as_targets("PARKD")

    def test_unknown_status_in_collection(self):
        with self.assertRaises(ValueError):
            as_targets([StatusEnum.PARKED, "HIBERNATING"])

    def test_unknown_is_accepted_when_asked_for(self):
        self.assertEqual(as_targets("UNKNOWN"), frozenset([StatusEnum.UNKNOWN]))

    def test_collection_of_statuses(self):
        targets = as_targets(["TERMINATED", StatusEnum.TERMINATING])
        self.assertEqual(
            targets, frozenset([StatusEnum.TERMINATED, StatusEnum.TERMINATING])
        )

    def test_empty_collection(self):
        with self.assertRaises(ValueError):
            as_targets([])


class TestPollUntil(unittest.TestCase):
    """Tests for poll_until."""

    def setUp(self):
        self.sleeps = []

    def poll(self, fetch, targets, attempts=5, interval=2, **kwargs):
        return poll_until(
            "db-1",
            fetch,
            targets,
            RetryPolicy(attempts=attempts, interval_seconds=interval),
            sleep=self.sleeps.append,
            **kwargs,
        )

    def test_matches_on_nth_attempt(self):
        """A match on the N-th fetch should return after N fetches and N sleeps."""
        fetch, calls = scripted_fetch(
            StatusEnum.PENDING, StatusEnum.INITIALIZING, StatusEnum.ACTIVE
        )
        db = self.poll(fetch, StatusEnum.ACTIVE)
        self.assertIs(db.status, StatusEnum.ACTIVE)
        self.assertEqual(len(calls), 3)
        self.assertEqual(self.sleeps, [2, 2, 2])

    def test_sleeps_before_first_fetch(self):
        fetch, calls = scripted_fetch(StatusEnum.ACTIVE)
        self.poll(fetch, StatusEnum.ACTIVE)
        self.assertEqual(len(calls), 1)
        self.assertEqual(self.sleeps, [2])

    def test_matches_on_last_attempt(self):
        fetch, calls = scripted_fetch(StatusEnum.PARKING, StatusEnum.PARKED)
        db = self.poll(fetch, StatusEnum.PARKED, attempts=2)
        self.assertIs(db.status, StatusEnum.PARKED)
        self.assertEqual(len(calls), 2)

    def test_matches_any_status_in_set(self):
        fetch, calls = scripted_fetch(StatusEnum.ACTIVE, StatusEnum.TERMINATING)
        db = self.poll(fetch, [StatusEnum.TERMINATED, StatusEnum.TERMINATING])
        self.assertIs(db.status, StatusEnum.TERMINATING)
        self.assertEqual(len(calls), 2)

    def test_times_out_after_exactly_max_attempts(self):
        """A status never reached should fail after exactly `attempts` fetches."""
        fetch, calls = scripted_fetch(*[StatusEnum.PARKING] * 3)
        with self.assertRaises(ConvergenceTimeout) as ctx:
            self.poll(fetch, StatusEnum.PARKED, attempts=3, interval=1)
        self.assertEqual(len(calls), 3)
        self.assertEqual(self.sleeps, [1, 1, 1])
        self.assertEqual(ctx.exception.database_id, "db-1")
        self.assertEqual(ctx.exception.budget_seconds, 3)
        self.assertIn("after 3 seconds", ctx.exception.message)
        self.assertIsNone(ctx.exception.last_error)

    def test_fetch_failures_count_against_budget(self):
        fetch, calls = scripted_fetch(
            TransportFailure("connection reset"),
            RemoteRejection(500, [200]),
            StatusEnum.ACTIVE,
        )
        db = self.poll(fetch, StatusEnum.ACTIVE)
        self.assertIs(db.status, StatusEnum.ACTIVE)
        self.assertEqual(len(calls), 3)
        self.assertEqual(len(self.sleeps), 3)

    def test_timeout_keeps_last_fetch_error(self):
        last = RemoteRejection(503, [200])
        fetch, _ = scripted_fetch(TransportFailure("reset"), last)
        with self.assertRaises(ConvergenceTimeout) as ctx:
            self.poll(fetch, StatusEnum.ACTIVE, attempts=2)
        self.assertIs(ctx.exception.last_error, last)

    def test_gone_rejection_returns_immediately(self):
        """A rejection matching is_gone should end the wait with None."""
        fetch, calls = scripted_fetch(
            StatusEnum.ACTIVE, RemoteRejection(401, [200]), StatusEnum.ACTIVE
        )
        result = self.poll(
            fetch, [StatusEnum.TERMINATED, StatusEnum.TERMINATING], is_gone=gone_on_401
        )
        self.assertIsNone(result)
        self.assertEqual(len(calls), 2)
        self.assertEqual(len(self.sleeps), 2)

    def test_gone_rejection_on_last_attempt(self):
        fetch, calls = scripted_fetch(StatusEnum.ACTIVE, RemoteRejection(401, [200]))
        result = self.poll(fetch, StatusEnum.TERMINATED, attempts=2, is_gone=gone_on_401)
        self.assertIsNone(result)

    def test_other_rejections_are_retried(self):
        fetch, calls = scripted_fetch(
            RemoteRejection(404, [200]), StatusEnum.TERMINATED
        )
        db = self.poll(fetch, StatusEnum.TERMINATED, is_gone=gone_on_401)
        self.assertIs(db.status, StatusEnum.TERMINATED)
        self.assertEqual(len(calls), 2)

    def test_401_is_not_gone_without_predicate(self):
        fetch, calls = scripted_fetch(*[RemoteRejection(401, [200])] * 2)
        with self.assertRaises(ConvergenceTimeout):
            self.poll(fetch, StatusEnum.TERMINATED, attempts=2)
        self.assertEqual(len(calls), 2)

    def test_decode_failure_is_retried(self):
        """An undecodable body should count as a failed attempt, not end the wait."""
        fetch, calls = scripted_fetch(DecodeFailure(200, "bad"), StatusEnum.PARKED)
        db = self.poll(fetch, StatusEnum.PARKED, attempts=3)
        self.assertIs(db.status, StatusEnum.PARKED)
        self.assertEqual(len(calls), 2)
        self.assertEqual(len(self.sleeps), 2)

    def test_timeout_after_decode_failures_keeps_last_error(self):
        last = DecodeFailure(200, "bad")
        fetch, calls = scripted_fetch(StatusEnum.PENDING, last)
        with self.assertRaises(ConvergenceTimeout) as ctx:
            self.poll(fetch, StatusEnum.ACTIVE, attempts=2)
        self.assertIs(ctx.exception.last_error, last)
        self.assertEqual(len(calls), 2)

    def test_unknown_target_fails_before_polling(self):
        fetch, calls = scripted_fetch(StatusEnum.PARKED)
        with self.assertRaises(ValueError):
            self.poll(fetch, "PARKD")
        self.assertEqual(calls, [])
        self.assertEqual(self.sleeps, [])

    def test_terse_logging(self):
        fetch, _ = scripted_fetch(TransportFailure("reset"), StatusEnum.PENDING, StatusEnum.ACTIVE)
        with self.assertLogs("astra_client.polling", level="INFO") as logs:
            self.poll(fetch, StatusEnum.ACTIVE)
        self.assertEqual([r.getMessage() for r in logs.records], ["waiting", "waiting"])

    def test_verbose_logging(self):
        fetch, _ = scripted_fetch(TransportFailure("reset"), StatusEnum.PENDING, StatusEnum.ACTIVE)
        with self.assertLogs("astra_client.polling", level="INFO") as logs:
            self.poll(fetch, StatusEnum.ACTIVE, verbose=True)
        messages = [r.getMessage() for r in logs.records]
        self.assertIn("Transport error: reset", messages[0])
        self.assertIn("trying again 4 more times", messages[0])
        self.assertEqual(
            messages[1],
            "db db-1 in state PENDING but expected ACTIVE trying again 3 more times",
        )
        self.assertEqual(messages[2], "db db-1 reached status ACTIVE after 3 attempt(s)")


if __name__ == "__main__":
    unittest.main()
