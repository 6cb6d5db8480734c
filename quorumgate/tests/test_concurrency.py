"""
QuorumGate Concurrency Test Suite

Per-fingerprint operations are linearizable: no lost approval updates,
and racing executions of one fingerprint invoke the executor once.
"""

import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

from quorumgate import (
    Authorizer,
    CallableExecutor,
    EventType,
    NotFoundError,
    UnauthorizedError,
)


class TestConcurrentApprovals(unittest.TestCase):

    def test_no_lost_updates(self):
        identities = [f"signer-{i}" for i in range(20)]
        auth = Authorizer(20, identities)
        fp = auth.propose(10, "vendor-x", b"")

        rounds = 5
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda who: auth.approve(fp, who), identities * rounds))

        self.assertEqual(auth.approved_weight(fp), len(identities) * rounds)
        self.assertEqual(len(auth.approvals_for(fp)), len(identities) * rounds)

    def test_independent_fingerprints(self):
        auth = Authorizer(1, ["alice", "bob"])
        fps = [auth.propose(i, "vendor-x", b"") for i in range(10)]

        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(lambda fp: auth.approve(fp, "alice"), fps))

        for fp in fps:
            self.assertEqual(auth.approved_weight(fp), 1)

    def test_revocation_races_approval(self):
        """Every approval either lands with weight 1 or is rejected."""
        auth = Authorizer(1, ["alice", "bob"])
        fp = auth.propose(10, "vendor-x", b"")
        accepted = []
        rejected = []
        start = threading.Barrier(2)

        def approver():
            start.wait()
            for _ in range(200):
                try:
                    accepted.append(auth.approve(fp, "bob"))
                except UnauthorizedError:
                    rejected.append(1)

        def revoker():
            start.wait()
            auth.revoke("bob", caller="alice")

        threads = [threading.Thread(target=approver), threading.Thread(target=revoker)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(accepted) + len(rejected), 200)
        self.assertEqual(auth.approved_weight(fp), len(accepted))


class TestConcurrentExecution(unittest.TestCase):

    def test_single_invocation(self):
        calls = []
        release = threading.Event()

        def slow(target, value, payload):
            calls.append(target)
            release.wait(timeout=5)
            return True

        auth = Authorizer(1, ["alice"], executor=CallableExecutor(slow))
        fp = auth.propose(10, "vendor-x", b"")
        auth.approve(fp, "alice")

        results = []
        errors = []

        def run():
            try:
                results.append(auth.execute(fp))
            except NotFoundError as e:
                errors.append(e)
                release.set()

        threads = [threading.Thread(target=run) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        self.assertEqual(len(results), 1)
        self.assertEqual(len(errors), 1)
        self.assertEqual(calls, ["vendor-x"])
        self.assertEqual(len(auth.events.query(event_type=EventType.EXECUTED)), 1)

    def test_many_racers(self):
        counter = []
        auth = Authorizer(1, ["alice"], executor=CallableExecutor(lambda t, v, p: counter.append(v) or True))
        fp = auth.propose(7, "vendor-x", b"")
        auth.approve(fp, "alice")

        def attempt(_):
            try:
                auth.execute(fp)
                return True
            except NotFoundError:
                return False

        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(attempt, range(16)))

        self.assertEqual(outcomes.count(True), 1)
        self.assertEqual(counter, [7])

    def test_slow_executor_does_not_block_other_proposals(self):
        entered = threading.Event()
        release = threading.Event()

        def blocking(target, value, payload):
            if target == "slow":
                entered.set()
                release.wait(timeout=5)
            return True

        auth = Authorizer(1, ["alice"], executor=CallableExecutor(blocking))
        slow = auth.propose(1, "slow", b"")
        fast = auth.propose(1, "fast", b"")
        auth.approve(slow, "alice")
        auth.approve(fast, "alice")

        worker = threading.Thread(target=auth.execute, args=(slow,))
        worker.start()
        self.assertTrue(entered.wait(timeout=5))

        self.assertTrue(auth.execute(fast).success)
        auth.propose(2, "other", b"")

        release.set()
        worker.join(timeout=10)
        self.assertEqual(len(auth.events.query(event_type=EventType.EXECUTED)), 2)


if __name__ == "__main__":
    unittest.main()
