"""
QuorumGate Signatory Registry Test Suite

Invariant tested throughout:
    total_weight == sum of current signatory weights
"""

import unittest

from quorumgate import (
    SignatoryRegistry,
    Signatory,
    InvalidConfigurationError,
    NotFoundError,
    UnauthorizedError,
    ErrorCode,
)


def assert_total_weight_consistent(test: unittest.TestCase, registry: SignatoryRegistry):
    test.assertEqual(registry.total_weight, sum(s.weight for s in registry.signatories))


class TestRegistryConstruction(unittest.TestCase):
    """Test construction rules."""

    def test_each_signatory_gets_weight_one(self):
        registry = SignatoryRegistry(2, ["alice", "bob", "carol"])

        self.assertEqual(registry.weight_of("alice"), 1)
        self.assertEqual(registry.weight_of("bob"), 1)
        self.assertEqual(registry.weight_of("carol"), 1)
        self.assertEqual(registry.total_weight, 3)
        self.assertEqual(registry.threshold, 2)
        assert_total_weight_consistent(self, registry)

    def test_first_listed_identity_is_admin(self):
        registry = SignatoryRegistry(1, ["carol", "alice", "bob"])

        self.assertEqual(registry.admin, "carol")
        self.assertTrue(registry.is_admin("carol"))
        self.assertFalse(registry.is_admin("alice"))

    def test_duplicates_collapse(self):
        registry = SignatoryRegistry(1, ["alice", "bob", "alice", "bob", "alice"])

        self.assertEqual(registry.total_weight, 2)
        self.assertEqual(registry.weight_of("alice"), 1)
        self.assertEqual([s.identity for s in registry.signatories], ["alice", "bob"])
        assert_total_weight_consistent(self, registry)

    def test_order_fixed_at_construction(self):
        registry = SignatoryRegistry(1, ["zed", "amy", "kim"])

        self.assertEqual([s.identity for s in registry.signatories], ["zed", "amy", "kim"])

    def test_empty_signatories_rejected(self):
        with self.assertRaises(InvalidConfigurationError) as cm:
            SignatoryRegistry(1, [])
        self.assertEqual(cm.exception.code, ErrorCode.INVALID_CONFIGURATION)

    def test_zero_threshold_rejected(self):
        with self.assertRaises(InvalidConfigurationError):
            SignatoryRegistry(0, ["alice"])

    def test_negative_threshold_rejected(self):
        with self.assertRaises(InvalidConfigurationError):
            SignatoryRegistry(-2, ["alice"])

    def test_non_integer_threshold_rejected(self):
        for threshold in ("2", 1.5, True, None):
            with self.assertRaises(InvalidConfigurationError):
                SignatoryRegistry(threshold, ["alice"])

    def test_blank_identity_rejected(self):
        with self.assertRaises(InvalidConfigurationError):
            SignatoryRegistry(1, ["alice", ""])

    def test_bare_string_rejected(self):
        """A single string is not a list of identities."""
        with self.assertRaises(InvalidConfigurationError):
            SignatoryRegistry(1, "alice")

    def test_unreachable_threshold_accepted_with_warning(self):
        with self.assertLogs("quorumgate.registry", level="WARNING"):
            registry = SignatoryRegistry(5, ["alice", "bob"])
        self.assertEqual(registry.threshold, 5)

    def test_from_dict(self):
        registry = SignatoryRegistry.from_dict({"threshold": 2, "signatories": ["a", "b", "c"]})

        self.assertEqual(registry.threshold, 2)
        self.assertEqual(registry.total_weight, 3)
        self.assertEqual(registry.admin, "a")

    def test_from_dict_missing_keys(self):
        with self.assertRaises(InvalidConfigurationError):
            SignatoryRegistry.from_dict({"threshold": 2})

    def test_unknown_identity_has_zero_weight(self):
        registry = SignatoryRegistry(1, ["alice"])

        self.assertEqual(registry.weight_of("mallory"), 0)
        self.assertFalse(registry.is_signatory("mallory"))


class TestRevocation(unittest.TestCase):
    """Test admin-only revocation."""

    def setUp(self):
        self.registry = SignatoryRegistry(2, ["alice", "bob", "carol"])

    def test_admin_revokes(self):
        revoked = self.registry.revoke("bob", caller="alice")

        self.assertEqual(revoked, Signatory("bob", 0))
        self.assertEqual(self.registry.weight_of("bob"), 0)
        self.assertEqual(self.registry.total_weight, 2)
        self.assertTrue(self.registry.is_signatory("bob"))
        assert_total_weight_consistent(self, self.registry)

    def test_non_admin_cannot_revoke(self):
        with self.assertRaises(UnauthorizedError):
            self.registry.revoke("carol", caller="bob")

        self.assertEqual(self.registry.weight_of("carol"), 1)
        self.assertEqual(self.registry.total_weight, 3)

    def test_outsider_cannot_revoke(self):
        with self.assertRaises(UnauthorizedError):
            self.registry.revoke("bob", caller="mallory")

    def test_revoke_zero_weight_not_found(self):
        self.registry.revoke("bob", caller="alice")

        with self.assertRaises(NotFoundError):
            self.registry.revoke("bob", caller="alice")
        self.assertEqual(self.registry.total_weight, 2)

    def test_revoke_unknown_identity_not_found(self):
        with self.assertRaises(NotFoundError):
            self.registry.revoke("mallory", caller="alice")

    def test_unauthorized_checked_before_not_found(self):
        with self.assertRaises(UnauthorizedError):
            self.registry.revoke("mallory", caller="bob")

    def test_revoking_admin_weight_keeps_admin(self):
        self.registry.revoke("alice", caller="alice")

        self.assertEqual(self.registry.weight_of("alice"), 0)
        self.assertEqual(self.registry.admin, "alice")
        self.registry.revoke("bob", caller="alice")
        self.assertEqual(self.registry.total_weight, 1)
        assert_total_weight_consistent(self, self.registry)

    def test_revoke_everyone(self):
        for identity in ("alice", "bob", "carol"):
            self.registry.revoke(identity, caller="alice")
            assert_total_weight_consistent(self, self.registry)

        self.assertEqual(self.registry.total_weight, 0)


class TestAdminTransfer(unittest.TestCase):
    """Test the explicit admin role."""

    def setUp(self):
        self.registry = SignatoryRegistry(2, ["alice", "bob", "carol"])

    def test_admin_transfers_role(self):
        previous = self.registry.transfer_admin("carol", caller="alice")

        self.assertEqual(previous, "alice")
        self.assertEqual(self.registry.admin, "carol")
        self.assertFalse(self.registry.is_admin("alice"))

    def test_new_admin_can_revoke_old_admin(self):
        self.registry.transfer_admin("bob", caller="alice")

        with self.assertRaises(UnauthorizedError):
            self.registry.revoke("carol", caller="alice")
        self.registry.revoke("alice", caller="bob")
        self.assertEqual(self.registry.weight_of("alice"), 0)

    def test_non_admin_cannot_transfer(self):
        with self.assertRaises(UnauthorizedError):
            self.registry.transfer_admin("bob", caller="bob")
        self.assertEqual(self.registry.admin, "alice")

    def test_transfer_to_unregistered_rejected(self):
        with self.assertRaises(NotFoundError):
            self.registry.transfer_admin("mallory", caller="alice")
        self.assertEqual(self.registry.admin, "alice")

    def test_transfer_to_revoked_signatory_allowed(self):
        """Admin is a role, independent of the holder's weight."""
        self.registry.revoke("carol", caller="alice")
        self.registry.transfer_admin("carol", caller="alice")

        self.assertEqual(self.registry.admin, "carol")
        self.assertEqual(self.registry.weight_of("carol"), 0)

    def test_to_dict(self):
        data = self.registry.to_dict()

        self.assertEqual(data["threshold"], 2)
        self.assertEqual(data["total_weight"], 3)
        self.assertEqual(data["admin"], "alice")
        self.assertEqual(
            data["signatories"][0],
            {"identity": "alice", "weight": 1, "active": True}
        )


if __name__ == "__main__":
    unittest.main()
