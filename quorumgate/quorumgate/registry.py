"""
QuorumGate Signatory Registry

Holds the ordered signatory set, each signatory's weight, the running total
weight, the quorum threshold and the admin role.

Invariants:
- total_weight always equals the sum of current weights
- revoking a signatory lowers total_weight by exactly its weight
- revocation never changes who holds the admin role

Construction gives every distinct identity weight 1. Duplicates collapse to
a single slot, and the first listed identity starts out as admin. Unlike the
signatory order, the admin role is held separately and can be handed over
with transfer_admin.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Sequence

from .errors import InvalidConfigurationError, NotFoundError
from .guard import admin_only

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Signatory:
    """A registered identity and its current voting weight."""
    identity: str
    weight: int

    @property
    def active(self) -> bool:
        return self.weight > 0

    def to_dict(self) -> Dict[str, Any]:
        return {"identity": self.identity, "weight": self.weight, "active": self.active}


class AdminRole:
    """The single identity allowed to revoke signatories and hand the role on."""

    def __init__(self, holder: str):
        self.holder = holder

    def __repr__(self) -> str:
        return f"AdminRole(holder={self.holder!r})"


class SignatoryRegistry:
    """
    Registry of signatory weights.

    Usage:
        registry = SignatoryRegistry(2, ["alice", "bob", "carol"])
        registry.weight_of("bob")            # 1
        registry.revoke("bob", caller="alice")
        registry.total_weight                # 2
    """

    def __init__(self, threshold: int, signatories: Sequence[str]):
        if isinstance(threshold, bool) or not isinstance(threshold, int) or threshold <= 0:
            raise InvalidConfigurationError(
                "threshold must be a positive integer", {"threshold": repr(threshold)}
            )
        if isinstance(signatories, str) or not signatories:
            raise InvalidConfigurationError("at least one signatory is required")
        for identity in signatories:
            if not isinstance(identity, str) or not identity:
                raise InvalidConfigurationError(
                    "signatory identities must be non-empty strings", {"identity": repr(identity)}
                )

        self._order: List[str] = list(dict.fromkeys(signatories))
        self._weights: Dict[str, int] = {identity: 1 for identity in self._order}
        self._total_weight = len(self._order)
        self._threshold = threshold
        self._admin = AdminRole(self._order[0])
        self._lock = threading.RLock()

        if threshold > self._total_weight:
            logger.warning(
                "threshold %d exceeds total weight %d; quorum is unreachable",
                threshold, self._total_weight
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SignatoryRegistry':
        """Create a registry from a roster dict: {"threshold": n, "signatories": [...]}."""
        if not isinstance(data, dict):
            raise InvalidConfigurationError("roster must be an object")
        if "threshold" not in data or "signatories" not in data:
            raise InvalidConfigurationError(
                "roster requires 'threshold' and 'signatories'", {"keys": sorted(data.keys())}
            )
        return cls(data["threshold"], data["signatories"])

    @contextmanager
    def locked(self) -> Iterator['SignatoryRegistry']:
        """Hold the registry lock across several reads or a read-then-apply."""
        with self._lock:
            yield self

    # ------------------------------------------------------------------
    # Reads

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def total_weight(self) -> int:
        with self._lock:
            return self._total_weight

    @property
    def admin(self) -> str:
        with self._lock:
            return self._admin.holder

    @property
    def signatories(self) -> List[Signatory]:
        """All registered signatories in construction order, revoked ones included."""
        with self._lock:
            return [Signatory(identity, self._weights[identity]) for identity in self._order]

    def weight_of(self, identity: str) -> int:
        with self._lock:
            return self._weights.get(identity, 0)

    def is_admin(self, identity: str) -> bool:
        with self._lock:
            return identity == self._admin.holder

    def is_signatory(self, identity: str) -> bool:
        """True for any registered identity, active or revoked."""
        with self._lock:
            return identity in self._weights

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "threshold": self._threshold,
                "total_weight": self._total_weight,
                "admin": self._admin.holder,
                "signatories": [s.to_dict() for s in self.signatories],
            }

    # ------------------------------------------------------------------
    # Guarded mutations

    @admin_only
    def revoke(self, identity: str, *, caller: str) -> Signatory:
        """
        Drop an identity's weight to zero.

        Approvals the identity already gave stay counted.

        Raises:
            UnauthorizedError: caller is not the admin.
            NotFoundError: identity has no weight.
        """
        weight = self._weights.get(identity, 0)
        if weight <= 0:
            raise NotFoundError("identity has no weight to revoke", {"identity": identity})

        self._weights[identity] = 0
        self._total_weight -= weight
        logger.info(
            "revoked signatory %r (weight %d); total weight now %d",
            identity, weight, self._total_weight
        )
        return Signatory(identity, 0)

    @admin_only
    def transfer_admin(self, new_admin: str, *, caller: str) -> str:
        """
        Hand the admin role to another registered identity.

        Raises:
            UnauthorizedError: caller is not the admin.
            NotFoundError: new_admin is not a registered identity.
        """
        if new_admin not in self._weights:
            raise NotFoundError("new admin must be a registered identity", {"identity": new_admin})

        previous = self._admin.holder
        self._admin.holder = new_admin
        logger.info("admin role transferred from %r to %r", previous, new_admin)
        return previous
