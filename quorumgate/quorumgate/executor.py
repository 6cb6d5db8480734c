"""
Executor contract.

The executor is the external collaborator that actually carries out an
approved operation. QuorumGate only relies on its call contract:

    invoke(target, value, payload) -> success

It is called at most once per successful execute(), synchronously, and
without any lock that other proposals need.
"""

from abc import ABC, abstractmethod
from typing import Callable


class Executor(ABC):
    """Abstract executor."""

    @abstractmethod
    def invoke(self, target: str, value: int, payload: bytes) -> bool:
        """Perform the operation. Return True on success."""
        pass


class CallableExecutor(Executor):
    """
    Adapts a plain function to the Executor contract.

    Usage:
        executor = CallableExecutor(lambda target, value, payload: bank.send(target, value))
    """

    def __init__(self, func: Callable[[str, int, bytes], object]):
        self.func = func

    def invoke(self, target: str, value: int, payload: bytes) -> bool:
        return bool(self.func(target, value, payload))


class RejectingExecutor(Executor):
    """Fails every call. Used when no executor is configured."""

    def invoke(self, target: str, value: int, payload: bytes) -> bool:
        return False
