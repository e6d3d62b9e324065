"""Answer store abstraction shared by interchangeable backends."""

from __future__ import annotations

from abc import ABC, abstractmethod


class StoreError(RuntimeError):
    """Base class for answer store failures."""


class NotFoundError(StoreError, KeyError):
    """No answer is stored under the requested id."""

    def __init__(self, id: str) -> None:
        super().__init__(f"No answer stored for id {id!r}")
        self.id = id

    def __str__(self) -> str:
        return self.args[0]


class ExpiredError(StoreError):
    """An answer exists for the id but its expiration time has passed."""

    def __init__(self, id: str) -> None:
        super().__init__(f"Answer for id {id!r} has expired")
        self.id = id


class AnswerStore(ABC):
    """Interface implemented by answer storage backends."""

    @abstractmethod
    def set(self, id: str, value: str) -> None:
        """Store the answer for an id, replacing any previous one."""

    @abstractmethod
    def get(self, id: str, consume: bool = False) -> str:
        """Return the answer for an id, removing it when consume is true.

        Raises NotFoundError or ExpiredError.
        """
