"""Result values and settle-once bookkeeping.

`Result` is the uniform return value of the pipeline's boundary functions:
either a payload in `data` or a human readable message in `error`.

`Settlement` records the single, final outcome of a pass over an archive.
Several code paths can race to finish a pass (an entry was found, the input
ended, a chunk was rejected); only the first one to settle wins and every
later attempt is a no-op.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an operation.

    Attributes:
        data (T | None): The success payload, or None on failure.
        error (str | None): A human readable error, or None on success.
    """
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, data: T) -> "Result[T]":
        return cls(data=data, error=None)

    @classmethod
    def failure(cls, error: str) -> "Result[T]":
        return cls(data=None, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None


class SettleState(Enum):
    PENDING = "pending"
    SETTLED = "settled"


class Settlement(Generic[T]):
    """Holds the first outcome handed to `settle` and ignores the rest.

    Attributes:
        state (SettleState): PENDING until the first `settle` call, SETTLED after.
        outcome (T | None): The value passed to the winning `settle` call.
    """

    def __init__(self, on_settle: Optional[Callable[[T], None]] = None) -> None:
        """Create an unsettled settlement.

        Args:
            on_settle (callable|None): Called once with the outcome when the
                settlement transitions to SETTLED. Used to release the input
                stream as soon as the pass is decided.
        """
        self.state = SettleState.PENDING
        self.outcome: Optional[T] = None
        self._on_settle = on_settle

    @property
    def settled(self) -> bool:
        return self.state is SettleState.SETTLED

    def settle(self, outcome: T) -> bool:
        """Record `outcome` if nothing has been recorded yet.

        Returns:
            bool: True if this call settled, False if it was ignored.
        """
        if self.state is SettleState.SETTLED:
            return False
        self.state = SettleState.SETTLED
        self.outcome = outcome
        if self._on_settle:
            self._on_settle(outcome)
        return True
