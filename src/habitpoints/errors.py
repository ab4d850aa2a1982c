"""Domain error taxonomy shared by the orchestrators and the callable boundary."""

from __future__ import annotations


class HabitPointsError(Exception):
    """Base class for business-rule failures.

    ``code`` is a transport-neutral identifier; the callable boundary maps it
    onto its own status values.
    """

    code = "internal"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(HabitPointsError, LookupError):
    """A referenced goal, habit, milestone, reward, entry or user does not exist."""

    code = "not-found"

    def __init__(self, kind: str, doc_id: str) -> None:
        self.kind = kind
        self.doc_id = doc_id
        super().__init__(f"{kind} not found")


class UnauthorizedError(HabitPointsError):
    """A referenced document belongs to a different user than the caller."""

    code = "permission-denied"


class InvalidArgumentError(HabitPointsError, ValueError):
    """A required field is missing or malformed."""

    code = "invalid-argument"


class AlreadyCompletedError(HabitPointsError):
    """The milestone was completed before; points are never awarded twice."""

    code = "failed-precondition"


class AlreadyRedeemedError(HabitPointsError):
    """The reward was redeemed before."""

    code = "failed-precondition"


class AlreadyLoggedError(HabitPointsError):
    """An entry already exists for this goal on the target date."""

    code = "already-exists"


class InsufficientPointsError(HabitPointsError):
    """Raised when a redemption costs more than the current balance.

    Attributes:
        user_id: The user attempting the redemption
        balance: Current point balance
        cost: Points the reward costs
        shortfall: How many more points are needed
    """

    code = "failed-precondition"

    def __init__(self, user_id: str, balance: int, cost: int) -> None:
        self.user_id = user_id
        self.balance = balance
        self.cost = cost
        self.shortfall = cost - balance
        super().__init__("Insufficient points")


class TransactionConflictError(HabitPointsError):
    """A document read inside a transaction changed before commit."""

    code = "aborted"
