"""Loyalty domain errors.

Each error carries the HTTP status the global error handler responds with, so
services raise them directly and routers never translate them by hand.
"""

from __future__ import annotations

from typing import Any


class LoyaltyError(Exception):
    """Base class for named loyalty failures."""

    status_code: int = 400

    def __init__(self, detail: str, **extra: Any) -> None:
        super().__init__(detail)
        self.detail = detail
        self.extra = extra


class NotFoundError(LoyaltyError):
    status_code = 404


class ForbiddenError(LoyaltyError):
    status_code = 403


class TierRequiredError(ForbiddenError):
    """User tier rank is below what a reward or pack requires."""

    def __init__(self, tier_required: str) -> None:
        super().__init__(f"Requires {tier_required} tier or higher", tier_required=tier_required)


class InsufficientPointsError(LoyaltyError):
    def __init__(self, required: int, current: int) -> None:
        super().__init__("Not enough points", required=required, current=current)
        self.required = required
        self.current = current


class OutOfStockError(LoyaltyError):
    def __init__(self) -> None:
        super().__init__("Reward out of stock")


class AlreadyClaimedError(LoyaltyError):
    def __init__(self, detail: str = "Already claimed") -> None:
        super().__init__(detail, already_claimed=True)


class AlreadyCompletedError(LoyaltyError):
    def __init__(self) -> None:
        super().__init__("Quest already completed")


class InvalidInputError(LoyaltyError):
    pass


class UpstreamFailure(LoyaltyError):  # noqa: N818
    """A best-effort collaborator (notification delivery) failed. Never surfaced to callers."""

    status_code = 502
