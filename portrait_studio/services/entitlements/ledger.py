"""
Entitlement Ledger: credits, monthly free-tier reset, subscription window.

Every change is a pure function over an immutable Entitlement snapshot. The
result is written back with a compare-and-swap on users.version, so a
concurrent debit or grant is never overwritten; on conflict the transition is
recomputed from a fresh read.
"""
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from portrait_studio.core.errors import InsufficientCredits, ResourceNotFound, StoreUnavailable
from portrait_studio.models.user import User
from portrait_studio.services.app_settings.settings_service import RuntimeConfig
from portrait_studio.utils.metrics import credit_operations_total, credit_rejected_total
from portrait_studio.utils.time import as_utc, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

SUBSCRIPTION_ACTIVE = "active"


@dataclass(frozen=True)
class Entitlement:
    credits: int
    subscription_status: str
    subscription_expires_at: datetime | None
    last_credit_reset_at: datetime | None
    version: int

    def is_unlimited(self, now: datetime) -> bool:
        return (
            self.subscription_status == SUBSCRIPTION_ACTIVE
            and self.subscription_expires_at is not None
            and self.subscription_expires_at > now
        )


@dataclass(frozen=True)
class Reservation:
    user_id: str
    allowed: bool
    is_unlimited: bool
    credits_remaining: int
    # Balance right before the debit, after any monthly reset.
    pre_reservation_balance: int
    debited: int


# Pure transitions


def apply_monthly_reset(state: Entitlement, now: datetime, floor: int, period_days: int) -> Entitlement:
    """Top the balance up to the free-tier floor once the reset period has elapsed. Never lowers it."""
    if state.credits >= floor:
        return state
    last = state.last_credit_reset_at
    if last is not None and now - last <= timedelta(days=period_days):
        return state
    return replace(state, credits=floor, last_credit_reset_at=now)


def reserve(state: Entitlement, now: datetime, floor: int, period_days: int) -> tuple[Entitlement, int, int]:
    """
    Returns (new_state, pre_reservation_balance, debited).
    Raises InsufficientCredits when a metered user has nothing left after the reset.
    """
    if state.is_unlimited(now):
        return state, state.credits, 0
    state = apply_monthly_reset(state, now, floor, period_days)
    if state.credits < 1:
        raise InsufficientCredits("Insufficient credits")
    return replace(state, credits=state.credits - 1), state.credits, 1


def refund(state: Entitlement, amount: int) -> Entitlement:
    if amount <= 0:
        return state
    return replace(state, credits=state.credits + amount)


def grant(state: Entitlement, amount: int) -> Entitlement:
    if amount <= 0:
        return state
    return replace(state, credits=state.credits + amount)


def activate(state: Entitlement, now: datetime, duration_days: int) -> Entitlement:
    """Start a subscription window, or extend an unexpired one from its current expiry."""
    start = state.subscription_expires_at if state.is_unlimited(now) else now
    return replace(
        state,
        subscription_status=SUBSCRIPTION_ACTIVE,
        subscription_expires_at=start + timedelta(days=duration_days),
    )


class EntitlementLedger:
    def __init__(self, db: Session, config: RuntimeConfig, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.config = config
        self.clock = clock

    def _load(self, user_id: str) -> Entitlement:
        row = self.db.execute(
            select(
                User.credits,
                User.subscription_status,
                User.subscription_expires_at,
                User.last_credit_reset_at,
                User.version,
            ).where(User.id == user_id)
        ).one_or_none()
        if row is None:
            raise ResourceNotFound("User not found")
        return Entitlement(
            credits=row.credits,
            subscription_status=row.subscription_status,
            subscription_expires_at=as_utc(row.subscription_expires_at),
            last_credit_reset_at=as_utc(row.last_credit_reset_at),
            version=row.version,
        )

    def _compare_and_swap(self, user_id: str, expected: Entitlement, new: Entitlement) -> bool:
        result = self.db.execute(
            update(User)
            .where(User.id == user_id, User.version == expected.version)
            .values(
                credits=new.credits,
                subscription_status=new.subscription_status,
                subscription_expires_at=new.subscription_expires_at,
                last_credit_reset_at=new.last_credit_reset_at,
                version=expected.version + 1,
                updated_at=self.clock(),
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount == 1

    def _mutate(self, user_id: str, transition: Callable[[Entitlement], tuple[Entitlement, T]]) -> T:
        attempts = max(1, self.config.ledger_cas_max_attempts)
        try:
            for attempt in range(1, attempts + 1):
                current = self._load(user_id)
                new, value = transition(current)
                if new == current:
                    return value
                if self._compare_and_swap(user_id, current, new):
                    return value
                logger.info("ledger_cas_conflict", extra={"user_id": user_id, "attempt": attempt})
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("ledger_store_error", extra={"user_id": user_id, "error": str(e)})
            raise StoreUnavailable("Record Store unavailable") from e
        raise StoreUnavailable("Ledger update conflicted too many times")

    def check_and_reserve(self, user_id: str) -> Reservation:
        """Unlimited for active subscribers; otherwise monthly reset, then debit 1 credit."""
        now = self.clock()
        floor = self.config.free_tier_credits
        period = self.config.credit_reset_days

        def _transition(state: Entitlement) -> tuple[Entitlement, Reservation]:
            new, pre_balance, debited = reserve(state, now, floor, period)
            if new.last_credit_reset_at != state.last_credit_reset_at:
                credit_operations_total.labels(operation="RESET").inc()
            return new, Reservation(
                user_id=user_id,
                allowed=True,
                is_unlimited=debited == 0,
                credits_remaining=new.credits,
                pre_reservation_balance=pre_balance,
                debited=debited,
            )

        try:
            reservation = self._mutate(user_id, _transition)
        except InsufficientCredits:
            credit_rejected_total.inc()
            logger.info("credits_insufficient", extra={"user_id": user_id})
            raise
        if reservation.debited:
            credit_operations_total.labels(operation="RESERVE").inc()
        return reservation

    def refund(self, reservation: Reservation) -> None:
        """Compensating action: add back what check_and_reserve debited."""
        if not reservation.debited:
            return
        self._mutate(reservation.user_id, lambda s: (refund(s, reservation.debited), None))
        credit_operations_total.labels(operation="REFUND").inc()
        logger.info(
            "credits_refunded",
            extra={"user_id": reservation.user_id, "credits": reservation.pre_reservation_balance},
        )

    def grant_credits(self, user_id: str, amount: int) -> int:
        """Returns the new balance."""
        def _transition(state: Entitlement) -> tuple[Entitlement, int]:
            new = grant(state, amount)
            return new, new.credits

        balance = self._mutate(user_id, _transition)
        credit_operations_total.labels(operation="GRANT").inc()
        return balance

    def activate_subscription(self, user_id: str, duration_days: int) -> datetime:
        """Returns the new expiry."""
        now = self.clock()

        def _transition(state: Entitlement) -> tuple[Entitlement, datetime]:
            new = activate(state, now, duration_days)
            return new, new.subscription_expires_at

        expires_at = self._mutate(user_id, _transition)
        credit_operations_total.labels(operation="SUBSCRIBE").inc()
        return expires_at
