from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.db.queries import (
    create_credit_transaction,
    get_or_create_profile,
    get_profile,
    list_credit_transactions,
    sum_credit_transactions,
)
from src.models.credit import (
    CreditReferenceType,
    CreditTransaction,
    CreditTransactionCreate,
    CreditTransactionType,
)

logger = logging.getLogger(__name__)


async def grant_credit(
    *,
    session: AsyncSession,
    user_id: str,
    amount_cents: int,
    type_: CreditTransactionType = CreditTransactionType.CREATOR_REWARD,
    reference_type: CreditReferenceType | None = None,
    reference_id: int | None = None,
    description: str | None = None,
    commit: bool = True,
) -> CreditTransaction:
    """Append a positive transaction and raise the profile balance by the same amount.

    With ``commit=False`` the caller owns the transaction, which is how the
    lifecycle controller pays creator rewards atomically with scheduling, and
    nothing is logged until that caller commits.
    """
    if amount_cents <= 0:
        raise ValueError("grant amount must be positive")

    profile = await get_or_create_profile(session, user_id, for_update=True)
    transaction = await create_credit_transaction(
        session,
        CreditTransactionCreate(
            user_id=user_id,
            amount_cents=amount_cents,
            type=type_,
            reference_type=reference_type,
            reference_id=reference_id,
            description=description,
        ),
    )
    profile.travel_credit_cents = int(profile.travel_credit_cents or 0) + amount_cents
    profile.updated_at = datetime.now(UTC)
    await session.flush()
    if commit:
        await session.commit()
        log_credit_granted(transaction)
    return transaction


def log_credit_granted(transaction: CreditTransaction) -> None:
    """Emit ``credits.granted``. Callers using ``commit=False`` call this after their own commit."""
    logger.info(
        "Granted %d credit cents to user %s (%s)",
        transaction.amount_cents,
        transaction.user_id,
        transaction.type,
        extra={
            "event_type": "credits.granted",
            "ops_payload": {
                "transaction_id": transaction.id,
                "amount_cents": transaction.amount_cents,
                "type": transaction.type,
                "reference_id": transaction.reference_id,
            },
        },
    )


async def use_credit(
    *,
    session: AsyncSession,
    user_id: str,
    amount_cents: int,
    booking_id: int,
    description: str | None = None,
) -> tuple[CreditTransaction | None, str]:
    if amount_cents <= 0:
        raise ValueError("use amount must be positive")

    profile = await get_profile(session, user_id, for_update=True)
    balance = int(profile.travel_credit_cents or 0) if profile is not None else 0
    if profile is None or balance < amount_cents:
        logger.info(
            "Credit use refused for user %s: balance=%d requested=%d",
            user_id,
            balance,
            amount_cents,
            extra={"event_type": "credits.insufficient"},
        )
        return None, "insufficient_credit"

    transaction = await create_credit_transaction(
        session,
        CreditTransactionCreate(
            user_id=user_id,
            amount_cents=-amount_cents,
            type=CreditTransactionType.BOOKING_USED,
            reference_type=CreditReferenceType.BOOKING,
            reference_id=booking_id,
            description=description,
        ),
    )
    profile.travel_credit_cents = balance - amount_cents
    profile.updated_at = datetime.now(UTC)
    await session.commit()
    return transaction, "recorded"


async def adjust_credit(
    *,
    session: AsyncSession,
    user_id: str,
    amount_cents: int,
    description: str | None = None,
) -> tuple[CreditTransaction | None, str]:
    if amount_cents == 0:
        return None, "zero_amount"

    profile = await get_or_create_profile(session, user_id, for_update=True)
    balance = int(profile.travel_credit_cents or 0)
    if balance + amount_cents < 0:
        return None, "insufficient_credit"

    transaction = await create_credit_transaction(
        session,
        CreditTransactionCreate(
            user_id=user_id,
            amount_cents=amount_cents,
            type=CreditTransactionType.ADMIN_ADJUSTMENT,
            reference_type=CreditReferenceType.ADMIN,
            description=description,
        ),
    )
    profile.travel_credit_cents = balance + amount_cents
    profile.updated_at = datetime.now(UTC)
    await session.commit()
    logger.info(
        "Admin adjusted credits for user %s by %d",
        user_id,
        amount_cents,
        extra={"event_type": "credits.adjusted", "ops_payload": {"amount_cents": amount_cents}},
    )
    return transaction, "recorded"


async def get_balance(*, session: AsyncSession, user_id: str) -> int:
    profile = await get_profile(session, user_id)
    if profile is None:
        return 0
    return int(profile.travel_credit_cents or 0)


async def get_history(*, session: AsyncSession, user_id: str) -> list[CreditTransaction]:
    return await list_credit_transactions(session, user_id)


async def reconcile_balance(*, session: AsyncSession, user_id: str) -> int:
    """Rewrite the denormalized balance from the transaction log."""
    profile = await get_or_create_profile(session, user_id, for_update=True)
    total = await sum_credit_transactions(session, user_id)
    if int(profile.travel_credit_cents or 0) != total:
        logger.warning(
            "Credit balance drift for user %s: stored=%d ledger=%d",
            user_id,
            profile.travel_credit_cents,
            total,
            extra={
                "event_type": "credits.drift_repaired",
                "ops_payload": {"stored": profile.travel_credit_cents, "ledger": total},
            },
        )
        profile.travel_credit_cents = total
        profile.updated_at = datetime.now(UTC)
    await session.commit()
    return total
