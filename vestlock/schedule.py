"""
VESTLOCK Vesting Calculator

Pure computation of the amount unlocked at a trusted time point. Knows
nothing about who is asking; authorization is the validator's concern.

    amount
      ▲
total ┤                         ┌──────────
      │                      ╱  │
      │                   ╱     │
      │                ╱        │
      │             ┌           │
    0 ┼─────────────┘           │
      └────┬────────┬───────────┬─────────▶ time
         start    cliff        end

After termination the schedule no longer matters: whatever the creator did
not take is vested to the beneficiary immediately.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from typing import Optional

from vestlock.config import OVERFLOW_FULL_VEST, OVERFLOW_REJECT, get_config
from vestlock.errors import VestingArithmeticError
from vestlock.hardening import U64
from vestlock.layout import VestingConfig, VestingState
from vestlock.observability import LogComponent, get_logger

logger = get_logger("calculator", LogComponent.SCHEDULE)


def vested_amount(
    now: int,
    start: int,
    end: int,
    cliff: int,
    total: int,
    creator_claimed: int,
    overflow_policy: Optional[str] = None,
) -> int:
    """
    Amount vested to the beneficiary at ``now``.

    Args:
        now: Trusted current time point.
        start: Start of the linear vesting window.
        end: End of the vesting window; fully vested from here on.
        cliff: Nothing vests before this point.
        total: Total amount held by the record.
        creator_claimed: Non-zero once the creator has terminated.
        overflow_policy: ``full_vest`` or ``reject``; defaults to the
            ``validator.overflow_policy`` setting.

    Returns:
        The vested amount, never more than ``total``.

    Raises:
        VestingArithmeticError: If the interpolation product overflows
            under the ``reject`` policy.
    """
    if creator_claimed > 0:
        return U64.saturating_sub(total, creator_claimed)

    if now < start or now < cliff:
        return 0

    if now >= end:
        return total

    # start <= now < end here, so the window is never empty
    duration = end - start
    elapsed = now - start
    product = U64.checked_mul(elapsed, total)
    if product is None:
        policy = overflow_policy or get_config().validator.overflow_policy.get()
        logger.warning(
            "Vesting product overflowed u64",
            error_code="ARITHMETIC_ERROR" if policy == OVERFLOW_REJECT else "",
            elapsed=elapsed,
            total=total,
            policy=policy,
        )
        if policy == OVERFLOW_FULL_VEST:
            return total
        raise VestingArithmeticError(
            f"Vesting product {elapsed} * {total} exceeds u64",
            elapsed=elapsed,
            total=total,
        )

    return product // duration


def vested_for(
    config: VestingConfig,
    state: VestingState,
    now: int,
    overflow_policy: Optional[str] = None,
) -> int:
    """Vested amount for a decoded record."""
    return vested_amount(
        now,
        config.start_epoch,
        config.end_epoch,
        config.cliff_epoch,
        state.total_amount,
        state.creator_claimed,
        overflow_policy=overflow_policy,
    )


def unvested_amount(
    config: VestingConfig,
    state: VestingState,
    now: int,
    overflow_policy: Optional[str] = None,
) -> int:
    """Amount a termination at ``now`` would hand back to the creator."""
    vested = vested_for(config, state, now, overflow_policy=overflow_policy)
    return U64.saturating_sub(state.total_amount, max(vested, state.beneficiary_claimed))
