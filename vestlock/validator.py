"""
VESTLOCK Transition Validator

Accepts or rejects one proposed before/after transition of a vesting record.
The validator is a pure function of its inputs: it holds no state between
calls and never partially applies a transition.

State machine:

    ┌────────┐  CreatorTermination   ┌────────────┐
    │ ACTIVE │──────────────────────▶│ TERMINATED │
    └────────┘                       └────────────┘
      │   ▲ SecurityUpdate             │   ▲ SecurityUpdate
      │   │ BeneficiaryClaim           │   │ PostTerminationClaim
      │   └──────                      │   └──────
      │                                │
      │ full claim / full termination  │ remaining balance claimed
      ▼                                ▼
    ┌──────────────────────────────────────────┐
    │ CLOSED  (consumed, no successor record)  │
    └──────────────────────────────────────────┘

Check order:
    1. Governed cell cardinality (one in, zero or one out)
    2. Decode old record, epoch ordering, conservation
    3. Decode successor, configuration must be byte-identical
    4. Trusted time against the recorded high-water mark
    5. Authorization class, then transition kind
    6. Successor invariants shared by every rule
    7. The selected rule
    8. Closure consistency (drained <=> no successor)

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, Optional, Tuple

from vestlock.authorization import AuthorizationClass, classify_authorization
from vestlock.config import get_config
from vestlock.errors import (
    AlreadyTerminated,
    InsufficientVested,
    InvalidAmount,
    InvalidTransactionStructure,
    StaleHeader,
    Unauthorized,
    VestingError,
)
from vestlock.hardening import InvariantChecker
from vestlock.layout import VestingConfig, VestingState
from vestlock.observability import (
    LogComponent,
    correlation_id_var,
    generate_correlation_id,
    get_logger,
    set_correlation_id,
    timed_operation,
)
from vestlock.schedule import unvested_amount, vested_for

logger = get_logger("transitions", LogComponent.VALIDATOR)


# =============================================================================
# PHASES AND KINDS
# =============================================================================

class RecordPhase(Enum):
    """Lifecycle phase of a vesting record."""
    ACTIVE = "active"
    TERMINATED = "terminated"
    CLOSED = "closed"

    @classmethod
    def of(cls, state: VestingState) -> "RecordPhase":
        """Phase of a live record."""
        return cls.TERMINATED if state.is_terminated else cls.ACTIVE


class TransitionKind(Enum):
    """The four legal transitions."""
    SECURITY_UPDATE = "security_update"
    BENEFICIARY_CLAIM = "beneficiary_claim"
    CREATOR_TERMINATION = "creator_termination"
    POST_TERMINATION_CLAIM = "post_termination_claim"


# =============================================================================
# CONTEXT AND OUTCOME
# =============================================================================

@dataclass(frozen=True)
class TransitionContext:
    """
    Everything the host supplies for one validation call.

    ``new_config`` and ``new_state`` are both ``None`` when the transaction
    consumes the record without a successor. ``governed_outputs`` defaults
    to the number of successor records actually supplied.
    """
    old_config: bytes
    old_state: bytes
    trusted_now: int
    credentials: FrozenSet[bytes] = frozenset()
    new_config: Optional[bytes] = None
    new_state: Optional[bytes] = None
    governed_inputs: int = 1
    governed_outputs: Optional[int] = None

    @property
    def output_count(self) -> int:
        if self.governed_outputs is not None:
            return self.governed_outputs
        return 0 if self.new_state is None else 1

    @classmethod
    def from_records(
        cls,
        config: VestingConfig,
        old: VestingState,
        new: Optional[VestingState],
        trusted_now: int,
        credentials: Iterable[bytes] = (),
        governed_inputs: int = 1,
        governed_outputs: Optional[int] = None,
    ) -> "TransitionContext":
        """Build a context from decoded records; the config is carried unchanged."""
        config_bytes = config.to_bytes()
        return cls(
            old_config=config_bytes,
            old_state=old.to_bytes(),
            trusted_now=trusted_now,
            credentials=frozenset(bytes(c) for c in credentials),
            new_config=config_bytes if new is not None else None,
            new_state=new.to_bytes() if new is not None else None,
            governed_inputs=governed_inputs,
            governed_outputs=governed_outputs,
        )


@dataclass(frozen=True)
class TransitionOutcome:
    """Summary of an accepted transition."""
    kind: TransitionKind
    authorization: AuthorizationClass
    phase_before: RecordPhase
    phase_after: RecordPhase
    previous: VestingState
    successor: VestingState
    vested: Optional[int] = None

    @property
    def closed(self) -> bool:
        return self.phase_after is RecordPhase.CLOSED

    @property
    def beneficiary_delta(self) -> int:
        return self.successor.beneficiary_claimed - self.previous.beneficiary_claimed

    @property
    def creator_delta(self) -> int:
        return self.successor.creator_claimed - self.previous.creator_claimed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "authorization": self.authorization.value,
            "phase_before": self.phase_before.value,
            "phase_after": self.phase_after.value,
            "vested": self.vested,
            "beneficiary_delta": self.beneficiary_delta,
            "creator_delta": self.creator_delta,
            "successor": self.successor.to_dict(),
        }


# =============================================================================
# CLASSIFIER
# =============================================================================

def classify_transition(
    old: VestingState,
    authorization: AuthorizationClass,
    new: Optional[VestingState],
) -> TransitionKind:
    """
    Select the rule governing a transition.

    A successor that leaves both claim counters untouched is a security
    update whoever signed it. Any other change is attributed to the signer's
    capability; an unauthenticated signer has none.
    """
    if (
        new is not None
        and new.beneficiary_claimed == old.beneficiary_claimed
        and new.creator_claimed == old.creator_claimed
    ):
        return TransitionKind.SECURITY_UPDATE

    if authorization is AuthorizationClass.CREATOR:
        return TransitionKind.CREATOR_TERMINATION

    if authorization is AuthorizationClass.BENEFICIARY:
        if old.is_terminated:
            return TransitionKind.POST_TERMINATION_CLAIM
        return TransitionKind.BENEFICIARY_CLAIM

    raise Unauthorized(
        "Only the creator or the beneficiary may change claim amounts or consume the record",
        authorization=authorization.value,
    )


# =============================================================================
# RULES
# =============================================================================
#
# Each rule receives the decoded old record and the successor (``None`` when
# the record is consumed) and returns the effective successor together with
# the vested amount it relied on. For a consumed record the effective
# successor is the state the closure implies.

RuleResult = Tuple[VestingState, Optional[int]]


def _require(authorization: AuthorizationClass, expected: AuthorizationClass, rule: str) -> None:
    if authorization is not expected:
        raise Unauthorized(
            f"{rule} requires {expected.value} authorization, got {authorization.value}",
            authorization=authorization.value,
        )


def security_update(
    config: VestingConfig,
    old: VestingState,
    new: Optional[VestingState],
    authorization: AuthorizationClass,
    now: int,
    overflow_policy: Optional[str] = None,
) -> RuleResult:
    """Advance the time high-water mark; open to every authorization class."""
    if new is None:
        raise InvalidTransactionStructure("Security update must produce a successor record")

    InvariantChecker.check_unchanged("total_amount", old.total_amount, new.total_amount)
    InvariantChecker.check_unchanged(
        "beneficiary_claimed", old.beneficiary_claimed, new.beneficiary_claimed
    )
    InvariantChecker.check_unchanged("creator_claimed", old.creator_claimed, new.creator_claimed)
    InvariantChecker.check_monotonic_increase(
        "highest_time_seen", old.highest_time_seen, new.highest_time_seen, StaleHeader
    )

    if new.highest_time_seen == old.highest_time_seen:
        raise InvalidTransactionStructure(
            "Transition changes nothing",
            highest_time_seen=old.highest_time_seen,
        )

    return new, None


def beneficiary_claim(
    config: VestingConfig,
    old: VestingState,
    new: Optional[VestingState],
    authorization: AuthorizationClass,
    now: int,
    overflow_policy: Optional[str] = None,
) -> RuleResult:
    """Beneficiary withdraws from the schedule of an active record."""
    _require(authorization, AuthorizationClass.BENEFICIARY, "Beneficiary claim")

    if old.is_terminated:
        raise InvalidAmount("Record is terminated; use the post-termination claim")

    vested = vested_for(config, old, now, overflow_policy=overflow_policy)

    if new is None:
        if vested < old.total_amount:
            raise InvalidTransactionStructure(
                "Partial claim must produce a successor record",
                vested=vested,
                total_amount=old.total_amount,
            )
        new = old.with_changes(beneficiary_claimed=old.total_amount)

    InvariantChecker.check_unchanged("creator_claimed", old.creator_claimed, new.creator_claimed)
    InvariantChecker.check_monotonic_increase(
        "beneficiary_claimed", old.beneficiary_claimed, new.beneficiary_claimed
    )
    InvariantChecker.check_within_cap(
        "beneficiary_claimed", new.beneficiary_claimed, vested, InsufficientVested
    )

    return new, vested


def creator_termination(
    config: VestingConfig,
    old: VestingState,
    new: Optional[VestingState],
    authorization: AuthorizationClass,
    now: int,
    overflow_policy: Optional[str] = None,
) -> RuleResult:
    """Creator reclaims the whole unvested balance, once."""
    _require(authorization, AuthorizationClass.CREATOR, "Creator termination")

    if old.is_terminated:
        raise AlreadyTerminated(
            "Record was already terminated",
            creator_claimed=old.creator_claimed,
        )

    vested = vested_for(config, old, now, overflow_policy=overflow_policy)
    unvested = unvested_amount(config, old, now, overflow_policy=overflow_policy)
    if unvested == 0:
        raise InvalidAmount(
            "Nothing left to terminate",
            vested=vested,
            total_amount=old.total_amount,
        )

    if new is None:
        new = old.with_changes(creator_claimed=unvested)

    InvariantChecker.check_unchanged(
        "beneficiary_claimed", old.beneficiary_claimed, new.beneficiary_claimed
    )
    if new.creator_claimed != unvested:
        raise InvalidAmount(
            f"Termination must claim exactly the unvested balance {unvested}, "
            f"got {new.creator_claimed}",
            expected=unvested,
            creator_claimed=new.creator_claimed,
        )

    return new, vested


def post_termination_claim(
    config: VestingConfig,
    old: VestingState,
    new: Optional[VestingState],
    authorization: AuthorizationClass,
    now: int,
    overflow_policy: Optional[str] = None,
) -> RuleResult:
    """Beneficiary withdraws what the creator left behind, independent of time."""
    _require(authorization, AuthorizationClass.BENEFICIARY, "Post-termination claim")

    if not old.is_terminated:
        raise InvalidAmount("Record is not terminated")

    vested = vested_for(config, old, now, overflow_policy=overflow_policy)

    if new is None:
        new = old.with_changes(beneficiary_claimed=vested)

    InvariantChecker.check_unchanged("creator_claimed", old.creator_claimed, new.creator_claimed)
    InvariantChecker.check_monotonic_increase(
        "beneficiary_claimed", old.beneficiary_claimed, new.beneficiary_claimed
    )
    InvariantChecker.check_within_cap(
        "beneficiary_claimed", new.beneficiary_claimed, vested, InsufficientVested
    )

    return new, vested


Rule = Callable[..., RuleResult]

RULES: Dict[TransitionKind, Rule] = {
    TransitionKind.SECURITY_UPDATE: security_update,
    TransitionKind.BENEFICIARY_CLAIM: beneficiary_claim,
    TransitionKind.CREATOR_TERMINATION: creator_termination,
    TransitionKind.POST_TERMINATION_CLAIM: post_termination_claim,
}


# =============================================================================
# SHARED CHECKS
# =============================================================================

def check_cardinality(governed_inputs: int, governed_outputs: int) -> None:
    """Exactly one governed input and at most one governed output."""
    if governed_inputs != 1 or governed_outputs not in (0, 1):
        raise InvalidTransactionStructure(
            f"Expected one governed input and at most one governed output, "
            f"got {governed_inputs} in / {governed_outputs} out",
            governed_inputs=governed_inputs,
            governed_outputs=governed_outputs,
        )


def check_conservation(state: VestingState) -> None:
    """Claims never exceed the total."""
    InvariantChecker.check_within_cap(
        "beneficiary_claimed + creator_claimed", state.claimed, state.total_amount
    )


def check_freshness(old: VestingState, trusted_now: int, strict: bool = False) -> None:
    """Reject a trusted time older than the recorded high-water mark."""
    if trusted_now < old.highest_time_seen or (strict and trusted_now == old.highest_time_seen):
        raise StaleHeader(
            f"Trusted time {trusted_now} is stale against highest_time_seen "
            f"{old.highest_time_seen}",
            trusted_now=trusted_now,
            highest_time_seen=old.highest_time_seen,
        )


def check_successor(old: VestingState, new: VestingState, trusted_now: int) -> None:
    """Invariants every successor record must satisfy."""
    InvariantChecker.check_unchanged("total_amount", old.total_amount, new.total_amount)
    InvariantChecker.check_monotonic_increase(
        "highest_time_seen", old.highest_time_seen, new.highest_time_seen, StaleHeader
    )
    InvariantChecker.check_within_cap(
        "highest_time_seen", new.highest_time_seen, trusted_now, StaleHeader
    )


# =============================================================================
# ENTRY POINTS
# =============================================================================

def _decode_old(context: TransitionContext) -> Tuple[VestingConfig, VestingState]:
    config = VestingConfig.from_bytes(context.old_config)
    config.check_epoch_ordering()
    old = VestingState.from_bytes(context.old_state)
    check_conservation(old)
    return config, old


def _decode_new(context: TransitionContext) -> Optional[VestingState]:
    if context.new_state is None:
        if context.new_config is not None:
            raise InvalidTransactionStructure("Successor configuration without successor state")
        return None

    new_config = bytes(context.new_config) if context.new_config is not None else b""
    if new_config != bytes(context.old_config):
        raise InvalidTransactionStructure("Successor configuration differs from the input record")
    return VestingState.from_bytes(context.new_state)


def _apply(
    context: TransitionContext,
    overflow_policy: Optional[str],
    strict_header_freshness: bool,
) -> TransitionOutcome:
    has_successor = context.new_state is not None
    check_cardinality(context.governed_inputs, context.output_count)
    if context.output_count != int(has_successor):
        raise InvalidTransactionStructure(
            "Governed output count does not match the supplied successor",
            governed_outputs=context.output_count,
        )

    config, old = _decode_old(context)
    new = _decode_new(context)

    check_freshness(old, context.trusted_now, strict=strict_header_freshness)

    authorization = classify_authorization(context.credentials, config)
    kind = classify_transition(old, authorization, new)
    logger.debug(
        "Transition classified",
        kind=kind.value,
        authorization=authorization.value,
        has_successor=has_successor,
    )

    if new is not None:
        check_successor(old, new, context.trusted_now)

    successor, vested = RULES[kind](
        config, old, new, authorization, context.trusted_now, overflow_policy=overflow_policy
    )
    check_conservation(successor)

    closes = kind is not TransitionKind.SECURITY_UPDATE and successor.is_drained
    if closes and has_successor:
        raise InvalidTransactionStructure(
            "Fully drained record must be consumed without a successor",
            kind=kind.value,
        )
    if not closes and not has_successor:
        raise InvalidTransactionStructure(
            "Record with a remaining balance requires a successor",
            kind=kind.value,
            remaining=successor.remaining,
        )

    return TransitionOutcome(
        kind=kind,
        authorization=authorization,
        phase_before=RecordPhase.of(old),
        phase_after=RecordPhase.CLOSED if closes else RecordPhase.of(successor),
        previous=old,
        successor=successor,
        vested=vested,
    )


@timed_operation(logger, "validate_transition")
def validate_transition(
    context: TransitionContext,
    overflow_policy: Optional[str] = None,
    strict_header_freshness: Optional[bool] = None,
    correlation_id: Optional[str] = None,
) -> TransitionOutcome:
    """
    Validate one proposed transition.

    Args:
        context: Old/new record bytes, credentials, trusted time and counts.
        overflow_policy: Overrides ``validator.overflow_policy``.
        strict_header_freshness: Overrides ``validator.strict_header_freshness``.
        correlation_id: Correlation ID for log events; generated if absent.

    Returns:
        The accepted ``TransitionOutcome``.

    Raises:
        VestingError: The subclass naming the first violated rule.
    """
    settings = get_config().validator
    if overflow_policy is None:
        overflow_policy = settings.overflow_policy.get()
    if strict_header_freshness is None:
        strict_header_freshness = settings.strict_header_freshness.get()

    token = set_correlation_id(
        correlation_id or correlation_id_var.get() or generate_correlation_id()
    )
    try:
        outcome = _apply(context, overflow_policy, strict_header_freshness)
    except VestingError as e:
        logger.warning(
            f"Transition rejected: {e.message}",
            error_code=e.code.name,
            trusted_now=context.trusted_now,
        )
        raise
    else:
        logger.info(
            "Transition accepted",
            kind=outcome.kind.value,
            phase_after=outcome.phase_after.value,
            beneficiary_delta=outcome.beneficiary_delta,
            creator_delta=outcome.creator_delta,
        )
        return outcome
    finally:
        correlation_id_var.reset(token)


def program_entry(context: TransitionContext, **options: Any) -> int:
    """Host exit convention: 0 on acceptance, the error code on rejection."""
    try:
        validate_transition(context, **options)
    except VestingError as e:
        return int(e.code)
    return 0


def validate_creation(
    config_bytes: bytes,
    state_bytes: bytes,
    trusted_now: Optional[int] = None,
) -> Tuple[VestingConfig, VestingState]:
    """
    Validate a freshly created record.

    Creation happens outside this package; the checks here are the ones a
    record must pass before its first transition can be trusted.
    """
    config = VestingConfig.from_bytes(config_bytes)
    config.check_epoch_ordering()
    state = VestingState.from_bytes(state_bytes)

    if state.beneficiary_claimed or state.creator_claimed:
        raise InvalidAmount(
            "A new record starts with nothing claimed",
            beneficiary_claimed=state.beneficiary_claimed,
            creator_claimed=state.creator_claimed,
        )
    if trusted_now is not None:
        InvariantChecker.check_within_cap(
            "highest_time_seen", state.highest_time_seen, trusted_now, StaleHeader
        )

    return config, state
