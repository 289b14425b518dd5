"""
VESTLOCK Layout Codec

Typed value objects for the two fixed-width buffers a vesting record carries.

    Configuration (lock script args, 88 bytes)
    ┌────────────────────┬────────────────────┬───────┬───────┬───────┐
    │ creator_lock_hash  │ beneficiary_hash   │ start │  end  │ cliff │
    │        32          │        32          │   8   │   8   │   8   │
    └────────────────────┴────────────────────┴───────┴───────┴───────┘

    State (cell data, 32 bytes)
    ┌───────┬─────────────────────┬─────────────────┬───────────────────┐
    │ total │ beneficiary_claimed │ creator_claimed │ highest_time_seen │
    │   8   │          8          │        8        │         8         │
    └───────┴─────────────────────┴─────────────────┴───────────────────┘

All integers are unsigned little-endian 64-bit. Decoding checks widths only;
semantic checks (epoch ordering, conservation) live with their callers.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, replace
from typing import Any, Dict

from vestlock.errors import InvalidEpochOrdering, MalformedLayout
from vestlock.hardening import Validators


CONFIG_STRUCT = struct.Struct("<32s32sQQQ")
STATE_STRUCT = struct.Struct("<QQQQ")

CONFIG_LEN = CONFIG_STRUCT.size  # 88
STATE_LEN = STATE_STRUCT.size  # 32


def _require_width(data: Any, expected: int, what: str) -> bytes:
    if isinstance(data, (bytearray, memoryview)):
        data = bytes(data)
    if not isinstance(data, bytes) or len(data) != expected:
        actual = len(data) if isinstance(data, bytes) else type(data).__name__
        raise MalformedLayout(
            f"{what} must be exactly {expected} bytes, got {actual}",
            expected=expected,
            actual=actual,
        )
    return data


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class VestingConfig:
    """
    Immutable vesting configuration embedded in the record's identity.

    Two records with different configuration bytes are different records.
    """
    creator_lock_hash: bytes
    beneficiary_lock_hash: bytes
    start_epoch: int
    end_epoch: int
    cliff_epoch: int

    def __post_init__(self):
        for name in ("creator_lock_hash", "beneficiary_lock_hash"):
            result = Validators.validate_lock_hash(getattr(self, name), name)
            result.raise_if_invalid(MalformedLayout)
            object.__setattr__(self, name, result.sanitized_value)
        for name in ("start_epoch", "end_epoch", "cliff_epoch"):
            Validators.validate_u64(getattr(self, name), name).raise_if_invalid(MalformedLayout)

    @classmethod
    def from_bytes(cls, data: bytes) -> "VestingConfig":
        """Decode an 88-byte configuration buffer."""
        raw = _require_width(data, CONFIG_LEN, "configuration")
        creator, beneficiary, start, end, cliff = CONFIG_STRUCT.unpack(raw)
        return cls(
            creator_lock_hash=creator,
            beneficiary_lock_hash=beneficiary,
            start_epoch=start,
            end_epoch=end,
            cliff_epoch=cliff,
        )

    def to_bytes(self) -> bytes:
        return CONFIG_STRUCT.pack(
            self.creator_lock_hash,
            self.beneficiary_lock_hash,
            self.start_epoch,
            self.end_epoch,
            self.cliff_epoch,
        )

    def check_epoch_ordering(self) -> None:
        """Require start <= cliff <= end with a non-empty vesting window."""
        if self.start_epoch >= self.end_epoch:
            raise InvalidEpochOrdering(
                f"start_epoch {self.start_epoch} must be before end_epoch {self.end_epoch}",
                start=self.start_epoch,
                end=self.end_epoch,
            )
        if not self.start_epoch <= self.cliff_epoch <= self.end_epoch:
            raise InvalidEpochOrdering(
                f"cliff_epoch {self.cliff_epoch} outside "
                f"[{self.start_epoch}, {self.end_epoch}]",
                start=self.start_epoch,
                end=self.end_epoch,
                cliff=self.cliff_epoch,
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "creator_lock_hash": "0x" + self.creator_lock_hash.hex(),
            "beneficiary_lock_hash": "0x" + self.beneficiary_lock_hash.hex(),
            "start_epoch": self.start_epoch,
            "end_epoch": self.end_epoch,
            "cliff_epoch": self.cliff_epoch,
        }


# =============================================================================
# STATE
# =============================================================================

@dataclass(frozen=True)
class VestingState:
    """Mutable record payload, replaced wholesale on each transition."""
    total_amount: int
    beneficiary_claimed: int
    creator_claimed: int
    highest_time_seen: int

    def __post_init__(self):
        for name in ("total_amount", "beneficiary_claimed", "creator_claimed", "highest_time_seen"):
            Validators.validate_u64(getattr(self, name), name).raise_if_invalid(MalformedLayout)

    @classmethod
    def from_bytes(cls, data: bytes) -> "VestingState":
        """Decode a 32-byte state buffer."""
        raw = _require_width(data, STATE_LEN, "state")
        total, beneficiary, creator, highest = STATE_STRUCT.unpack(raw)
        return cls(
            total_amount=total,
            beneficiary_claimed=beneficiary,
            creator_claimed=creator,
            highest_time_seen=highest,
        )

    def to_bytes(self) -> bytes:
        return STATE_STRUCT.pack(
            self.total_amount,
            self.beneficiary_claimed,
            self.creator_claimed,
            self.highest_time_seen,
        )

    @property
    def is_terminated(self) -> bool:
        return self.creator_claimed > 0

    @property
    def claimed(self) -> int:
        """Total paid out to either party so far."""
        return self.beneficiary_claimed + self.creator_claimed

    @property
    def remaining(self) -> int:
        """Balance still held by the record (zero if over-claimed)."""
        return max(self.total_amount - self.claimed, 0)

    @property
    def is_drained(self) -> bool:
        return self.claimed >= self.total_amount

    def with_changes(self, **changes: int) -> "VestingState":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_amount": self.total_amount,
            "beneficiary_claimed": self.beneficiary_claimed,
            "creator_claimed": self.creator_claimed,
            "highest_time_seen": self.highest_time_seen,
        }
