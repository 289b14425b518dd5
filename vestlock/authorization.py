"""
VESTLOCK Authorization Classifier

Maps the credential hashes that authorized a transaction onto one of three
capability classes. Which fields each class may touch is decided by the
transition rules, not here.

    CREATOR         creator lock hash present       may terminate
    BENEFICIARY     beneficiary lock hash present   may claim
    PERMISSIONLESS  neither present                 may advance the time mark

When both parties sign, the creator class wins.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from vestlock.hardening import LOCK_HASH_LEN, CryptoUtils
from vestlock.layout import VestingConfig


class AuthorizationClass(Enum):
    """Capability exercised by a transaction."""
    CREATOR = "creator"
    BENEFICIARY = "beneficiary"
    PERMISSIONLESS = "permissionless"


def _presented(credentials: Iterable[bytes], expected: bytes) -> bool:
    found = False
    for credential in credentials:
        if len(credential) != LOCK_HASH_LEN:
            continue
        # no early exit, every credential is compared
        found |= CryptoUtils.secure_compare(bytes(credential), expected)
    return found


def classify_authorization(
    credentials: Iterable[bytes],
    config: VestingConfig,
) -> AuthorizationClass:
    """Classify the capability a credential set exercises over ``config``."""
    credentials = list(credentials)

    if _presented(credentials, config.creator_lock_hash):
        return AuthorizationClass.CREATOR
    if _presented(credentials, config.beneficiary_lock_hash):
        return AuthorizationClass.BENEFICIARY
    return AuthorizationClass.PERMISSIONLESS
