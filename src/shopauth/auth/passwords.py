# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from shopauth.config import Settings

_PH = PasswordHasher()


def make_hasher(settings: Settings) -> PasswordHasher:
    return PasswordHasher(
        time_cost=settings.argon2_time_cost,
        memory_cost=settings.argon2_memory_cost,
        parallelism=settings.argon2_parallelism,
    )


def hash_password(plain: str, *, hasher: Optional[PasswordHasher] = None) -> str:
    if not plain:
        raise ValueError("Empty password")
    return (hasher or _PH).hash(plain)


def verify_password(hash_value: str, plain: str, *, hasher: Optional[PasswordHasher] = None) -> bool:
    if not hash_value or not plain:
        return False
    try:
        return (hasher or _PH).verify(hash_value, plain)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(hash_value: str, *, hasher: Optional[PasswordHasher] = None) -> bool:
    """True when ``hash_value`` was made with different cost parameters."""
    try:
        return (hasher or _PH).check_needs_rehash(hash_value)
    except InvalidHashError:
        return False
