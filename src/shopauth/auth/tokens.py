# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Password-reset token issuing."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta

DEFAULT_TOKEN_BYTES = 32


def generate_token(nbytes: int = DEFAULT_TOKEN_BYTES) -> str:
    """Return ``nbytes`` of OS randomness as a hex string (2 * nbytes chars)."""
    if nbytes < 16:
        raise ValueError("Reset tokens need at least 16 random bytes")
    return secrets.token_hex(nbytes)


def expiry_from(now: datetime, ttl_seconds: int) -> datetime:
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    return now + timedelta(seconds=ttl_seconds)
