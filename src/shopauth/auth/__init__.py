# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication building blocks.

This package provides:
- Password hashing/verification (argon2)
- Reset-token issuing (secrets)
- User store persisted in data/users.yml
- Signed session and flash cookies (itsdangerous)
"""
