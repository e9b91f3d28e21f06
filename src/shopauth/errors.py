# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy for the auth workflow.

User-facing errors carry the one-line message rendered on the originating
form. Infrastructure errors carry no user message.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class. ``message`` is what the user sees (may be empty)."""

    default_message = ""

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message or self.__class__.__name__)


class DuplicateAccount(AuthError):
    default_message = "E-mail exists already, please pick a different one."


class AccountNotFound(AuthError):
    default_message = "No account found with this email!"


class InvalidCredentials(AuthError):
    default_message = "invalid password!"


class InvalidOrExpiredToken(AuthError):
    default_message = "Token is invalid, or has expired."


class PasswordMismatch(AuthError):
    default_message = "Passwords do not match!"


class StoreUnavailable(AuthError):
    pass


class NotifierUnavailable(AuthError):
    pass
