# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Signup, login/logout and password reset.

Every operation either completes or raises an ``AuthError`` subclass; the web
layer turns those into a redirect with a one-line message. Emails are handed
to ``defer`` after the store write so the response never waits on delivery.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Tuple

from argon2 import PasswordHasher

from shopauth.auth.passwords import hash_password, needs_rehash, verify_password
from shopauth.auth.session import SessionGateway
from shopauth.auth.tokens import expiry_from, generate_token
from shopauth.auth.users import UserRecord, UserStore, new_user
from shopauth.config import Settings
from shopauth.errors import (
    AccountNotFound,
    DuplicateAccount,
    InvalidCredentials,
    InvalidOrExpiredToken,
    PasswordMismatch,
    StoreUnavailable,
)
from shopauth.services.notifier import EmailMessage, Notifier

logger = logging.getLogger(__name__)

Defer = Callable[..., Any]

EMPTY_PASSWORD = "Please enter a password."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _run_now(fn: Callable[..., Any], *args: Any) -> None:
    fn(*args)


class AuthService:
    def __init__(
        self,
        *,
        settings: Settings,
        store: UserStore,
        notifier: Notifier,
        hasher: Optional[PasswordHasher] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings
        self.store = store
        self.notifier = notifier
        self.hasher = hasher
        self.clock = clock

    def _notify(self, message: EmailMessage, defer: Optional[Defer]) -> None:
        (defer or _run_now)(self.notifier.dispatch, message)

    def reset_link(self, token: str) -> str:
        return f"{self.settings.base_url}/reset/{token}"

    # ------------------ signup / login ------------------

    def signup(
        self,
        email: str,
        password: str,
        confirm_password: str,
        *,
        defer: Optional[Defer] = None,
    ) -> UserRecord:
        # confirm_password is accepted but not compared (existing behaviour).
        if not password:
            raise InvalidCredentials(EMPTY_PASSWORD)
        if self.store.find_by_email(email):
            raise DuplicateAccount()
        user = self.store.insert(new_user(email, hash_password(password, hasher=self.hasher)))
        logger.info("Created account %s", user.id)

        self._notify(
            EmailMessage(
                to=email,
                sender=self.settings.mail_from,
                subject="Signup succeeded!",
                html="<h1>You successfully signed up!</h1>",
            ),
            defer,
        )
        return user

    def login(self, email: str, password: str, session: SessionGateway) -> UserRecord:
        user = self.store.find_by_email(email)
        if not user:
            raise AccountNotFound("invalid email!")
        if not verify_password(user.password_hash, password, hasher=self.hasher):
            raise InvalidCredentials()

        if needs_rehash(user.password_hash, hasher=self.hasher):
            user = self._upgrade_hash(user, password)

        session.establish(user)
        return user

    def _upgrade_hash(self, user: UserRecord, password: str) -> UserRecord:
        """Rehash with current parameters; only ``password_hash`` is written."""
        new_hash = hash_password(password, hasher=self.hasher)
        try:
            with self.store.locked():
                fresh = self.store.find_by_id(user.id)
                if not fresh or fresh.password_hash != user.password_hash:
                    # changed since it was verified (e.g. a completed reset)
                    return user
                return self.store.save(replace(fresh, password_hash=new_hash))
        except StoreUnavailable:
            logger.warning("Could not upgrade password hash for %s", user.id)
            return user

    def logout(self, session: SessionGateway) -> None:
        session.destroy()

    # ------------------ password reset ------------------

    def request_reset(self, email: str, *, defer: Optional[Defer] = None) -> str:
        user = self.store.find_by_email(email)
        if not user:
            raise AccountNotFound()

        token = generate_token(self.settings.reset_token_bytes)
        expires_at = expiry_from(self.clock(), self.settings.reset_token_ttl)
        with self.store.locked():
            fresh = self.store.find_by_id(user.id) or user
            self.store.save(fresh.with_reset_token(token, expires_at))
        logger.info("Issued reset token for %s (expires %s)", user.id, expires_at.isoformat())

        link = self.reset_link(token)
        self._notify(
            EmailMessage(
                to=email,
                sender=self.settings.mail_from,
                subject="Password Reset",
                html=(
                    "<p>You requested a password reset.</p>"
                    f'<p>Click this <a href="{link}">link</a> to set a new password.</p>'
                    "<p>If you didn't request a password reset, please ignore this email.</p>"
                ),
            ),
            defer,
        )
        return token

    def resolve_reset_token(self, token: str) -> Tuple[str, str]:
        user = self.store.find_by_reset_token(token)
        if not user or not user.reset_pending(self.clock()):
            raise InvalidOrExpiredToken()
        return user.id, token

    def complete_reset(self, user_id: str, token: str, password: str, confirm_password: str) -> UserRecord:
        with self.store.locked():
            user = self.store.find_by_id(user_id)
            if not user or not token or user.reset_token != token or not user.reset_pending(self.clock()):
                raise InvalidOrExpiredToken()
            if password != confirm_password:
                raise PasswordMismatch()
            if not password:
                raise InvalidCredentials(EMPTY_PASSWORD)
            user = self.store.save(user.with_password(hash_password(password, hasher=self.hasher)))
        logger.info("Password reset completed for %s", user.id)
        return user
