# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import os
import tempfile
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

import yaml

from shopauth.errors import DuplicateAccount, StoreUnavailable

logger = logging.getLogger(__name__)


def _empty_cart() -> Dict[str, Any]:
    return {"items": []}


@dataclass(frozen=True)
class UserRecord:
    id: str
    email: str
    password_hash: str
    reset_token: Optional[str] = None
    reset_token_expiration: Optional[datetime] = None
    cart: Dict[str, Any] = field(default_factory=_empty_cart)

    def reset_pending(self, now: datetime) -> bool:
        return bool(self.reset_token) and self.reset_token_expiration is not None and self.reset_token_expiration > now

    def with_reset_token(self, token: str, expires_at: datetime) -> "UserRecord":
        return replace(self, reset_token=token, reset_token_expiration=expires_at)

    def with_password(self, password_hash: str) -> "UserRecord":
        """New hash; any pending reset token is consumed along with it."""
        return replace(self, password_hash=password_hash, reset_token=None, reset_token_expiration=None)


def new_user(email: str, password_hash: str) -> UserRecord:
    return UserRecord(id=uuid.uuid4().hex, email=email, password_hash=password_hash)


def _parse_ts(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    ts = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    if ts.tzinfo is None:
        # hand-edited files: naive timestamps are UTC
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _to_record(uid: str, udata: dict) -> Optional[UserRecord]:
    email = str(udata.get("email") or "")
    if not email:
        return None
    token = udata.get("reset_token") or None
    expiration = _parse_ts(udata.get("reset_token_expiration"))
    if not token or expiration is None:
        # both fields travel together
        token, expiration = None, None
    cart = udata.get("cart")
    return UserRecord(
        id=uid,
        email=email,
        password_hash=str(udata.get("password_hash") or ""),
        reset_token=str(token) if token else None,
        reset_token_expiration=expiration,
        cart=cart if isinstance(cart, dict) else _empty_cart(),
    )


def _to_dict(user: UserRecord) -> dict:
    return {
        "email": user.email,
        "password_hash": user.password_hash,
        "reset_token": user.reset_token,
        "reset_token_expiration": (
            user.reset_token_expiration.isoformat() if user.reset_token_expiration else None
        ),
        "cart": user.cart,
    }


class UserStore:
    """Credential store backed by a YAML file.

    Reads are cached by file mtime. Writes replace the file atomically and are
    serialised by a per-store lock; ``locked()`` lets callers run a
    read-check-write sequence under that same lock.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.RLock()
        self._cache: Tuple[float, Dict[str, UserRecord]] = (0.0, {})

    # ------------------ reads ------------------

    def _load_users_file(self) -> Dict[str, UserRecord]:
        if not self.path.exists():
            return {}
        raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        users = (raw.get("users") or {}) if isinstance(raw, dict) else {}
        out: Dict[str, UserRecord] = {}
        for uid, udata in users.items():
            if not isinstance(udata, dict):
                continue
            record = _to_record(str(uid), udata)
            if record is not None:
                out[record.id] = record
        return out

    def all(self) -> Dict[str, UserRecord]:
        with self._lock:
            try:
                mtime = self.path.stat().st_mtime_ns if self.path.exists() else 0
                cached_mtime, cached_users = self._cache
                if mtime and mtime == cached_mtime:
                    return dict(cached_users)
                users = self._load_users_file()
            except (OSError, yaml.YAMLError, ValueError) as exc:
                logger.exception("Could not read user store %s", self.path)
                raise StoreUnavailable() from exc
            self._cache = (mtime, users)
            return dict(users)

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        if not email:
            return None
        for user in self.all().values():
            if user.email == email:
                return user
        return None

    def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        if not user_id:
            return None
        return self.all().get(user_id)

    def find_by_reset_token(self, token: str) -> Optional[UserRecord]:
        if not token:
            return None
        for user in self.all().values():
            if user.reset_token == token:
                return user
        return None

    # ------------------ writes ------------------

    @contextmanager
    def locked(self) -> Iterator["UserStore"]:
        with self._lock:
            yield self

    def _write(self, users: Dict[str, UserRecord]) -> None:
        raw = {"version": 1, "users": {uid: _to_dict(u) for uid, u in users.items()}}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".users-", suffix=".yml")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    yaml.safe_dump(raw, fh, sort_keys=False, allow_unicode=True)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
            self._cache = (self.path.stat().st_mtime_ns, dict(users))
        except OSError as exc:
            logger.exception("Could not write user store %s", self.path)
            raise StoreUnavailable() from exc

    def insert(self, user: UserRecord) -> UserRecord:
        with self._lock:
            users = self.all()
            if user.id in users or any(u.email == user.email for u in users.values()):
                raise DuplicateAccount()
            users[user.id] = user
            self._write(users)
            return user

    def save(self, user: UserRecord) -> UserRecord:
        with self._lock:
            users = self.all()
            if user.id not in users:
                raise StoreUnavailable(f"Unknown user id {user.id}")
            users[user.id] = user
            self._write(users)
            return user
