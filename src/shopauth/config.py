# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Runtime configuration.

Everything the app needs is read once into a ``Settings`` value and passed to
``create_app``. There are no built-in secrets: the signing key and any SMTP
credentials must come from the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

# IMPORTANT: do not rely on current working directory.
BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_USERS_PATH = BASE_DIR / "data" / "users.yml"

_TRUTHY = {"1", "true", "yes", "y"}


def _flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    secret_key: str
    users_path: Path = DEFAULT_USERS_PATH
    base_url: str = "http://localhost:8000"

    cookie_name: str = "shop_session"
    flash_cookie_name: str = "shop_flash"
    session_max_age: int = 28800  # 8 hours
    cookie_secure: bool = False

    reset_token_ttl: int = 3600  # 1 hour
    reset_token_bytes: int = 32

    mail_mode: str = "console"
    mail_from: str = "shop@localhost"
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_starttls: bool = True

    # argon2-cffi defaults (RFC 9106 low-memory profile)
    argon2_time_cost: int = 3
    argon2_memory_cost: int = 65536
    argon2_parallelism: int = 4

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        secret = env.get("SHOP_SECRET_KEY") or env.get("SECRET_KEY")
        if not secret:
            raise RuntimeError("Missing SHOP_SECRET_KEY (or SECRET_KEY) in environment")

        return cls(
            secret_key=secret,
            users_path=Path(env.get("SHOP_USERS_PATH", str(DEFAULT_USERS_PATH))).resolve(),
            base_url=env.get("SHOP_BASE_URL", "http://localhost:8000").rstrip("/"),
            cookie_name=env.get("SHOP_COOKIE_NAME", "shop_session"),
            session_max_age=int(env.get("SHOP_SESSION_MAX_AGE", "28800")),
            cookie_secure=_flag(env.get("SHOP_COOKIE_SECURE")),
            reset_token_ttl=int(env.get("SHOP_RESET_TOKEN_TTL", "3600")),
            mail_mode=env.get("SHOP_MAIL_MODE", "console").strip().lower(),
            mail_from=env.get("SHOP_MAIL_FROM", "shop@localhost"),
            smtp_host=env.get("SHOP_SMTP_HOST", ""),
            smtp_port=int(env.get("SHOP_SMTP_PORT", "587")),
            smtp_username=env.get("SHOP_SMTP_USERNAME", ""),
            smtp_password=env.get("SHOP_SMTP_PASSWORD", ""),
            smtp_starttls=_flag(env.get("SHOP_SMTP_STARTTLS"), default=True),
            argon2_time_cost=int(env.get("SHOP_ARGON2_TIME_COST", "3")),
            argon2_memory_cost=int(env.get("SHOP_ARGON2_MEMORY_COST", "65536")),
            argon2_parallelism=int(env.get("SHOP_ARGON2_PARALLELISM", "4")),
        )

    def cookie_settings(self) -> dict:
        return {"httponly": True, "samesite": "lax", "secure": self.cookie_secure}
