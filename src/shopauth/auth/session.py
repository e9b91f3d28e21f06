# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Request, Response
from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

from shopauth.auth.users import UserRecord
from shopauth.config import Settings

SESSION_SALT = "shop.session.v1"
FLASH_SALT = "shop.flash.v1"
FLASH_MAX_AGE_SECONDS = 300


def _serializer(settings: Settings, salt: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key=settings.secret_key, salt=salt)


@dataclass(frozen=True)
class SessionData:
    is_logged_in: bool
    user_id: str
    email: str


def sign_session(settings: Settings, user: UserRecord) -> str:
    # the password hash and reset fields never leave the server
    return _serializer(settings, SESSION_SALT).dumps({"in": True, "uid": user.id, "email": user.email})


def verify_session(settings: Settings, token: str) -> Optional[SessionData]:
    if not token:
        return None
    s = _serializer(settings, SESSION_SALT)
    try:
        data = s.loads(token, max_age=settings.session_max_age)
    except (BadSignature, BadTimeSignature):
        return None
    data = data if isinstance(data, dict) else {}
    uid = str(data.get("uid") or "").strip()
    if not uid or not data.get("in"):
        return None
    return SessionData(is_logged_in=True, user_id=uid, email=str(data.get("email") or ""))


class SessionGateway:
    """Login state for one request/response pair.

    ``establish`` and ``destroy`` write to ``response``, so the cookie is in
    place before the response leaves the handler.
    """

    def __init__(self, settings: Settings, request: Request, response: Response):
        self.settings = settings
        self.request = request
        self.response = response

    def current(self) -> Optional[SessionData]:
        return verify_session(self.settings, self.request.cookies.get(self.settings.cookie_name, ""))

    def establish(self, user: UserRecord) -> None:
        self.response.set_cookie(
            self.settings.cookie_name,
            sign_session(self.settings, user),
            max_age=self.settings.session_max_age,
            **self.settings.cookie_settings(),
        )

    def destroy(self) -> None:
        self.response.delete_cookie(self.settings.cookie_name)


# ------------------ flash messages ------------------


def set_flash(settings: Settings, response: Response, message: str) -> None:
    if not message:
        return
    response.set_cookie(
        settings.flash_cookie_name,
        _serializer(settings, FLASH_SALT).dumps(message),
        max_age=FLASH_MAX_AGE_SECONDS,
        **settings.cookie_settings(),
    )


def read_flash(settings: Settings, request: Request) -> Optional[str]:
    token = request.cookies.get(settings.flash_cookie_name, "")
    if not token:
        return None
    try:
        message = _serializer(settings, FLASH_SALT).loads(token, max_age=FLASH_MAX_AGE_SECONDS)
    except (BadSignature, BadTimeSignature):
        return None
    return str(message) if message else None


def clear_flash(settings: Settings, request: Request, response: Response) -> None:
    if settings.flash_cookie_name in request.cookies:
        response.delete_cookie(settings.flash_cookie_name)
