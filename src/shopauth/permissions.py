# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request

from shopauth.auth.session import verify_session
from shopauth.errors import StoreUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str


def load_user_from_request(request: Request) -> Optional[CurrentUser]:
    settings = request.app.state.settings
    sess = verify_session(settings, request.cookies.get(settings.cookie_name, ""))
    if not sess:
        return None
    try:
        u = request.app.state.store.find_by_id(sess.user_id)
    except StoreUnavailable:
        logger.warning("Store unavailable, treating %s %s as anonymous", request.method, request.url.path)
        return None
    if not u:
        return None
    return CurrentUser(id=u.id, email=u.email)


def current_user_optional(request: Request) -> Optional[CurrentUser]:
    return load_user_from_request(request)


def require_user(request: Request) -> CurrentUser:
    u = current_user_optional(request)
    if u:
        return u
    next_url = str(request.url.path)
    if request.url.query:
        next_url += "?" + request.url.query
    loc = f"/login?next={next_url}"
    raise HTTPException(status_code=303, headers={"Location": loc})
