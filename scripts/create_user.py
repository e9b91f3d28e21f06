#!/usr/bin/env python3
from __future__ import annotations

import os
from getpass import getpass
from pathlib import Path

from shopauth.auth.passwords import hash_password
from shopauth.auth.users import UserStore, new_user
from shopauth.config import DEFAULT_USERS_PATH
from shopauth.errors import DuplicateAccount

USERS_PATH = Path(os.getenv("SHOP_USERS_PATH", str(DEFAULT_USERS_PATH))).resolve()


def main() -> None:
    store = UserStore(USERS_PATH)

    email = input("E-Mail: ").strip()
    if not email:
        raise SystemExit("E-Mail required")

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")

    try:
        user = store.insert(new_user(email, hash_password(pw1)))
    except DuplicateAccount:
        raise SystemExit(f"{email} already exists in {USERS_PATH}")
    print(f"OK {user.id} -> {USERS_PATH}")


if __name__ == "__main__":
    main()
