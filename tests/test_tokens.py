from datetime import datetime, timedelta, timezone

import pytest

from shopauth.auth.tokens import expiry_from, generate_token


def test_token_is_hex_of_requested_length():
    t = generate_token()
    assert len(t) == 64
    int(t, 16)
    assert len(generate_token(16)) == 32


def test_tokens_do_not_repeat():
    assert len({generate_token() for _ in range(200)}) == 200


def test_too_short_token_rejected():
    with pytest.raises(ValueError):
        generate_token(8)


def test_expiry_from():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert expiry_from(now, 3600) == now + timedelta(hours=1)
    with pytest.raises(ValueError):
        expiry_from(datetime(2026, 1, 1), 3600)
