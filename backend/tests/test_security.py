# backend/tests/test_security.py

from studytogether.core import security


def test_access_token_round_trip():
    token = security.create_access_token("65f0c0ffee0000000000abcd")
    assert security.decode_access_token(token) == "65f0c0ffee0000000000abcd"


def test_refresh_token_is_not_an_access_token():
    token = security.create_refresh_token("u1")
    assert security.decode_access_token(token) is None


def test_garbage_token_is_rejected():
    assert security.decode_access_token("not-a-jwt") is None
