import base64

import pytest

import config
from id_codec import TokenRegistry, decode_id, encode_id

SECRET = "unit-test-secret"


def _unpack(token):
    return base64.urlsafe_b64decode(token + "=" * (-len(token) % 4)).decode()


@pytest.mark.parametrize("id_", [1, 7, 42, 1000, 2**40])
def test_encode_then_decode_returns_id(id_):
    token = encode_id(id_, SECRET)

    assert decode_id(token, SECRET) == id_


def test_token_is_url_safe_and_unpadded():
    for id_ in range(1, 200):
        token = encode_id(id_, SECRET)
        assert "=" not in token
        assert "+" not in token and "/" not in token


def test_encode_accepts_numeric_strings():
    assert decode_id(encode_id("9", SECRET), SECRET) == 9


@pytest.mark.parametrize("bad", [None, 0, "", -3, "abc"])
def test_encode_rejects_empty_or_non_positive(bad):
    assert encode_id(bad, SECRET) is None


def test_decode_uses_configured_secret_by_default(monkeypatch):
    monkeypatch.setattr(config, "ID_SECRET", "from-config")

    token = encode_id(5)

    assert decode_id(token) == 5
    assert decode_id(token, "something-else") is None


def test_tampered_tag_is_invalid():
    raw = _unpack(encode_id(3, SECRET))
    id_text, _, tag = raw.partition("|")
    flipped = tag[:-1] + ("0" if tag[-1] != "0" else "1")
    forged = base64.urlsafe_b64encode(f"{id_text}|{flipped}".encode()).decode().rstrip("=")

    assert decode_id(forged, SECRET) is None


def test_incremented_id_with_old_tag_is_invalid():
    raw = _unpack(encode_id(3, SECRET))
    _, _, tag = raw.partition("|")
    forged = base64.urlsafe_b64encode(f"4|{tag}".encode()).decode().rstrip("=")

    assert decode_id(forged, SECRET) is None


def test_token_from_other_secret_is_invalid():
    assert decode_id(encode_id(3, "other"), SECRET) is None


@pytest.mark.parametrize("garbage", [None, "", "!!!", "abc", "Zm9v", "@@@@====", 123])
def test_garbage_tokens_are_invalid(garbage):
    assert decode_id(garbage, SECRET) is None


def test_non_digit_id_with_valid_looking_tag_is_invalid():
    forged = base64.urlsafe_b64encode(b"x1|deadbeef").decode().rstrip("=")
    assert decode_id(forged, SECRET) is None


def test_registry_stores_and_retrieves_from_session_map():
    store = {}
    registry = TokenRegistry(store, secret=SECRET)

    token = registry.store_encoded_id("drive_8", 8)

    assert store["encoded_ids"]["drive_8"] == {"encoded": token, "id": 8}
    assert registry.retrieve_encoded_id(token) == 8


def test_registry_falls_back_to_decoding_unknown_tokens():
    registry = TokenRegistry({}, secret=SECRET)

    assert registry.retrieve_encoded_id(encode_id(21, SECRET)) == 21
    assert registry.retrieve_encoded_id("not-a-token") is None


def test_registry_marks_session_modified():
    class FakeSession(dict):
        modified = False

    session = FakeSession()
    TokenRegistry(session, secret=SECRET).store_encoded_id("k", 1)

    assert session.modified is True
