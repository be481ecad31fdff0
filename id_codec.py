"""
Opaque tokens for database ids.

A token is the URL-safe base64 (padding stripped) of ``"<id>|<tag>"`` where
``tag`` is the SHA-256 hex digest of the id concatenated with ``ID_SECRET``.
Clients can't guess the next id or edit a token without breaking the tag.
This hides sequential ids; it is not access control.
"""
import base64
import binascii
import hashlib
import hmac

import config


def _tag(id_text: str, secret: str) -> str:
    return hashlib.sha256((id_text + secret).encode("utf-8")).hexdigest()


def encode_id(id_, secret=None):
    if not id_:
        return None
    try:
        id_int = int(id_)
    except (TypeError, ValueError):
        return None
    if id_int <= 0:
        return None
    id_text = str(id_int)
    raw = f"{id_text}|{_tag(id_text, secret or config.ID_SECRET)}"
    return base64.urlsafe_b64encode(raw.encode("ascii")).decode("ascii").rstrip("=")


def decode_id(token, secret=None):
    """Return the id inside ``token``, or None if the token is malformed or forged."""
    if not token or not isinstance(token, str):
        return None
    padded = token + "=" * (-len(token) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii")).decode("ascii")
    except (binascii.Error, UnicodeError, ValueError):
        return None

    id_text, sep, tag = raw.partition("|")
    if not sep or not id_text.isdigit():
        return None
    if hmac.compare_digest(_tag(id_text, secret or config.ID_SECRET), tag):
        return int(id_text)
    return None


class TokenRegistry:
    """Per-session map of tokens handed out to the client.

    ``store`` is any mutable mapping, normally the Flask session.
    """

    SESSION_KEY = "encoded_ids"

    def __init__(self, store, secret=None):
        self.store = store
        self.secret = secret

    def _entries(self):
        return self.store.setdefault(self.SESSION_KEY, {})

    def store_encoded_id(self, key, id_):
        encoded = encode_id(id_, self.secret)
        entries = self._entries()
        entries[str(key)] = {"encoded": encoded, "id": int(id_)}
        # Flask only notices in-place changes to nested values when told.
        if hasattr(self.store, "modified"):
            self.store.modified = True
        return encoded

    def retrieve_encoded_id(self, encoded):
        for data in self.store.get(self.SESSION_KEY, {}).values():
            if data["encoded"] == encoded:
                return data["id"]
        return decode_id(encoded, self.secret)
