from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import string
from dataclasses import dataclass
from typing import Callable

from drink_tally.errors import InitializationError

logger = logging.getLogger(__name__)

UID_LENGTH = 28
_UID_ALPHABET = string.ascii_letters + string.digits


@dataclass(frozen=True)
class Identity:
    uid: str
    anonymous: bool = False


def new_anonymous_uid() -> str:
    return "".join(secrets.choice(_UID_ALPHABET) for _ in range(UID_LENGTH))


def _sign(uid: str, secret: str) -> str:
    return hmac.new(secret.encode(), uid.encode(), hashlib.sha256).hexdigest()


def mint_custom_token(uid: str, secret: str) -> str:
    return f"{uid}.{_sign(uid, secret)}"


def verify_custom_token(token: str, secret: str | None) -> str | None:
    if not secret or "." not in token:
        return None
    uid, signature = token.rsplit(".", maxsplit=1)
    if not uid or not hmac.compare_digest(_sign(uid, secret), signature):
        return None
    return uid


class IdentityProvider:
    """Holds the current identity of one client and announces when it is known."""

    def __init__(self, signing_secret: str | None = None) -> None:
        self._signing_secret = signing_secret
        self.current: Identity | None = None
        self.ready = False
        self._listeners: list[Callable[[Identity | None], None]] = []

    def on_change(self, listener: Callable[[Identity | None], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        if self.ready:
            listener(self.current)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, identity: Identity | None) -> None:
        self.current = identity
        self.ready = True
        for listener in list(self._listeners):
            try:
                listener(identity)
            except Exception:
                logger.exception("Identity listener failed")

    def sign_in_anonymously(self) -> Identity:
        identity = Identity(uid=new_anonymous_uid(), anonymous=True)
        self._set(identity)
        return identity

    def sign_in_with_custom_token(self, token: str) -> Identity:
        uid = verify_custom_token(token, self._signing_secret)
        if uid is None:
            logger.error("Custom token sign-in rejected")
            raise InitializationError("Invalid custom token")
        identity = Identity(uid=uid)
        self._set(identity)
        return identity

    def sign_in_trusted(self, uid: str) -> Identity:
        # For surfaces that have already authenticated the user, e.g. Telegram.
        if not uid:
            raise InitializationError("Empty uid")
        identity = Identity(uid=uid)
        self._set(identity)
        return identity

    def sign_out(self) -> None:
        self._set(None)
