from __future__ import annotations

import hashlib
import hmac
from typing import Iterable, Optional, Protocol

ACTION_INITIALIZE = "initialize"
ACTION_REFINE = "refine"


class AuthVerifier(Protocol):
    def verify(self, identity: str, proof: Optional[str], *, action: str) -> bool:
        """True when the call carries valid authorization for `identity`."""
        ...


class StaticAuthVerifier:
    """Treats a fixed set of identities as having signed every call."""

    def __init__(self, authorized: Iterable[str]) -> None:
        self._authorized = set(authorized)

    def verify(self, identity: str, proof: Optional[str], *, action: str) -> bool:
        return identity in self._authorized


class HmacAuthVerifier:
    """Proof = hex HMAC-SHA256 of "<action>:<identity>" under a shared secret."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("HMAC secret must be non-empty")
        self._key = secret.encode("utf-8")

    def sign(self, identity: str, action: str) -> str:
        material = f"{action}:{identity}".encode("utf-8")
        return hmac.new(self._key, material, hashlib.sha256).hexdigest()

    def verify(self, identity: str, proof: Optional[str], *, action: str) -> bool:
        if not proof:
            return False
        return hmac.compare_digest(self.sign(identity, action), proof.strip().lower())
