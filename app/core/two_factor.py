"""
Two-factor login challenges.

A challenge is a random 6-digit code bound to a user, kept in process memory
under a random challenge id until it is verified or expires. Single-instance
only: challenges are not shared across worker processes.
"""

import secrets
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Dict, Optional, Tuple


class ChallengeError(Exception):
    """Base class for challenge verification failures."""


class ChallengeNotFound(ChallengeError):
    pass


class ChallengeExpired(ChallengeError):
    pass


class InvalidCode(ChallengeError):
    pass


@dataclass
class Challenge:
    user_id: str
    code: str
    expires_at: float


def generate_code() -> str:
    """Random 6-digit code in 100000-999999."""
    return str(100000 + secrets.randbelow(900000))


class TwoFactorStore:
    def __init__(self, ttl_seconds: int = 300, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._challenges: Dict[str, Challenge] = {}
        self._lock = threading.Lock()

    def create(self, user_id: str) -> Tuple[str, str, int]:
        """Start a challenge. Returns (challenge_id, code, expires_in_seconds)."""
        challenge_id = str(uuid.uuid4())
        code = generate_code()
        with self._lock:
            self._purge_locked()
            self._challenges[challenge_id] = Challenge(
                user_id=user_id,
                code=code,
                expires_at=self._clock() + self.ttl_seconds,
            )
        return challenge_id, code, self.ttl_seconds

    def verify(self, challenge_id: str, code: str) -> str:
        """
        Check a code against a challenge and consume it.

        Returns the user id on success. Expired challenges are discarded;
        a wrong code leaves the challenge in place for another attempt.
        """
        with self._lock:
            challenge = self._challenges.get(challenge_id)
            if challenge is None:
                raise ChallengeNotFound(challenge_id)
            if self._clock() > challenge.expires_at:
                del self._challenges[challenge_id]
                raise ChallengeExpired(challenge_id)
            if not secrets.compare_digest(challenge.code, code):
                raise InvalidCode(challenge_id)
            del self._challenges[challenge_id]
            return challenge.user_id

    def get(self, challenge_id: str) -> Optional[Challenge]:
        with self._lock:
            return self._challenges.get(challenge_id)

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked()

    def _purge_locked(self) -> int:
        now = self._clock()
        expired = [cid for cid, c in self._challenges.items() if now > c.expires_at]
        for cid in expired:
            del self._challenges[cid]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._challenges.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._challenges)


_store: Optional[TwoFactorStore] = None


def get_two_factor_store() -> TwoFactorStore:
    """Get singleton challenge store."""
    global _store
    if _store is None:
        from app.core.config import get_settings
        _store = TwoFactorStore(ttl_seconds=get_settings().two_factor_ttl_seconds)
    return _store
