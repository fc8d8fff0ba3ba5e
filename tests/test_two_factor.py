import threading

import pytest

from app.core.two_factor import (
    ChallengeExpired,
    ChallengeNotFound,
    InvalidCode,
    TwoFactorStore,
    generate_code,
)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return TwoFactorStore(ttl_seconds=300, clock=clock)


def test_generated_codes_are_six_digits():
    for _ in range(200):
        code = generate_code()
        assert len(code) == 6
        assert 100000 <= int(code) <= 999999


def test_verify_consumes_challenge(store):
    challenge_id, code, ttl = store.create("user-1")

    assert ttl == 300
    assert store.verify(challenge_id, code) == "user-1"
    with pytest.raises(ChallengeNotFound):
        store.verify(challenge_id, code)


def test_wrong_code_keeps_challenge(store):
    challenge_id, code, _ = store.create("user-1")
    wrong = "123456" if code != "123456" else "654321"

    with pytest.raises(InvalidCode):
        store.verify(challenge_id, wrong)
    assert store.verify(challenge_id, code) == "user-1"


def test_expired_challenge_is_discarded(store, clock):
    challenge_id, code, _ = store.create("user-1")
    clock.now += 301

    with pytest.raises(ChallengeExpired):
        store.verify(challenge_id, code)
    assert store.get(challenge_id) is None


def test_challenge_valid_until_ttl(store, clock):
    challenge_id, code, _ = store.create("user-1")
    clock.now += 300

    assert store.verify(challenge_id, code) == "user-1"


def test_purge_expired(store, clock):
    store.create("user-1")
    clock.now += 200
    live_id, _, _ = store.create("user-2")
    clock.now += 150

    assert store.purge_expired() == 1
    assert len(store) == 1
    assert store.get(live_id).user_id == "user-2"


def test_unknown_challenge(store):
    with pytest.raises(ChallengeNotFound):
        store.verify("missing", "123456")


class CountingLock:
    def __init__(self):
        self.acquired = 0
        self._lock = threading.Lock()

    def __enter__(self):
        self.acquired += 1
        return self._lock.__enter__()

    def __exit__(self, *exc):
        return self._lock.__exit__(*exc)


def test_len_holds_the_lock(store):
    store.create("user-1")
    store._lock = CountingLock()

    assert len(store) == 1
    assert store._lock.acquired == 1
