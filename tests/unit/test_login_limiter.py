import time

from app.security.login_limiter import LoginLimiter


def test_locks_after_max_attempts():
    limiter = LoginLimiter(max_attempts=3, lockout_minutes=15)

    assert limiter.record_failure("10.0.0.1") is False
    assert limiter.record_failure("10.0.0.1") is False
    assert limiter.seconds_locked("10.0.0.1") == 0
    assert limiter.record_failure("10.0.0.1") is True

    remaining = limiter.seconds_locked("10.0.0.1")
    assert 0 < remaining <= 15 * 60 + 1
    assert limiter.seconds_locked("10.0.0.2") == 0


def test_success_clears_failures():
    limiter = LoginLimiter(max_attempts=2)
    limiter.record_failure("ip")
    limiter.record_success("ip")
    assert limiter.record_failure("ip") is False


def test_lock_expires(monkeypatch):
    limiter = LoginLimiter(max_attempts=1, lockout_minutes=1)
    start = time.monotonic()
    monkeypatch.setattr(time, "monotonic", lambda: start)
    limiter.record_failure("ip")
    assert limiter.seconds_locked("ip") > 0

    monkeypatch.setattr(time, "monotonic", lambda: start + 61)
    assert limiter.seconds_locked("ip") == 0
    assert limiter.record_failure("ip") is True
