from ratelimit import FixedWindowRateLimiter


def make_limiter(clock):
    return FixedWindowRateLimiter(window=1.0, max_events=10, clock=clock)


def test_ten_events_in_a_window_are_allowed(clock):
    limiter = make_limiter(clock)
    assert all(limiter.allow("a") for _ in range(10))


def test_eleventh_event_in_the_same_window_is_denied(clock):
    limiter = make_limiter(clock)
    for _ in range(10):
        limiter.allow("a")
    clock.advance(0.5)
    assert limiter.allow("a") is False


def test_counter_resets_after_the_window_elapses(clock):
    limiter = make_limiter(clock)
    for _ in range(11):
        limiter.allow("a")
    clock.advance(1.001)
    assert limiter.allow("a") is True
    assert all(limiter.allow("a") for _ in range(9))
    assert limiter.allow("a") is False


def test_window_end_is_inclusive(clock):
    limiter = make_limiter(clock)
    for _ in range(10):
        limiter.allow("a")
    clock.advance(1.0)
    # only strictly later calls open a new window
    assert limiter.allow("a") is False


def test_boundary_burst_can_reach_twice_the_limit(clock):
    limiter = make_limiter(clock)
    limiter.allow("a")
    clock.advance(0.99)
    accepted = sum(limiter.allow("a") for _ in range(9)) + 1
    clock.advance(0.02)
    accepted += sum(limiter.allow("a") for _ in range(10))
    assert accepted == 20


def test_identities_are_counted_separately(clock):
    limiter = make_limiter(clock)
    for _ in range(10):
        limiter.allow("a")
    assert limiter.allow("a") is False
    assert limiter.allow("b") is True


def test_forget_drops_the_entry(clock):
    limiter = make_limiter(clock)
    for _ in range(11):
        limiter.allow("a")
    assert "a" in limiter
    limiter.forget("a")
    assert "a" not in limiter
    assert len(limiter) == 0
    assert limiter.allow("a") is True


def test_forget_unknown_identity_is_harmless(clock):
    limiter = make_limiter(clock)
    limiter.forget("missing")
    assert len(limiter) == 0
