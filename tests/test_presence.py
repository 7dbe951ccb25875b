from presence import PresenceRegistry


def test_join_and_leave_track_size():
    registry = PresenceRegistry()
    assert registry.join("a")
    assert registry.join("b")
    assert registry.size() == 2
    assert registry.leave("a")
    assert registry.size() == 1
    assert "b" in registry
    assert "a" not in registry


def test_duplicate_join_is_not_double_counted():
    registry = PresenceRegistry()
    registry.join("a")
    assert registry.join("a") is False
    assert registry.size() == 1


def test_leave_never_goes_negative():
    registry = PresenceRegistry()
    registry.join("a")
    registry.leave("a")
    assert registry.leave("a") is False
    assert registry.leave("never-joined") is False
    assert registry.size() == 0
