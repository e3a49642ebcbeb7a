from realtime.models import Identity
from realtime.presence import PresenceTable


def test_register_and_lookup():
    presence = PresenceTable()
    presence.register(Identity(5, "eve"), "A")

    assert presence.lookup(5) == "A"
    assert presence.lookup(6) is None
    assert len(presence) == 1


def test_newer_connection_supersedes_older():
    presence = PresenceTable()
    eve = Identity(5, "eve")
    presence.register(eve, "A")
    presence.register(eve, "B")

    assert presence.lookup(5) == "B"
    assert len(presence) == 1


def test_stale_unregister_keeps_newer_entry():
    presence = PresenceTable()
    eve = Identity(5, "eve")
    presence.register(eve, "A")
    presence.register(eve, "B")

    assert presence.unregister(eve, "A") is False
    assert presence.lookup(5) == "B"


def test_unregister_current_handle_removes_entry():
    presence = PresenceTable()
    eve = Identity(5, "eve")
    presence.register(eve, "A")

    assert presence.unregister(eve, "A") is True
    assert presence.lookup(5) is None
    assert presence.unregister(eve, "A") is False


def test_query_reports_online_and_offline_users():
    presence = PresenceTable()
    presence.register(Identity(1, "alice"), "A")
    presence.register(Identity(3, "carol"), "C")

    assert presence.query([1, 2, 3]) == {1: "A", 2: None, 3: "C"}
