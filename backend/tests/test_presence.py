# backend/tests/test_presence.py

from datetime import datetime, timedelta, timezone

import pytest

from studytogether.core.exceptions import NotFoundError
from studytogether.services.presence import PresenceHub

UTC = timezone.utc


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 16, 9, 0, tzinfo=UTC))


@pytest.fixture
def hub(clock):
    return PresenceHub(clock=clock)


def inbox():
    events = []
    return events, events.append


def test_friend_is_told_about_online_start_stop_offline(hub, clock):
    b_events, b_send = inbox()
    a_events, a_send = inbox()

    hub.connect("B", ["A"], b_send)
    hub.connect("A", ["B"], a_send)
    hub.start_activity("A", "Math")
    clock.advance(minutes=25)
    duration = hub.stop_activity("A")
    hub.disconnect("A")

    assert duration == 1_500_000
    assert [e["type"] for e in b_events] == [
        "friend_online",
        "friend_started_studying",
        "friend_stopped_studying",
        "friend_offline",
    ]
    assert all(e["user_id"] == "A" for e in b_events)
    started, stopped = b_events[1], b_events[2]
    assert started["subject"] == "Math"
    assert started["start_time"] == "2026-10-16T09:00:00+00:00"
    assert stopped["duration"] == 1_500_000
    assert stopped["start_time"] == started["start_time"]
    # A 는 B가 먼저 접속해 있었으므로 아무것도 받지 않음
    assert a_events == []


def test_only_online_friends_receive_events(hub):
    c_events, c_send = inbox()
    hub.connect("C", [], c_send)
    hub.connect("A", ["B"], lambda e: None)
    hub.start_activity("A")

    assert c_events == []


def test_blank_subject_falls_back_to_default(hub):
    b_events, b_send = inbox()
    hub.connect("B", [], b_send)
    hub.connect("A", ["B"], lambda e: None)

    activity = hub.start_activity("A", "   ")

    assert activity.subject == "General Study"
    assert b_events[-1]["subject"] == "General Study"


def test_start_requires_connection(hub):
    with pytest.raises(NotFoundError):
        hub.start_activity("ghost", "Math")


def test_stop_without_activity_is_a_no_op(hub):
    b_events, b_send = inbox()
    hub.connect("B", [], b_send)
    hub.connect("A", ["B"], lambda e: None)

    assert hub.stop_activity("A") is None
    assert hub.stop_activity("ghost") is None
    assert [e["type"] for e in b_events] == ["friend_online"]


def test_restart_replaces_activity_marker(hub, clock):
    hub.connect("A", [], lambda e: None)
    hub.start_activity("A", "Math")
    clock.advance(minutes=10)
    hub.start_activity("A", "Physics")
    clock.advance(minutes=5)

    assert hub.stop_activity("A") == 300_000


def test_reconnect_last_writer_wins_and_stale_disconnect_is_ignored(hub):
    b_events, b_send = inbox()
    hub.connect("B", ["A"], b_send)

    old = hub.connect("A", ["B"], lambda e: None)
    new = hub.connect("A", ["B"], lambda e: None)

    assert hub.get("A") is new
    assert len(hub) == 2

    hub.disconnect("A", old)
    assert "A" in hub
    assert [e["type"] for e in b_events] == ["friend_online", "friend_online"]

    hub.disconnect("A", new)
    assert "A" not in hub
    assert b_events[-1]["type"] == "friend_offline"


def test_disconnect_unknown_user_does_nothing(hub):
    hub.disconnect("ghost")
    assert len(hub) == 0


def test_failing_sink_does_not_block_other_friends(hub, caplog):
    def broken(event):
        raise RuntimeError("socket gone")

    c_events, c_send = inbox()
    hub.connect("B", [], broken)
    hub.connect("C", [], c_send)
    hub.connect("A", ["B", "C"], lambda e: None)

    hub.start_activity("A", "Math")

    assert [e["type"] for e in c_events] == ["friend_online", "friend_started_studying"]
    assert "Failed to deliver" in caplog.text


def test_update_friends_changes_fanout(hub):
    b_events, b_send = inbox()
    hub.connect("B", [], b_send)
    hub.connect("A", [], lambda e: None)

    hub.start_activity("A")
    assert b_events == []

    hub.update_friends("A", ["B"])
    hub.stop_activity("A")
    assert [e["type"] for e in b_events] == ["friend_stopped_studying"]

    # 접속하지 않은 유저는 무시
    hub.update_friends("ghost", ["B"])
    assert "ghost" not in hub


def test_query_online_friends(hub):
    hub.connect("B", [], lambda e: None)
    hub.connect("C", [], lambda e: None)

    assert hub.query_online_friends("A", ["B", "C", "D"]) == {"B", "C"}
    assert hub.query_online_friends("A", []) == set()
