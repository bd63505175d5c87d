from matchcast import events
from matchcast.broadcast import Broadcaster
from matchcast.registry import SubscriptionRegistry


def _match(mid="m1", **extra):
    m = {"id": mid, "teamA": "A", "teamB": "B", "status": "live", "scoreA": 0, "scoreB": 0, "events": []}
    m.update(extra)
    return m


def test_publish_to_topic_only_reaches_that_topic(recording):
    reg = SubscriptionRegistry()
    b = Broadcaster(reg)
    m1a, m1b, m2, lst = recording(), recording(), recording(), recording()
    reg.register("m1", m1a)
    reg.register("m1", m1b)
    reg.register("m2", m2)
    reg.register(events.ALL_MATCHES, lst)

    delivered = b.publish_to_topic("m1", events.match_started(_match()))
    assert delivered == 2
    assert m1a.types == ["MATCH_STARTED"]
    assert m1b.types == ["MATCH_STARTED"]
    assert m2.frames == []
    assert lst.frames == []


def test_publish_to_unknown_topic_delivers_nothing():
    b = Broadcaster(SubscriptionRegistry())
    assert b.publish_to_topic("ghost", events.ping()) == 0


def test_failed_write_is_isolated_and_channel_dropped(recording, broken):
    reg = SubscriptionRegistry()
    b = Broadcaster(reg)
    bad, good = broken(), recording()
    reg.register("m1", bad)
    reg.register("m1", good)
    reg.register(events.ALL_MATCHES, bad)

    delivered = b.publish_to_topic("m1", events.match_updated(_match()))
    assert delivered == 1
    assert good.types == ["MATCH_UPDATED"]
    assert bad.closed is True
    # gone from every topic it was in
    assert reg.channels("m1") == [good]
    assert events.ALL_MATCHES not in reg

    b.publish_to_all(events.ping())
    assert bad.writes == 1


def test_publish_to_all_reaches_every_topic(recording, broken):
    reg = SubscriptionRegistry()
    b = Broadcaster(reg)
    chans = [recording(), recording(), recording()]
    reg.register("m1", chans[0])
    reg.register("m2", chans[1])
    reg.register(events.ALL_MATCHES, chans[2])
    reg.register("m2", broken())

    assert b.publish_to_all(events.ping()) == 3
    assert all(c.types == ["PING"] for c in chans)
    assert reg.count() == 3


def test_publish_match_change_goes_to_match_and_list(recording):
    reg = SubscriptionRegistry()
    b = Broadcaster(reg)
    detail, other, lst = recording(), recording(), recording()
    reg.register("m1", detail)
    reg.register("m9", other)
    reg.register(events.ALL_MATCHES, lst)

    match = _match(scoreA=2)
    b.publish_match_change(events.match_status_changed(match), match)

    assert detail.types == ["MATCH_STATUS_CHANGED"]
    assert detail.events[0]["newStatus"] == "live"
    assert lst.types == ["MATCH_UPDATED"]
    assert lst.events[0]["matchId"] == "m1"
    assert lst.events[0]["match"]["scoreA"] == 2
    assert other.frames == []
