import threading

from matchcast.registry import SubscriptionRegistry


class Chan:
    def __init__(self):
        self.closed = False

    def write(self, frame):
        pass

    def close(self):
        self.closed = True


def test_register_then_unregister_drops_topic():
    reg = SubscriptionRegistry()
    c = Chan()
    reg.register("m1", c)
    assert "m1" in reg
    assert reg.channels("m1") == [c]

    assert reg.unregister("m1", c) is True
    assert "m1" not in reg
    assert reg.topics() == []


def test_topic_kept_while_other_channels_remain():
    reg = SubscriptionRegistry()
    a, b = Chan(), Chan()
    reg.register("m1", a)
    reg.register("m1", b)
    reg.unregister("m1", a)
    assert reg.channels("m1") == [b]
    assert reg.count("m1") == 1


def test_unregister_unknown_is_noop():
    reg = SubscriptionRegistry()
    assert reg.unregister("nope", Chan()) is False
    reg.register("m1", Chan())
    assert reg.unregister("m1", Chan()) is False
    assert reg.count() == 1


def test_disposer_can_run_twice():
    reg = SubscriptionRegistry()
    c = Chan()
    dispose = reg.register("all_matches", c)
    dispose()
    dispose()
    assert reg.count() == 0


def test_registering_same_channel_twice_keeps_one_entry():
    reg = SubscriptionRegistry()
    c = Chan()
    reg.register("m1", c)
    reg.register("m1", c)
    assert reg.channels("m1") == [c]


def test_channels_returns_snapshot():
    reg = SubscriptionRegistry()
    chans = [Chan() for _ in range(3)]
    for c in chans:
        reg.register("m1", c)

    seen = []
    for c in reg.channels("m1"):
        reg.unregister("m1", c)
        reg.register("m1", Chan())
        seen.append(c)
    assert len(seen) == 3
    assert reg.count("m1") == 3


def test_discard_removes_channel_from_every_topic():
    reg = SubscriptionRegistry()
    c, other = Chan(), Chan()
    reg.register("m1", c)
    reg.register("all_matches", c)
    reg.register("all_matches", other)

    left = reg.discard(c)
    assert sorted(left) == ["all_matches", "m1"]
    assert "m1" not in reg
    assert reg.channels("all_matches") == [other]


def test_all_channels_lists_pairs():
    reg = SubscriptionRegistry()
    a, b = Chan(), Chan()
    reg.register("m1", a)
    reg.register("all_matches", b)
    assert sorted(t for t, _ in reg.all_channels()) == ["all_matches", "m1"]


def test_close_all_closes_and_empties():
    reg = SubscriptionRegistry()
    chans = [Chan(), Chan(), Chan()]
    reg.register("m1", chans[0])
    reg.register("m2", chans[1])
    reg.register("all_matches", chans[2])

    assert reg.close_all() == 3
    assert reg.count() == 0
    assert all(c.closed for c in chans)


def test_concurrent_register_unregister_and_iterate():
    reg = SubscriptionRegistry()
    errors = []

    def churn(topic):
        try:
            for _ in range(300):
                c = Chan()
                dispose = reg.register(topic, c)
                reg.channels(topic)
                reg.all_channels()
                dispose()
        except Exception as exc:  # pragma: no cover - only on failure
            errors.append(exc)

    threads = [threading.Thread(target=churn, args=(t,)) for t in ("m1", "m1", "m2", "all_matches")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert reg.count() == 0
    assert reg.topics() == []
