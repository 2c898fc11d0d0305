import threading

from camquad.controllers.frame_channel import FrameChannel


def test_take_on_empty_channel_returns_none():
    assert FrameChannel().take() is None


def test_latest_frame_wins():
    channel = FrameChannel()

    assert channel.offer("frame-1") is True
    assert channel.offer("frame-2") is False
    assert channel.offer("frame-3") is False

    assert channel.take() == "frame-3"
    assert channel.take() is None
    assert channel.frames_offered == 3
    assert channel.frames_replaced == 2


def test_clear_drops_unread_frame():
    channel = FrameChannel()
    channel.offer("frame")
    channel.clear()

    assert channel.take() is None
    assert channel.offer("next") is True


def test_subscribers_are_notified_after_each_offer():
    channel = FrameChannel()
    seen = []
    channel.subscribe(seen.append)
    channel.subscribe(seen.append)

    channel.offer("a")
    channel.offer("b")
    channel.unsubscribe(seen.append)
    channel.offer("c")

    assert seen == ["a", "b"]
    assert channel.take() == "c"


def test_failing_subscriber_does_not_break_offer():
    channel = FrameChannel()

    def broken(_frame):
        raise RuntimeError("boom")

    channel.subscribe(broken)
    assert channel.offer("a") is True
    assert channel.take() == "a"


def test_producer_never_blocks_on_slow_consumer():
    channel = FrameChannel()
    done = threading.Event()

    def produce():
        for n in range(1000):
            channel.offer(n)
        done.set()

    thread = threading.Thread(target=produce)
    thread.start()
    assert done.wait(5.0)
    thread.join(5.0)

    assert channel.take() == 999
    assert channel.frames_offered == 1000


def test_rejected_offer_is_not_stored_or_announced():
    channel = FrameChannel()
    seen = []
    channel.subscribe(seen.append)

    assert channel.offer("stale", accept=lambda: False) is False
    assert channel.take() is None
    assert seen == []
    assert channel.frames_dropped == 1
    assert channel.frames_offered == 0

    assert channel.offer("fresh", accept=lambda: True) is True
    assert channel.take() == "fresh"
    assert seen == ["fresh"]


def test_accept_check_runs_under_channel_lock():
    channel = FrameChannel()
    held = []

    def accept():
        held.append(channel._lock.locked())
        return True

    channel.offer("frame", accept=accept)

    assert held == [True]
