import threading

import pytest

from camquad.controllers.cancel_scope import CancelScope, CompletionBarrier


def test_cancel_propagates_to_descendants():
    root = CancelScope(name="application")
    camera = root.child("camera")
    session = camera.child("session")
    sibling = root.child("other camera")

    camera.cancel()

    assert camera.cancelled and session.cancelled
    assert not root.cancelled
    assert not sibling.cancelled

    root.cancel()
    assert sibling.cancelled


def test_child_of_cancelled_scope_starts_cancelled():
    root = CancelScope()
    root.cancel()

    assert root.child().cancelled


def test_callbacks_run_once_and_late_callbacks_run_immediately():
    scope = CancelScope()
    calls = []
    scope.add_callback(lambda: calls.append("early"))

    scope.cancel()
    scope.cancel()
    scope.add_callback(lambda: calls.append("late"))

    assert calls == ["early", "late"]


def test_removed_callback_does_not_run():
    scope = CancelScope()
    calls = []

    def callback():
        calls.append("called")

    scope.add_callback(callback)
    scope.remove_callback(callback)
    scope.cancel()

    assert calls == []


def test_failing_callback_does_not_stop_others():
    scope = CancelScope()
    calls = []

    def broken():
        raise RuntimeError("boom")

    scope.add_callback(broken)
    scope.add_callback(lambda: calls.append("second"))
    scope.cancel()

    assert calls == ["second"]


def test_close_detaches_from_parent():
    root = CancelScope()
    child = root.child()
    assert root.child_count == 1

    child.close()
    assert root.child_count == 0

    root.cancel()
    assert not child.cancelled


def test_wait_unblocks_on_cancel_from_other_thread():
    scope = CancelScope()
    timer = threading.Timer(0.05, scope.cancel)
    timer.start()
    try:
        assert scope.wait(5.0) is True
    finally:
        timer.cancel()
    assert CancelScope().wait(0.01) is False


def test_barrier_waits_for_all_workers():
    barrier = CompletionBarrier()
    barrier.add(3)
    release = threading.Event()

    def worker():
        release.wait(5.0)
        barrier.done()

    threads = [threading.Thread(target=worker) for _ in range(3)]
    for thread in threads:
        thread.start()

    assert barrier.wait(0.05) is False
    assert barrier.pending == 3

    release.set()
    assert barrier.wait(5.0) is True
    assert barrier.pending == 0
    for thread in threads:
        thread.join(5.0)


def test_barrier_rejects_extra_done():
    barrier = CompletionBarrier()
    assert barrier.wait(0) is True
    with pytest.raises(RuntimeError):
        barrier.done()
