from threading import Event, Thread

from attempt_app.utils.keyed_locks import KeyedLocks


def test_entries_are_released_after_use():
    locks = KeyedLocks()

    with locks.hold("a"):
        assert len(locks) == 1

    assert len(locks) == 0


def test_same_key_is_mutually_exclusive_and_other_keys_are_not():
    locks = KeyedLocks()
    entered = Event()
    release = Event()
    order = []

    def holder():
        with locks.hold("a"):
            entered.set()
            release.wait(timeout=5)
            order.append("holder")

    def contender():
        with locks.hold("a"):
            order.append("contender")

    first = Thread(target=holder)
    first.start()
    entered.wait(timeout=5)

    with locks.hold("b"):
        order.append("other-key")

    second = Thread(target=contender)
    second.start()
    release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    assert order == ["other-key", "holder", "contender"]
    assert len(locks) == 0
