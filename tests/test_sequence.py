import threading

import pytest

from rxcord.gateway import Sequence


def test_starts_unset():
    assert Sequence().value is None


def test_merge_keeps_maximum():
    seq = Sequence()
    assert seq.merge(3) == 3
    assert seq.merge(1) == 3
    assert seq.merge(7) == 7
    assert seq.value == 7


def test_none_does_not_reset():
    seq = Sequence(5)
    assert seq.merge(None) == 5
    assert seq.value == 5


def test_zero_is_a_value():
    seq = Sequence()
    seq.merge(0)
    assert seq.value == 0


def test_negative_rejected():
    with pytest.raises(ValueError):
        Sequence().merge(-1)
    with pytest.raises(ValueError):
        Sequence(-2)


def test_concurrent_merges_keep_maximum():
    seq = Sequence()

    def worker(offset):
        for i in range(offset, 2000, 8):
            seq.merge(i)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert seq.value == 1999
