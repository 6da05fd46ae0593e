from types import SimpleNamespace

from invigilation.core.config import Settings
from invigilation.services.tie_break import HashTieBreaker, NoTieBreaker, RandomTieBreaker, build_tie_breaker


def items(*ids):
    return [SimpleNamespace(id=item_id) for item_id in ids]


def test_hash_tie_breaker_is_reproducible():
    first = HashTieBreaker(salt="x")
    second = HashTieBreaker(salt="x")

    assert first.jitter("f1", "ctx") == second.jitter("f1", "ctx")
    assert [item.id for item in first.shuffle(items("a", "b", "c", "d"), "ctx")] == [
        item.id for item in second.shuffle(items("a", "b", "c", "d"), "ctx")
    ]
    assert 0 <= first.jitter("f1", "ctx") < 5


def test_seeded_random_tie_breaker_replays_the_same_sequence():
    first = RandomTieBreaker(7)
    second = RandomTieBreaker(7)

    assert [first.jitter("f", "c") for _ in range(5)] == [second.jitter("f", "c") for _ in range(5)]
    assert [item.id for item in first.shuffle(items(*"abcdef"), "c")] == [
        item.id for item in second.shuffle(items(*"abcdef"), "c")
    ]


def test_shuffle_keeps_every_item_and_leaves_input_untouched():
    original = items(*"abcdef")

    shuffled = RandomTieBreaker(3).shuffle(original, "ctx")

    assert sorted(item.id for item in shuffled) == list("abcdef")
    assert [item.id for item in original] == list("abcdef")


def test_no_tie_breaker_keeps_order_and_adds_nothing():
    breaker = NoTieBreaker()

    assert breaker.jitter("f", "c") == 0
    assert [item.id for item in breaker.shuffle(items("b", "a"), "c")] == ["b", "a"]


def test_builder_follows_settings():
    assert isinstance(build_tie_breaker(Settings(allocation_tie_break="none")), NoTieBreaker)
    assert isinstance(build_tie_breaker(Settings(allocation_tie_break="hash")), HashTieBreaker)
    assert isinstance(build_tie_breaker(Settings(allocation_tie_break="random")), RandomTieBreaker)
    assert isinstance(build_tie_breaker(Settings(allocation_jitter_max=0)), NoTieBreaker)
