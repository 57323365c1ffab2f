import pytest

import ivi.ivilib.multibase as multibase
from ivi.ivilib.state import Exhausted, Running, Solved


def test_initialize_base():
    state = multibase.initialize_base(15, 2)
    assert state.target.base == 2
    assert state.target.digits == (1, 1, 1, 1)
    with pytest.raises(ValueError):
        multibase.initialize_base(15, 1)
    with pytest.raises(ValueError):
        multibase.initialize_base(15, 16, symmetry="partial")


def test_every_base_solves():
    result = multibase.explore_bases(15, (10, 2, 16))
    assert result.all_completed
    assert all(o.solved for o in result.results.values())
    assert all(o.state.factors == (3, 5) for o in result.results.values())
    assert result.results[10].transitions == 2
    assert result.results[16].transitions == 1


def test_fewest_transitions_wins():
    result = multibase.explore_bases(15, (10, 2, 16))
    assert result.winner.base == 16


def test_tie_goes_to_first_listed_base():
    # 15 is a single digit in both bases
    assert multibase.explore_bases(15, (16, 20)).winner.base == 16
    assert multibase.explore_bases(15, (20, 16)).winner.base == 20


def test_prime_has_no_winner():
    result = multibase.explore_bases(13, (2, 10))
    assert result.winner is None
    assert result.all_completed
    assert all(isinstance(o.state, Exhausted) for o in result.results.values())


@pytest.mark.parametrize("bases", [[], [10, 10], [1, 10]])
def test_bad_base_lists(bases):
    with pytest.raises(ValueError):
        multibase.explore_bases(15, bases)


def test_interleave_is_round_robin():
    steps = [(rnd, b, type(s)) for rnd, b, s in multibase.interleave(15, (10, 16))]
    assert steps == [(1, 10, Running), (1, 16, Solved), (2, 10, Solved)]


def test_interleave_can_be_stopped_early():
    it = multibase.interleave(39601, (2, 10))
    first = next(it)
    it.close()
    assert first[0] == 1
    assert first[1] == 2


def test_progress_callback():
    seen = []
    result = multibase.explore_bases(15, (10, 16), on_progress=lambda *a: seen.append(a[:2]))
    assert seen == [(1, 10), (1, 16), (2, 10)]
    assert result.rounds == 2
