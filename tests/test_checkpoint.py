import json

import pytest

import ivi.ivilib.base as base
import ivi.ivilib.checkpoint as checkpoint
from ivi.ivilib.state import Branch, Running, SearchStats, make_target


def _midway(N, steps):
    state = base.initialize(N)
    for _ in range(steps):
        state = base.advance(state)
    return state


def test_running_state_round_trip():
    state = _midway(39601, 2)
    assert isinstance(state, Running)
    assert checkpoint.loads(checkpoint.dumps(state)) == state


def test_terminal_states_round_trip():
    solved = base.run(base.initialize(91))
    exhausted = base.run(base.initialize(13))
    assert checkpoint.loads(checkpoint.dumps(solved)) == solved
    assert checkpoint.loads(checkpoint.dumps(exhausted)) == exhausted


def test_large_values_are_not_narrowed():
    N = 2**127 - 1
    big = Branch(k=3, p_history=(1, 2, 3), q_history=(4, 5, 6),
                 p_value=10**60 + 7, q_value=2**200 + 1, carry_in=2**70)
    state = Running(target=make_target(N), k=4, frontier=(big,),
                    stats=SearchStats(visited=2**65))
    restored = checkpoint.loads(checkpoint.dumps(state))
    assert restored == state
    assert restored.frontier[0].q_value == 2**200 + 1
    assert restored.target.sqrt_n == state.target.sqrt_n


def test_resume_gives_same_result(tmp_path):
    path = tmp_path / "state.json"
    checkpoint.dump(_midway(10403, 2), path)
    resumed = base.run(checkpoint.load(path))
    assert resumed == base.run(base.initialize(10403))


def test_rejects_other_versions():
    data = checkpoint.to_dict(_midway(15, 1))
    data["version"] = 99
    with pytest.raises(ValueError):
        checkpoint.from_dict(data)


def test_rejects_unknown_state_kind():
    data = checkpoint.to_dict(_midway(15, 1))
    data["state"] = "paused"
    with pytest.raises(ValueError):
        checkpoint.loads(json.dumps(data))
