import pytest

import ivi.ivilib.base as base
import ivi.ivilib.checkpoint as checkpoint
import ivi.ivilib.complete as complete
import ivi.ivilib.parallel_frontier as parallel_frontier
from ivi.ivilib.state import Running, Solved


def test_complete_digit_search():
    assert complete.digit_search(39601, progress=False) == (199, 199)
    assert complete.digit_search(2018, progress=False, use_numpy=True) == (2, 1009)


def test_complete_in_other_base():
    assert complete.digit_search(3233, 7, progress=False) == (53, 61)


def test_complete_with_threads():
    result = complete.digit_search(10403, chunks=3, jobs=2, multivariant="multithreading", progress=False)
    assert result == (101, 103)


def test_prime_raises():
    with pytest.raises(ValueError, match="may be prime"):
        complete.digit_search(101, progress=False)


def test_cap_frontier():
    state = base.advance(base.initialize(91))
    assert len(state.frontier) == 3

    capped, dropped = complete.cap_frontier(state, 1)
    assert dropped
    assert capped.frontier == state.frontier[:1]
    assert capped.k == state.k

    same, dropped = complete.cap_frontier(state, 3)
    assert not dropped and same is state
    assert complete.cap_frontier(state, None) == (state, False)


def test_capped_search_without_retries_fails():
    with pytest.raises(ValueError, match="frontier_cap"):
        complete.digit_search(91, frontier_cap=1, progress=False)


def test_capped_search_retries_with_larger_cap():
    # caps 1 and 2 both drop the (7, 3) branch, 4 keeps it
    with pytest.raises(ValueError):
        complete.digit_search(91, frontier_cap=1, retries=1, progress=False)
    assert complete.digit_search(91, frontier_cap=1, retries=2, retry_factor=2.0, progress=False) == (7, 13)


def test_writes_checkpoints(tmp_path):
    path = tmp_path / "ivi.json"
    complete.digit_search(39601, checkpoint_path=str(path), progress=False)
    saved = checkpoint.load(path)
    assert isinstance(saved, Solved)
    assert saved.factors == (199, 199)


def test_resume():
    state = base.initialize(39601)
    for _ in range(2):
        state = base.advance(state)
    assert isinstance(state, Running)
    assert complete.digit_search(39601, resume=state, progress=False) == (199, 199)
    with pytest.raises(ValueError):
        complete.digit_search(15, resume=state, progress=False)


def test_debug_output(capsys):
    complete.digit_search(91, progress=False, debug=2)
    out = capsys.readouterr().out
    assert "Pruning statistics" in out
    assert "Found factors: 7 * 13" in out
    assert "k=1: p_k=7, q_k=3" in out


def test_timing(capsys):
    complete.digit_search(15, progress=False, timing=True)
    labels = [s for s, _ in complete.get_timing()]
    assert labels == ["init", "1", "2", "3"]
    complete.print_timing()
    assert "Digit search" in capsys.readouterr().out


def test_symmetry_off_returns_sorted_factors():
    assert complete.digit_search(91, symmetry="off", progress=False) == (7, 13)


def test_one_pool_per_search(monkeypatch):
    import concurrent.futures as futures

    opened = []

    def fake_open_pool(variant, jobs):
        opened.append(variant)
        return futures.ThreadPoolExecutor(max_workers=jobs)

    monkeypatch.setattr(parallel_frontier, "open_pool", fake_open_pool)
    assert complete.digit_search(10403, chunks=3, jobs=2, multivariant="multithreading", progress=False) == (101, 103)
    assert opened == ["multithreading"]


def test_no_pool_without_chunks(monkeypatch):
    def fail(*args):
        raise AssertionError("pool opened for a single chunk")

    monkeypatch.setattr(parallel_frontier, "open_pool", fail)
    assert complete.digit_search(10403, progress=False) == (101, 103)


def test_debug_shows_cached_powers(capsys):
    complete.digit_search(15, progress=False, debug=2)
    assert "Cached powers of the base:" in capsys.readouterr().out
