import logging

import pytest
from sympy import factorint

import ivi.ivilib.base as base
import ivi.ivilib.np_recurrence as np_recurrence
import ivi.ivilib.parallel_frontier as parallel_frontier
import ivi.ivilib.unpruned as unpruned
from ivi.ivilib.state import ROOT, Exhausted, Solved, is_terminal, make_target


def _step_both(N, b, step):
    reference = base.initialize(N, b)
    other = base.initialize(N, b)
    while not is_terminal(reference):
        reference = base.advance(reference)
        other = step(other)
        assert other == reference
    return reference


# --- unpruned ---

def test_unpruned_agrees_with_pruned():
    for N in range(4, 200):
        if sum(factorint(N).values()) != 2:
            continue
        assert unpruned.digit_search(N) == base.digit_search(N), N


def test_unpruned_frontier_is_a_superset():
    pruned, full = base.initialize(39601), unpruned.initialize(39601)
    for _ in range(3):
        pruned, full = base.advance(pruned), base.advance(full)
        assert set(pruned.frontier) <= set(full.frontier)
    # P > floor(sqrt(39601)) = 199 is possible from the third digit on
    assert len(full.frontier) > len(pruned.frontier)


def test_unpruned_exhausts_on_prime():
    with pytest.raises(ValueError):
        unpruned.digit_search(101)


# --- numpy sweep ---

@pytest.mark.parametrize("N, b", [(15, 10), (39601, 10), (10403, 16), (899, 2), (3233, 7), (97, 10)])
def test_numpy_sweep_matches_base(N, b):
    _step_both(N, b, np_recurrence.advance)


def test_numpy_children_are_python_ints():
    state = base.advance(base.initialize(39601))
    children, _ = np_recurrence.work_function(state.target, state.frontier[0])
    for child, _ in children:
        assert type(child.carry_in) is int
        assert type(child.p_value) is int
        assert all(type(d) is int for d in child.p_history)


def test_numpy_refuses_huge_base():
    t = make_target(15, base=2**40)
    with pytest.raises(OverflowError):
        np_recurrence.work_function(t, ROOT)


def test_numpy_digit_search():
    assert np_recurrence.digit_search(39601) == (199, 199)
    with pytest.raises(ValueError):
        np_recurrence.digit_search(13)


# --- parallel frontier ---

@pytest.mark.parametrize("chunks", [1, 2, 3, 16])
def test_parallel_frontier_matches_base(chunks):
    step = lambda s: parallel_frontier.parallel_advance(s, chunks=chunks, jobs=2, variant="multithreading")
    final = _step_both(10403, 10, step)
    assert isinstance(final, Solved)
    assert final.factors == (101, 103)


def test_parallel_frontier_with_numpy():
    step = lambda s: parallel_frontier.parallel_advance(
        s, chunks=3, jobs=2, variant="multithreading", use_numpy=True)
    _step_both(39601, 10, step)


def test_parallel_frontier_rejects_bad_arguments():
    state = base.advance(base.initialize(39601))
    assert len(state.frontier) >= 2
    with pytest.raises(ValueError):
        parallel_frontier.parallel_advance(state, chunks=0)
    with pytest.raises(ValueError):
        parallel_frontier.parallel_advance(state, chunks=2, variant="greenthreads")


def test_parallel_frontier_passes_terminal_states():
    exhausted = base.run(base.initialize(13))
    assert isinstance(exhausted, Exhausted)
    assert parallel_frontier.parallel_advance(exhausted, chunks=4) is exhausted


def test_parallel_digit_search():
    assert parallel_frontier.digit_search(39601, chunks=2, jobs=2, multivariant="multithreading") == (199, 199)


def test_parallel_frontier_reuses_given_pool():
    import concurrent.futures as futures

    class CountingPool:
        def __init__(self, executor):
            self.executor = executor
            self.calls = 0

        def map(self, fn, inputs):
            self.calls += 1
            return self.executor.map(fn, inputs)

    with futures.ThreadPoolExecutor(max_workers=2) as executor:
        pool = CountingPool(executor)
        step = lambda s: parallel_frontier.parallel_advance(s, chunks=3, pool=pool)
        final = _step_both(10403, 10, step)
        # the pool is still usable after the search
        assert list(executor.map(abs, [-1])) == [1]
    assert final.factors == (101, 103)
    # a transition is split only when its frontier has at least two branches
    widths = final.stats.frontier_widths
    assert pool.calls == sum(1 for w in widths[:-1] if w >= 2)
    assert pool.calls > 0


def test_open_pool_rejects_unknown_variant():
    with pytest.raises(ValueError):
        parallel_frontier.open_pool("greenthreads")


# --- logging ---

def _wide_root():
    # every pair with p_1 = 0 or q_1 = 0 fits the zero last digit and survives
    return make_target(10**7, base=100)


@pytest.mark.parametrize("work", [base.work_function, np_recurrence.work_function])
def test_wide_branches_are_logged(work, caplog):
    caplog.set_level(logging.DEBUG, logger="ivi.ivilib.base")
    children, _ = work(_wide_root(), ROOT)
    assert len(children) > base.ADMISSIBLE_PAIRS_HINT
    assert "admits" in caplog.text


@pytest.mark.parametrize("work", [base.work_function, np_recurrence.work_function])
def test_narrow_branches_are_not_logged(work, caplog):
    caplog.set_level(logging.DEBUG, logger="ivi.ivilib.base")
    work(make_target(15), ROOT)
    assert "admits" not in caplog.text
