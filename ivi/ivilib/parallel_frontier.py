"""Written with LLM assistance."""

from contextlib import nullcontext
from typing import Literal

#####################################
# Improvement for the frontier step #
# ---- Parallelizing the work func. #
#####################################

import ivi.ivilib.base as base
import ivi.ivilib.np_recurrence as np_recurrence
from ivi.ivilib.state import PRIMARY_BASE, Solved, State, is_terminal

def open_pool(variant: Literal["multiprocessing", "multithreading"]="multiprocessing", jobs: int=1):
    """
    Worker pool for parallel_advance, meant to be opened once per search.
    Both kinds are context managers and keep input order in map().
    """
    if variant == "multiprocessing":
        import multiprocessing.pool
        return multiprocessing.pool.Pool(processes=jobs)
    elif variant == "multithreading":
        import concurrent.futures as futures
        return futures.ThreadPoolExecutor(max_workers=jobs)
    else: raise ValueError("variant must be 'multiprocessing' or 'multithreading'")

def parallel_advance(state: State,
        chunks=1,
        jobs=1,
        variant: Literal["multiprocessing", "multithreading"]="multiprocessing",
        use_numpy: bool=False,
        pool=None,
        ):
    """
    Perform one frontier transition with the frontier split across workers.

    Will only parallelize if chunks > 1.
    Every branch is evaluated independently and the chunk results are merged
    in frontier order, so the next frontier is identical to base.advance.

    :param state: Current engine state.
    :param chunks: Number of chunks to split the frontier into.
    :param jobs: Maximum number of parallel jobs to run concurrently.
    :param variant: "multiprocessing" or "multithreading" to choose parallelization method.
    :param use_numpy: Use the numpy digit-pair sweep inside each worker.
    :param pool: A pool from open_pool to reuse. Without one, a pool is opened
        and closed for this transition only (jobs and variant are then used).
    WARNING: Multithreading is GIL-bound and will not yield speedup.
    :return: The next engine state.
    """
    if is_terminal(state):
        return state

    work = np_recurrence.work_function if use_numpy else base.work_function

    if chunks < 1:
        raise ValueError("chunks must be at least 1")
    elif chunks == 1 or len(state.frontier) < 2:   # single-core
        return base.advance(state, work=work)

    frontier = state.frontier
    chunks = min(chunks, len(frontier))
    chunk_size = len(frontier) // chunks
    bounds = [
        (i*chunk_size, (i+1)*chunk_size if i != chunks-1 else len(frontier))
        for i in range(chunks)
    ]

    inputs = [
        (state.target, frontier[start:end], use_numpy)
        for start, end in bounds
    ]

    with (nullcontext(pool) if pool is not None else open_pool(variant, jobs)) as p:
        # map keeps the input order
        results = list(p.map(frontier_worker_controller, inputs))

    merged = [branch_result for chunk_result in results for branch_result in chunk_result]
    return base.settle(state, merged)

def frontier_worker_controller(args):
    """Multi-processing compatible helper."""
    return _frontier_worker(*args)

def _frontier_worker(target, branches, use_numpy):
    """Work function over a slice of the frontier. Pure, can run anywhere."""
    work = np_recurrence.work_function if use_numpy else base.work_function
    return [work(target, branch) for branch in branches]

#################################
# IVI with parallelized frontier #
#################################

def digit_search(N: int, base_: int=PRIMARY_BASE, chunks: int=4, jobs: int=4, multivariant: Literal["multiprocessing", "multithreading"]="multiprocessing") -> tuple[int, int]:
    """
    Like base.digit_search, but with each frontier evaluated in parallel.

    :param N: The integer to be factored (should be a composite number).
    :param base_: The numeral base to search in.
    :param chunks: The number of chunks to divide each frontier into.
    :param jobs: The number of parallel jobs to run.
    :param multivariant: "multiprocessing" or "multithreading" to choose parallelization method.
    :return: Factors (P, Q), or raises ValueError if the search is exhausted.
    """
    with open_pool(multivariant, jobs) as pool:
        step = lambda s: parallel_advance(s, chunks, jobs, multivariant, pool=pool)
        final = base.run(base.initialize(N, base_), step=step)

    if isinstance(final, Solved):
        return final.p, final.q
    else:
        raise ValueError(f"No nontrivial factorization of N found in base {base_} (N may be prime).")
