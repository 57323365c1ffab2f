"""
This file adds debug information, timing capabilities, access to optional variants, and progress bars.
Its functionality is otherwise equivalent to parallel_frontier.py
"""

import ivi.ivilib.base as base
import ivi.ivilib.checkpoint as checkpoint
import ivi.ivilib.parallel_frontier as parallel_frontier
from ivi.ivilib.arith import cached_powers
from ivi.ivilib.pruning import CHECK_NAMES
from ivi.ivilib.state import CHECKS, PRIMARY_BASE, Running, Solved, State, SymmetryPolicy, is_terminal
from typing import Literal

from sympy import isprime

import tqdm # Progress bars

from contextlib import nullcontext
from os import cpu_count

#########################################
# Optional frontier cap (lossy, tunable) #
#########################################

def cap_frontier(state: State, frontier_cap: int|None) -> tuple[State, bool]:
    """
    Keep only the first frontier_cap branches of a running state.

    The engine itself never limits the frontier. Capping trades completeness
    for memory: a capped search can exhaust even though N is composite,
    so digit_search retries with a larger cap.

    :return: (state, whether anything was dropped)
    """
    if frontier_cap is None or not isinstance(state, Running) or len(state.frontier) <= frontier_cap:
        return state, False
    capped = Running(
        target=state.target,
        k=state.k,
        frontier=state.frontier[:frontier_cap],
        stats=state.stats,
    )
    return capped, True

####################
# Debug formatting #
####################

def print_pruning_stats(state: State):
    """Print how many candidates each stage removed."""
    stats = state.stats
    print("\nPruning statistics:")
    print(f"- Candidates visited:     {stats.visited}")
    print(f"- Rejected by recurrence: {stats.rejected_by_recurrence}")
    for check in CHECKS:
        print(f"- #{check} {CHECK_NAMES[check]:<24}: {stats.pruned_by(check)}")
    print(f"- Max frontier width:     {stats.max_frontier_width}")

def print_solution_path(state: Solved):
    print("\nSolution path (k, p_k, q_k):")
    for k, pk, qk in state.path:
        print(f"k={k}: p_k={pk}, q_k={qk}")

######################################################
# Complete IVI search with tqdm and debug information #
######################################################

perf_time_array: list[(str, float)]

def get_timing() -> list[(str, float)]:
    global perf_time_array
    return perf_time_array

def print_timing(verbosity: Literal[0, 1, 2]=0):
    """Print recorded timing information."""
    global perf_time_array
    init_t = perf_time_array[0][1]
    prev_t = init_t
    print("\nTiming:")
    for s, t in perf_time_array:
        if verbosity < 2 and ("debug" in s or s == "init"):
            continue
        if verbosity == 0:
            if s == "1": desc   = "Prep.           "
            elif s == "2": desc = "Digit search    "
            elif s == "3": desc = "Verification    "
            else: continue
            print(f"{desc}: {t-prev_t:.3f} s")
        else:
            print(f"{s}: {t-prev_t:.3f} s, total: {t - init_t:.3f} s")

        prev_t = t
    if verbosity == 0: print(f"Total time taken: {t - init_t:.3f} s\n(excluding retries)")
    print()

def digit_search(
        N: int,
        base_: int=PRIMARY_BASE,
        symmetry: SymmetryPolicy="final",
        chunks: int=1,
        jobs: int=min(4, cpu_count() or 1),
        multivariant: Literal["multiprocessing", "multithreading"]="multiprocessing",
        use_numpy: bool=False,
        frontier_cap: int|None=None,
        retries: int=0,
        retry_factor: float=2.0,
        checkpoint_path: str|None=None,
        resume: State|None=None,
        progress: bool=True,
        debug: int=0,
        timing: bool=False,
        ) -> tuple[int, int]:
    """
    IVI digit-propagation search

    :param N: The integer to be factored (should be a composite number).
    :param base_: The numeral base to search in.
    :param symmetry: When to enforce P <= Q ("final", "partial" or "off").
    :param chunks: Number of chunks to split each frontier into (1: no parallelism).
    :param jobs: The number of parallel jobs to run.
    :param multivariant: "multiprocessing" or "multithreading" to choose parallelization method.
    :param use_numpy: Use the numpy digit-pair sweep.
    :param frontier_cap: Keep at most this many branches per position (None: unlimited, exact).
    :param retries: Number of retries with a larger frontier cap if a capped search is exhausted.
    :param retry_factor: Factor by which to increase the frontier cap on each retry.
    :param checkpoint_path: Write the state as JSON after every transition.
    :param resume: Continue from a previously saved running state instead of starting over.
    :param progress: Show a tqdm progress bar over digit positions.
    :param debug: Level of debug information (0: none, 1: basic, 2: detailed).
    :param timing: Whether to record timing information.
    WARNING: Multithreading is GIL-bound and will not yield speedup.
    :return: Factors (P, Q) with P <= Q, or raises ValueError if no factorization is found.
    """

    if timing: import time; global perf_time_array; perf_time_array = []; perf_time_array.append(("init", time.perf_counter()))

    ### 1 ###
    if resume is not None:
        state = resume
        if state.target.n != N:
            raise ValueError(f"checkpoint is for N={state.target.n}, not {N}")
    else:
        state = base.initialize(N, base_, symmetry=symmetry)
    target = state.target

    if timing: perf_time_array.append(("1", time.perf_counter()))
    if debug > 0:
        print("\nParameters:")
        print(f"- N: {target.n} ({target.n.bit_length()}-bit)")
        print(f"- Base: {target.base}\n- Digits: {target.total_digits}\n- floor(sqrt(N)): {target.sqrt_n}")
        print(f"- Symmetry: {target.symmetry}\n- Frontier cap: {frontier_cap if frontier_cap is not None else 'none'}")
        if debug > 1: print("Digits of N (LSD first):", list(target.digits))
        if isprime(target.n): print("N is prime, the search will be exhausted.")
        print("\nSearching...")
        if timing: perf_time_array.append(("debug", time.perf_counter()))

    ### 2 ###
    pbar = tqdm.tqdm(total=target.total_digits, initial=state.k - 1 if isinstance(state, Running) else 0,
                     desc="Digit search", disable=not progress)
    truncated = False
    # one pool for the whole search, none when nothing is split
    with (parallel_frontier.open_pool(multivariant, jobs) if chunks > 1 else nullcontext()) as pool:
        while not is_terminal(state):
            state = parallel_frontier.parallel_advance(state, chunks, jobs, multivariant, use_numpy=use_numpy, pool=pool)
            state, dropped = cap_frontier(state, frontier_cap)
            truncated = truncated or dropped
            pbar.update(1)
            if isinstance(state, Running):
                pbar.set_postfix(frontier=len(state.frontier))
                if debug > 1: tqdm.tqdm.write(f"k={state.k - 1}: {len(state.frontier)} branches{' (capped)' if dropped else ''}")
            if checkpoint_path is not None:
                checkpoint.dump(state, checkpoint_path)
    pbar.close()

    if timing: perf_time_array.append(("2", time.perf_counter()))
    if debug > 0:
        print_pruning_stats(state)
        if debug > 1:
            print("Frontier widths:", list(state.stats.frontier_widths))
            print("Cached powers of the base:", cached_powers())
        if timing: perf_time_array.append(("debug", time.perf_counter()))

    ### 3 ###
    if isinstance(state, Solved):
        P, Q = state.p, state.q
        if timing: perf_time_array.append(("3", time.perf_counter()))
        if debug:
            print(f"Found factors: {P} * {Q}\n")
            if debug > 1: print_solution_path(state)
        return P, Q

    ### Retry ###
    if timing: perf_time_array.append(("3", time.perf_counter()))
    if debug: print(f"Search exhausted at k={state.k}{' with a capped frontier' if truncated else ''}.\n")

    if not truncated:
        raise ValueError("No nontrivial factorization of N found (N may be prime).")
    if retries <= 0:
        raise ValueError("Failed to find a factorization with a capped frontier, try increasing frontier_cap.")

    if debug: print(f"\n\nRetrying with increased frontier cap (attempts left: {retries})...\n")
    return digit_search(
        N,
        base_=target.base,
        symmetry=target.symmetry,
        chunks=chunks,
        jobs=jobs,
        multivariant=multivariant,
        use_numpy=use_numpy,
        frontier_cap=int(frontier_cap*retry_factor),
        retries=retries-1,
        retry_factor=retry_factor,
        checkpoint_path=checkpoint_path,
        progress=progress,
        debug=debug,
        timing=timing,
        )
