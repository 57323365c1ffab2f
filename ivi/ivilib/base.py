"""
The IVI digit-propagation engine: the per-position recurrence and the
frontier state machine that drives it.

The easiest variant to read; every other variant reuses its pieces.
"""

import logging

from ivi.ivilib.arith import power_of_base
from ivi.ivilib.pruning import Verdict, feasibility, unpruned_verdict
from ivi.ivilib.state import (
    PRIMARY_BASE, ROOT, Branch, Exhausted, Running, Solved,
    State, StepCounts, SymmetryPolicy, Target, is_terminal, make_target,
)

logger = logging.getLogger(__name__)

# Empirical, unproven: most positions admit at most this many digit pairs per branch.
# Only used to flag unusual branches in the debug log, never as a limit.
ADMISSIBLE_PAIRS_HINT = 50

#########################
# Step 1: Initial state #
#########################

def initialize(
        N: int,
        base: int=PRIMARY_BASE,
        symmetry: SymmetryPolicy="final",
        pruning: bool=True,
        ) -> Running:
    """
    Set up a digit search for N.

    :param N: The integer to be factored.
    :param base: The numeral base the digits of P, Q and N are written in.
    :param symmetry: When to enforce P <= Q ("final", "partial" or "off").
    :param pruning: Run the full feasibility cascade (False gives the unpruned variant).
    :return: A Running state at k=1 with the single empty branch.
    """
    target = make_target(N, base, symmetry=symmetry, pruning=pruning)
    logger.debug("N=%d in base %d has %d digits, floor(sqrt(N))=%d",
                 target.n, target.base, target.total_digits, target.sqrt_n)
    return Running(target=target, k=1, frontier=(ROOT,))

##############################################
# Step 2: Digit-pair recurrence (work func.) #
##############################################

def interior_sum(branch: Branch, k: int) -> int:
    """
    sum_{i=2}^{k-1} p_i * q_{k-i+1}: the part of the position-k convolution
    that does not involve the new digits p_k and q_k.
    """
    p, q = branch.p_history, branch.q_history
    # p_i is at index i-1, q_{k-i+1} at index k-i
    return sum(p[i - 1] * q[k - i] for i in range(2, k))

def carry_limit(base: int, k: int, carry_in: int) -> int:
    """Largest carry position k can emit: the convolution sum is at most (base-1)^2 * k."""
    max_digit_contribution = (base - 1) ** 2 * k
    return (max_digit_contribution + carry_in) // base

def extend(target: Target, branch: Branch, k: int, pk: int, qk: int, carry_out: int) -> Branch:
    """Child of branch with digits pk, qk at position k, values updated incrementally."""
    place = power_of_base(target.base, k - 1)
    return Branch(
        k=k,
        p_history=branch.p_history + (pk,),
        q_history=branch.q_history + (qk,),
        p_value=branch.p_value + pk * place,
        q_value=branch.q_value + qk * place,
        carry_in=carry_out,
    )

def judge(target: Target, child: Branch) -> Verdict:
    """Pruning verdict for a child that satisfied the recurrence."""
    if target.pruning:
        return feasibility(target, child.p_value, child.q_value, child.k)
    return unpruned_verdict(target, child.p_value, child.q_value, child.k)

def log_wide_branch(branch: Branch, admitted: int, k: int):
    """Debug line for a branch admitting more pairs than ADMISSIBLE_PAIRS_HINT."""
    if admitted > ADMISSIBLE_PAIRS_HINT:
        logger.debug("branch %s admits %d pairs at k=%d (hint: %d)",
                     branch.p_history, admitted, k, ADMISSIBLE_PAIRS_HINT)

def work_function(target: Target, branch: Branch) -> tuple[list[tuple[Branch, Verdict]], StepCounts]:
    """
    Extend a branch by one position.

    For every digit pair (p_k, q_k) in [0, base-1]^2 this checks the IVI recurrence

        sum_{i=1}^{k} p_i * q_{k-i+1} + c_k = n_k + base * c_{k+1}

    and runs the pruning cascade on each pair that satisfies it.

    :param target: The search target.
    :param branch: A branch with k-1 digits fixed.
    :return: (children, counts) where children are (branch, verdict) pairs that
        survived, in (p_k, q_k) order, and counts tallies what was rejected where.
    """
    k = branch.k + 1
    counts = StepCounts()
    if k < 1 or k > target.total_digits:
        return [], counts

    base = target.base
    target_digit = target.digit(k)
    is_last_digit = k == target.total_digits
    max_carry_out = carry_limit(base, k, branch.carry_in)

    # Only p_1*q_k and p_k*q_1 change across the sweep,
    # the rest of the convolution is fixed for this branch.
    inner = interior_sum(branch, k)
    p1 = branch.p_history[0] if branch.p_history else 0
    q1 = branch.q_history[0] if branch.q_history else 0

    children = []
    for pk in range(base):
        for qk in range(base):
            counts.visited += 1

            if k == 1:
                sum_of_products = pk * qk
            else:
                sum_of_products = inner + p1 * qk + pk * q1

            total = sum_of_products + branch.carry_in
            if total < target_digit:
                counts.rejected_by_recurrence += 1
                continue

            remainder = total - target_digit
            if remainder % base != 0:
                counts.rejected_by_recurrence += 1
                continue

            carry_out = remainder // base
            # a nonzero carry out of the last position can never complete into N
            if carry_out > max_carry_out or (is_last_digit and carry_out != 0):
                counts.rejected_by_recurrence += 1
                continue

            child = extend(target, branch, k, pk, qk, carry_out)
            verdict = judge(target, child)
            if verdict.pruned:
                counts.pruned[verdict - 1] += 1
                continue
            children.append((child, verdict))

    log_wide_branch(branch, len(children), k)
    return children, counts

#########################################
# Step 3: Frontier transition (barrier) #
#########################################

def solution_path(branch: Branch) -> tuple[tuple[int, int, int], ...]:
    """(position, p digit, q digit) for k = 1..n."""
    return tuple(
        (i + 1, pk, qk) for i, (pk, qk) in enumerate(zip(branch.p_history, branch.q_history))
    )

def settle(state: Running, results: list[tuple[list[tuple[Branch, Verdict]], StepCounts]]) -> State:
    """
    Merge per-branch work function results (in frontier order) into the next state.

    Shared by every variant, so they only differ in how the results are computed.
    """
    target = state.target
    k = state.k

    counts = StepCounts()
    survivors = []
    for children, branch_counts in results:
        counts.add(branch_counts)
        survivors.extend(children)

    stats = state.stats.merged(counts, len(survivors))

    if not survivors:
        logger.debug("frontier empty at k=%d", k)
        return Exhausted(target=target, k=k, stats=stats)

    if k == target.total_digits:
        for child, verdict in survivors:
            if verdict == Verdict.EXACT_MATCH:
                p, q = child.p_value, child.q_value
                if target.symmetry == "off":
                    p, q = min(p, q), max(p, q)
                logger.debug("solved at k=%d: %d * %d", k, p, q)
                return Solved(target=target, p=p, q=q, path=solution_path(child), stats=stats)
        return Exhausted(target=target, k=k, stats=stats)

    return Running(
        target=target,
        k=k + 1,
        frontier=tuple(child for child, _ in survivors),
        stats=stats,
    )

def advance(state: State, work=work_function) -> State:
    """
    Process exactly one digit position across the whole frontier.

    :param state: Any engine state. Solved and Exhausted are returned unchanged.
    :param work: The per-branch work function (the variants swap in their own).
    :return: The next Running state, or a terminal Solved / Exhausted state.
    """
    if is_terminal(state):
        return state
    if state.k > state.target.total_digits:
        return Exhausted(target=state.target, k=state.k, stats=state.stats)

    results = [work(state.target, branch) for branch in state.frontier]
    return settle(state, results)

def run(state: State, step=advance, on_step=None) -> State:
    """
    Drive a state to a terminal state.

    :param state: Starting state (usually from initialize).
    :param step: Transition function, advance or one of the variants' own.
    :param on_step: Optional callback invoked with each new state.
    """
    while not is_terminal(state):
        state = step(state)
        if on_step is not None:
            on_step(state)
    return state

#########################
# IVI digit search      #
# --- Basic interface   #
#########################

def digit_search(N: int, base: int=PRIMARY_BASE, symmetry: SymmetryPolicy="final") -> tuple[int, int]:
    """
    IVI digit-propagation search

    :param N: The integer to be factored (should be a composite number).
    :param base: The numeral base to search in.
    :param symmetry: When to enforce P <= Q.
    :return: Factors (P, Q) with 1 < P <= Q and P * Q == N, or raises ValueError.
    """
    final = run(initialize(N, base, symmetry=symmetry))

    if isinstance(final, Solved):
        return final.p, final.q
    else:
        raise ValueError(f"No nontrivial factorization of N found in base {base} (N may be prime).")
