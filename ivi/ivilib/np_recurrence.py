#####################################
# Improvement for the work function #
# --- Numpy for the digit-pair sweep #
#####################################

import numpy as np

import ivi.ivilib.base as base
from ivi.ivilib.state import Branch, PRIMARY_BASE, Solved, State, StepCounts, Target

INT64_MAX = np.iinfo(np.int64).max

def check_int64_headroom(target: Target, branch: Branch, k: int):
    """
    The sweep computes convolution sums as int64. Those sums are bounded by
    (base-1)^2 * k + carry_in, so refuse positions where that bound could wrap
    instead of silently producing wrong candidates.
    """
    bound = (target.base - 1) ** 2 * k + branch.carry_in + target.base
    if bound > INT64_MAX:
        raise OverflowError(
            f"digit sums at k={k} in base {target.base} may exceed int64, use the base variant instead."
        )

def work_function(target: Target, branch: Branch):
    """
    Same contract and output order as base.work_function, with the
    recurrence evaluated for all base^2 pairs at once.
    Partial values and the pruning cascade stay exact Python ints.
    """
    k = branch.k + 1
    counts = StepCounts()
    if k < 1 or k > target.total_digits:
        return [], counts

    check_int64_headroom(target, branch, k)

    b = target.base
    target_digit = target.digit(k)
    is_last_digit = k == target.total_digits
    max_carry_out = base.carry_limit(b, k, branch.carry_in)

    pk = np.arange(b, dtype=np.int64)[:, None]
    qk = np.arange(b, dtype=np.int64)[None, :]

    if k == 1:
        sums = pk * qk
    else:
        inner = base.interior_sum(branch, k)
        p1, q1 = branch.p_history[0], branch.q_history[0]
        sums = inner + p1 * qk + pk * q1

    total = sums + branch.carry_in
    remainder = total - target_digit
    carry_out = remainder // b

    mask = (remainder >= 0) & (remainder % b == 0) & (carry_out <= max_carry_out)
    if is_last_digit:
        mask &= carry_out == 0

    counts.visited = b * b
    counts.rejected_by_recurrence = b * b - int(mask.sum())

    children = []
    # np.nonzero walks the grid row-major, i.e. in (p_k, q_k) order
    for i, j in zip(*np.nonzero(mask)):
        child = base.extend(target, branch, k, int(i), int(j), int(carry_out[i, j]))
        verdict = base.judge(target, child)
        if verdict.pruned:
            counts.pruned[verdict - 1] += 1
            continue
        children.append((child, verdict))

    base.log_wide_branch(branch, len(children), k)
    return children, counts

def advance(state: State) -> State:
    """Like base.advance, using the numpy work function."""
    return base.advance(state, work=work_function)

##########################
# IVI with numpy sweeps  #
##########################

def digit_search(N: int, base_: int=PRIMARY_BASE) -> tuple[int, int]:
    """Like base.digit_search, but using the numpy-accelerated digit-pair sweep."""
    final = base.run(base.initialize(N, base_), step=advance)

    if isinstance(final, Solved):
        return final.p, final.q
    else:
        raise ValueError(f"No nontrivial factorization of N found in base {base_} (N may be prime).")
