"""
Global feasibility pruning for the IVI digit search.

Every check below is a necessary condition for the branch to complete
into N = P * Q, so no check can ever discard the true factorization.
All arithmetic is on Python ints; no floats, no tuned thresholds.

Checks are ordered cheap to expensive and the cascade stops at the
first one that fails:

    1. symmetry (P <= Q)
    2. exact termination at the last position
    3. immediate overshoot
    4. square-root envelope
    5. growth envelope
    6. minimum contribution
    7. linear-term restatement of 5
    8. upper-tail coupling
    9. length split (reserved, never fires)
"""

from enum import IntEnum

from ivi.ivilib.arith import power_of_base, ceil_div
from ivi.ivilib.state import Target

class Verdict(IntEnum):
    """Outcome of the cascade. Pruned verdicts carry the number of the check that fired."""
    EXACT_MATCH = -1
    FEASIBLE = 0
    SYMMETRY = 1
    TERMINATION = 2
    OVERSHOOT = 3
    SQRT_ENVELOPE = 4
    GROWTH_ENVELOPE = 5
    MIN_CONTRIBUTION = 6
    LINEAR_TERM = 7
    UPPER_TAIL = 8

    @property
    def pruned(self) -> bool:
        return self.value > 0

    @property
    def survives(self) -> bool:
        return self.value <= 0

CHECK_NAMES = {
    1: "Symmetry",
    2: "Exact termination",
    3: "Immediate overshoot",
    4: "Square-root envelope",
    5: "Growth envelope",
    6: "Minimum contribution",
    7: "Linear-term gap",
    8: "Upper-tail coupling",
    9: "Length split (reserved)",
}

def symmetry_applies(target: Target, k: int) -> bool:
    """Whether check 1 runs at position k under the target's symmetry policy."""
    if target.symmetry == "partial":
        return True
    if target.symmetry == "final":
        return k == target.total_digits
    return False

def termination_verdict(target: Target, P: int, Q: int) -> Verdict:
    """Check 2: only a nontrivial exact product is accepted."""
    if P <= 1 or Q <= 1:
        return Verdict.TERMINATION
    return Verdict.EXACT_MATCH if P * Q == target.n else Verdict.TERMINATION

def feasibility(target: Target, P: int, Q: int, k: int) -> Verdict:
    """
    Run the pruning cascade on a freshly extended branch.

    :param target: The search target (N, base, sqrt(N), total digit count, options).
    :param P: Partial value of the first factor after adding digit k.
    :param Q: Partial value of the second factor after adding digit k.
    :param k: Number of digits fixed, including the new one.
    :return: The first failing check, FEASIBLE, or EXACT_MATCH at the last position.
    """
    N = target.n
    remaining = target.total_digits - k

    # 1. P and Q are interchangeable, search only P <= Q
    if symmetry_applies(target, k) and P > Q:
        return Verdict.SYMMETRY

    # 2. at the last position the product must be N exactly
    # (the zero terminal carry is enforced by the recurrence)
    if remaining == 0:
        return termination_verdict(target, P, Q)

    # 3. tails only add to the product
    product = P * Q
    if product > N:
        return Verdict.OVERSHOOT

    # 4. the branch has P <= sqrt(N) or it is the mirror of one that does
    if P > target.sqrt_n:
        return Verdict.SQRT_ENVELOPE

    gap = N - product

    # Completed factors are P + A*b^k and Q + B*b^k with 0 <= A, B <= M
    # so the product grows by b^k*(P*B + Q*A) + b^(2k)*A*B.
    M = power_of_base(target.base, remaining) - 1
    power_k = power_of_base(target.base, k)
    power_2k = power_of_base(target.base, 2 * k)

    # 5. even all-max tails cannot close the gap
    max_linear = power_k * (P * M + Q * M)
    max_quadratic = power_2k * (M * M)
    if max_linear + max_quadratic < gap:
        return Verdict.GROWTH_ENVELOPE

    # 6. a nonzero gap needs A >= 1 or B >= 1, which adds at least b^k*min(P, Q)
    if gap > 0 and power_k * min(P, Q) > gap:
        return Verdict.MIN_CONTRIBUTION

    # 7. linear term plus its quadratic headroom, tracked on its own
    if max_linear < gap - max_quadratic:
        return Verdict.LINEAR_TERM

    # 8. while P stays under the root, Q >= N / P >= N / Pmax
    P_max = P + M * power_k
    if P_max <= target.sqrt_n:
        Q_max = Q + M * power_k
        if Q_max < ceil_div(N, P_max):
            return Verdict.UPPER_TAIL

    # 9. length split: reserved

    return Verdict.FEASIBLE

def unpruned_verdict(target: Target, P: int, Q: int, k: int) -> Verdict:
    """Only checks 1 and 2, for the unpruned variant."""
    if symmetry_applies(target, k) and P > Q:
        return Verdict.SYMMETRY
    if k == target.total_digits:
        return termination_verdict(target, P, Q)
    return Verdict.FEASIBLE
