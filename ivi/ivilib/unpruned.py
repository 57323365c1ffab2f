"""
The bare IVI recurrence, without the feasibility cascade.

Only the terminal exact-product check (and the P <= Q ordering) is applied,
so the frontier grows roughly like base^k. Useful as a ground truth for
small N when checking that pruning never loses a solution.
"""

import ivi.ivilib.base as base
from ivi.ivilib.state import PRIMARY_BASE, Running, Solved, SymmetryPolicy

def initialize(N: int, base_: int=PRIMARY_BASE, symmetry: SymmetryPolicy="final") -> Running:
    """Like base.initialize, with pruning switched off."""
    return base.initialize(N, base_, symmetry=symmetry, pruning=False)

def digit_search(N: int, base_: int=PRIMARY_BASE, symmetry: SymmetryPolicy="final") -> tuple[int, int]:
    """Like base.digit_search, without pruning. Only practical for a handful of digits."""
    final = base.run(initialize(N, base_, symmetry=symmetry))

    if isinstance(final, Solved):
        return final.p, final.q
    else:
        raise ValueError(f"No nontrivial factorization of N found in base {base_} (N may be prime).")
