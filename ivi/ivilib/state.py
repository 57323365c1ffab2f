"""
Data model of the digit-propagation search.

All records are frozen: the engine builds new branches, frontiers and
states, it never edits one in place.
"""

from dataclasses import dataclass, field
from numbers import Integral
from typing import Literal, Union

from ivi.ivilib.arith import integer_sqrt, to_base_digits

PRIMARY_BASE = 10

# "final":   P <= Q checked once both factors are complete (sound in any base)
# "partial": P <= Q checked on the partial values at every position (base 10 only)
# "off":     no ordering check, factors are reported sorted
SymmetryPolicy = Literal["final", "partial", "off"]
SYMMETRY_POLICIES = ("final", "partial", "off")

##########
# Target #
##########

@dataclass(frozen=True)
class Target:
    """The number being factored, its derived values and the run options."""
    n: int
    base: int
    digits: tuple[int, ...]     # LSD first
    sqrt_n: int
    symmetry: SymmetryPolicy = "final"
    pruning: bool = True

    @property
    def total_digits(self) -> int:
        return len(self.digits)

    def digit(self, k: int) -> int:
        """Digit of N at 1-indexed position k (k=1 is the LSD)."""
        if not 1 <= k <= len(self.digits):
            raise ValueError(f"digit position {k} outside [1, {len(self.digits)}]")
        return self.digits[k - 1]

def make_target(n, base: int = PRIMARY_BASE, symmetry: SymmetryPolicy = "final", pruning: bool = True) -> Target:
    """
    Validate the inputs and derive everything the engine needs from N.

    :param n: The integer to be factored (positive).
    :param base: The numeral base of the digit search (>= 2).
    :param symmetry: One of SYMMETRY_POLICIES.
    :param pruning: Whether to run the full feasibility cascade.
    :return: An immutable Target.
    """
    if isinstance(n, bool) or not isinstance(n, Integral):
        raise TypeError(f"N must be an integer, got {type(n).__name__}")
    if isinstance(base, bool) or not isinstance(base, Integral):
        raise TypeError(f"base must be an integer, got {type(base).__name__}")
    n, base = int(n), int(base)     # convert from np.int64 and friends

    if n <= 0:
        raise ValueError(f"N must be positive, got {n}")
    if base < 2:
        raise ValueError(f"base must be at least 2, got {base}")
    if symmetry not in SYMMETRY_POLICIES:
        raise ValueError(f"symmetry must be one of {SYMMETRY_POLICIES}, got {symmetry!r}")
    if symmetry == "partial" and base != PRIMARY_BASE:
        # partial ordering at intermediate positions does not predict the final ordering
        raise ValueError(f"per-digit symmetry pruning is only available in base {PRIMARY_BASE}")

    return Target(
        n=n,
        base=base,
        digits=tuple(to_base_digits(n, base)),
        sqrt_n=integer_sqrt(n),
        symmetry=symmetry,
        pruning=pruning,
    )

############
# Branches #
############

@dataclass(frozen=True)
class Branch:
    """
    One partial digit assignment to both factors.

    k digits are fixed; p_value and q_value are the integers spelled by
    p_history and q_history (LSD first). carry_in is the carry entering
    position k+1.
    """
    k: int = 0
    p_history: tuple[int, ...] = ()
    q_history: tuple[int, ...] = ()
    p_value: int = 0
    q_value: int = 0
    carry_in: int = 0

ROOT = Branch()

###############
# Statistics  #
###############

CHECKS = range(1, 10)

@dataclass(frozen=True)
class SearchStats:
    """
    Observational counters. They never influence the search.

    pruned maps the cascade check number (1..9) to how often it fired.
    """
    visited: int = 0
    rejected_by_recurrence: int = 0
    pruned: tuple[int, ...] = (0,) * 9
    max_frontier_width: int = 1
    frontier_widths: tuple[int, ...] = ()

    @property
    def total_pruned(self) -> int:
        return sum(self.pruned)

    def pruned_by(self, check: int) -> int:
        return self.pruned[check - 1]

    def merged(self, other: "StepCounts", frontier_width: int) -> "SearchStats":
        return SearchStats(
            visited=self.visited + other.visited,
            rejected_by_recurrence=self.rejected_by_recurrence + other.rejected_by_recurrence,
            pruned=tuple(a + b for a, b in zip(self.pruned, other.pruned)),
            max_frontier_width=max(self.max_frontier_width, frontier_width),
            frontier_widths=self.frontier_widths + (frontier_width,),
        )

@dataclass
class StepCounts:
    """Mutable tally for a single work-function call or frontier transition."""
    visited: int = 0
    rejected_by_recurrence: int = 0
    pruned: list[int] = field(default_factory=lambda: [0] * 9)

    def add(self, other: "StepCounts"):
        self.visited += other.visited
        self.rejected_by_recurrence += other.rejected_by_recurrence
        for i, c in enumerate(other.pruned):
            self.pruned[i] += c

##########
# States #
##########

@dataclass(frozen=True)
class Running:
    """Search in progress; the next transition processes position k."""
    target: Target
    k: int
    frontier: tuple[Branch, ...]
    stats: SearchStats = SearchStats()

@dataclass(frozen=True)
class Solved:
    target: Target
    p: int
    q: int
    path: tuple[tuple[int, int, int], ...]   # (position, p digit, q digit), k = 1..n
    stats: SearchStats = SearchStats()

    @property
    def factors(self) -> tuple[int, int]:
        return self.p, self.q

@dataclass(frozen=True)
class Exhausted:
    target: Target
    k: int
    stats: SearchStats = SearchStats()

State = Union[Running, Solved, Exhausted]

def is_terminal(state: State) -> bool:
    return not isinstance(state, Running)
