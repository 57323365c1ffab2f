"""
Running the digit search in several numeral bases.

The engine itself is base-generic (digits in [0, b-1], carries and powers
in b). What changes outside base 10 is the symmetry handling: the
per-digit P <= Q prune is only offered in base 10, and even there it is
not sound (see state.SYMMETRY_POLICIES). Every base here uses the
"final" policy, which only compares complete values.

Exploration interleaves the bases one frontier transition at a time,
so a base with few digits can finish while the others are still running.
"""

import logging
from dataclasses import dataclass
from typing import Iterator

import ivi.ivilib.base as base
from ivi.ivilib.state import Running, Solved, State, SymmetryPolicy, is_terminal

logger = logging.getLogger(__name__)

def initialize_base(N: int, b: int, symmetry: SymmetryPolicy="final") -> Running:
    """
    base.initialize for an arbitrary base b >= 2.

    Raises ValueError for b < 2, and for the per-digit symmetry prune in any base but 10.
    """
    return base.initialize(N, b, symmetry=symmetry)

@dataclass(frozen=True)
class BaseOutcome:
    base: int
    state: State
    transitions: int

    @property
    def solved(self) -> bool:
        return isinstance(self.state, Solved)

@dataclass(frozen=True)
class Exploration:
    results: dict[int, BaseOutcome]
    winner: BaseOutcome | None
    rounds: int

    @property
    def all_completed(self) -> bool:
        return all(is_terminal(o.state) for o in self.results.values())

def _validate_bases(bases) -> list[int]:
    bases = list(bases)
    if not bases:
        raise ValueError("at least one base is required")
    if len(set(bases)) != len(bases):
        raise ValueError(f"duplicate bases in {bases}")
    for b in bases:
        if b < 2:
            raise ValueError(f"base must be at least 2, got {b}")
    return bases

def interleave(N: int, bases) -> Iterator[tuple[int, int, State]]:
    """
    Advance one search per base, round robin, one transition at a time.

    Control only returns to the caller between transitions, never in the
    middle of a frontier. Yields (round, base, state) after every transition;
    a base drops out of the rotation once its state is terminal.
    Stopping the iteration cancels the remaining searches.
    """
    states = {b: initialize_base(N, b) for b in _validate_bases(bases)}
    rnd = 0
    while any(not is_terminal(s) for s in states.values()):
        rnd += 1
        for b, s in states.items():
            if is_terminal(s):
                continue
            states[b] = base.advance(s)
            yield rnd, b, states[b]

def _pick_winner(outcomes: list[BaseOutcome]) -> BaseOutcome | None:
    """Fewest transitions to a solution; ties go to the base listed first."""
    solved = [o for o in outcomes if o.solved]
    if not solved:
        return None
    return min(solved, key=lambda o: o.transitions)

def _run_single_base(args):
    """Multi-processing compatible helper: full search in one base."""
    N, b = args
    final = base.run(initialize_base(N, b))
    return BaseOutcome(base=b, state=final, transitions=len(final.stats.frontier_widths))

def explore_bases(N: int, bases=(8, 10, 16), jobs: int=1, on_progress=None) -> Exploration:
    """
    Search for a factorization of N in every base of bases.

    :param N: The integer to be factored.
    :param bases: Numeral bases to try, in priority order for tie-breaks.
    :param jobs: 1 interleaves the bases cooperatively in this process,
        more runs one base per worker process.
    :param on_progress: Optional callback (round, base, state), cooperative mode only.
    :return: An Exploration with the terminal state of every base and the winner.
    """
    bases = _validate_bases(bases)

    if jobs > 1:
        import multiprocessing.pool

        with multiprocessing.pool.Pool(processes=min(jobs, len(bases))) as pool:
            outcomes = list(pool.imap(_run_single_base, [(N, b) for b in bases]))
        rounds = max(o.transitions for o in outcomes)
    else:
        latest = {}
        rounds = 0
        for rounds, b, state in interleave(N, bases):
            latest[b] = state
            if on_progress is not None:
                on_progress(rounds, b, state)
        outcomes = [
            BaseOutcome(base=b, state=latest[b], transitions=len(latest[b].stats.frontier_widths))
            for b in bases
        ]

    winner = _pick_winner(outcomes)
    if winner is not None:
        logger.info("base %d solved N=%d in %d transitions", winner.base, N, winner.transitions)
    else:
        logger.info("no base solved N=%d", N)

    return Exploration(results={o.base: o for o in outcomes}, winner=winner, rounds=rounds)
