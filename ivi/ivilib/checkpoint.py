"""
Saving and restoring engine states as JSON.

Python's json module reads and writes integers of any size, so partial
values, carries and N itself round-trip without being narrowed.
Numbers past 4300 decimal digits need sys.set_int_max_str_digits raised first.
"""

import json

from ivi.ivilib.state import (
    Branch, Exhausted, Running, SearchStats, Solved, State, Target,
)

FORMAT_VERSION = 1

def _target_to_dict(t: Target) -> dict:
    return {
        "n": t.n,
        "base": t.base,
        "digits": list(t.digits),
        "sqrt_n": t.sqrt_n,
        "symmetry": t.symmetry,
        "pruning": t.pruning,
    }

def _target_from_dict(d: dict) -> Target:
    return Target(
        n=d["n"],
        base=d["base"],
        digits=tuple(d["digits"]),
        sqrt_n=d["sqrt_n"],
        symmetry=d["symmetry"],
        pruning=d["pruning"],
    )

def _branch_to_list(b: Branch) -> list:
    return [b.k, list(b.p_history), list(b.q_history), b.p_value, b.q_value, b.carry_in]

def _branch_from_list(row: list) -> Branch:
    k, p_history, q_history, p_value, q_value, carry_in = row
    return Branch(k, tuple(p_history), tuple(q_history), p_value, q_value, carry_in)

def _stats_to_dict(s: SearchStats) -> dict:
    return {
        "visited": s.visited,
        "rejected_by_recurrence": s.rejected_by_recurrence,
        "pruned": list(s.pruned),
        "max_frontier_width": s.max_frontier_width,
        "frontier_widths": list(s.frontier_widths),
    }

def _stats_from_dict(d: dict) -> SearchStats:
    return SearchStats(
        visited=d["visited"],
        rejected_by_recurrence=d["rejected_by_recurrence"],
        pruned=tuple(d["pruned"]),
        max_frontier_width=d["max_frontier_width"],
        frontier_widths=tuple(d["frontier_widths"]),
    )

def to_dict(state: State) -> dict:
    out = {
        "version": FORMAT_VERSION,
        "target": _target_to_dict(state.target),
        "stats": _stats_to_dict(state.stats),
    }
    if isinstance(state, Running):
        out.update(state="running", k=state.k, frontier=[_branch_to_list(b) for b in state.frontier])
    elif isinstance(state, Solved):
        out.update(state="solved", p=state.p, q=state.q, path=[list(step) for step in state.path])
    elif isinstance(state, Exhausted):
        out.update(state="exhausted", k=state.k)
    else:
        raise TypeError(f"not an engine state: {type(state).__name__}")
    return out

def from_dict(d: dict) -> State:
    if d.get("version") != FORMAT_VERSION:
        raise ValueError(f"unsupported checkpoint version {d.get('version')!r}")

    target = _target_from_dict(d["target"])
    stats = _stats_from_dict(d["stats"])
    kind = d["state"]
    if kind == "running":
        frontier = tuple(_branch_from_list(row) for row in d["frontier"])
        return Running(target=target, k=d["k"], frontier=frontier, stats=stats)
    elif kind == "solved":
        path = tuple(tuple(step) for step in d["path"])
        return Solved(target=target, p=d["p"], q=d["q"], path=path, stats=stats)
    elif kind == "exhausted":
        return Exhausted(target=target, k=d["k"], stats=stats)
    raise ValueError(f"unknown state kind {kind!r}")

def dumps(state: State) -> str:
    return json.dumps(to_dict(state))

def loads(text: str) -> State:
    return from_dict(json.loads(text))

def dump(state: State, path):
    with open(path, "w") as f:
        json.dump(to_dict(state), f)

def load(path) -> State:
    with open(path, "r") as f:
        return from_dict(json.load(f))
