#!/usr/bin/env python3
"""
!!! NOTE: Run this file with ../run.py! !!!

Master file for the IVI digit-propagation search.

IVI ("integer vector inversion") recovers P and Q from N = P * Q one digit
position at a time, least significant first, keeping every digit pair that
satisfies the positional product-and-carry recurrence and survives a cascade
of exact feasibility bounds.

Because the variants have differing dependencies, they are split into
different files. This file provides an interface to work with them.
You can interact with the search...
- in Python
>  from ivi.digit_search import <variant>_IVI
- in command line
>  python run.py -h
- in Python REPL
>  python run.py repl

The available variants are:
>   base        for ivi.ivilib.base.digit_search
>   unpruned    for ivi.ivilib.unpruned.digit_search
>   np          for ivi.ivilib.np_recurrence.digit_search
>   parallel    for ivi.ivilib.parallel_frontier.digit_search
>   complete    for ivi.ivilib.complete.digit_search

---

The standard implementation is
>   ivi.ivilib.complete.digit_search
which is a superset of the parallel_frontier version,
adding debug output, timing, progress bars, checkpoints and retry logic.

The easiest implementation to understand is
>   ivi.ivilib.base.digit_search

To step through a search yourself use
>   ivi.ivilib.base.initialize(N, base) and ivi.ivilib.base.advance(state)
and to compare bases
>   ivi.ivilib.multibase.explore_bases(N, bases)
"""

import sys
from typing import Literal

aliases = {
    "base": "ivi.ivilib.base.digit_search",
    "unpruned": "ivi.ivilib.unpruned.digit_search",
    "np": "ivi.ivilib.np_recurrence.digit_search",
    "parallel": "ivi.ivilib.parallel_frontier.digit_search",
    "complete": "ivi.ivilib.complete.digit_search",
}

DEBUG = 0 # default, can be changed by argument
TIMING = False # default, can be changed by argument

def base_IVI(N: int, base: int=10, __internal=False, **kwargs):
    """Alias for ivi.ivilib.base.digit_search"""
    if kwargs: print(f"Ignoring {kwargs} for base_IVI")
    import ivi.ivilib.base
    module = ivi.ivilib.base
    result = module.digit_search(N, base)
    return (result, module) if __internal else result

def unpruned_IVI(N: int, base: int=10, __internal=False, **kwargs):
    """Alias for ivi.ivilib.unpruned.digit_search"""
    if kwargs: print(f"Ignoring {kwargs} for unpruned_IVI")
    import ivi.ivilib.unpruned
    module = ivi.ivilib.unpruned
    result = module.digit_search(N, base)
    return (result, module) if __internal else result

def np_IVI(N: int, base: int=10, __internal=False, **kwargs):
    """Alias for ivi.ivilib.np_recurrence.digit_search"""
    if kwargs: print(f"Ignoring {kwargs} for np_IVI")
    import ivi.ivilib.np_recurrence
    module = ivi.ivilib.np_recurrence
    result = module.digit_search(N, base)
    return (result, module) if __internal else result

def parallel_IVI(N: int, base: int=10, chunks: int=4, jobs: int=4, multivariant: Literal["multithreading", "multiprocessing"]="multiprocessing", __internal=False, **kwargs):
    """Alias for ivi.ivilib.parallel_frontier.digit_search"""
    if kwargs: print(f"Ignoring {kwargs} for parallel_IVI")
    import ivi.ivilib.parallel_frontier
    module = ivi.ivilib.parallel_frontier
    result = module.digit_search(N, base, chunks=chunks, jobs=jobs, multivariant=multivariant)
    return (result, module) if __internal else result

def complete_IVI(N: int, base: int=10, symmetry: Literal["final", "partial", "off"]="final", chunks: int=1, jobs: int=4, multivariant: Literal["multithreading", "multiprocessing"]="multiprocessing", use_numpy: bool=False, frontier_cap: int=None, retries: int=0, retry_factor: float=2.0, checkpoint_path: str=None, resume=None, debug: int=0, timing: bool=TIMING, __internal=False):
    """Alias for ivi.ivilib.complete.digit_search"""
    import ivi.ivilib.complete
    module = ivi.ivilib.complete
    result = module.digit_search(N, base, symmetry=symmetry, chunks=chunks, jobs=jobs, multivariant=multivariant, use_numpy=use_numpy, frontier_cap=frontier_cap, retries=retries, retry_factor=retry_factor, checkpoint_path=checkpoint_path, resume=resume, debug=debug, timing=timing)
    return (result, module) if __internal else result

def testIVI(variant_func,
        bits: int=None,
        N: int=None,
        debug: Literal[0, 1, 2]=DEBUG,
        timing: bool=TIMING,
        **kwargs):
    if bits is None and N is None:
        raise ValueError("One of bits or N must be provided.")
    if bits is not None and N is not None:
        raise ValueError("Only one of bits or N must be provided.")

    if N is None:
        N = getComposite(bits)
    else: print(f"Factoring provided number N ({N.bit_length()}-bit, {len(str(N))} digits):\n| {N}")

    if variant_func.__name__ == "complete_IVI":
        kwargs.setdefault("debug", debug)
        kwargs.setdefault("timing", timing)

    try:
        (P, Q), module = variant_func(N, __internal=True, **kwargs)
    except ValueError as e:
        print(f"Factorization failed! {e}")
        return None
    if timing and module.__name__ == "ivi.ivilib.complete":
        module.print_timing()
    print(f"Returned factors: {P} * {Q}")
    assert P * Q == N and 1 < P <= Q
    print("Test passed!")
    return P, Q

def explore(N: int, bases, jobs: int=1):
    """Run the search in several bases and print which one finished first."""
    import ivi.ivilib.multibase as multibase

    def on_progress(rnd, b, state):
        if DEBUG > 1: print(f"round {rnd}: base {b} -> {type(state).__name__}")

    result = multibase.explore_bases(N, bases, jobs=jobs, on_progress=on_progress)
    for b, outcome in result.results.items():
        status = f"solved {outcome.state.p} * {outcome.state.q}" if outcome.solved else "exhausted"
        print(f" - base {b:>3}: {status} after {outcome.transitions} transitions, max frontier {outcome.state.stats.max_frontier_width}")
    if result.winner is not None:
        print(f"Winner: base {result.winner.base}")
    else:
        print("No base found a factorization.")
    return result

def getComposite(bits: int):
    import Crypto.Util.number as number

    _validate_bits(bits)

    p = number.getPrime(bits//2)
    q = number.getPrime(bits//2 + (1 if bits % 2 else 0))
    N = p * q
    print(f"Generated {bits}-bit / {len(str(N))}-digit composite\n| {N} = \n| {p} \n|  * \n| {q}")
    return N

def _validate_bits(bits: int):
    if 3 < bits < 48:
        pass  # reasonable
    elif 48 <= bits <= 512:
        print(f"Warning! {bits} bits are a lot for a digit search. This computation may never complete!", file=sys.stderr)
    else:
        raise ValueError("Error: --bits must be at least 4, and not too large.")

def main():
    import argparse

    parser = argparse.ArgumentParser(description="IVI digit-propagation factorization.")
    parser.add_argument("mode", nargs="?", default="factor", choices=["factor", "explore", "list_variants", "gen_composite", "repl"],
                        help="Mode to run: 'factor' to factor a number, 'explore' to race several bases, 'list_variants' to list available variants, 'gen_composite' to generate a composite number N = p*q, or 'repl' to start a Python REPL. Most optional arguments only apply to the 'factor' mode.")
    parser.add_argument("-M", "--module", default="complete", type=str, choices=list(aliases.keys()),
                        help="Module (IVI variant) to use.")
    parser.add_argument("-b", "--bits", type=int, default=None,
                        help="Number of bits of the composite number to generate and factor (incompatible with --number).")
    parser.add_argument("-n", "-N", "--number", type=int, default=None,
                        help="Composite number to factor (incompatible with --bits).")
    parser.add_argument("-B", "--base", type=int, default=10,
                        help="Numeral base to search in.")
    parser.add_argument("--bases", type=str, default="8,10,16",
                        help="Comma-separated bases for the 'explore' mode.")
    parser.add_argument("-S", "--symmetry", type=str, default="final", choices=["final", "partial", "off"],
                        help="(Only compatible with some variants.) When to enforce P <= Q. 'partial' is base 10 only and may miss factorizations.")
    parser.add_argument("-C", "--chunks", type=int,
                        help="(Only compatible with some variants.) Number of chunks to split each frontier into, for parallel variants. Can be larger than -J")
    parser.add_argument("-J", "--jobs", type=int, default=4,
                        help="(Only compatible with some variants.) Number of jobs to run in parallel, for parallel variants and 'explore'.")
    parser.add_argument("-PV", "--parallelization-variant", type=str, default="multiprocessing", choices=["multiprocessing", "multithreading"],
                        help="(Only compatible with some variants.) Parallelization variant to use. Recommended: multiprocessing.")
    parser.add_argument("-NP", "--numpy", action="store_true",
                        help="(Only compatible with some variants.) Use the numpy digit-pair sweep in the 'complete' module.")
    parser.add_argument("-F", "--frontier-cap", type=int,
                        help="(Only compatible with some variants.) Keep at most this many branches per position. Lossy!")
    parser.add_argument("-R", "--retries", type=int, default=0,
                        help="(Only compatible with some variants.) Number of retries with a larger frontier cap.")
    parser.add_argument("-RF", "--retry-factor", type=float, default=2.0,
                        help="(Only compatible with some variants.) Factor to increase the frontier cap by on each retry.")
    parser.add_argument("--checkpoint", type=str,
                        help="(Only compatible with some variants.) JSON file to save the search state to after every position.")
    parser.add_argument("--resume", type=str,
                        help="(Only compatible with some variants.) JSON checkpoint to continue from.")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="(Only compatible with some variants.) Default debug level to 1.")
    parser.add_argument("-vv", "--very-verbose", action="store_true",
                        help="(Only compatible with some variants.) Default debug level to 2.")
    parser.add_argument("-t", "--timing", action="store_true",
                        help="(Only compatible with some variants.) Enable timing by default.")

    args = parser.parse_args()

    if args.verbose and args.very_verbose:
        print("Both --verbose and --very-verbose specified, using --very-verbose.")

    global DEBUG, TIMING
    DEBUG = 0 if not args.verbose and not args.very_verbose else (2 if args.very_verbose else 1)
    TIMING = False or args.timing

    import logging
    logging.basicConfig(level=logging.DEBUG if DEBUG > 1 else logging.WARNING,
                        format='[%(asctime)s] %(levelname)s: %(message)s')

    if args.mode == "repl":
        _repl_print_info()
        import code
        code.interact(local=globals())
        return

    if args.mode == "list_variants":
        print("Available IVI variants:")
        for alias, fullname in aliases.items():
            print(f" - {alias}: {fullname}")
        sys.exit(0)

    if args.mode == "gen_composite":
        if args.bits:
            getComposite(args.bits)
        else:
            print("Error: pass --bits to use this module!")
        sys.exit(0)

    if args.number and args.bits:
        print("Error: --number and --bits are mutually exclusive.", file=sys.stderr)
        sys.exit(1)
    if not args.number and not args.bits and not args.resume:
        print("Error: One of --number, --bits or --resume must be specified.", file=sys.stderr)
        sys.exit(1)

    if args.resume and (args.number or args.bits):
        print("Error: --resume takes N from the checkpoint, drop --number and --bits.", file=sys.stderr)
        sys.exit(1)
    if args.resume and args.mode == "factor" and args.module != "complete":
        print("Error: only the 'complete' module can continue a checkpoint, use -M complete.", file=sys.stderr)
        sys.exit(1)

    N = args.number
    bits = args.bits
    if bits is not None:
        _validate_bits(bits)

    state = None
    if args.resume:
        import ivi.ivilib.checkpoint as checkpoint
        try:
            state = checkpoint.load(args.resume)
        except (OSError, ValueError, KeyError) as e:
            print(f"Error: cannot read checkpoint {args.resume}: {e}", file=sys.stderr)
            sys.exit(1)
        N = state.target.n

    if args.mode == "explore":
        if N is None:
            N = getComposite(bits)
        bases = [int(b) for b in args.bases.split(",") if b.strip()]
        explore(N, bases, jobs=args.jobs if ("-J" in sys.argv or "--jobs" in sys.argv) else 1)
        return

    kwargs = {"base": args.base}
    if args.module == "complete":
        kwargs["symmetry"] = args.symmetry
        if args.numpy:
            kwargs["use_numpy"] = True
        if args.frontier_cap:
            kwargs["frontier_cap"] = args.frontier_cap
        if args.retries and ("-R" in sys.argv or "--retries" in sys.argv):
            kwargs["retries"] = args.retries
            kwargs["retry_factor"] = args.retry_factor
        if args.checkpoint:
            kwargs["checkpoint_path"] = args.checkpoint
        if state is not None:
            kwargs["resume"] = state
            kwargs["base"] = state.target.base
    if args.module in ("complete", "parallel"):
        if args.chunks:
            kwargs["chunks"] = args.chunks
        if args.jobs and ("-J" in sys.argv or "--jobs" in sys.argv):
            kwargs["jobs"] = args.jobs
        if args.parallelization_variant and ("-PV" in sys.argv or "--parallelization-variant" in sys.argv):
            kwargs["multivariant"] = args.parallelization_variant

    testIVI(variant_func=globals()[f"{args.module}_IVI"], N=N, bits=bits, debug=DEBUG, timing=TIMING, **kwargs)

def _repl_print_info():
    print("<!---")
    print("Entering REPL mode. You can now use the IVI variants directly.\nArguments other than -v, -vv and -t are discarded.")
    print("Available variants:")
    for alias in aliases.keys():
        print(f" - {alias}_IVI")
    print("The following helper functions are available to you:")
    print(" - getComposite(bits: int)")
    print(" - testIVI(variant_func, bits: int=None, N: int=None, **kwargs)")
    print(" - explore(N: int, bases, jobs: int=1)")
    if DEBUG > 0: print(f"Default debug level set to {DEBUG}")
    if TIMING: print(f"Timing printed by default (if available)")
    print("--->\n")

if __name__ == "__main__":
    main()
