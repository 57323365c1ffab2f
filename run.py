#!/usr/bin/env python3
"""
Entry point for the IVI digit-search factorization modules.
Run with `python run.py [args]`
i.e. `python run.py -h` for help.
"""

import sys

if __name__ == "__main__":
    if "ivi" in sys.path[0]:
        print("Run from the repository root with:\npython3 run.py -h")
        sys.exit(1)

    from ivi import digit_search
    digit_search.main()
