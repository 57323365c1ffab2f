"""
Exact integer helpers shared by every IVI variant.

Everything here works on Python ints, which never overflow.
Nothing in the engine may narrow a value derived from N, P or Q
to a machine integer.
"""

#########################
# Memoized base powers  #
#########################

# (base, exponent) -> base**exponent
# Append-only: once a power is stored it is never replaced, so the
# cache can be read from several threads without locking.
_POWER_CACHE: dict[tuple[int, int], int] = {}

def power_of_base(base: int, exponent: int) -> int:
    """
    Return base**exponent, caching the result.

    :param base: The numeral base (>= 2).
    :param exponent: A non-negative exponent.
    :return: base**exponent as an exact integer.
    """
    key = (base, exponent)
    cached = _POWER_CACHE.get(key)
    if cached is not None:
        return cached

    if base < 2:
        raise ValueError(f"base must be at least 2, got {base}")
    if exponent < 0:
        raise ValueError(f"exponent must be non-negative, got {exponent}")

    result = base ** exponent
    _POWER_CACHE.setdefault(key, result)
    return result

def cached_powers() -> int:
    """Number of memoized powers (for debug output)."""
    return len(_POWER_CACHE)

###########################
# Integer square root     #
###########################

def integer_sqrt(n: int) -> int:
    """
    floor(sqrt(n)) by Newton's method.

    Newton's iteration x_{k+1} = (x_k + n // x_k) // 2 decreases
    monotonically once started above the root, so we stop at the
    first step that does not go down.
    """
    if n < 0:
        raise ValueError("square root of negative number")
    if n < 2:
        return n

    # start above the root: 2^ceil(bits/2) > sqrt(n)
    x = 1 << ((n.bit_length() + 1) // 2)
    while True:
        y = (x + n // x) // 2
        if y >= x:
            return x
        x = y

#######################
# Digit conversions   #
#######################

def to_base_digits(n: int, base: int) -> list[int]:
    """
    Digits of n in the given base, least significant digit first.

    to_base_digits(38009, 10) == [9, 0, 0, 8, 3]
    """
    if base < 2:
        raise ValueError(f"base must be at least 2, got {base}")
    if n < 0:
        raise ValueError("cannot convert a negative number to digits")
    if n == 0:
        return [0]

    digits = []
    while n > 0:
        n, d = divmod(n, base)
        digits.append(d)
    return digits

def from_base_digits(digits, base: int) -> int:
    """Inverse of to_base_digits (LSD first). An empty sequence is 0."""
    value = 0
    for i, d in enumerate(digits):
        value += d * power_of_base(base, i)
    return value

def ceil_div(a: int, b: int) -> int:
    """ceil(a / b) for b > 0, exact."""
    return -(-a // b)
