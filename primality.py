"""
Miller–Rabin probabilistic primality testing.

Witnesses are drawn from ``secrets`` so a caller cannot predict (and an
adversary cannot pre-compute) the bases a candidate is tested against.
"""
import secrets

DEFAULT_ROUNDS = 40

# odd primes below 256, used to discard most composites before any pow()
SMALL_PRIMES = (
    3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47, 53, 59, 61, 67, 71,
    73, 79, 83, 89, 97, 101, 103, 107, 109, 113, 127, 131, 137, 139, 149, 151,
    157, 163, 167, 173, 179, 181, 191, 193, 197, 199, 211, 223, 227, 229, 233,
    239, 241, 251,
)


def has_small_factor(n: int) -> bool:
    """True if some small prime other than ``n`` itself divides ``n``."""
    for sp in SMALL_PRIMES:
        if n % sp == 0:
            return n != sp
    return False


def _random_witness(n: int) -> int:
    # uniform in [2, n-2]
    return 2 + secrets.randbelow(n - 3)


def is_probably_prime(n: int, rounds: int = DEFAULT_ROUNDS) -> bool:
    """Miller–Rabin test. False positive probability is at most 4^-rounds."""
    if n < 2:
        return False
    if n in (2, 3):
        return True
    if n % 2 == 0:
        return False
    if has_small_factor(n):
        return False
    if n in SMALL_PRIMES:
        return True

    # write n-1 as d * 2^r with d odd
    r, d = 0, n - 1
    while d % 2 == 0:
        r += 1
        d //= 2

    for _ in range(rounds):
        x = pow(_random_witness(n), d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(r - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True
