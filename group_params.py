"""
Safe-prime group construction.

Builds (p, q, g) where p = 2q + 1 is a safe prime, q is its Sophie Germain
prime and g generates the subgroup of order q in Z_p*. The searches are
probabilistic, so every loop here is bounded: by an attempt cap, an optional
wall-clock timeout and an optional cancel event. Running out of any of them
raises ``GenerationFailed`` instead of spinning forever.
"""
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from errors import GenerationFailed
from primality import DEFAULT_ROUNDS, has_small_factor, is_probably_prime

logger = logging.getLogger(__name__)

DEFAULT_GENERATOR_ATTEMPTS = 1000


@dataclass(frozen=True)
class GroupParameters:
    p: int  # safe prime, p = 2q + 1
    q: int  # Sophie Germain prime, order of the subgroup
    g: int  # generator of the order-q subgroup

    @property
    def bits(self) -> int:
        return self.p.bit_length()

    def validate(self, rounds: int = DEFAULT_ROUNDS) -> bool:
        """Re-check every group invariant. Costs two full primality tests."""
        return (self.p == 2 * self.q + 1
                and is_probably_prime(self.q, rounds)
                and is_probably_prime(self.p, rounds)
                and 1 < self.g < self.p - 1
                and pow(self.g, self.q, self.p) == 1)


def default_prime_attempts(bits: int) -> int:
    # safe primes thin out like 1/ln(p)^2, so the cap grows with bits^2
    return max(10_000, 16 * bits * bits)


def _check_budget(attempt: int, max_attempts: int, deadline: Optional[float],
                  cancel: Optional[threading.Event], what: str):
    if attempt >= max_attempts:
        raise GenerationFailed(f"{what}: no result after {max_attempts} attempts")
    if deadline is not None and time.monotonic() > deadline:
        raise GenerationFailed(f"{what}: timed out after {attempt} attempts")
    if cancel is not None and cancel.is_set():
        raise GenerationFailed(f"{what}: cancelled after {attempt} attempts")


def generate_safe_prime_pair(bits: int, rounds: int = DEFAULT_ROUNDS,
                             max_attempts: Optional[int] = None,
                             timeout: Optional[float] = None,
                             cancel: Optional[threading.Event] = None) -> Tuple[int, int]:
    """
    Return (p, q) with p = 2q + 1 both prime and p exactly ``bits`` bits long.

    Candidates q are odd with their top bit set, so q has bits-1 bits.
    Both q and 2q+1 go through a small-prime sieve before Miller–Rabin.
    """
    if bits < 3:
        raise ValueError("a safe prime needs at least 3 bits")
    if max_attempts is None:
        max_attempts = default_prime_attempts(bits)
    deadline = time.monotonic() + timeout if timeout is not None else None

    top = 1 << (bits - 2)
    attempt = 0
    while True:
        _check_budget(attempt, max_attempts, deadline, cancel, "safe prime search")
        attempt += 1

        q = secrets.randbits(bits - 1) | top | 1
        p = 2 * q + 1
        if has_small_factor(q) or has_small_factor(p):
            continue
        if is_probably_prime(q, rounds) and is_probably_prime(p, rounds):
            logger.debug(f"safe prime found after {attempt} candidates ({bits} bits)")
            return p, q


def find_generator(p: int, q: int, max_attempts: int = DEFAULT_GENERATOR_ATTEMPTS) -> int:
    """
    Find a generator of the order-q subgroup of Z_p*.

    Squaring a random h lands in the quadratic residues, whose order divides
    q; since q is prime, any such g != 1 has order exactly q.
    """
    for _ in range(max_attempts):
        h = 2 + secrets.randbelow(p - 3)        # h in [2, p-2]
        g = pow(h, 2, p)
        if g != 1 and pow(g, q, p) == 1:
            return g
    raise GenerationFailed(f"no generator found after {max_attempts} attempts")


def generate_params(bits: int, rounds: int = DEFAULT_ROUNDS,
                    max_attempts: Optional[int] = None,
                    timeout: Optional[float] = None,
                    cancel: Optional[threading.Event] = None,
                    generator_attempts: int = DEFAULT_GENERATOR_ATTEMPTS) -> GroupParameters:
    """Generate a fresh safe-prime group of ``bits`` bits."""
    started = time.monotonic()
    p, q = generate_safe_prime_pair(bits, rounds=rounds, max_attempts=max_attempts,
                                    timeout=timeout, cancel=cancel)
    g = find_generator(p, q, max_attempts=generator_attempts)
    logger.info(f"Generated {bits}-bit group in {time.monotonic() - started:.2f}s")
    return GroupParameters(p=p, q=q, g=g)
