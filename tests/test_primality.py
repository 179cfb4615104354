import pytest

from primality import has_small_factor, is_probably_prime
from tests.conftest import OAKLEY_P


def _primes_up_to(n):
    sieve = [True] * (n + 1)
    sieve[0] = sieve[1] = False
    for i in range(2, int(n ** 0.5) + 1):
        if sieve[i]:
            sieve[i * i::i] = [False] * len(sieve[i * i::i])
    return [i for i, prime in enumerate(sieve) if prime]


def test_small_primes_accepted():
    for p in _primes_up_to(997):
        assert is_probably_prime(p), p


def test_small_composites_rejected():
    primes = set(_primes_up_to(1000))
    for n in [4, 6, 8, 9, 15, 21] + [n for n in range(2, 1000) if n not in primes]:
        assert not is_probably_prime(n), n


@pytest.mark.parametrize("n", [-7, -1, 0, 1])
def test_below_two_rejected(n):
    assert not is_probably_prime(n)


def test_carmichael_numbers_rejected():
    for n in (561, 1105, 1729, 2465, 2821, 6601, 8911, 41041, 825265):
        assert not is_probably_prime(n), n


def test_large_known_values():
    assert is_probably_prime(2 ** 61 - 1)
    assert is_probably_prime(2 ** 127 - 1)
    assert not is_probably_prime(2 ** 127 + 1)
    assert not is_probably_prime((2 ** 61 - 1) * (2 ** 127 - 1))


def test_safe_prime_and_its_half():
    assert is_probably_prime(OAKLEY_P)
    assert is_probably_prime((OAKLEY_P - 1) // 2)
    assert not is_probably_prime(OAKLEY_P + 2)


def test_has_small_factor():
    assert not has_small_factor(3)
    assert not has_small_factor(251)
    assert has_small_factor(9)
    assert has_small_factor(251 * 257)
    assert not has_small_factor(257 * 263)


def test_single_round_still_catches_even_and_small_factors():
    assert not is_probably_prime(2 ** 64, rounds=1)
    assert not is_probably_prime(3 * 2 ** 61 + 9, rounds=1)
