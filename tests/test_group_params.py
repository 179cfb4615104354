import threading

import pytest

from errors import GenerationFailed
from group_params import (GroupParameters, find_generator, generate_params,
                          generate_safe_prime_pair)
from primality import is_probably_prime


def test_generate_params_256_bits():
    params = generate_params(256)

    assert params.p == 2 * params.q + 1
    assert params.p.bit_length() == 256
    assert params.bits == 256
    assert is_probably_prime(params.p)
    assert is_probably_prime(params.q)
    assert params.g != 1
    assert 1 < params.g < params.p - 1
    assert pow(params.g, params.q, params.p) == 1
    assert params.validate()


@pytest.mark.parametrize("bits", [3, 8, 16, 32, 64])
def test_small_safe_prime_pairs(bits):
    p, q = generate_safe_prime_pair(bits)
    assert p == 2 * q + 1
    assert p.bit_length() == bits
    assert is_probably_prime(p) and is_probably_prime(q)


def test_three_bit_group_is_seven():
    assert generate_safe_prime_pair(3) == (7, 3)


def test_find_generator_has_order_q():
    p, q = generate_safe_prime_pair(64)
    for _ in range(20):
        g = find_generator(p, q)
        assert g != 1
        assert pow(g, q, p) == 1


def test_too_few_bits():
    with pytest.raises(ValueError):
        generate_safe_prime_pair(2)


def test_attempt_cap_raises_generation_failed():
    with pytest.raises(GenerationFailed):
        generate_safe_prime_pair(256, max_attempts=0)


def test_timeout_raises_generation_failed():
    with pytest.raises(GenerationFailed):
        generate_safe_prime_pair(256, timeout=-1.0)


def test_cancel_raises_generation_failed():
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(GenerationFailed):
        generate_params(256, cancel=cancel)


def test_generator_cap_raises_generation_failed():
    with pytest.raises(GenerationFailed):
        find_generator(23, 11, max_attempts=0)


def test_validate_rejects_broken_groups(group):
    assert group.validate()
    assert not GroupParameters(p=group.p, q=group.q, g=1).validate()
    assert not GroupParameters(p=group.p, q=group.q, g=group.p - 1).validate()
    assert not GroupParameters(p=23, q=10, g=4).validate()
    # 5 is a generator of the whole of Z_23*, so it has order 22, not 11
    assert not GroupParameters(p=23, q=11, g=5).validate()
    assert GroupParameters(p=23, q=11, g=4).validate()


def test_parameters_are_immutable(group):
    with pytest.raises(AttributeError):
        group.g = 2
