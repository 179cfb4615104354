"""
chaum_pedersen.py
─────────────────
Chaum-Pedersen proof that the prover knows (a, b) behind the public
commitment (a1, b1, c1) = (g^a, g^b, g^ab), made non-interactive with a
Fiat-Shamir challenge over (y1, y2).

Group arithmetic happens mod p, exponent arithmetic mod q.

Flow (client = Prover, server = Verifier):

    prover   = Prover(params)
    commitment = prover.commit()                           # ➊ a1, b1, c1
    values     = prover.prove_step1(commitment)            # ➋ y1, y2

    verifier = Verifier(params)
    s        = verifier.verify_step1(commitment, values)   # ➌ s = H(y1‖y2) mod q
    z        = prover.prove_step2(s)                       # ➍ z = x + a·s mod q
    ok       = verifier.verify_step2(z)                    # ➎ both congruences
"""
from __future__ import annotations
import hashlib
import secrets
from dataclasses import dataclass, field
from typing import Optional, Tuple

from errors import InvalidArgument
from group_params import GroupParameters


# ──────────────────────────── integer codec ─────────────────────────────
def int_to_bytes(n: int) -> bytes:
    """Unsigned big-endian, minimal width. Zero encodes as b''."""
    if n < 0:
        raise ValueError("only non-negative integers are encodable")
    return n.to_bytes((n.bit_length() + 7) // 8, "big")


def bytes_to_int(data: bytes) -> int:
    return int.from_bytes(data, "big")


def to_hex(n: int) -> str:
    return int_to_bytes(n).hex()


def from_hex(value, name: str = "value") -> int:
    if not isinstance(value, str):
        raise InvalidArgument(f"{name} must be a hex string")
    try:
        return bytes_to_int(bytes.fromhex(value))
    except ValueError:
        raise InvalidArgument(f"{name} is not valid hex") from None


# ───────────────────────────── proof values ─────────────────────────────
@dataclass(frozen=True)
class Commitment:
    a1: int  # g^a mod p
    b1: int  # g^b mod p
    c1: int  # g^(ab) mod p

    def to_json(self) -> dict:
        return {"a1": to_hex(self.a1), "b1": to_hex(self.b1), "c1": to_hex(self.c1)}

    @classmethod
    def from_json(cls, data) -> Commitment:
        if not isinstance(data, dict):
            raise InvalidArgument("commitment must be an object")
        return cls(*(from_hex(data.get(k), k) for k in ("a1", "b1", "c1")))


@dataclass(frozen=True)
class ChallengeValues:
    y1: int  # g^x mod p
    y2: int  # b1^x mod p

    def to_json(self) -> dict:
        return {"y1": to_hex(self.y1), "y2": to_hex(self.y2)}

    @classmethod
    def from_json(cls, data) -> ChallengeValues:
        if not isinstance(data, dict):
            raise InvalidArgument("challenge_values must be an object")
        return cls(from_hex(data.get("y1"), "y1"), from_hex(data.get("y2"), "y2"))


@dataclass(frozen=True)
class ZKProof:
    """Self-contained transcript, verifiable without interaction."""
    commitment: Commitment
    challenge_values: ChallengeValues
    response: int         # z
    challenge_hash: int   # s


# ────────────────────────── pure proof functions ────────────────────────
def random_exponent(q: int) -> int:
    """Uniform in [1, q-1]."""
    return 1 + secrets.randbelow(q - 1)


def commit(g: int, a: int, b: int, p: int) -> Tuple[int, int, int]:
    return pow(g, a, p), pow(g, b, p), pow(g, a * b, p)


def challenge_values(x: int, g: int, b1: int, p: int) -> Tuple[int, int]:
    return pow(g, x, p), pow(b1, x, p)


def challenge_hash(y1: int, y2: int, q: int) -> int:
    """s = SHA-256(be(y1) ‖ be(y2)) mod q, no separators or length prefixes."""
    digest = hashlib.sha256(int_to_bytes(y1) + int_to_bytes(y2)).digest()
    return bytes_to_int(digest) % q


def response(x: int, a: int, s: int, q: int) -> int:
    return (x + a * s) % q


def verify(g: int, b1: int, y1: int, y2: int, a1: int, c1: int,
           s: int, z: int, p: int) -> bool:
    """Accept iff g^z = a1^s·y1 and b1^z = c1^s·y2 (mod p)."""
    ok1 = pow(g, z, p) == (pow(a1, s, p) * y1) % p
    ok2 = pow(b1, z, p) == (pow(c1, s, p) * y2) % p
    return ok1 and ok2


def in_group_range(value: int, params: GroupParameters) -> bool:
    return 0 < value < params.p


# ──────────────────────────────  classes  ───────────────────────────────
@dataclass
class Prover:
    """
    Holds the secrets. Only public values ever leave this object.
    Sequence:
        commit()               → Commitment
        prove_step1(commitment)→ ChallengeValues   (draws a fresh x)
        prove_step2(s)         → z                 (consumes x)
    """
    params: GroupParameters
    secret_a: Optional[int] = field(default=None, repr=False)
    secret_b: Optional[int] = field(default=None, repr=False)
    _x: Optional[int] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        q = self.params.q
        if self.secret_a is None:
            self.secret_a = random_exponent(q)
        if self.secret_b is None:
            self.secret_b = random_exponent(q)
        if not (0 < self.secret_a < q and 0 < self.secret_b < q):
            raise ValueError("secrets must lie in [1, q-1]")

    # ➊ commitment
    def commit(self) -> Commitment:
        prm = self.params
        return Commitment(*commit(prm.g, self.secret_a, self.secret_b, prm.p))

    # ➋ first message
    def prove_step1(self, commitment: Commitment) -> ChallengeValues:
        self._x = random_exponent(self.params.q)
        return ChallengeValues(*challenge_values(self._x, self.params.g, commitment.b1, self.params.p))

    # ➍ response
    def prove_step2(self, s: int) -> int:
        if self._x is None:
            raise RuntimeError("prove_step1 must run before every prove_step2")
        x, self._x = self._x, None
        return response(x, self.secret_a, s, self.params.q)

    def create_proof(self) -> ZKProof:
        """Fiat–Shamir: the prover computes s itself from (y1, y2)."""
        commitment = self.commit()
        values = self.prove_step1(commitment)
        s = challenge_hash(values.y1, values.y2, self.params.q)
        z = self.prove_step2(s)
        return ZKProof(commitment=commitment, challenge_values=values,
                       response=z, challenge_hash=s)


class Verifier:
    """
    Server side.
        verify_step1(commitment, values) → s
        verify_step2(z)                  → bool
        verify_proof(proof)              → bool  (non-interactive)
    """
    def __init__(self, params: GroupParameters):
        self.params = params
        self.commitment = None
        self.values = None
        self.s = None

    # ➌ challenge
    def verify_step1(self, commitment: Commitment, values: ChallengeValues) -> int:
        self.commitment, self.values = commitment, values
        self.s = challenge_hash(values.y1, values.y2, self.params.q)
        return self.s

    # ➎ final check
    def verify_step2(self, z: int) -> bool:
        if self.s is None:
            return False
        return self._check(self.commitment, self.values, self.s, z)

    def verify_proof(self, proof: ZKProof) -> bool:
        values = proof.challenge_values
        # never trust the prover's s, recompute it
        expected = challenge_hash(values.y1, values.y2, self.params.q)
        if expected != proof.challenge_hash:
            return False
        return self._check(proof.commitment, values, expected, proof.response)

    def _check(self, commitment: Commitment, values: ChallengeValues, s: int, z: int) -> bool:
        prm = self.params
        publics = (commitment.a1, commitment.b1, commitment.c1, values.y1, values.y2)
        if not all(in_group_range(v, prm) for v in publics):
            return False
        if not 0 <= z < prm.q:
            return False
        return verify(prm.g, commitment.b1, values.y1, values.y2,
                      commitment.a1, commitment.c1, s, z, prm.p)


# ───────────────────────────── wire messages ────────────────────────────
def _require_session_id(data: dict) -> str:
    session_id = data.get("session_id")
    if not isinstance(session_id, str) or not session_id:
        raise InvalidArgument("session_id must be a non-empty string")
    return session_id


def _require_object(data) -> dict:
    if not isinstance(data, dict):
        raise InvalidArgument("request body must be a JSON object")
    return data


@dataclass
class InitializeRequest:          # → /protocol/initialize
    bit_size: int

    @classmethod
    def from_json(cls, data) -> InitializeRequest:
        bit_size = _require_object(data).get("bit_size")
        if isinstance(bit_size, bool) or not isinstance(bit_size, int):
            raise InvalidArgument("bit_size must be an integer")
        return cls(bit_size)


@dataclass
class InitializeResponse:
    session_id: str
    params: GroupParameters

    def to_json(self) -> dict:
        prm = self.params
        return {"session_id": self.session_id,
                "params": {"p": to_hex(prm.p), "q": to_hex(prm.q), "g": to_hex(prm.g)}}

    @classmethod
    def from_json(cls, data) -> InitializeResponse:
        params = _require_object(data).get("params")
        if not isinstance(params, dict):
            raise InvalidArgument("params must be an object")
        return cls(_require_session_id(data),
                   GroupParameters(*(from_hex(params.get(k), k) for k in ("p", "q", "g"))))


@dataclass
class CommitmentRequest:          # → /protocol/commitment
    session_id: str
    commitment: Commitment
    challenge_values: ChallengeValues

    def to_json(self) -> dict:
        return {"session_id": self.session_id,
                "commitment": self.commitment.to_json(),
                "challenge_values": self.challenge_values.to_json()}

    @classmethod
    def from_json(cls, data) -> CommitmentRequest:
        data = _require_object(data)
        return cls(_require_session_id(data),
                   Commitment.from_json(data.get("commitment")),
                   ChallengeValues.from_json(data.get("challenge_values")))


@dataclass
class ChallengeResponse:
    challenge: int

    def to_json(self) -> dict:
        return {"challenge": to_hex(self.challenge)}

    @classmethod
    def from_json(cls, data) -> ChallengeResponse:
        return cls(from_hex(_require_object(data).get("challenge"), "challenge"))


@dataclass
class VerifyProofRequest:         # → /protocol/response
    session_id: str
    z: int

    def to_json(self) -> dict:
        return {"session_id": self.session_id, "z": to_hex(self.z)}

    @classmethod
    def from_json(cls, data) -> VerifyProofRequest:
        data = _require_object(data)
        return cls(_require_session_id(data), from_hex(data.get("z"), "z"))


@dataclass
class VerifyProofResponse:
    verified: bool
    message: str

    def to_json(self) -> dict:
        return {"verified": self.verified, "message": self.message}

    @classmethod
    def from_json(cls, data) -> VerifyProofResponse:
        data = _require_object(data)
        return cls(bool(data.get("verified")), str(data.get("message", "")))


# ───────────────────────────── demo ─────────────────────────────────────
def _demo(bits: int = 256):
    from group_params import generate_params

    print(f"Generating {bits}-bit safe-prime group …")
    params = generate_params(bits)

    prover = Prover(params)
    verifier = Verifier(params)
    commitment = prover.commit()
    values = prover.prove_step1(commitment)
    s = verifier.verify_step1(commitment, values)
    z = prover.prove_step2(s)
    print("✅  Accepted" if verifier.verify_step2(z) else "❌  Rejected")

    print("\n🔒  Forged response test")
    values = prover.prove_step1(commitment)
    s = verifier.verify_step1(commitment, values)
    z = prover.prove_step2(s)
    assert not verifier.verify_step2((z + 1) % params.q)
    print("✔️  Forged response correctly rejected")

    print("\n🔒  Self-chosen challenge test")
    proof = prover.create_proof()
    forged = ZKProof(proof.commitment, proof.challenge_values,
                     proof.response, (proof.challenge_hash + 1) % params.q)
    assert verifier.verify_proof(proof)
    assert not verifier.verify_proof(forged)
    print("✔️  Mismatched challenge correctly rejected")


if __name__ == "__main__":
    _demo()
