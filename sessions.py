"""
Session coordinator - per-session protocol state for the verifier.

Each session walks Initialized → CommitmentSubmitted → {Verified | Failed}.
The state is a tagged variant: every state class carries exactly the fields
that are valid in it, so a later-stage field can never be read early.

Locking: the session table has one short-held lock used only to get, insert
and remove entries. Every read-modify-write on a session happens under that
session's own lock, so unrelated sessions never wait on each other. Lock
order is always entry lock, then table lock.
"""
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Tuple

import config
from chaum_pedersen import ChallengeValues, Commitment, challenge_hash, in_group_range, verify
from errors import InvalidArgument, InvalidState, NotFound
from group_params import GroupParameters, generate_params

logger = logging.getLogger(__name__)


class SessionState(Enum):
    INITIALIZED = "initialized"
    COMMITMENT_SUBMITTED = "commitment_submitted"
    VERIFIED = "verified"
    FAILED = "failed"


@dataclass(frozen=True)
class Initialized:
    params: GroupParameters

    state = SessionState.INITIALIZED


@dataclass(frozen=True)
class CommitmentSubmitted:
    params: GroupParameters
    commitment: Commitment
    challenge_values: ChallengeValues
    challenge_hash: int

    state = SessionState.COMMITMENT_SUBMITTED


@dataclass(frozen=True)
class Failed:
    params: GroupParameters
    commitment: Commitment
    challenge_values: ChallengeValues
    challenge_hash: int
    message: str

    state = SessionState.FAILED


class _SessionEntry:
    def __init__(self, state, now: float):
        self.lock = threading.Lock()
        self.state = state
        self.created_at = now
        self.updated_at = now
        self.closed = False


def _default_param_generator(bits: int) -> GroupParameters:
    return generate_params(bits,
                           rounds=config.MILLER_RABIN_ROUNDS,
                           timeout=config.PRIME_SEARCH_TIMEOUT,
                           generator_attempts=config.GENERATOR_ATTEMPTS)


class SessionCoordinator:
    """Owns every verifier-side session and drives its state machine."""

    def __init__(self,
                 param_generator: Callable[[int], GroupParameters] = _default_param_generator,
                 retain_failed: bool = config.RETAIN_FAILED_SESSIONS,
                 session_ttl: float = config.SESSION_TTL,
                 min_bit_size: int = config.MIN_BIT_SIZE,
                 max_bit_size: int = config.MAX_BIT_SIZE,
                 clock: Callable[[], float] = time.monotonic):
        self._param_generator = param_generator
        self.retain_failed = retain_failed
        self.session_ttl = session_ttl
        self.min_bit_size = min_bit_size
        self.max_bit_size = max_bit_size
        self._clock = clock
        self._table_lock = threading.Lock()
        self._sessions: Dict[str, _SessionEntry] = {}

    # ── table helpers ───────────────────────────────────────────────────
    def _lookup(self, session_id: str) -> _SessionEntry:
        with self._table_lock:
            entry = self._sessions.get(session_id)
        if entry is None:
            raise NotFound(f"session {session_id!r} not found")
        return entry

    def _remove(self, session_id: str, entry: _SessionEntry):
        # caller holds entry.lock
        entry.closed = True
        with self._table_lock:
            if self._sessions.get(session_id) is entry:
                del self._sessions[session_id]

    def _expired(self, entry: _SessionEntry, now: float) -> bool:
        return self.session_ttl is not None and now - entry.updated_at > self.session_ttl

    def _ensure_live(self, session_id: str, entry: _SessionEntry, now: float):
        # caller holds entry.lock
        if entry.closed:
            raise NotFound(f"session {session_id!r} not found")
        if self._expired(entry, now):
            self._remove(session_id, entry)
            logger.info(f"[{session_id[:8]}] session expired")
            raise NotFound(f"session {session_id!r} has expired")

    # ── protocol operations ─────────────────────────────────────────────
    def initialize_protocol(self, bit_size: int) -> Tuple[str, GroupParameters]:
        """Generate a fresh group and open a session for it."""
        if isinstance(bit_size, bool) or not isinstance(bit_size, int):
            raise InvalidArgument("bit_size must be an integer")
        if not self.min_bit_size <= bit_size <= self.max_bit_size:
            raise InvalidArgument(
                f"Bit size must be between {self.min_bit_size} and {self.max_bit_size}")

        self.purge_expired()

        # the prime search is the slow part and runs without any lock held
        params = self._param_generator(bit_size)

        now = self._clock()
        with self._table_lock:
            session_id = secrets.token_hex(16)
            while session_id in self._sessions:
                session_id = secrets.token_hex(16)
            self._sessions[session_id] = _SessionEntry(Initialized(params), now)

        logger.info(f"[{session_id[:8]}] protocol initialized ({bit_size} bits)")
        return session_id, params

    def submit_commitment(self, session_id: str, commitment: Commitment,
                          challenge_values: ChallengeValues) -> int:
        """Store the prover's first message and return the challenge s."""
        entry = self._lookup(session_id)
        with entry.lock:
            now = self._clock()
            self._ensure_live(session_id, entry, now)
            current = entry.state
            if not isinstance(current, Initialized):
                raise NotFound(f"session {session_id!r} is not awaiting a commitment")

            params = current.params
            fields = {"a1": commitment.a1, "b1": commitment.b1, "c1": commitment.c1,
                      "y1": challenge_values.y1, "y2": challenge_values.y2}
            for name, value in fields.items():
                if not in_group_range(value, params):
                    raise InvalidArgument(f"{name} is outside [1, p-1]")

            s = challenge_hash(challenge_values.y1, challenge_values.y2, params.q)
            entry.state = CommitmentSubmitted(params=params, commitment=commitment,
                                              challenge_values=challenge_values,
                                              challenge_hash=s)
            entry.updated_at = now

        logger.debug(f"[{session_id[:8]}] commitment stored, challenge issued")
        return s

    def submit_response(self, session_id: str, z: int) -> Tuple[bool, str]:
        """Check z against the stored transcript. Returns (verified, message)."""
        entry = self._lookup(session_id)
        with entry.lock:
            now = self._clock()
            self._ensure_live(session_id, entry, now)
            current = entry.state
            if not isinstance(current, CommitmentSubmitted):
                raise InvalidState(
                    f"session {session_id!r} is {current.state.value}, expected commitment_submitted")

            prm, com, vals = current.params, current.commitment, current.challenge_values
            verified = 0 <= z < prm.q and verify(prm.g, com.b1, vals.y1, vals.y2,
                                                 com.a1, com.c1, current.challenge_hash, z, prm.p)
            if verified:
                message = "Proof verified successfully"
                self._remove(session_id, entry)
            else:
                message = "Proof verification failed"
                if self.retain_failed:
                    entry.state = Failed(params=prm, commitment=com, challenge_values=vals,
                                         challenge_hash=current.challenge_hash, message=message)
                    entry.updated_at = now
                else:
                    self._remove(session_id, entry)

        if verified:
            logger.info(f"[{session_id[:8]}] proof verified, session closed")
        else:
            logger.warning(f"[{session_id[:8]}] proof verification failed")
        return verified, message

    # ── housekeeping ────────────────────────────────────────────────────
    def get_state(self, session_id: str):
        entry = self._lookup(session_id)
        with entry.lock:
            self._ensure_live(session_id, entry, self._clock())
            return entry.state

    def active_sessions(self) -> int:
        with self._table_lock:
            return len(self._sessions)

    def purge_expired(self) -> int:
        """Drop sessions idle for longer than the TTL. Returns how many went."""
        if self.session_ttl is None:
            return 0
        with self._table_lock:
            entries = list(self._sessions.items())

        purged = 0
        now = self._clock()
        for session_id, entry in entries:
            # a busy session is left alone; its own next access expires it
            if not entry.lock.acquire(blocking=False):
                continue
            try:
                if not entry.closed and self._expired(entry, now):
                    self._remove(session_id, entry)
                    purged += 1
            finally:
                entry.lock.release()
        if purged:
            logger.info(f"Purged {purged} expired session(s)")
        return purged

    def reset(self):
        with self._table_lock:
            entries = list(self._sessions.values())
            self._sessions.clear()
        for entry in entries:
            with entry.lock:
                entry.closed = True
