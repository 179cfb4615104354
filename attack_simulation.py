"""
SECURITY SIMULATION

Starts the verifier over TLS and throws a set of dishonest or out-of-order
provers at it. Every attack is expected to be blocked.
"""
import shutil
import threading
import time
import logging
import sys
import io
import urllib3
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
from typing import Tuple

from chaum_pedersen import ChallengeValues, Prover, Verifier, ZKProof
from errors import InvalidArgument, InvalidState, NotFound, ProtocolError
from config import SERVER_HOST, SERVER_PORT, MIN_BIT_SIZE

# Fix encoding issues on Windows
if sys.platform == "win32":
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8')

# Configure logging
LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
LOG_LEVEL  = "INFO"          # change to "DEBUG" for deep traces
LOG_DATE   = "%H:%M:%S"
logging.basicConfig(
    format=LOG_FORMAT, datefmt=LOG_DATE, level=getattr(logging, LOG_LEVEL)
)
logger = logging.getLogger("attack_simulation")
### colour shortcuts #####################################################
def green(s): return f"\033[92m{s}\033[0m"
def red(s):   return f"\033[91m{s}\033[0m"
### quick result printer #################################################
def verdict(label: str, ok: bool):
    if ok:
        logger.info(green(f"   ✅ {label} – blocked"))
    else:
        logger.error(red(f"   ❌ {label} – accepted"))

import server
from client import ProverClient

import tempfile, subprocess, os, atexit

TLS_URL = f"https://{SERVER_HOST}:{SERVER_PORT}"


def make_ephemeral_cert() -> Tuple[str, str]:
    """
    Create a throw-away RSA key + self-signed cert (CN=localhost).
    Returns (cert_path, key_path).  Files are deleted on exit.
    """
    tmpdir = tempfile.mkdtemp(prefix="tls_demo_")
    cert   = os.path.join(tmpdir, "cert.pem")
    key    = os.path.join(tmpdir, "key.pem")

    subprocess.run(
        [
            "openssl", "req", "-x509", "-newkey", "rsa:2048",
            "-days", "2", "-nodes",
            "-subj", "/CN=localhost",
            "-keyout", key, "-out", cert,
        ],
        check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
    )

    # clean-up on process exit
    atexit.register(lambda: shutil.rmtree(tmpdir, ignore_errors=True))
    return cert, key


def run_server(cert_path: str, key_path: str):
    logger.info(f"Starting server on {TLS_URL}")
    server.app.run(
        host="0.0.0.0",
        port=SERVER_PORT,
        ssl_context=(cert_path, key_path),
        threaded=True,
        debug=False,
        use_reloader=False,
    )


def rejected_with(call, error_cls) -> bool:
    """True if ``call`` raised exactly the expected protocol error."""
    try:
        call()
    except error_cls:
        return True
    except ProtocolError as e:
        logger.warning(f"   unexpected error kind {e.code}: {e}")
    return False


def open_session(api: ProverClient):
    """Initialize and commit honestly. Returns (session_id, prover, challenge)."""
    init = api.initialize(MIN_BIT_SIZE)
    prover = Prover(init.params)
    commitment = prover.commit()
    values = prover.prove_step1(commitment)
    s = api.submit_commitment(init.session_id, commitment, values)
    return init.session_id, prover, commitment, values, s


def run_security_attack_simulation(api: ProverClient) -> bool:
    logger.info("\n" + "=" * 60)
    logger.info("SECURITY TEST SUITE")
    logger.info("=" * 60)

    results = []

    def record(label, blocked):
        verdict(label, blocked)
        results.append(blocked)

    # ------------------------------------------------------------------
    logger.info("\n🚩 TEST-1  Undersized group (bit_size=128)")
    record("undersized-group", rejected_with(lambda: api.initialize(128), InvalidArgument))

    # ------------------------------------------------------------------
    logger.info("\n🚩 TEST-2  Forged response z+1 mod q")
    sid, prover, _, _, s = open_session(api)
    z = prover.prove_step2(s)
    res = api.submit_response(sid, (z + 1) % prover.params.q)
    record("forged-response", not res.verified)

    # ------------------------------------------------------------------
    logger.info("\n🚩 TEST-3  Response replayed into a fresh session")
    sid_a, prover_a, _, _, s_a = open_session(api)
    z_a = prover_a.prove_step2(s_a)
    assert api.submit_response(sid_a, z_a).verified
    sid_b, _, _, _, _ = open_session(api)
    res = api.submit_response(sid_b, z_a)
    record("cross-session replay", not res.verified)

    # ------------------------------------------------------------------
    logger.info("\n🚩 TEST-4  Response after the session closed")
    record("closed-session replay",
           rejected_with(lambda: api.submit_response(sid_a, z_a), NotFound))

    # ------------------------------------------------------------------
    logger.info("\n🚩 TEST-5  Response before commitment")
    init = api.initialize(MIN_BIT_SIZE)
    record("skipped commitment",
           rejected_with(lambda: api.submit_response(init.session_id, 1), InvalidState))

    # ------------------------------------------------------------------
    logger.info("\n🚩 TEST-6  Unknown session id")
    record("unknown session",
           rejected_with(lambda: api.submit_response("deadbeef" * 4, 1), NotFound))

    # ------------------------------------------------------------------
    logger.info("\n🚩 TEST-7  Second commitment to the same session")
    sid, prover, commitment, values, _ = open_session(api)
    record("re-commitment",
           rejected_with(lambda: api.submit_commitment(sid, commitment, values), NotFound))

    # ------------------------------------------------------------------
    logger.info("\n🚩 TEST-8  Challenge value outside the group (y1 = 0)")
    init = api.initialize(MIN_BIT_SIZE)
    prover = Prover(init.params)
    commitment = prover.commit()
    values = prover.prove_step1(commitment)
    bad_values = ChallengeValues(0, values.y2)
    record("out-of-range value",
           rejected_with(lambda: api.submit_commitment(init.session_id, commitment, bad_values),
                         InvalidArgument))

    # ------------------------------------------------------------------
    logger.info("\n🚩 TEST-9  Prover-chosen challenge in a non-interactive proof")
    proof = prover.create_proof()
    forged = ZKProof(proof.commitment, proof.challenge_values, proof.response,
                     (proof.challenge_hash + 1) % prover.params.q)
    record("self-chosen challenge", not Verifier(prover.params).verify_proof(forged))

    # ---------------- summary -----------------------------------------
    failed = results.count(False)
    logger.info("\n" + "=" * 60)
    if failed == 0:
        logger.info(green(f"ALL {len(results)} SECURITY TESTS PASSED"))
    else:
        logger.error(red(f"{failed}/{len(results)} SECURITY TESTS FAILED"))
    logger.info("=" * 60)
    return failed == 0


def main():
    cert_path, key_path = make_ephemeral_cert()

    server_thread = threading.Thread(target=run_server, args=(cert_path, key_path), daemon=True)
    server_thread.start()
    time.sleep(2)  # Wait for the server to start

    api = ProverClient(TLS_URL, verify=False)
    try:
        ok = run_security_attack_simulation(api)
    except Exception as e:
        logger.error(f"Security simulation error: {e}")
        ok = False
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
