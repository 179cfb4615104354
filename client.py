"""
Prover Client - Proves knowledge of (a, b) to the verifier server.

The secrets a, b and the per-proof x are generated and kept here; only the
commitment, the challenge values and the response z are ever sent. The
module also exposes a small Flask app so a simulation can trigger proofs
over HTTP.
"""

import logging
import requests
from flask import Flask, request, jsonify

from chaum_pedersen import (ChallengeResponse, CommitmentRequest, InitializeResponse,
                            Prover, VerifyProofRequest, VerifyProofResponse)
from config import (CLIENT_PORT, SERVER_URL, DEFAULT_BIT_SIZE, REQUEST_TIMEOUT,
                    LOG_FORMAT, LOG_LEVEL)
from errors import InvalidArgument, ProtocolError, from_payload

# Configure logging
logging.basicConfig(format=LOG_FORMAT, level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = Flask(__name__)


class ProverClient:
    """Runs the prover side of the protocol against one verifier server."""

    def __init__(self, server_url: str = SERVER_URL, http=None,
                 timeout: float = REQUEST_TIMEOUT, verify=True):
        self.server_url = server_url.rstrip("/")
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout
        self.verify = verify

    def _post(self, path: str, body: dict) -> dict:
        r = self.http.post(f"{self.server_url}{path}", json=body,
                           timeout=self.timeout, verify=self.verify)
        try:
            data = r.json()
        except ValueError:
            data = {}
        if r.status_code != 200:
            raise from_payload(data, r.status_code)
        return data

    def initialize(self, bit_size: int) -> InitializeResponse:
        init = InitializeResponse.from_json(
            self._post("/protocol/initialize", {"bit_size": bit_size}))
        # secrets are only ever drawn over a group that checks out
        if not init.params.validate():
            raise InvalidArgument("server sent invalid group parameters")
        return init

    def submit_commitment(self, session_id, commitment, challenge_values) -> int:
        msg = CommitmentRequest(session_id, commitment, challenge_values)
        return ChallengeResponse.from_json(
            self._post("/protocol/commitment", msg.to_json())).challenge

    def submit_response(self, session_id: str, z: int) -> VerifyProofResponse:
        msg = VerifyProofRequest(session_id, z)
        return VerifyProofResponse.from_json(self._post("/protocol/response", msg.to_json()))

    def run_protocol(self, bit_size: int = DEFAULT_BIT_SIZE,
                     tamper_response: bool = False) -> VerifyProofResponse:
        """
        Full three-step run. With ``tamper_response`` the last message carries
        z + 1 mod q, which an honest verifier must reject.
        """
        init = self.initialize(bit_size)
        params = init.params
        logger.info(f"[{init.session_id[:8]}] received {params.bits}-bit parameters")

        prover = Prover(params)
        commitment = prover.commit()
        values = prover.prove_step1(commitment)
        s = self.submit_commitment(init.session_id, commitment, values)
        logger.debug(f"[{init.session_id[:8]}] received challenge")

        z = prover.prove_step2(s)
        if tamper_response:
            z = (z + 1) % params.q
        result = self.submit_response(init.session_id, z)

        if result.verified:
            logger.info(f"[{init.session_id[:8]}] ✅ {result.message}")
        else:
            logger.warning(f"[{init.session_id[:8]}] ❌ {result.message}")
        return result


# Client state
class ProverClientState:
    """Keeps the outcome of the proofs run through this client."""

    def __init__(self):
        self.client = ProverClient()
        self.results = []  # (bit_size, verified)

    def reset(self):
        """Reset client state."""
        self.__init__()


# Initialize client state
state = ProverClientState()


@app.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "proofs_run": len(state.results)
    }), 200


@app.post("/prove")
def prove():
    """
    REST endpoint called by the simulation.
    Body JSON:
        { "bit_size": 512, "tamper": false }
    """
    data = request.get_json(silent=True) or {}
    bit_size = data.get("bit_size", DEFAULT_BIT_SIZE)
    tamper = bool(data.get("tamper", False))

    try:
        result = state.client.run_protocol(bit_size, tamper_response=tamper)
    except requests.RequestException as e:
        logger.error(f"Verifier unreachable: {e}")
        return jsonify({"error": str(e)}), 502
    except ProtocolError as e:
        logger.warning(f"Verifier rejected the proof run: {e.code}: {e}")
        return jsonify(e.to_json()), e.http_status

    state.results.append((bit_size, result.verified))
    return jsonify(result.to_json()), 200


@app.route("/reset", methods=["POST"])
def reset_client():
    """Reset the client state."""
    state.reset()
    logger.info("Client state reset")
    return jsonify({"status": "success", "message": "Client reset"}), 200


if __name__ == "__main__":
    logger.info(f"Starting prover client on port {CLIENT_PORT}")
    app.run(host="0.0.0.0", port=CLIENT_PORT, debug=True)
