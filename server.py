"""
Verifier Server - Runs the verifier side of the Chaum-Pedersen protocol.

This server generates a fresh safe-prime group per session, issues the
Fiat-Shamir challenge for the prover's commitment and checks the final
response. Every request names its session explicitly, so any number of
provers can run the protocol against it at the same time.
"""

import logging
from flask import Flask, request, jsonify

from chaum_pedersen import (ChallengeResponse, CommitmentRequest, InitializeRequest,
                            InitializeResponse, VerifyProofRequest, VerifyProofResponse, to_hex)
from config import SERVER_PORT, LOG_FORMAT, LOG_LEVEL
from errors import ProtocolError
from sessions import CommitmentSubmitted, Failed, SessionCoordinator

# Configure logging
logging.basicConfig(format=LOG_FORMAT, level=LOG_LEVEL)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Global state
coordinator = SessionCoordinator()


@app.errorhandler(ProtocolError)
def handle_protocol_error(e: ProtocolError):
    logger.warning(f"Rejected {request.path}: {e.code}: {e}")
    return jsonify(e.to_json()), e.http_status


@app.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "active_sessions": coordinator.active_sessions()
    }), 200


# ---- RPC 1: fresh group + session -------------------------------------
@app.post("/protocol/initialize")
def initialize_protocol():
    """
    Expected JSON: {"bit_size": 512}
    Returns the session id and the public parameters (p, q, g).
    """
    msg = InitializeRequest.from_json(request.get_json(silent=True))
    session_id, params = coordinator.initialize_protocol(msg.bit_size)
    return jsonify(InitializeResponse(session_id, params).to_json()), 200


# ---- RPC 2: commitment + (y1, y2) → challenge -------------------------
@app.post("/protocol/commitment")
def submit_commitment():
    msg = CommitmentRequest.from_json(request.get_json(silent=True))
    s = coordinator.submit_commitment(msg.session_id, msg.commitment, msg.challenge_values)
    return jsonify(ChallengeResponse(s).to_json()), 200


# ---- RPC 3: response z → verdict --------------------------------------
@app.post("/protocol/response")
def submit_response():
    msg = VerifyProofRequest.from_json(request.get_json(silent=True))
    verified, message = coordinator.submit_response(msg.session_id, msg.z)
    return jsonify(VerifyProofResponse(verified, message).to_json()), 200


@app.route("/protocol/sessions/<session_id>", methods=["GET"])
def session_status(session_id):
    """Public view of a session. Never includes anything the prover keeps secret."""
    current = coordinator.get_state(session_id)
    body = {
        "session_id": session_id,
        "state": current.state.value,
        "bits": current.params.bits,
    }
    if isinstance(current, (CommitmentSubmitted, Failed)):
        body["commitment"] = current.commitment.to_json()
        body["challenge_values"] = current.challenge_values.to_json()
        body["challenge"] = to_hex(current.challenge_hash)
    if isinstance(current, Failed):
        body["message"] = current.message
    return jsonify(body), 200


@app.route("/reset", methods=["POST"])
def reset_sessions():
    """Drop every open session."""
    coordinator.reset()
    logger.info("Server state reset")
    return jsonify({"status": "success", "message": "Sessions reset"}), 200


if __name__ == "__main__":
    logger.info(f"Starting verifier server on port {SERVER_PORT}")
    app.run(host="0.0.0.0", port=SERVER_PORT, threaded=True, debug=True)
