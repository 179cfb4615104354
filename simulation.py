"""
Simple runner that starts server and client in separate threads.

It runs everything in a single process with threads instead of subprocesses,
then drives several provers through the protocol at the same time.
"""

import threading
import time
import logging
import requests
from concurrent.futures import ThreadPoolExecutor
from config import (SERVER_URL, CLIENT_URL, SERVER_PORT, CLIENT_PORT, MIN_BIT_SIZE,
                    LOG_FORMAT, LOG_LEVEL)

# Configure logging
logging.basicConfig(format=LOG_FORMAT, level=LOG_LEVEL)
logger = logging.getLogger(__name__)

# Import the Flask apps
import server
import client

CONCURRENT_PROVERS = 4


def run_server():
    """Run the server in a thread."""
    logger.info(f"Starting server on port {SERVER_PORT}")
    server.app.run(host="0.0.0.0", port=SERVER_PORT, threaded=True, debug=False, use_reloader=False)


def run_client():
    """Run the client in a thread."""
    logger.info(f"Starting client on port {CLIENT_PORT}")
    client.app.run(host="0.0.0.0", port=CLIENT_PORT, debug=False, use_reloader=False)


def _one_prover(index: int) -> bool:
    prover_client = client.ProverClient(SERVER_URL)
    result = prover_client.run_protocol(MIN_BIT_SIZE)
    logger.info(f"  prover #{index}: {'[OK]' if result.verified else '[FAIL]'} {result.message}")
    return result.verified


def run_simulation():
    """Run the proof simulation."""
    time.sleep(2)  # Wait for services to start

    logger.info("\n" + "="*60)
    logger.info("Starting Chaum-Pedersen Simulation")
    logger.info("="*60)

    try:
        # 1. Single honest proof through the client app
        logger.info("STEP 1: Honest proof via client")
        logger.info("-" * 30)
        response = requests.post(f"{CLIENT_URL}/prove", json={"bit_size": MIN_BIT_SIZE})
        if response.status_code != 200:
            logger.error(f"Proof failed: {response.text}")
            return
        body = response.json()
        logger.info(f"[OK] verified={body['verified']} ({body['message']})\n")

        # 2. Several provers at once, each with its own session
        logger.info(f"STEP 2: {CONCURRENT_PROVERS} concurrent provers")
        logger.info("-" * 30)
        with ThreadPoolExecutor(max_workers=CONCURRENT_PROVERS) as pool:
            outcomes = list(pool.map(_one_prover, range(CONCURRENT_PROVERS)))
        logger.info(f"\nConcurrent run: {sum(outcomes)}/{len(outcomes)} proofs verified")

        # 3. Forged response must be rejected
        logger.info("\nSTEP 3: Forged response")
        logger.info("-" * 30)
        response = requests.post(f"{CLIENT_URL}/prove",
                                 json={"bit_size": MIN_BIT_SIZE, "tamper": True})
        if response.status_code == 200 and not response.json()["verified"]:
            logger.info("✓ Forged response correctly rejected")
        else:
            logger.error(f"✗ Forged response was accepted: {response.text}")

        # 4. Undersized group must be refused before any work
        logger.info("\nSTEP 4: Undersized group")
        response = requests.post(f"{SERVER_URL}/protocol/initialize", json={"bit_size": 128})
        if response.status_code == 400:
            logger.info("✓ bit_size=128 correctly refused")
        else:
            logger.error(f"✗ bit_size=128 was accepted: {response.text}")

        # 5. Show server status
        logger.info("\nChecking server status...")
        response = requests.get(f"{SERVER_URL}/health")
        if response.status_code == 200:
            logger.info(f"Open sessions (failed ones are kept): {response.json()['active_sessions']}")

    except Exception as e:
        logger.error(f"Simulation error: {e}")


def main():
    """Main entry point."""
    # Start server thread
    server_thread = threading.Thread(target=run_server, daemon=True)
    server_thread.start()

    # Start client thread
    client_thread = threading.Thread(target=run_client, daemon=True)
    client_thread.start()

    # Run simulation in main thread
    run_simulation()

    logger.info("Simulation complete.")


if __name__ == "__main__":
    main()
