
"""
Configuration file for the Chaum-Pedersen zero-knowledge proof service.

This module contains all configuration parameters and constants used
across the server, the prover client and the simulations.
"""

# Server configuration
SERVER_HOST = "localhost"
SERVER_PORT = 5000
SERVER_URL = f"http://{SERVER_HOST}:{SERVER_PORT}"

# Client configuration
CLIENT_HOST = "localhost"
CLIENT_PORT = 5001
CLIENT_URL = f"http://{CLIENT_HOST}:{CLIENT_PORT}"

# Group parameters
MIN_BIT_SIZE = 256
MAX_BIT_SIZE = 4096
DEFAULT_BIT_SIZE = 512
MILLER_RABIN_ROUNDS = 40          # false positive probability <= 4^-40
PRIME_SEARCH_TIMEOUT = 120.0      # seconds before a safe-prime search gives up; 4096-bit needs more
GENERATOR_ATTEMPTS = 1000

# Sessions
SESSION_TTL = 300.0               # seconds an unfinished session is kept
RETAIN_FAILED_SESSIONS = True     # keep sessions whose proof was rejected

# HTTP
REQUEST_TIMEOUT = 130             # must outlast PRIME_SEARCH_TIMEOUT

# Logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVEL = "INFO"
