import pytest

from group_params import GroupParameters
from sessions import SessionCoordinator

# RFC 2409 Second Oakley Group, a 1024-bit safe prime
OAKLEY_P = int("""
FFFFFFFFFFFFFFFFC90FDAA22168C234C4C6628B80DC1CD1
29024E088A67CC74020BBEA63B139B22514A08798E3404DD
EF9519B3CD3A431B302B0A6DF25F14374FE1356D6D51C245
E485B576625E7EC6F44C42E9A637ED6B0BFF5CB6F406B7ED
EE386BFB5A899FA5AE9F24117C4B1FE649286651ECE65381
FFFFFFFFFFFFFFFF
""".replace("\n", ""), 16)


@pytest.fixture(scope="session")
def group():
    # 4 = 2^2 is a quadratic residue, so it generates the order-q subgroup
    return GroupParameters(p=OAKLEY_P, q=(OAKLEY_P - 1) // 2, g=4)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def coordinator(group, clock):
    return SessionCoordinator(param_generator=lambda bits: group, clock=clock,
                              retain_failed=True, session_ttl=300.0)


class FlaskHTTP:
    """Minimal stand-in for requests.Session that routes into a Flask test client."""

    def __init__(self, test_client):
        self.test_client = test_client
        self.calls = []

    def post(self, url, json=None, timeout=None, verify=True):
        path = url.split("://", 1)[-1]
        path = path[path.index("/"):]
        self.calls.append(path)
        return _Response(self.test_client.post(path, json=json))


class _Response:
    def __init__(self, flask_response):
        self.status_code = flask_response.status_code
        self._body = flask_response.get_json()

    def json(self):
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


@pytest.fixture
def server_app(monkeypatch, coordinator):
    import server
    monkeypatch.setattr(server, "coordinator", coordinator)
    server.app.config["TESTING"] = True
    return server.app


@pytest.fixture
def http(server_app):
    return FlaskHTTP(server_app.test_client())
