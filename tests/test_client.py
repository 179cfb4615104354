import pytest

import client
from client import ProverClient
from chaum_pedersen import InitializeResponse
from errors import InvalidArgument, InvalidState, NotFound, ProtocolError, from_payload
from group_params import GroupParameters


@pytest.fixture
def prover_client(http):
    return ProverClient("http://verifier.test/", http=http)


def test_run_protocol(prover_client, http):
    result = prover_client.run_protocol(256)
    assert result.verified is True
    assert http.calls == ["/protocol/initialize", "/protocol/commitment", "/protocol/response"]


def test_run_protocol_with_tampered_response(prover_client, coordinator):
    result = prover_client.run_protocol(256, tamper_response=True)
    assert result.verified is False
    assert result.message == "Proof verification failed"
    assert coordinator.active_sessions() == 1


def test_errors_are_raised_as_protocol_errors(prover_client):
    with pytest.raises(InvalidArgument):
        prover_client.initialize(128)
    with pytest.raises(NotFound):
        prover_client.submit_response("unknown", 5)
    init = prover_client.initialize(256)
    with pytest.raises(InvalidState):
        prover_client.submit_response(init.session_id, 5)


def test_from_payload():
    assert isinstance(from_payload({"code": "not-found", "error": "x"}, 404), NotFound)
    err = from_payload({}, 502)
    assert type(err) is ProtocolError
    assert str(err) == "server returned 502"


def test_prove_endpoint(monkeypatch, prover_client):
    monkeypatch.setattr(client.state, "client", prover_client)
    monkeypatch.setattr(client.state, "results", [])
    api = client.app.test_client()

    r = api.post("/prove", json={"bit_size": 256})
    assert r.status_code == 200
    assert r.get_json()["verified"] is True

    r = api.post("/prove", json={"bit_size": 256, "tamper": True})
    assert r.status_code == 200
    assert r.get_json()["verified"] is False

    r = api.post("/prove", json={"bit_size": 128})
    assert r.status_code == 400
    assert r.get_json()["code"] == "invalid-argument"

    assert api.get("/health").get_json()["proofs_run"] == 2


class _StubResponse:
    status_code = 200

    def __init__(self, body):
        self._body = body

    def json(self):
        return self._body


class _StubHTTP:
    """Answers every initialize with a fixed, possibly broken, group."""

    def __init__(self, params):
        self.body = InitializeResponse("stub", params).to_json()
        self.calls = []

    def post(self, url, json=None, timeout=None, verify=True):
        self.calls.append(url)
        return _StubResponse(self.body)


@pytest.mark.parametrize("params", [
    GroupParameters(p=7, q=1, g=2),
    GroupParameters(p=21, q=10, g=4),
    GroupParameters(p=23, q=11, g=5),
    GroupParameters(p=23, q=11, g=1),
])
def test_bad_group_from_server_is_refused(params):
    http = _StubHTTP(params)
    api = ProverClient("http://verifier.test", http=http)
    with pytest.raises(InvalidArgument, match="invalid group parameters"):
        api.run_protocol(256)
    # nothing beyond the initialize call went out
    assert len(http.calls) == 1


def test_prove_endpoint_reports_bad_group(monkeypatch):
    api_client = ProverClient("http://verifier.test", http=_StubHTTP(GroupParameters(p=7, q=1, g=2)))
    monkeypatch.setattr(client.state, "client", api_client)
    r = client.app.test_client().post("/prove", json={"bit_size": 256})
    assert r.status_code == 400
    assert r.get_json()["code"] == "invalid-argument"
