"""
Error kinds surfaced by the protocol service.

Every error is terminal for the request that raised it; nothing here is
retried internally. The server maps each kind onto an HTTP status and the
client maps the JSON error body back onto the same class.
"""


class ProtocolError(Exception):
    code = "internal"
    http_status = 500

    def to_json(self) -> dict:
        return {"error": str(self), "code": self.code}


class InvalidArgument(ProtocolError):
    """Malformed or out-of-range request field."""
    code = "invalid-argument"
    http_status = 400


class NotFound(ProtocolError):
    """Unknown session id, or a session not in the state the call expects."""
    code = "not-found"
    http_status = 404


class InvalidState(ProtocolError):
    """Operation attempted out of sequence."""
    code = "invalid-state"
    http_status = 409


class GenerationFailed(ProtocolError):
    """Safe-prime or generator search gave up (attempt cap, timeout or cancel)."""
    code = "generation-failed"
    http_status = 503


_BY_CODE = {cls.code: cls for cls in (InvalidArgument, NotFound, InvalidState, GenerationFailed)}


def from_payload(payload: dict, status: int) -> ProtocolError:
    """Rebuild the error raised on the other side of the wire."""
    cls = _BY_CODE.get(payload.get("code"), ProtocolError)
    return cls(payload.get("error", f"server returned {status}"))
