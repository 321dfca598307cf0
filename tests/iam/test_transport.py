import pytest
import requests

from policybridge.errors import ServiceError, StructuralParseError, TransportTimeout, TransportUnavailable
from policybridge.iam.documents import extract_field
from policybridge.iam.transport import QueryTransport


class _FakeResponse:
    def __init__(self, status_code, content, reason="OK"):
        self.status_code = status_code
        self.content = content
        self.reason = reason


class _FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.last_post = {}

    def post(self, url, **kwargs):
        self.last_post = {"url": url, **kwargs}
        if self.error is not None:
            raise self.error
        return self.response


def _transport(session, **kwargs):
    return QueryTransport(endpoint="https://iam.example.test/", session=session, **kwargs)


def test_invoke_posts_action_version_and_parameters():
    body = b"<GetUserResponse><GetUserResult><User><UserName>bob</UserName></User></GetUserResult></GetUserResponse>"
    session = _FakeSession(response=_FakeResponse(200, body))
    transport = _transport(session, timeout=3, auth="signer")
    root = transport.invoke("GetUser", {"UserName": "bob", "Marker": None})
    assert extract_field(root, "GetUserResult", "User", "UserName") == "bob"
    assert session.last_post["url"] == "https://iam.example.test/"
    assert session.last_post["data"] == {"Action": "GetUser", "Version": "2010-05-08", "UserName": "bob"}
    assert session.last_post["timeout"] == 3.0
    assert session.last_post["auth"] == "signer"


def test_api_version_and_timeout_from_environment(monkeypatch):
    monkeypatch.setenv("POLICYBRIDGE_IAM_API_VERSION", "2099-01-01")
    monkeypatch.setenv("POLICYBRIDGE_TIMEOUT_SECONDS", "7.5")
    session = _FakeSession(response=_FakeResponse(200, b"<ListUsersResponse/>"))
    transport = _transport(session)
    transport.invoke("ListUsers")
    assert session.last_post["data"]["Version"] == "2099-01-01"
    assert session.last_post["timeout"] == 7.5


def test_error_document_becomes_service_error():
    body = (
        b"<ErrorResponse><Error><Type>Sender</Type><Code>NoSuchEntity</Code>"
        b"<Message>The user with name bob cannot be found.</Message></Error></ErrorResponse>"
    )
    session = _FakeSession(response=_FakeResponse(404, body, reason="Not Found"))
    with pytest.raises(ServiceError) as excinfo:
        _transport(session).invoke("GetUser", {"UserName": "bob"})
    error = excinfo.value
    assert error.status_code == 404
    assert error.code == "NoSuchEntity"
    assert error.not_found
    assert "cannot be found" in str(error)


def test_error_without_xml_body_uses_reason():
    session = _FakeSession(response=_FakeResponse(503, b"upstream down", reason="Service Unavailable"))
    with pytest.raises(ServiceError, match="Service Unavailable") as excinfo:
        _transport(session).invoke("ListUsers")
    assert excinfo.value.code is None
    assert not excinfo.value.not_found


def test_timeouts_and_connection_errors_are_wrapped():
    with pytest.raises(TransportTimeout, match="timed out"):
        _transport(_FakeSession(error=requests.Timeout("slow"))).invoke("ListUsers")
    with pytest.raises(TransportUnavailable, match="request failed"):
        _transport(_FakeSession(error=requests.ConnectionError("refused"))).invoke("ListUsers")


def test_malformed_success_body_is_structural_error():
    session = _FakeSession(response=_FakeResponse(200, b"<ListUsersResponse>"))
    with pytest.raises(StructuralParseError, match="well-formed"):
        _transport(session).invoke("ListUsers")
