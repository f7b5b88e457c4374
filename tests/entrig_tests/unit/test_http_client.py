"""
Tests for the Entrig HTTP client.

Covers:
- Bearer authentication and URL building
- Response decoding
- Mapping of HTTP and transport failures onto SDK errors
"""

import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import Mock

import pytest
import requests

from entrig.exceptions import BackendRejectedError, NetworkError, NotInitializedError, TimeoutError
from entrig.http_client import HTTPClient
from entrig.models import DeliveryStatus
from entrig.registration import RegistrationClient


def make_response(status_code=200, json_data=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def client(session):
    return HTTPClient("https://api.example.com/functions/v1/", api_key="secret-key", session=session)


class TestHTTPClientInit:
    """Tests for HTTPClient initialization."""

    def test_init_with_defaults(self):
        """Test HTTPClient initializes with default values."""
        client = HTTPClient("https://api.example.com")
        assert client.timeout == 30
        assert client.max_retries == 3
        assert client.api_key is None
        client.close()

    def test_retry_adapter_mounted(self):
        """Test that only the retry session carries a retry policy."""
        client = HTTPClient("https://api.example.com", api_key="k", max_retries=5)
        retrying = client.retry_session.get_adapter("https://api.example.com")
        single = client.session.get_adapter("https://api.example.com")

        assert retrying.max_retries.total == 5
        assert 503 in retrying.max_retries.status_forcelist
        assert single.max_retries.total == 0
        client.close()

    def test_injected_session_used_for_both(self, session):
        """Test that an injected session serves retrying and single requests."""
        client = HTTPClient("https://api.example.com", api_key="k", session=session)

        assert client.retry_session is session
        client.close()
        session.close.assert_called_once()

    def test_context_manager_closes_session(self, session):
        """Test that leaving the context closes the session."""
        with HTTPClient("https://api.example.com", api_key="k", session=session):
            pass
        session.close.assert_called_once()


class TestHTTPClientPost:
    """Tests for POST requests."""

    def test_post_sends_bearer_token_and_json(self, client, session):
        """Test headers, URL and body of a request."""
        session.post.return_value = make_response(200, {"id": "r1"})

        result = client.post("/register", data={"user_id": "u1"})

        assert result == {"id": "r1"}
        args, kwargs = session.post.call_args
        assert args[0] == "https://api.example.com/functions/v1/register"
        assert kwargs["json"] == {"user_id": "u1"}
        assert kwargs["headers"]["Authorization"] == "Bearer secret-key"
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["timeout"] == 30

    def test_post_without_api_key(self, session):
        """Test that requests without an API key are refused."""
        client = HTTPClient("https://api.example.com", session=session)

        with pytest.raises(NotInitializedError):
            client.post("/register", data={})
        session.post.assert_not_called()

    def test_non_json_success_body(self, client, session):
        """Test a 2xx with a plain text body."""
        session.post.return_value = make_response(200, text="OK")

        assert client.post("/unregister", data={"id": "r1"}) == {"message": "OK"}

    def test_non_object_json_body(self, client, session):
        """Test a 2xx whose JSON is not an object."""
        session.post.return_value = make_response(200, json_data=["a"])

        assert client.post("/register") == {"data": ["a"]}

    def test_non_2xx_raises_backend_rejected(self, client, session):
        """Test that error statuses become BackendRejectedError."""
        session.post.return_value = make_response(401, {"error": "Invalid API key"})

        with pytest.raises(BackendRejectedError) as exc_info:
            client.post("/register", data={})

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid API key"
        assert exc_info.value.body == {"error": "Invalid API key"}

    def test_server_error_with_text_body(self, client, session):
        """Test a 5xx with an HTML body."""
        session.post.return_value = make_response(502, text="Bad Gateway")

        with pytest.raises(BackendRejectedError) as exc_info:
            client.post("/register", data={})

        assert exc_info.value.status_code == 502
        assert exc_info.value.message == "Bad Gateway"

    def test_timeout_raises_timeout_error(self, client, session):
        """Test that a timeout becomes TimeoutError."""
        session.post.side_effect = requests.Timeout("read timed out")

        with pytest.raises(TimeoutError) as exc_info:
            client.post("/register", data={})

        assert isinstance(exc_info.value, NetworkError)
        assert isinstance(exc_info.value.cause, requests.Timeout)

    def test_connection_error_raises_network_error(self, client, session):
        """Test that a connection failure becomes NetworkError with its cause."""
        cause = requests.ConnectionError("refused")
        session.post.side_effect = cause

        with pytest.raises(NetworkError) as exc_info:
            client.post("/register", data={})

        assert exc_info.value.cause is cause
        assert "Connection error" in exc_info.value.message

    def test_other_request_error(self, client, session):
        """Test that any other requests failure becomes NetworkError."""
        session.post.side_effect = requests.RequestException("boom")

        with pytest.raises(NetworkError, match="Request error"):
            client.post("/register", data={})


class _UnavailableHandler(BaseHTTPRequestHandler):
    """Answers every POST with 503 and records the path."""

    def do_POST(self):
        length = int(self.headers.get("Content-Length") or 0)
        self.rfile.read(length)
        self.server.hits.append(self.path)
        body = b'{"error": "Service unavailable"}'
        self.send_response(503)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def unavailable_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _UnavailableHandler)
    server.hits = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def live_client(unavailable_server):
    host, port = unavailable_server.server_address
    client = HTTPClient(f"http://{host}:{port}", api_key="k", max_retries=3, backoff_factor=0)
    yield client
    client.close()


class TestRetryPolicy:
    """Tests for which requests the transport replays."""

    def test_delivery_status_sent_once(self, live_client, unavailable_server, token_store):
        """Test that a status report against a 503 backend is attempted once."""
        registration = RegistrationClient(live_client, token_store, Mock())

        with pytest.raises(BackendRejectedError) as exc_info:
            registration.report_delivery_status("d1", DeliveryStatus.READ)

        assert exc_info.value.status_code == 503
        assert unavailable_server.hits == ["/delivery-status"]

    def test_register_sent_once(self, live_client, unavailable_server, token_store):
        """Test that a registration write is never replayed."""
        registration = RegistrationClient(live_client, token_store, Mock())

        with pytest.raises(BackendRejectedError):
            registration.register_with_token("u1", "tok")

        assert unavailable_server.hits == ["/register"]
        assert token_store.load() is None

    def test_retry_opt_in(self, live_client, unavailable_server):
        """Test that retry=True replays up to max_retries times."""
        with pytest.raises(BackendRejectedError):
            live_client.post("/fcm-params", data={"appId": "a"}, retry=True)

        assert unavailable_server.hits == ["/fcm-params"] * 4
