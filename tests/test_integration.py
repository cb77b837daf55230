"""
Integration tests against a local HTTP server that verifies request signatures.
"""

import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, unquote, urlsplit

import pytest
import requests

from juicefs_client import (
    AuthToken,
    Credentials,
    JuiceFSClient,
    JuiceFSCloudAPI,
    SerializationError,
    SigningInput,
    TransportError,
    UnexpectedStatusError,
    verify_signature
)

ACCESS_KEY = "integration-access-key"
SECRET_KEY = "integration-secret-key"


def _session():
    """Session that ignores proxy settings from the environment."""
    session = requests.Session()
    session.trust_env = False
    return session


REGIONS = [{"id": 1, "cloud": 1, "name": "us-east-1", "desp": "", "owner": 0, "token": "", "trashtime": 1}]


class SigningHandler(BaseHTTPRequestHandler):
    """Rebuilds the canonical request and rejects bad signatures with 401."""

    received = []

    def log_message(self, format, *args):
        pass

    def _authenticate(self, body):
        try:
            token = AuthToken.decode(self.headers.get("Authorization", ""))
        except SerializationError:
            return False
        if token.access_key != ACCESS_KEY or token.version != 1:
            return False
        url = urlsplit(self.path)
        signing_input = SigningInput(
            timestamp=token.timestamp,
            method=self.command,
            path=unquote(url.path),
            headers=self.headers,
            query_params=parse_qs(url.query, keep_blank_values=True),
            body=body,
        )
        return verify_signature(SECRET_KEY, signing_input, token.signature)

    def _handle(self):
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else None
        self.received.append((self.command, self.path, body))

        if not self._authenticate(body):
            self._reply(401, {"detail": "invalid signature"})
        elif self.command == "GET" and self.path.startswith("/api/v1/regions"):
            self._reply(200, REGIONS)
        elif self.command == "POST" and self.path == "/api/v1/volumes":
            request = json.loads(body)
            self._reply(201, {"id": 5, "name": request["name"], "region": request["region"]})
        elif self.command == "DELETE":
            self._reply(204, None)
        else:
            self._reply(404, {"detail": "Not found."})

    def _reply(self, status_code, data):
        payload = b"" if data is None else json.dumps(data).encode("utf-8")
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    do_GET = _handle
    do_POST = _handle
    do_PUT = _handle
    do_DELETE = _handle


class TestIntegration:
    """Signed requests against a verifying server."""

    @pytest.fixture(scope="class")
    def server_url(self):
        """Start the verifying server on a free port."""
        server = ThreadingHTTPServer(("127.0.0.1", 0), SigningHandler)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()

        yield f"http://127.0.0.1:{server.server_address[1]}/api/v1"

        server.shutdown()
        server.server_close()

    @pytest.fixture
    def client(self, server_url):
        with JuiceFSClient(Credentials(ACCESS_KEY, SECRET_KEY, server_url), session=_session(), timeout=5) as client:
            yield client

    def test_get_regions(self, client):
        regions = JuiceFSCloudAPI(client).get_regions()

        assert [r.name for r in regions] == ["us-east-1"]

    def test_query_parameters(self, client):
        status_code, body = client.execute(
            "GET", "/regions", query_params={"sort": ["name", "created at"], "page": "1"}
        )

        assert status_code == 200
        assert json.loads(body) == REGIONS

    def test_json_payload(self, client):
        volume = JuiceFSCloudAPI(client).create_volume("data", 1, compress="lz4")

        assert volume.id == 5
        method, path, body = SigningHandler.received[-1]
        assert (method, path) == ("POST", "/api/v1/volumes")
        assert json.loads(body) == {"name": "data", "region": 1, "compress": "lz4"}

    def test_delete(self, client):
        JuiceFSCloudAPI(client).delete_volume(5)

    def test_not_found(self, client):
        status_code, _ = client.execute("GET", "/volumes/9")

        assert status_code == 404

    def test_path_with_escaped_characters(self, client):
        status_code, _ = client.execute("GET", "/volumes/a b")

        assert status_code == 404
        method, path, _ = SigningHandler.received[-1]
        assert path == "/api/v1/volumes/a%20b"

    def test_wrong_secret_rejected(self, server_url):
        with JuiceFSClient(Credentials(ACCESS_KEY, "wrong-secret", server_url), session=_session()) as client:
            with pytest.raises(UnexpectedStatusError) as exc_info:
                JuiceFSCloudAPI(client).get_regions()

        assert exc_info.value.status_code == 401

    def test_connection_refused(self):
        client = JuiceFSClient(Credentials(ACCESS_KEY, SECRET_KEY, "http://127.0.0.1:1/api/v1"),
                               session=_session(), timeout=2)

        with pytest.raises(TransportError):
            client.execute("GET", "/regions")
