"""
Signing HTTP client for the JuiceFS cloud API.

Every request carries an ``Authorization`` header holding a base64-encoded
JSON token with the access key, the request timestamp and an HMAC-SHA256
signature over the canonical request (see :mod:`juicefs_client.canonical`).
"""

import base64
import binascii
import json
import logging
import os
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Mapping, Optional, Tuple
from urllib.parse import unquote, urljoin, urlsplit

import requests

from .canonical import QueryParams, SigningInput, compute_signature, sorted_query_pairs
from .constants import (
    CONTENT_TYPE_JSON,
    DEFAULT_CONFIG,
    DEFAULT_ENDPOINT,
    ENV_ACCESS_KEY,
    ENV_ENDPOINT,
    ENV_SECRET_KEY,
    HEADER_AUTHORIZATION,
    HEADER_CONTENT_TYPE,
    HEADER_HOST,
    SECRET_PREVIEW_LENGTH,
    TOKEN_VERSION,
)
from .exceptions import (
    ConfigurationError,
    RequestConstructionError,
    SerializationError,
    TransportError,
)

logger = logging.getLogger(__name__)


def mask_secret(secret: str, visible: int = SECRET_PREVIEW_LENGTH) -> str:
    """Return a preview of ``secret`` showing only its first and last few characters."""
    if len(secret) <= visible * 2:
        return "*" * len(secret)
    return f"{secret[:visible]}...{secret[-visible:]}"


@dataclass(frozen=True)
class Credentials:
    """API endpoint and key pair, fixed for the lifetime of a client."""

    access_key: str
    secret_key: str
    endpoint: str = DEFAULT_ENDPOINT

    def __repr__(self) -> str:
        return (f"Credentials(access_key={self.access_key!r}, "
                f"secret_key={mask_secret(self.secret_key)!r}, endpoint={self.endpoint!r})")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Credentials":
        """
        Load credentials from ``JUICEFS_ACCESS_KEY``, ``JUICEFS_SECRET_KEY``
        and (optionally) ``JUICEFS_ENDPOINT``.

        Raises:
            ConfigurationError: If a key variable is unset
        """
        environ = os.environ if environ is None else environ
        missing = [name for name in (ENV_ACCESS_KEY, ENV_SECRET_KEY) if not environ.get(name)]
        if missing:
            raise ConfigurationError(f"missing environment variables: {', '.join(missing)}")
        return cls(
            access_key=environ[ENV_ACCESS_KEY],
            secret_key=environ[ENV_SECRET_KEY],
            endpoint=environ.get(ENV_ENDPOINT) or DEFAULT_ENDPOINT,
        )


@dataclass(frozen=True)
class AuthToken:
    """Token carried in the Authorization header."""

    access_key: str
    timestamp: int
    signature: str
    version: int = TOKEN_VERSION

    def encode(self) -> str:
        """Serialize to base64(JSON) with sorted keys and compact separators."""
        try:
            raw = json.dumps(asdict(self), sort_keys=True, separators=(',', ':'))
        except (TypeError, ValueError) as e:
            raise SerializationError(f"cannot encode auth token: {e}") from e
        return base64.b64encode(raw.encode('utf-8')).decode('ascii')

    @classmethod
    def decode(cls, header: str) -> "AuthToken":
        try:
            data = json.loads(base64.b64decode(header, validate=True))
            return cls(
                access_key=data['access_key'],
                timestamp=data['timestamp'],
                signature=data['signature'],
                version=data['version'],
            )
        except (binascii.Error, ValueError, KeyError, TypeError) as e:
            raise SerializationError(f"malformed auth token: {e}") from e


class JuiceFSClient:
    """
    Executes signed requests against the JuiceFS cloud API.

    The client holds only immutable credentials and configuration, so one
    instance may be shared between threads as long as the underlying
    ``requests`` session is.
    """

    def __init__(self, credentials: Credentials, session: Optional[requests.Session] = None,
                 clock: Callable[[], float] = time.time, **config):
        """
        Initialize the client.

        Args:
            credentials: Endpoint and key pair
            session: HTTP session to reuse (a new one is created by default)
            clock: Source of the current time in seconds
            **config: Configuration options (timeout)
        """
        self.credentials = credentials
        self.clock = clock

        # Merge default config with user overrides
        self.config = {**DEFAULT_CONFIG, **config}

        self._validate_config()

        self.session = session if session is not None else requests.Session()

    @property
    def endpoint(self) -> str:
        return self.credentials.endpoint.rstrip('/')

    def _validate_config(self):
        """Validate client configuration."""
        if not self.credentials.endpoint:
            raise ConfigurationError("endpoint cannot be empty")

        if not self.credentials.access_key:
            raise ConfigurationError("access_key cannot be empty")

        if not self.credentials.secret_key:
            raise ConfigurationError("secret_key cannot be empty")

        timeout = self.config['timeout']
        if timeout is not None and timeout <= 0:
            raise ConfigurationError("timeout must be positive")

    def sign_request(self, method: str, path: str, headers: Mapping[str, str],
                     query_params: Optional[QueryParams], body: Optional[bytes],
                     timestamp: int) -> AuthToken:
        """
        Build the auth token for an already-resolved request.

        Raises:
            MissingHeaderError: If a signed header is missing
        """
        signing_input = SigningInput(
            timestamp=timestamp,
            method=method,
            path=path,
            headers=headers,
            query_params=query_params,
            body=body,
        )
        signature = compute_signature(self.credentials.secret_key, signing_input)
        logger.debug("signature: %s", signature)
        return AuthToken(
            access_key=self.credentials.access_key,
            timestamp=timestamp,
            signature=signature,
        )

    @staticmethod
    def _serialize_payload(payload: Any) -> Optional[bytes]:
        if payload is None:
            return None
        try:
            return json.dumps(payload, separators=(',', ':')).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise SerializationError(f"cannot encode request payload: {e}") from e

    def _prepare(self, method: str, path: str, query_params: Optional[QueryParams],
                 body: Optional[bytes]) -> requests.PreparedRequest:
        headers = {}
        if body is not None:
            headers[HEADER_CONTENT_TYPE] = CONTENT_TYPE_JSON

        request = requests.Request(
            method,
            urljoin(self.endpoint + '/', path.lstrip('/')),
            params=sorted_query_pairs(query_params),
            data=body,
            headers=headers,
        )
        try:
            prepared = self.session.prepare_request(request)
        except (requests.RequestException, ValueError) as e:
            raise RequestConstructionError(f"cannot build request for {path!r}: {e}") from e

        authority = urlsplit(prepared.url).netloc.rpartition('@')[2]
        if authority:
            prepared.headers[HEADER_HOST] = authority
        return prepared

    def execute(self, method: str, path: str, query_params: Optional[QueryParams] = None,
                payload: Any = None) -> Tuple[int, bytes]:
        """
        Make a signed HTTP request.

        Args:
            method: HTTP method
            path: URL path relative to the endpoint, without query string
            query_params: Query parameters; a name may map to a list of values
            payload: JSON-serializable request body; ``None`` sends no body

        Returns:
            Tuple of (status code, raw response body)

        Raises:
            SerializationError: If the payload cannot be JSON-encoded
            RequestConstructionError: If the URL is malformed
            MissingHeaderError: If a signed header could not be set
            TransportError: If the HTTP request fails
        """
        timestamp = int(self.clock())
        body = self._serialize_payload(payload)
        prepared = self._prepare(method, path, query_params, body)
        # signed in decoded form, matching what the server sees after unescaping
        resolved_path = unquote(urlsplit(prepared.url).path)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("secret_key: %s", mask_secret(self.credentials.secret_key))
            logger.debug("timestamp: %d method: %s path: %s query: %s",
                         timestamp, method, resolved_path, urlsplit(prepared.url).query)
            logger.debug("headers: %s", dict(prepared.headers))
            logger.debug("body: %r", body)

        token = self.sign_request(method, resolved_path, prepared.headers, query_params, body, timestamp)
        prepared.headers[HEADER_AUTHORIZATION] = token.encode()

        settings = self.session.merge_environment_settings(prepared.url, {}, None, None, None)
        try:
            response = self.session.send(prepared, timeout=self.config['timeout'], **settings)
        except requests.RequestException as e:
            logger.warning("%s %s failed: %s", method, prepared.url, e)
            raise TransportError(f"HTTP request failed: {e}") from e

        logger.debug("%s %s -> %d", method, resolved_path, response.status_code)
        return response.status_code, response.content

    def close(self):
        """Close HTTP session."""
        if self.session:
            self.session.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
