"""
JuiceFS Cloud API Client

A Python client library that signs requests to the JuiceFS cloud
control-plane API with HMAC-SHA256 request signatures.

Example usage:
    from juicefs_client import Credentials, JuiceFSClient, JuiceFSCloudAPI

    client = JuiceFSClient(Credentials("access-key", "secret-key"))
    regions = JuiceFSCloudAPI(client).get_regions()
"""

import logging

from .api import Cloud, JuiceFSCloudAPI, Region, Volume, VolumeAccessRule
from .canonical import (
    SigningInput,
    canonical_headers,
    canonical_query,
    compute_signature,
    payload_hash,
    string_to_sign,
    verify_signature
)
from .client import AuthToken, Credentials, JuiceFSClient, mask_secret
from .exceptions import (
    JuiceFSClientError,
    ConfigurationError,
    MissingHeaderError,
    SerializationError,
    RequestConstructionError,
    TransportError,
    UnexpectedStatusError,
    NotFoundError,
    PollTimeoutError
)
from .constants import (
    HEADER_AUTHORIZATION,
    HEADER_HOST,
    SIGNED_HEADERS,
    TOKEN_VERSION,
    DEFAULT_CONFIG,
    DEFAULT_ENDPOINT
)
from .polling import poll_until

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "1.0.0"
__all__ = [
    "AuthToken",
    "Cloud",
    "Credentials",
    "JuiceFSClient",
    "JuiceFSCloudAPI",
    "Region",
    "SigningInput",
    "Volume",
    "VolumeAccessRule",
    "canonical_headers",
    "canonical_query",
    "compute_signature",
    "mask_secret",
    "payload_hash",
    "poll_until",
    "string_to_sign",
    "verify_signature",
    "JuiceFSClientError",
    "ConfigurationError",
    "MissingHeaderError",
    "SerializationError",
    "RequestConstructionError",
    "TransportError",
    "UnexpectedStatusError",
    "NotFoundError",
    "PollTimeoutError",
    "HEADER_AUTHORIZATION",
    "HEADER_HOST",
    "SIGNED_HEADERS",
    "TOKEN_VERSION",
    "DEFAULT_CONFIG",
    "DEFAULT_ENDPOINT"
]
