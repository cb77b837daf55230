"""
Canonical request construction and HMAC-SHA256 signing.

The string to sign is the newline-joined sequence::

    timestamp
    method
    path
    header block   (lowercased name:value per signed header)
    query block    (sorted, percent-encoded name=value pairs joined by &)
    payload hash   (hex SHA-256 of the body, empty when there is no body)

Both client and server rebuild this string independently, so every step here
must stay byte-for-byte stable.
"""

import hashlib
import hmac
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import quote_plus

from .constants import SIGNED_HEADERS
from .exceptions import MissingHeaderError

QueryValue = Union[str, int, Sequence[Union[str, int]]]
QueryParams = Mapping[str, QueryValue]


@dataclass(frozen=True)
class SigningInput:
    """Everything that goes into one request signature."""

    timestamp: int
    method: str
    path: str
    headers: Mapping[str, str]
    query_params: Optional[QueryParams] = None
    body: Optional[bytes] = None


def canonical_headers(headers: Mapping[str, str],
                      required: Iterable[str] = SIGNED_HEADERS) -> str:
    """
    Build the header block.

    Headers are emitted in the declared order of ``required``, not sorted.

    Raises:
        MissingHeaderError: If a required header is absent or empty
    """
    lines = []
    for name in required:
        value = headers.get(name)
        if not value:
            raise MissingHeaderError(name)
        lines.append(f"{name.lower()}:{value}")
    return "\n".join(lines)


def _escape(value: str) -> str:
    # space becomes "+", only letters, digits and "_.-~" are left as is
    return quote_plus(value, safe="")


def _text(value) -> str:
    if isinstance(value, bytes):
        return value.decode('utf-8')
    return str(value)


def sorted_query_pairs(query_params: Optional[QueryParams]) -> List[Tuple[str, str]]:
    """
    Flatten query parameters into (name, value) pairs sorted by name, then value.

    A name may map to a single value or to a list, tuple or set of values.
    Non-string values are converted with ``str()`` before sorting, so they are
    signed exactly as they are sent.
    """
    if not query_params:
        return []
    pairs = []
    for name, values in query_params.items():
        if not isinstance(values, (list, tuple, set, frozenset)):
            values = [values]
        pairs.extend((_text(name), _text(value)) for value in values)
    return sorted(pairs)


def canonical_query(query_params: Optional[QueryParams]) -> str:
    """Build the query block; absent parameters yield an empty string."""
    return "&".join(
        f"{_escape(name)}={_escape(value)}"
        for name, value in sorted_query_pairs(query_params)
    )


def payload_hash(body: Optional[bytes]) -> str:
    """Hex SHA-256 of the body, or "" when no body was supplied at all."""
    if body is None:
        return ""
    return hashlib.sha256(body).hexdigest()


def string_to_sign(signing_input: SigningInput) -> str:
    parts = [
        str(signing_input.timestamp),
        signing_input.method,
        signing_input.path,
        canonical_headers(signing_input.headers),
        canonical_query(signing_input.query_params),
        payload_hash(signing_input.body),
    ]
    return "\n".join(parts)


def compute_signature(secret_key: str, signing_input: SigningInput) -> str:
    """
    Generate the HMAC-SHA256 request signature.

    Args:
        secret_key: Shared secret
        signing_input: Request fields to sign

    Returns:
        Lowercase hex-encoded signature

    Raises:
        MissingHeaderError: If a signed header is missing
    """
    mac = hmac.new(
        secret_key.encode('utf-8'),
        string_to_sign(signing_input).encode('utf-8'),
        hashlib.sha256
    )
    return mac.hexdigest()


def verify_signature(secret_key: str, signing_input: SigningInput, signature: str) -> bool:
    """Check a signature against the request fields in constant time."""
    expected = compute_signature(secret_key, signing_input)
    return hmac.compare_digest(expected, signature)
