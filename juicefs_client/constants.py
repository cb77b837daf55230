"""
Constants for the JuiceFS cloud API client.
"""

# HTTP headers
HEADER_AUTHORIZATION = "Authorization"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_HOST = "Host"

CONTENT_TYPE_JSON = "application/json"

# Headers covered by the signature, in the order they are signed
SIGNED_HEADERS = (HEADER_HOST,)

# Version field carried in every auth token
TOKEN_VERSION = 1

DEFAULT_ENDPOINT = "https://juicefs.com/api/v1"

# Environment variables read by Credentials.from_env()
ENV_ENDPOINT = "JUICEFS_ENDPOINT"
ENV_ACCESS_KEY = "JUICEFS_ACCESS_KEY"
ENV_SECRET_KEY = "JUICEFS_SECRET_KEY"

# Default configuration values
DEFAULT_CONFIG = {
    'timeout': 30,              # HTTP timeout in seconds
}

# Characters of a secret left visible on each side in debug output
SECRET_PREVIEW_LENGTH = 4

DEFAULT_POLL_INTERVAL = 1.0
