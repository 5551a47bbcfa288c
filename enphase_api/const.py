"""Constants for the Enphase Entrez / Envoy client.

This module contains the URLs, endpoint paths, environment variable names
and HTTP tuning values used throughout the package.
"""

from datetime import timedelta

__version__ = "0.1.0"

DEFAULT_ENTREZ_URL = "https://entrez.enphaseenergy.com"
USER_AGENT = f"enphase-api/{__version__}"

ENTREZ_USERNAME_ENV = "ENTREZ_USERNAME"
ENTREZ_PASSWORD_ENV = "ENTREZ_PASSWORD"  # noqa: S105

# Entrez cloud paths
LOGIN_PATH = "/login"
TOKENS_PATH = "/entrez_tokens"
AUTH_FLOW = "entrezSession"

# Envoy gateway paths
CHECK_JWT_PATH = "/auth/check_jwt"
PRODUCTION_PATH = "/api/v1/production"
CONSUMPTION_PATH = "/api/v1/consumption"
INVERTERS_PATH = "/api/v1/production/inverters"
SYSTEM_PATH = "/home.json"
POWER_MODE_PATH = "/ivp/mod/{serial}/mode/power"

VALID_TOKEN_MARKER = "Valid token"  # noqa: S105
NOT_COMMISSIONED_MARKER = "not commissioned"

DEFAULT_TIMEOUT = 30.0
DEFAULT_ENVOY_TIMEOUT = 10.0
DEFAULT_REFRESH_MARGIN = timedelta(minutes=5)

# Reads are retried at most once, writes never
READ_METHODS = frozenset(["GET", "HEAD"])
READ_RETRY_TOTAL = 1
READ_RETRY_BACKOFF = 0.5
RETRYABLE_STATUS_CODES = frozenset([500, 502, 503, 504])

EXCERPT_LENGTH = 200
