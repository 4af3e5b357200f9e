"""HTTP constants for the remote evaluation fetch layer.

Centralizes endpoint, header, and status-code constants used by the client
and the failure classifier.
"""

# HTTP Status Code Ranges
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_TOO_MANY_REQUESTS = 429
HTTP_STATUS_CLIENT_ERROR_MAX = 500
HTTP_STATUS_SERVER_ERROR_MIN = 500
HTTP_STATUS_SERVER_ERROR_MAX = 600

# Evaluation endpoint
VARDATA_PATH = "/v1/vardata"
SERVER_URL_US = "https://api.lab.amplitude.com"
SERVER_URL_EU = "https://api.lab.eu.amplitude.com"

# Request headers
AUTHORIZATION_HEADER = "Authorization"
TRACKING_HEADER = "X-Amp-Exp-Track"
TRACKING_DISABLED = "no-track"

# Library identifier injected into the evaluated user context
LIBRARY_NAME = "experiment-client"
LIBRARY_VERSION = "0.1.0"

# Defaults mirrored by RetryPolicy and RemoteEvaluationConfig
DEFAULT_FETCH_TIMEOUT_MS = 10_000
DEFAULT_FETCH_RETRIES = 8
DEFAULT_RETRY_MIN_DELAY_MS = 500
DEFAULT_RETRY_MAX_DELAY_MS = 10_000
DEFAULT_RETRY_BACKOFF_SCALAR = 1.5
