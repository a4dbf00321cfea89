"""
Member Broker configuration. Read once from the environment at import time.
Secrets (client secret) come from env only; nothing sensitive has a real default.
"""
import os

# Umbraco instance that owns the member records
UMBRACO_HOST = os.environ.get("UMBRACO_HOST", "http://127.0.0.1:5000").rstrip("/")

# Client-credentials pair registered as an API user in the Umbraco back office
UMBRACO_CLIENT_ID = os.environ.get("UMBRACO_CLIENT_ID", "umbraco-back-office-member-broker")
UMBRACO_CLIENT_SECRET = os.environ.get("UMBRACO_CLIENT_SECRET", "")

UMBRACO_TOKEN_URL = os.environ.get(
    "UMBRACO_TOKEN_URL",
    f"{UMBRACO_HOST}/umbraco/management/api/v1/security/back-office/token",
)

# Member type and member groups assigned to every synced member
UMBRACO_MEMBER_TYPE_ID = os.environ.get("UMBRACO_MEMBER_TYPE_ID", "")
UMBRACO_MEMBER_GROUP_REGULAR_ID = os.environ.get("UMBRACO_MEMBER_GROUP_REGULAR_ID", "")
UMBRACO_MEMBER_GROUP_VIP_ID = os.environ.get("UMBRACO_MEMBER_GROUP_VIP_ID", "")

# Per-request timeout (seconds) for calls to Umbraco
HTTP_TIMEOUT = float(os.environ.get("MEMBER_BROKER_HTTP_TIMEOUT", "10"))

# Refresh the access token this many seconds before it expires
TOKEN_LEEWAY = int(os.environ.get("MEMBER_BROKER_TOKEN_LEEWAY", "10"))

CORS_ORIGINS = [
    o.strip() for o in os.environ.get("MEMBER_BROKER_CORS_ORIGINS", "*").split(",") if o.strip()
]

PORT = int(os.environ.get("MEMBER_BROKER_PORT", "3000"))
LOG_LEVEL = os.environ.get("MEMBER_BROKER_LOG_LEVEL", "INFO").upper()
