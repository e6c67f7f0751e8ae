import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "webrelay")

# Public-facing origin used when building proxied URLs. When empty the origin
# is derived from the incoming request.
PUBLIC_URL = os.environ.get("PUBLIC_URL", "").rstrip("/")

PROXY_TIMEOUT = float(os.environ.get("PROXY_TIMEOUT", "20"))
PROXY_MAX_REDIRECTS = int(os.environ.get("PROXY_MAX_REDIRECTS", "10"))
PROXY_ALLOW_UNSAFE_CERT = (
    os.getenv("PROXY_ALLOW_UNSAFE_CERT", "false").lower() == "true"
)
PROXY_USER_AGENT = os.getenv(
    "PROXY_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
)

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
