# selfsigned/config.py
import os

__version__ = "0.1.0"

# Listener settings (override with environment variables)
BIND_HOST = os.getenv("BIND_HOST", "0.0.0.0")
HTTP_PORT = int(os.getenv("HTTP_PORT", "8080"))
HTTPS_PORT = int(os.getenv("HTTPS_PORT", "8443"))

# Subject organization used for every certificate of the chain
ORGANIZATION = os.getenv("ORGANIZATION", "ACME Company")

# Build metadata shown on the root page, stamped in by the image build
BUILD_VERSION = os.getenv("BUILD_VERSION", __version__)
BUILD_COMMIT = os.getenv("BUILD_COMMIT", "unknown")
BUILD_RFC3339 = os.getenv("BUILD_RFC3339", "unknown")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Seconds a TLS peer gets to complete the handshake and each read
TLS_HANDSHAKE_TIMEOUT = float(os.getenv("TLS_HANDSHAKE_TIMEOUT", "10"))
