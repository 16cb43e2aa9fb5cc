import os

# --- TOTP constants (fixed for the HTTP surface) ---
TIME_STEP = 30  # seconds
OTP_LENGTH = 6

# --- Server ---
HOST = os.getenv("TOTP_HOST", "0.0.0.0")
PORT = int(os.getenv("TOTP_PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Client refresh ---
# Consecutive failed refreshes before the widget / poller gives up.
CLIENT_MAX_RETRIES = int(os.getenv("CLIENT_MAX_RETRIES", "3"))

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

EXAMPLE_SECRET = "JBSWY3DPEHPK3PXP"
