"""
TOTP code service entry point.

Usage
-----
    python -m totpserver

Or run the app directly with uvicorn:
    uvicorn totpserver.main:app
"""

import logging

import uvicorn

from .config import HOST, LOG_LEVEL, PORT

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("totpserver")


def main():
    logger.info("Serving TOTP codes on %s:%d", HOST, PORT)
    uvicorn.run("totpserver.main:app", host=HOST, port=PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
