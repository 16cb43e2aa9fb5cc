import argparse
import logging
import os
import sys
import time
from urllib.parse import quote

import requests

# Add project root (folder containing "totpserver" and "scripts") to sys.path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.append(PROJECT_ROOT)

from totpserver.config import CLIENT_MAX_RETRIES, TIME_STEP

API_URL = os.getenv("TOTP_API_URL", "http://127.0.0.1:8000")

logger = logging.getLogger("poll_code")


class SecretRejected(Exception):
    """The server answered 400; asking again will not help."""


def fetch_code(secret: str, api_url: str = API_URL, session=None, timeout: float = 10):
    """
    Fetch the current code from the JSON endpoint.
    Returns the decoded body: {"token", "remaining", "serverTime"}.
    """
    http = session or requests
    resp = http.get(f"{api_url.rstrip('/')}/{quote(secret, safe='')}", params={"format": "json"}, timeout=timeout)

    if resp.status_code == 400:
        try:
            body = resp.json()
        except ValueError:
            raise SecretRejected(resp.text)
        raise SecretRejected(body.get("message") or body.get("error"))

    # Raise if HTTP error (4xx/5xx)
    resp.raise_for_status()
    return resp.json()


def poll(
    secret: str,
    api_url: str = API_URL,
    max_retries: int = CLIENT_MAX_RETRIES,
    max_codes=None,
    session=None,
    sleep=time.sleep,
    on_code=print,
):
    """
    Print a fresh code every window until max_codes have been shown
    or max_retries consecutive requests fail. No backoff between retries.

    Returns the list of codes seen.
    """
    codes = []
    failures = 0

    while max_codes is None or len(codes) < max_codes:
        try:
            data = fetch_code(secret, api_url=api_url, session=session)
        except requests.RequestException as e:
            failures += 1
            logger.warning("Refresh failed (%d/%d): %s", failures, max_retries, e)
            if failures >= max_retries:
                raise
            sleep(1)
            continue

        failures = 0
        codes.append(data["token"])
        on_code(f"{data['token']}  ({data['remaining']}s left)")

        if max_codes is not None and len(codes) >= max_codes:
            break
        # wake just after the window rolls over
        sleep(data.get("remaining", TIME_STEP))

    return codes


def main():
    parser = argparse.ArgumentParser(description="Poll the TOTP service for codes")
    parser.add_argument("secret", help="Base32 secret key")
    parser.add_argument("--url", default=API_URL)
    parser.add_argument("--retries", type=int, default=CLIENT_MAX_RETRIES)
    parser.add_argument("--count", type=int, default=None, help="stop after this many codes")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    try:
        poll(args.secret, api_url=args.url, max_retries=args.retries, max_codes=args.count)
    except SecretRejected as e:
        print(f"Secret rejected: {e}", file=sys.stderr)
        sys.exit(2)
    except requests.RequestException as e:
        print(f"Giving up after {args.retries} failed attempts: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
