import os
import sys

# Add project root (folder containing "totpserver" and "scripts") to sys.path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.append(PROJECT_ROOT)

from totpserver.totp_utils import generate_totp_with_validity


def main():
    if len(sys.argv) != 2:
        print("usage: show_code.py BASE32_SECRET", file=sys.stderr)
        sys.exit(2)

    secret = "".join(sys.argv[1].split())
    code, remaining = generate_totp_with_validity(secret)
    print(f"Code: {code} (valid for {remaining}s)")


if __name__ == "__main__":
    main()
