"""One-time Gmail consent for outbound mail.

Opens a browser, asks for the gmail.send scope and stores the token at
GOOGLE_TOKEN_PATH, where the worker picks it up.

Usage:
  python scripts/gmail_auth.py
"""

from quote_portal.gmail.client import GmailClient


def main() -> None:
    client = GmailClient()
    client.authorize()
    print(f"Saved Gmail token to {client.token_path}")


if __name__ == "__main__":
    main()
