#!/usr/bin/env python3
"""
Authorize the organizer account that owns published training events.

Run this once with the organizer's Google account to obtain a refresh
token, then add it to your .env file. The service creates, updates and
cancels calendar entries with it.

Usage:
    python scripts/get_token.py

Requirements:
    - GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET set in .env
    - Or passed as arguments: python scripts/get_token.py --client-id=XXX --client-secret=YYY
"""
import argparse
import os
import sys

from dotenv import load_dotenv
from google_auth_oauthlib.flow import InstalledAppFlow

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from employee_training.calendar.client import SCOPES, TOKEN_URI  # noqa: E402

REDIRECT_URI = "http://localhost:8080/"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Obtain a Google refresh token for the organizer calendar")
    parser.add_argument("--client-id", help="Google OAuth Client ID")
    parser.add_argument("--client-secret", help="Google OAuth Client Secret")
    return parser.parse_args()


def main():
    args = parse_args()
    load_dotenv()
    client_id = args.client_id or os.getenv("GOOGLE_CLIENT_ID")
    client_secret = args.client_secret or os.getenv("GOOGLE_CLIENT_SECRET")

    if not client_id or not client_secret:
        print("Error: GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are required.")
        print("Set them in .env or pass --client-id and --client-secret.")
        sys.exit(1)

    flow = InstalledAppFlow.from_client_config(
        {
            "installed": {
                "client_id": client_id,
                "client_secret": client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": TOKEN_URI,
                "redirect_uris": [REDIRECT_URI],
            }
        },
        SCOPES,
    )
    flow.redirect_uri = REDIRECT_URI

    # The localhost redirect is plain http.
    os.environ["OAUTHLIB_INSECURE_TRANSPORT"] = "1"

    auth_url, _ = flow.authorization_url(access_type="offline", prompt="consent")
    print("Sign in with the ORGANIZER account that should own training events:")
    print()
    print(auth_url)
    print()
    print("After authorizing you are redirected to a localhost URL that will not load.")
    redirect_response = input("Paste that full URL here: ").strip()

    flow.fetch_token(authorization_response=redirect_response)

    print()
    print("Add the following to your .env file:")
    print()
    print(f"GOOGLE_REFRESH_TOKEN={flow.credentials.refresh_token}")
    print("GOOGLE_CALENDAR_ID=primary")


if __name__ == "__main__":
    main()
