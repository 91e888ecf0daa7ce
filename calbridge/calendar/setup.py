"""Calendar token setup - run with: python -m calbridge.calendar.setup

Opens a browser to authorize a Google account for Calendar access and saves
the resulting OAuth token, encrypted, in the credential store.  Storing a new
token clears any invalid-token marker left by an earlier auth failure.
"""

import logging
import os

from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from calbridge.calendar.auth import SCOPES, get_token_credential_name, reset_credentials
from calbridge.config.config_loader import config_loader
from calbridge.credentials.store import get_credential_store
from calbridge.logging_config import setup_logging

logger = logging.getLogger(__name__)


def _get_client_file() -> str:
    """Get a client_secret.json path from environment or config."""
    client_file = os.environ.get("CALENDAR_OAUTH_CLIENT_FILE", "")
    if not client_file:
        client_file = config_loader.get_calendar_config().get("oauth_client_file", "")
    return os.path.expanduser(client_file) if client_file else ""


def run_setup(port: int = 0) -> bool:
    """Interactive setup: authorize a Google account and store its token.

    Args:
        port: Port for the local OAuth callback server. Use 0 for auto-select,
              or a fixed port (e.g. 8085) for SSH tunneling from another machine.

    Returns:
        True if setup succeeded.
    """
    client_file = _get_client_file()
    if not client_file or not os.path.exists(client_file):
        print(
            "No OAuth client file found.\n"
            "Set CALENDAR_OAUTH_CLIENT_FILE or integrations.calendar.oauth_client_file "
            "to a client_secret.json path."
        )
        return False

    store = get_credential_store()
    if not store.available:
        print("Credential store unavailable; set CALBRIDGE_CREDENTIAL_KEY first.")
        return False

    print(f"Using OAuth client from: {client_file}")
    flow = InstalledAppFlow.from_client_secrets_file(client_file, SCOPES)
    # offline + consent so Google always hands back a refresh token
    creds = flow.run_local_server(
        port=port,
        open_browser=(port == 0),
        access_type="offline",
        prompt="consent",
    )

    name = get_token_credential_name()
    store.init_schema()
    store.set(name, creds.to_json(), credential_type="oauth_token")
    store.clear_invalid(name)
    reset_credentials()
    print(f"Token saved to credential store as '{name}'")

    try:
        service = build("calendar", "v3", credentials=creds, cache_discovery=False)
        calendar = service.calendars().get(calendarId="primary").execute()
    except Exception as e:
        print(f"Token saved but verification failed: {e}")
        return False

    print(f"Calendar authenticated as: {calendar.get('summary', 'unknown')}")
    logger.info(f"Stored calendar token '{name}'")
    return True


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Authorize Google Calendar for calbridge")
    parser.add_argument(
        "--port", type=int, default=0,
        help="Fixed port for OAuth callback (default: auto). Use with SSH tunnel for remote machines."
    )
    args = parser.parse_args()

    setup_logging()
    print("=== Calendar Token Setup ===")
    if args.port:
        print(f"Listening on port {args.port} for OAuth callback.")
        print(f"If remote, tunnel with: ssh -L {args.port}:localhost:{args.port} user@this-machine")

    if run_setup(port=args.port):
        print("\nSetup complete.")
    else:
        print("\nSetup failed.")
        raise SystemExit(1)
