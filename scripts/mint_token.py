"""Mint a bearer token for local testing of member and admin endpoints.

Run: uv run python scripts/mint_token.py <user_id>

The token is signed with WEB_ACCESS_TOKEN_SECRET from .env. Add the same
user id to ADMIN_USER_IDS to use it against /admin and /ops.
"""
import sys

from src.config import get_settings
from src.security.web_auth import create_web_access_token


def main() -> None:
    if len(sys.argv) != 2:
        print("usage: mint_token.py <user_id>")
        sys.exit(1)
    user_id = sys.argv[1]
    settings = get_settings()
    token = create_web_access_token(user_id=user_id)
    role = "admin" if user_id in settings.admin_user_id_list() else "member"
    print(f"# {role} token for {user_id}, valid {settings.web_access_token_expiry_hours}h")
    print(f"Authorization: Bearer {token}")


if __name__ == "__main__":
    main()
