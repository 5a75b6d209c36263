from core.exceptions import AuthenticationError, IdentityProviderError
from services.identity_client import SessionUser

ADMIN_EMAIL = "admin@example.com"
ADMIN_TOKEN = "admin-token"
OTHER_TOKEN = "other-token"
BROKEN_TOKEN = "broken-token"
ADMIN_PASSWORD = "Adm1n!pass"


class FakeIdentityClient:
    """In-memory stand-in for the auth provider.

    Tokens map to users; ``BROKEN_TOKEN`` simulates a provider outage.
    """

    def __init__(self) -> None:
        self.users: dict[str, SessionUser] = {
            ADMIN_TOKEN: SessionUser(id="admin-id", email=ADMIN_EMAIL),
            OTHER_TOKEN: SessionUser(id="other-id", email="someone@example.com"),
        }
        self.passwords: dict[str, tuple[str, str]] = {ADMIN_EMAIL: (ADMIN_PASSWORD, ADMIN_TOKEN)}
        self.user_lookups: list[str] = []
        self.sign_ins: list[str] = []

    async def get_user(self, access_token: str) -> SessionUser | None:
        self.user_lookups.append(access_token)
        if access_token == BROKEN_TOKEN:
            raise IdentityProviderError("Auth provider unavailable", details="connection refused")
        return self.users.get(access_token)

    async def sign_in_with_password(self, email: str, password: str) -> str:
        self.sign_ins.append(email)
        expected = self.passwords.get(email)
        if expected is None or expected[0] != password:
            raise AuthenticationError("Invalid login credentials")
        return expected[1]


def bearer(token: str = ADMIN_TOKEN) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
