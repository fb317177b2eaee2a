from fastapi.concurrency import run_in_threadpool
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from ..config import CLOUD_PLATFORM_SCOPE, GOOGLE_TOKEN_URI, GcpCredentials


def service_account_info(credentials: GcpCredentials) -> dict[str, str]:
    return {
        "type": "service_account",
        "project_id": credentials.project_id,
        "client_email": credentials.client_email,
        "private_key": credentials.private_key,
        "token_uri": GOOGLE_TOKEN_URI,
    }


class ServiceAccountTokenProvider:
    """Exchanges service-account credentials for a short-lived bearer token.

    Nothing is cached: every call performs a fresh exchange.
    """

    def __init__(self, scopes: tuple[str, ...] = (CLOUD_PLATFORM_SCOPE,)) -> None:
        self.scopes = scopes

    async def fetch_token(self, credentials: GcpCredentials) -> str:
        return await run_in_threadpool(self._fetch_token_sync, credentials)

    def _fetch_token_sync(self, credentials: GcpCredentials) -> str:
        google_credentials = service_account.Credentials.from_service_account_info(
            service_account_info(credentials),
            scopes=list(self.scopes),
        )
        google_credentials.refresh(GoogleAuthRequest())
        if not google_credentials.token:
            raise RuntimeError("Service account token exchange returned no access token")
        return google_credentials.token
