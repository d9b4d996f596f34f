"""Identity provider (WorkOS-compatible) REST client.

Used by the session dependency to resolve the signed-in user and by the
auth endpoints for organization lookups and logout URLs. Every call is a
plain synchronous `requests` call authenticated with the API key; HTTP
failures surface as `IdentityProviderError`.
"""

import logging
from typing import List, Optional
from urllib.parse import urlencode

import requests

from .config import settings
from .errors import IdentityProviderError

logger = logging.getLogger("edwind.identity")


class IdentityProviderClient:
    def __init__(self, api_key: str, client_id: str, base_url: str, timeout: float = 10.0,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.client_id = client_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def jwks_url(self) -> str:
        return f"{self.base_url}/sso/jwks/{self.client_id}"

    def _get(self, path: str, params: Optional[dict] = None) -> dict:
        url = f"{self.base_url}{path}"
        try:
            resp = self._session.get(
                url,
                params=params,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("identity request failed path=%s error=%s", path, exc)
            raise IdentityProviderError(f"identity provider unreachable: {exc}") from exc
        if resp.status_code >= 300:
            logger.info("identity request rejected path=%s status=%s", path, resp.status_code)
            raise IdentityProviderError(f"identity provider returned {resp.status_code}", resp.status_code)
        return resp.json()

    def get_user(self, user_id: str) -> dict:
        """Return the provider's user record (`id`, `email`, `first_name`, `last_name`)."""
        return self._get(f"/user_management/users/{user_id}")

    def get_organization(self, organization_id: str) -> dict:
        return self._get(f"/organizations/{organization_id}")

    def list_organization_memberships(self, user_id: str) -> List[dict]:
        data = self._get("/user_management/organization_memberships", params={"user_id": user_id})
        return data.get("data", [])

    def get_logout_url(self, session_id: str, return_to: Optional[str] = None) -> str:
        params = {"session_id": session_id}
        if return_to:
            params["return_to"] = return_to
        return f"{self.base_url}/user_management/sessions/logout?{urlencode(params)}"


client = IdentityProviderClient(
    api_key=settings.WORKOS_API_KEY,
    client_id=settings.WORKOS_CLIENT_ID,
    base_url=settings.WORKOS_API_BASE,
    timeout=settings.IDENTITY_TIMEOUT_SECONDS,
)
