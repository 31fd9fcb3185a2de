"""
Clerk Client Module
===================

Thin HTTP client for the Clerk Backend API.

Failures are categorized for the sync retry loop:
- Transport errors, 5xx and 429 raise RetryableError
- Any other 4xx raises NonRetryableError
"""

from typing import Any, Dict, List, Optional

import httpx

from backoffice.core.config import get_settings
from backoffice.core.logging import get_logger
from backoffice.sync.types import NonRetryableError, RetryableError

logger = get_logger(__name__)

PAGE_SIZE = 10


class ClerkClient:
    """
    Clerk Backend API client.

    Usage:
        with ClerkClient() as clerk:
            users = clerk.list_users()

    Args:
        secret_key: Clerk secret key (default from settings)
        base_url: API root (default from settings)
        transport: Optional httpx transport, used by tests
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        settings = get_settings()
        self._client = httpx.Client(
            base_url=(base_url or settings.CLERK_API_URL).rstrip("/"),
            headers={
                "Authorization": f"Bearer {secret_key or settings.CLERK_SECRET_KEY}",
                "Content-Type": "application/json",
            },
            timeout=timeout or settings.CLERK_REQUEST_TIMEOUT,
            transport=transport,
        )

    def __enter__(self) -> "ClerkClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    # --------------------------
    # Users
    # --------------------------

    def list_users(self, page_size: int = PAGE_SIZE) -> List[Dict[str, Any]]:
        """
        Fetch every Clerk user, one page at a time.

        Stops at the first empty or short page.
        """
        users: List[Dict[str, Any]] = []
        offset = 0

        while True:
            page = self._request(
                "GET",
                "/users",
                params={"limit": page_size, "offset": offset, "order_by": "-created_at"},
            )
            if not page:
                break

            users.extend(page)
            offset += len(page)
            logger.debug("clerk_users_page_fetched", count=len(page), total=len(users))

            if len(page) < page_size:
                break

        logger.info("clerk_users_fetched", total=len(users))
        return users

    def get_user(self, user_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/users/{user_id}")

    def create_user(
        self,
        email: str,
        first_name: str = "",
        last_name: str = "",
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/users",
            json={
                "email_address": [email],
                "first_name": first_name,
                "last_name": last_name,
                "skip_password_requirement": True,
                "skip_password_checks": True,
            },
        )

    def delete_user(self, user_id: str) -> None:
        self._request("DELETE", f"/users/{user_id}")

    # --------------------------
    # Transport
    # --------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            logger.warning("clerk_request_failed", method=method, path=path, error=str(e))
            raise RetryableError(
                f"Network error calling Clerk: {e}",
                details={"method": method, "path": path},
                original_error=e,
            ) from e

        if response.is_success:
            return response.json() if response.content else None

        details = {
            "method": method,
            "path": path,
            "status_code": response.status_code,
            "body": _error_body(response),
        }
        logger.warning("clerk_request_rejected", **details)

        if response.status_code == 429 or response.status_code >= 500:
            raise RetryableError(
                f"Clerk API returned {response.status_code}",
                details=details,
            )
        raise NonRetryableError(
            f"Clerk API returned {response.status_code}",
            details=details,
        )


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
