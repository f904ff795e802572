"""Thin Clerk Backend API client over requests.

Every non-2xx response is turned into a ClerkAPIError tagged with an
ErrorKind here, so callers never probe status codes themselves.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from scripts.migration.config import ClerkConfig
from scripts.migration.errors import ClerkAPIError, ErrorKind, TransportError
from scripts.migration.models import Page

logger = logging.getLogger("migration.client")


class ClerkClient:
    def __init__(self, config: ClerkConfig, session: Optional[requests.Session] = None) -> None:
        self._base = config.api_base_url.rstrip("/")
        self._timeout = config.timeout_s
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {config.secret_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    def close(self) -> None:
        self._session.close()

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> Any:
        url = f"{self._base}{path}"
        try:
            resp = self._session.request(
                method, url, params=params, json=body, timeout=self._timeout
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        if resp.status_code >= 400:
            error = ClerkAPIError.from_response(resp)
            logger.debug(
                "%s %s -> %d (%s)", method, path, resp.status_code, error.kind.value
            )
            raise error
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            # 2xx with a non-JSON body, e.g. an HTML page from a proxy
            raise ClerkAPIError(
                status=resp.status_code,
                kind=ErrorKind.OTHER,
                errors=[{"message": resp.text[:1000]}],
                message=f"{method} {path} returned a non-JSON {resp.status_code} body",
            )

    @staticmethod
    def _page(data: Any) -> Page:
        """Organization-style list responses: {"data": [...], "total_count": n}."""
        if isinstance(data, list):
            return Page(items=data, total_count=None)
        return Page(items=data.get("data") or [], total_count=data.get("total_count"))

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def list_users(self, offset: int = 0, limit: int = 500, order_by: str = "-created_at") -> Page:
        """One page of users. The total is only looked up for the first page."""
        items = self._request(
            "GET",
            "/users",
            params={"offset": offset, "limit": limit, "order_by": order_by},
        ) or []
        total = self.count_users() if offset == 0 else None
        return Page(items=items, total_count=total)

    def count_users(self) -> int:
        data = self._request("GET", "/users/count") or {}
        return int(data.get("total_count", 0))

    def get_users_by_email(self, email: str) -> list[dict[str, Any]]:
        return self._request("GET", "/users", params={"email_address": [email]}) or []

    def create_user(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/users", body=payload)

    def update_user(self, user_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self._request("PATCH", f"/users/{user_id}", body=payload)

    # ------------------------------------------------------------------
    # Organizations
    # ------------------------------------------------------------------

    def list_organizations(
        self, offset: int = 0, limit: int = 500, order_by: str = "+created_at"
    ) -> Page:
        return self._page(self._request(
            "GET",
            "/organizations",
            params={"offset": offset, "limit": limit, "order_by": order_by},
        ))

    def list_organization_memberships(
        self, org_id: str, offset: int = 0, limit: int = 500
    ) -> Page:
        return self._page(self._request(
            "GET",
            f"/organizations/{org_id}/memberships",
            params={"offset": offset, "limit": limit},
        ))

    def list_organization_domains(
        self, org_id: str, offset: int = 0, limit: int = 500
    ) -> Page:
        return self._page(self._request(
            "GET",
            f"/organizations/{org_id}/domains",
            params={"offset": offset, "limit": limit},
        ))
