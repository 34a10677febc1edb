"""
API client wrapper for the Library Management API.

Provides a single interface for HTTP calls to the backend with error
mapping, retries and token refresh.
"""

import time
from typing import Any, Optional

import requests
import streamlit as st


class APIError(Exception):
    """Error returned by the API (or raised while reaching it)."""

    def __init__(self, message: str, status_code: int = 0, details: Any = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class APIClient:
    """
    HTTP client for the Library Management API.

    Features:
        - Bearer token injected from session state
        - Retry on transient errors (502, 503)
        - One refresh-and-retry on 401, then the session is cleared
        - Error envelope mapped to APIError
    """

    DEFAULT_TIMEOUT = 10
    MAX_RETRIES = 2
    RETRY_DELAY = 0.5

    def __init__(self, base_url: Optional[str] = None):
        """
        Args:
            base_url: Backend URL (without the /api/v1 suffix)
        """
        self.base_url = (base_url or "http://localhost:8000").rstrip("/")
        self.api_prefix = "/api/v1"

    def _get_url(self, endpoint: str) -> str:
        endpoint = endpoint.lstrip("/")
        return f"{self.base_url}{self.api_prefix}/{endpoint}"

    def _get_headers(self, include_auth: bool = True) -> dict:
        headers = {"Content-Type": "application/json"}
        token = st.session_state.get("token")
        if include_auth and token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _handle_response(self, response: requests.Response) -> Any:
        """
        Parses a response.

        Raises:
            APIError: For non-2xx responses
        """
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                raise APIError(response.text or f"HTTP error {response.status_code}", response.status_code)

            message = body.get("message") or body.get("detail") or str(body)
            details = body.get("details")
            if response.status_code == 422 and isinstance(details, list):
                fields = "; ".join(f"{d.get('field')}: {d.get('message')}" for d in details)
                message = f"{message} ({fields})" if fields else message
            if response.status_code == 429:
                retry_after = response.headers.get("Retry-After")
                if retry_after:
                    message = f"{message} Retry after {retry_after}s."
            raise APIError(message, response.status_code, details)

        if response.status_code == 204:
            return {}

        try:
            return response.json()
        except ValueError:
            return {}

    def _refresh_token(self) -> bool:
        """Exchanges the stored refresh token for a new pair."""
        refresh_token = st.session_state.get("refresh_token")
        if not refresh_token:
            return False
        try:
            response = requests.post(
                self._get_url("auth/refresh-token"),
                json={"refresh_token": refresh_token},
                timeout=self.DEFAULT_TIMEOUT,
            )
        except requests.exceptions.RequestException:
            return False
        if response.status_code != 200:
            return False

        token = response.json().get("token", {})
        st.session_state.token = token.get("access_token")
        st.session_state.refresh_token = token.get("refresh_token")
        return bool(st.session_state.token)

    def _request(
        self,
        method: str,
        endpoint: str,
        include_auth: bool = True,
        **kwargs,
    ) -> Any:
        """
        Sends a request with retry logic.

        Args:
            method: HTTP method
            endpoint: Path below /api/v1
            include_auth: Whether to send the bearer token
            **kwargs: Extra arguments for requests

        Returns:
            Parsed JSON body

        Raises:
            APIError: API or connection error
        """
        url = self._get_url(endpoint)
        kwargs.setdefault("timeout", self.DEFAULT_TIMEOUT)
        refreshed = False

        last_error = None
        attempt = 0
        while attempt <= self.MAX_RETRIES:
            try:
                response = requests.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(include_auth),
                    **kwargs,
                )

                if response.status_code in (502, 503) and attempt < self.MAX_RETRIES:
                    attempt += 1
                    time.sleep(self.RETRY_DELAY * attempt)
                    continue

                if response.status_code == 401 and include_auth:
                    if not refreshed and self._refresh_token():
                        refreshed = True
                        continue
                    from .state import clear_session
                    clear_session()
                    raise APIError("Session expired. Please log in again.", 401)

                return self._handle_response(response)

            except requests.exceptions.Timeout:
                last_error = APIError("Request timed out", 0)
                attempt += 1
                if attempt <= self.MAX_RETRIES:
                    time.sleep(self.RETRY_DELAY)
                    continue
            except requests.exceptions.ConnectionError:
                last_error = APIError(
                    "Could not reach the server. Check that the backend is running.",
                    0,
                )
                break

        raise last_error

    def get(self, endpoint: str, params: Optional[dict] = None, **kwargs) -> Any:
        return self._request("GET", endpoint, params=params, **kwargs)

    def post(self, endpoint: str, json: Optional[dict] = None, **kwargs) -> Any:
        return self._request("POST", endpoint, json=json, **kwargs)

    def patch(self, endpoint: str, json: Optional[dict] = None, **kwargs) -> Any:
        return self._request("PATCH", endpoint, json=json, **kwargs)

    def delete(self, endpoint: str, **kwargs) -> Any:
        return self._request("DELETE", endpoint, **kwargs)


def get_api_client() -> APIClient:
    """API client for the backend URL configured in the sidebar."""
    base_url = st.session_state.get("base_url", "http://localhost:8000")
    return APIClient(base_url)
