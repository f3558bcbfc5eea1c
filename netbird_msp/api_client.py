"""
API Client Module
Purpose: Authenticated GET calls against the NetBird REST API

Every call is one blocking request/response. Anything but HTTP 200 with a
decodable JSON body raises FetchError; there are no retries.
"""

from typing import Any, Dict, Optional

import requests
from loguru import logger

from netbird_msp.config import Settings
from netbird_msp.exceptions import FetchError

USER_AGENT = "netbird-msp-report/2.0"


class NetBirdClient:
    """Thin requests.Session wrapper for the NetBird API"""

    def __init__(
        self,
        api_token: str,
        base_url: str,
        auth_scheme: str = "Token",
        connect_timeout: float = 10,
        read_timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = (connect_timeout, read_timeout)

        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"{auth_scheme} {api_token}",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        })

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "NetBirdClient":
        api_cfg = settings.cfg["api"]
        return cls(
            api_token=settings.api_token,
            base_url=settings.base_url,
            auth_scheme=api_cfg.get("auth_scheme", "Token"),
            connect_timeout=api_cfg.get("connect_timeout", 10),
            read_timeout=api_cfg.get("read_timeout", 30),
            session=session,
        )

    def _build_url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def get(self, endpoint: str, description: str, params: Optional[Dict] = None) -> Any:
        """
        GET an endpoint and return the decoded JSON body.

        Args:
            endpoint: Path relative to the base URL, e.g. "integrations/msp/tenants"
            description: Human label used in log and error messages
            params: Query parameters

        Raises:
            FetchError: transport error, non-200 status, empty or non-JSON body
        """
        url = self._build_url(endpoint)
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.debug(f"{description} failed ({e.__class__.__name__}: {e})")
            raise FetchError(f"{description} failed: {e}", endpoint=endpoint, description=description) from e

        if response.status_code != 200:
            logger.debug(f"{description} failed (HTTP {response.status_code})")
            logger.debug(f"Response body: {response.text}")
            raise FetchError(
                f"{description} failed",
                endpoint=endpoint,
                description=description,
                status_code=response.status_code,
                body=response.text,
            )

        if not response.text.strip():
            logger.debug(f"{description} failed (empty response body)")
            raise FetchError(
                f"{description} returned an empty body",
                endpoint=endpoint,
                description=description,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            logger.debug(f"{description} failed (invalid JSON)")
            raise FetchError(
                f"{description} returned invalid JSON",
                endpoint=endpoint,
                description=description,
                status_code=response.status_code,
                body=response.text,
            ) from e

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "NetBirdClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
