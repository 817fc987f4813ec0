"""Shared plumbing for the HTTP provider clients."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from .config import Settings
from .errors import ApiError, NetworkError

logger = logging.getLogger(__name__)


class ProviderClient:
    """Base class holding settings, the HTTP session and error mapping.

    Every request carries ``settings.request_timeout``. Transport failures become
    ``NetworkError``; non-2xx answers and undecodable bodies become ``ApiError``.
    """

    provider_name = "provider"

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None) -> None:
        self.settings = settings or Settings.from_env()
        self.session = session or requests.Session()

    def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        kwargs.setdefault("timeout", self.settings.request_timeout)
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            logger.warning("%s request failed: %s", self.provider_name, exc)
            raise NetworkError(f"{self.provider_name} is unreachable: {exc}") from exc

        if not 200 <= response.status_code < 300:
            message = self._error_message(response)
            logger.warning("%s returned %s: %s", self.provider_name, response.status_code, message)
            raise ApiError(
                f"{self.provider_name} request failed with status {response.status_code}: {message}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"{self.provider_name} returned invalid JSON", status_code=response.status_code) from exc

    def _error_message(self, response: requests.Response) -> str:
        try:
            data: Dict[str, Any] = response.json()
        except ValueError:
            return response.text or response.reason or ""
        if not isinstance(data, dict):
            return response.reason or ""
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if error:
            return str(error)
        return str(data.get("message") or response.reason or "")
