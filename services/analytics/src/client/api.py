from typing import Any, Dict, Optional

import httpx
from pydantic_settings import BaseSettings, SettingsConfigDict

USER_AGENT = "ContextForge-CLI/1.0.0"


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CONTEXTFORGE_")

    api_url: str = "http://localhost:8000"
    api_key: Optional[str] = None
    timeout_seconds: float = 30.0


class ApiError(Exception):
    """Non-2xx response or transport failure talking to the API."""

    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.status_code}: {self.message}"


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or body)
    return str(body)


class ContextForgeClient:
    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.settings = settings or ClientSettings()
        headers = {"User-Agent": USER_AGENT}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        self._http = httpx.Client(
            base_url=self.settings.api_url,
            headers=headers,
            timeout=self.settings.timeout_seconds,
            transport=transport,
        )

    def __enter__(self) -> "ContextForgeClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def _get(self, path: str, **params: Any) -> Dict[str, Any]:
        try:
            resp = self._http.get(path, params=params or None)
        except httpx.HTTPError as e:
            raise ApiError(None, f"request to {path} failed: {e}") from e
        if resp.is_error:
            raise ApiError(resp.status_code, _error_message(resp))
        return resp.json()

    def get_job(self, job_id: str) -> Dict[str, Any]:
        return self._get(f"/jobs/{job_id}")["job"]

    def get_analytics(self, payload: str, time_range: str = "30d") -> Dict[str, Any]:
        return self._get(f"/analytics/{payload}", range=time_range)
