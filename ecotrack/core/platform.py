"""Client for the hosted backend platform's auth, storage and RPC endpoints.

Rows are read and written through SQLAlchemy (see ``ecotrack.db.session``);
everything else the platform owns goes through this client.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from ecotrack.config import settings
from ecotrack.core.errors import PlatformError, PlatformNotConfigured, PlatformUnavailable, classify

logger = logging.getLogger(__name__)


def _error_text(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        for key in ("msg", "message", "error_description", "error"):
            if payload.get(key):
                return str(payload[key])
    return response.text or response.reason_phrase


class PlatformClient:
    def __init__(
        self,
        url: str,
        anon_key: str,
        service_key: Optional[str] = None,
        timeout: float = 10.0,
        configured: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.service_key = service_key
        self.configured = configured
        self._http = httpx.Client(base_url=self.url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    # ------------------------------------------
    #  plumbing
    # ------------------------------------------
    def _headers(self, token: Optional[str] = None, admin: bool = False) -> Dict[str, str]:
        if admin:
            if not self.service_key:
                raise PlatformNotConfigured("Service role key is not configured")
            return {"apikey": self.service_key, "Authorization": f"Bearer {self.service_key}"}
        return {"apikey": self.anon_key, "Authorization": f"Bearer {token or self.anon_key}"}

    def _request(self, method: str, path: str, *, token: Optional[str] = None,
                 admin: bool = False, **kwargs) -> httpx.Response:
        if not self.configured:
            raise PlatformNotConfigured("Backend is not configured")
        headers = self._headers(token=token, admin=admin)
        headers.update(kwargs.pop("headers", {}) or {})
        try:
            response = self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Platform request {method} {path} failed: {e}")
            raise PlatformUnavailable(f"Network error talking to backend: {e}")
        if response.is_error:
            message = _error_text(response)
            logger.error(f"Platform {method} {path} returned {response.status_code}: {message}")
            raise classify(response.status_code, message)
        return response

    def _json(self, response: httpx.Response) -> Any:
        if not response.content:
            return None
        return response.json()

    # ------------------------------------------
    #  auth
    # ------------------------------------------
    def sign_up(self, email: str, password: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        response = self._request("POST", "/auth/v1/signup",
                                 json={"email": email, "password": password, "data": metadata})
        return self._json(response)

    def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        response = self._request("POST", "/auth/v1/token", params={"grant_type": "password"},
                                 json={"email": email, "password": password})
        return self._json(response)

    def verify_otp(self, email: str, token: str, type: str = "signup") -> Dict[str, Any]:
        response = self._request("POST", "/auth/v1/verify",
                                 json={"email": email, "token": token, "type": type})
        return self._json(response)

    def resend(self, email: str, type: str = "signup") -> None:
        self._request("POST", "/auth/v1/resend", json={"email": email, "type": type})

    def sign_out(self, access_token: str) -> None:
        self._request("POST", "/auth/v1/logout", token=access_token)

    def get_user(self, access_token: str) -> Dict[str, Any]:
        response = self._request("GET", "/auth/v1/user", token=access_token)
        return self._json(response)

    def admin_delete_user(self, user_id: str) -> None:
        self._request("DELETE", f"/auth/v1/admin/users/{quote(user_id)}", admin=True)

    # ------------------------------------------
    #  storage
    # ------------------------------------------
    def list_buckets(self) -> List[Dict[str, Any]]:
        response = self._request("GET", "/storage/v1/bucket", admin=bool(self.service_key))
        return self._json(response) or []

    def create_bucket(self, name: str, public: bool = True,
                      allowed_mime_types: Optional[List[str]] = None,
                      file_size_limit: Optional[int] = None) -> Dict[str, Any]:
        body = {
            "id": name,
            "name": name,
            "public": public,
            "allowed_mime_types": allowed_mime_types,
            "file_size_limit": file_size_limit,
        }
        response = self._request("POST", "/storage/v1/bucket", admin=True, json=body)
        return self._json(response) or {}

    def list_objects(self, bucket: str, prefix: str = "", limit: int = 100) -> List[Dict[str, Any]]:
        response = self._request("POST", f"/storage/v1/object/list/{bucket}",
                                 admin=bool(self.service_key),
                                 json={"prefix": prefix, "limit": limit, "offset": 0})
        return self._json(response) or []

    def upload(self, bucket: str, path: str, data: bytes, content_type: str,
               upsert: bool = False, token: Optional[str] = None) -> Dict[str, Any]:
        headers = {
            "Content-Type": content_type,
            "x-upsert": "true" if upsert else "false",
            "cache-control": "max-age=3600",
        }
        response = self._request("POST", f"/storage/v1/object/{bucket}/{quote(path)}",
                                 token=token, headers=headers, content=data)
        return self._json(response) or {}

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{bucket}/{quote(path)}"

    def probe(self, url: str) -> bool:
        """HEAD the url; True when it answers 2xx. Never raises."""
        try:
            response = self._http.head(url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.debug(f"Probe of {url} failed: {e}")
            return False
        return response.is_success

    # ------------------------------------------
    #  rpc
    # ------------------------------------------
    def exec_sql(self, sql: str) -> Any:
        response = self._request("POST", "/rest/v1/rpc/exec_sql", admin=True, json={"sql": sql})
        return self._json(response)


_client: Optional[PlatformClient] = None


def _get_client() -> PlatformClient:
    global _client
    if _client is not None:
        return _client
    if not settings.platform_configured:
        logger.warning("Platform URL/key not configured; auth and storage calls are disabled")
    _client = PlatformClient(
        settings.SUPABASE_URL,
        settings.SUPABASE_ANON_KEY,
        service_key=settings.SUPABASE_SERVICE_ROLE_KEY,
        timeout=settings.PLATFORM_TIMEOUT_SECONDS,
        configured=settings.platform_configured,
    )
    return _client


def get_platform() -> PlatformClient:
    return _get_client()


def close_platform() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None


__all__ = ["PlatformClient", "PlatformError", "get_platform", "close_platform"]
