from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from onboarding.backend.errors import (
    BackendError,
    BackendErrorKind,
    backend_error_from_body,
)


@dataclass(frozen=True)
class BackendResult:
    ok: bool
    status_code: int | None
    data: Any = None
    error: BackendError | None = None

    elapsed_ms: int | None = None


def _is_json_response(resp: httpx.Response) -> bool:
    ct = (resp.headers.get("content-type") or "").lower()
    return "application/json" in ct or ct.endswith("+json")


def _cap_text(s: str, *, max_chars: int) -> str:
    if len(s) <= max_chars:
        return s
    return s[:max_chars] + f"...(truncated, {len(s)} chars)"


def _envelope_error(data: Any) -> BackendError | None:
    # Orchestrator RPCs report soft failures as {"success": false, "error": "..."}
    if isinstance(data, dict) and data.get("success") is False:
        return backend_error_from_body({"message": data.get("error") or "RPC reported success=false", "code": data.get("code")})
    return None


class BackendClient:
    """
    Thin async client for the managed backend (GoTrue auth + PostgREST).

    - One AsyncClient per BackendClient; build a new one per registration.
    - Never raises for HTTP or transport failures: every call returns a
      BackendResult with a classified BackendError.
    - Does NOT retry; the provisioning stages own their retry policy.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 20.0,
        max_response_body_chars: int = 20_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._max_body = max_response_body_chars
        self._default_headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
        }
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout_seconds),
            headers=self._default_headers,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def _post(
        self,
        path: str,
        *,
        json_body: Any,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> BackendResult:
        started = time.perf_counter()
        try:
            resp = await self._client.post(path, json=json_body, params=dict(params or {}), headers=dict(headers or {}))
        except httpx.TimeoutException as e:
            return BackendResult(
                ok=False,
                status_code=None,
                error=BackendError(kind=BackendErrorKind.TRANSPORT, message=f"timeout: {e}", code="TIMEOUT"),
            )
        except httpx.RequestError as e:
            # DNS errors, connection refused, TLS, etc.
            return BackendResult(
                ok=False,
                status_code=None,
                error=BackendError(kind=BackendErrorKind.TRANSPORT, message=str(e), code="REQUEST_ERROR"),
            )

        data: Any = None
        if resp.content:
            if _is_json_response(resp):
                try:
                    data = resp.json()
                except ValueError:
                    data = {"raw": _cap_text(resp.text, max_chars=self._max_body)}
            else:
                data = {"raw": _cap_text(resp.text, max_chars=self._max_body)}

        elapsed_ms = int((time.perf_counter() - started) * 1000)

        if 200 <= resp.status_code < 300:
            return BackendResult(ok=True, status_code=resp.status_code, data=data, elapsed_ms=elapsed_ms)

        return BackendResult(
            ok=False,
            status_code=resp.status_code,
            data=data,
            error=backend_error_from_body(data, status_code=resp.status_code),
            elapsed_ms=elapsed_ms,
        )

    async def sign_up(
        self,
        *,
        email: str,
        password: str,
        data: dict[str, Any],
        redirect_to: str | None = None,
    ) -> BackendResult:
        params = {"redirect_to": redirect_to} if redirect_to else None
        return await self._post(
            "/auth/v1/signup",
            json_body={"email": email, "password": password, "data": data},
            params=params,
        )

    async def rpc(self, name: str, params: dict[str, Any]) -> BackendResult:
        result = await self._post(f"/rest/v1/rpc/{name}", json_body=params)
        if not result.ok:
            return result

        soft_error = _envelope_error(result.data)
        if soft_error is not None:
            return BackendResult(
                ok=False,
                status_code=result.status_code,
                data=result.data,
                error=soft_error,
                elapsed_ms=result.elapsed_ms,
            )
        return result

    async def upsert(self, table: str, row: dict[str, Any], *, on_conflict: str) -> BackendResult:
        return await self._post(
            f"/rest/v1/{table}",
            json_body=row,
            params={"on_conflict": on_conflict},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )


def extract_user_id(data: Any) -> str | None:
    """GoTrue returns the user either at the top level or under "user"."""
    if not isinstance(data, dict):
        return None
    user = data.get("user")
    if isinstance(user, dict) and user.get("id"):
        return str(user["id"])
    if data.get("id"):
        return str(data["id"])
    return None
