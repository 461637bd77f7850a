import httpx
import pytest

from onboarding.backend.client import BackendClient, extract_user_id
from onboarding.backend.errors import BackendErrorKind, backend_error_from_body, classify_backend_error


@pytest.mark.parametrize(
    "code,message,expected",
    [
        ("PGRST202", "Could not find the function public.x", BackendErrorKind.FUNCTION_NOT_FOUND),
        ("42883", "function public.x(uuid) does not exist", BackendErrorKind.FUNCTION_NOT_FOUND),
        (None, "Could not find the function public.x(p_email) in the schema cache", BackendErrorKind.FUNCTION_NOT_FOUND),
        ("23503", "violates foreign key constraint", BackendErrorKind.FOREIGN_KEY_VIOLATION),
        (None, 'violates foreign key constraint "restaurants_user_id_fkey"', BackendErrorKind.FOREIGN_KEY_VIOLATION),
        ("P0001", "User 123 does not exist in auth.users", BackendErrorKind.IDENTITY_NOT_VISIBLE),
        ("user_already_exists", "User already registered", BackendErrorKind.DUPLICATE_EMAIL),
        (None, "User already registered", BackendErrorKind.DUPLICATE_EMAIL),
        ("weak_password", "Password should be at least 6 characters.", BackendErrorKind.WEAK_PASSWORD),
        (None, "Unable to validate email address: invalid format", BackendErrorKind.INVALID_EMAIL),
        ("email_address_invalid", "Email address is invalid", BackendErrorKind.INVALID_EMAIL),
        ("validation_failed", "Unable to validate email address: invalid format", BackendErrorKind.INVALID_EMAIL),
        ("validation_failed", "Signup requires a valid password", BackendErrorKind.UNKNOWN),
        ("23505", "duplicate key value", BackendErrorKind.UNIQUE_VIOLATION),
        ("XX000", "something else", BackendErrorKind.UNKNOWN),
    ],
)
def test_classify_backend_error(code, message, expected):
    assert classify_backend_error(code=code, message=message) is expected


def test_codes_win_over_message_text():
    # A missing function whose message happens to mention a foreign key
    kind = classify_backend_error(code="PGRST202", message="foreign key helper not found")
    assert kind is BackendErrorKind.FUNCTION_NOT_FOUND


def test_backend_error_from_gotrue_body():
    err = backend_error_from_body({"code": 422, "error_code": "user_already_exists", "msg": "User already registered"}, status_code=422)
    assert err.kind is BackendErrorKind.DUPLICATE_EMAIL
    assert err.code == "user_already_exists"
    assert err.message == "User already registered"


def test_extract_user_id_shapes():
    assert extract_user_id({"id": "u1"}) == "u1"
    assert extract_user_id({"user": {"id": "u2"}, "session": None}) == "u2"
    assert extract_user_id({"user": None}) is None
    assert extract_user_id(None) is None


@pytest.mark.asyncio
async def test_rpc_sends_auth_headers_and_returns_data(backend, backend_client):
    result = await backend_client.rpc("check_email_availability", {"p_email": "a@b.mx"})

    assert result.ok is True
    assert result.data is True
    headers = backend.request_headers[-1]
    assert headers["apikey"] == "anon-test-key"
    assert headers["authorization"] == "Bearer anon-test-key"


@pytest.mark.asyncio
async def test_rpc_missing_function_is_classified(backend, backend_client):
    backend.missing.add("register_restaurant_v2")

    result = await backend_client.rpc("register_restaurant_v2", {"p_user_id": "u1"})

    assert result.ok is False
    assert result.status_code == 404
    assert result.error.is_function_not_found


@pytest.mark.asyncio
async def test_rpc_success_false_envelope_is_an_error(backend, backend_client):
    backend.script("register_restaurant_v2", (200, {"success": False, "error": 'insert violates foreign key constraint "restaurants_user_id_fkey"'}))

    result = await backend_client.rpc("register_restaurant_v2", {"p_user_id": "u1"})

    assert result.ok is False
    assert result.status_code == 200
    assert result.error.kind is BackendErrorKind.FOREIGN_KEY_VIOLATION


@pytest.mark.asyncio
async def test_upsert_uses_merge_duplicates(backend, backend_client):
    backend.profiles["u1"] = {"id": "u1"}

    result = await backend_client.upsert("delivery_agent_profiles", {"user_id": "u1", "status": "pending"}, on_conflict="user_id")

    assert result.ok is True
    assert result.data is None
    assert backend.request_headers[-1]["prefer"] == "resolution=merge-duplicates,return=minimal"


@pytest.mark.asyncio
async def test_transport_error_becomes_result():
    def _raise(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with BackendClient(base_url="http://backend.test", api_key="k", transport=httpx.MockTransport(_raise)) as client:
        result = await client.rpc("check_email_availability", {"p_email": "a@b.mx"})

    assert result.ok is False
    assert result.status_code is None
    assert result.error.kind is BackendErrorKind.TRANSPORT


@pytest.mark.asyncio
async def test_non_json_error_body_is_kept_raw():
    def _html(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>bad gateway</html>", headers={"content-type": "text/html"})

    async with BackendClient(base_url="http://backend.test", api_key="k", transport=httpx.MockTransport(_html)) as client:
        result = await client.rpc("anything", {})

    assert result.ok is False
    assert result.status_code == 502
    assert result.data == {"raw": "<html>bad gateway</html>"}
    assert result.error.kind is BackendErrorKind.UNKNOWN


@pytest.mark.asyncio
async def test_pre_read_responses_report_elapsed_time():
    # MockTransport hands back responses whose body is already read
    def _ok(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=True)

    def _conflict(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"code": "23505", "message": "duplicate key value"})

    async with BackendClient(base_url="http://backend.test", api_key="k", transport=httpx.MockTransport(_ok)) as client:
        ok = await client.rpc("check_email_availability", {"p_email": "a@b.mx"})
    async with BackendClient(base_url="http://backend.test", api_key="k", transport=httpx.MockTransport(_conflict)) as client:
        failed = await client.rpc("create_account_public", {"p_user_id": "u1"})

    assert ok.ok is True
    assert isinstance(ok.elapsed_ms, int) and ok.elapsed_ms >= 0
    assert failed.ok is False
    assert failed.error.kind is BackendErrorKind.UNIQUE_VIOLATION
    assert isinstance(failed.elapsed_ms, int) and failed.elapsed_ms >= 0
