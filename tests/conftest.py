import json
import uuid
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
import pytest_asyncio

from onboarding.backend.client import BackendClient
from onboarding.provisioning.orchestrator import RegistrationOrchestrator
from onboarding.provisioning.policy import ProvisioningPolicy


BASE_URL = "http://backend.test"
ANON_KEY = "anon-test-key"


def not_found(name: str) -> tuple[int, dict]:
    return 404, {
        "code": "PGRST202",
        "message": f"Could not find the function public.{name} in the schema cache",
        "details": None,
        "hint": None,
    }


def identity_not_visible(user_id: str) -> tuple[int, dict]:
    return 400, {"code": "P0001", "message": f"User {user_id} does not exist in auth.users", "details": None, "hint": None}


def fk_violation(table: str) -> tuple[int, dict]:
    return 409, {
        "code": "23503",
        "message": f'insert or update on table "{table}" violates foreign key constraint "{table}_user_id_fkey"',
        "details": None,
        "hint": None,
    }


def server_error(message: str = "boom") -> tuple[int, dict]:
    return 500, {"code": "XX000", "message": message, "details": None, "hint": None}


@dataclass
class FakeBackend:
    """
    In-memory stand-in for the auth + PostgREST backend, served through
    httpx.MockTransport so the real BackendClient is exercised.
    """

    missing: set[str] = field(default_factory=set)
    # function/table name -> queued (status, body) answers, consumed first
    scripted: dict[str, list[tuple[int, Any]]] = field(default_factory=dict)

    taken_emails: set[str] = field(default_factory=set)
    taken_phones: set[str] = field(default_factory=set)
    taken_names: set[str] = field(default_factory=set)
    signup_error: tuple[int, dict] | None = None
    signup_without_id: bool = False

    auth_users: dict[str, dict] = field(default_factory=dict)
    profiles: dict[str, dict] = field(default_factory=dict)
    restaurants: dict[str, dict] = field(default_factory=dict)
    delivery_agents: dict[str, dict] = field(default_factory=dict)
    accounts: dict[str, dict] = field(default_factory=dict)

    calls: list[tuple[str, Any]] = field(default_factory=list)
    request_headers: list[httpx.Headers] = field(default_factory=list)

    def script(self, name: str, *answers: tuple[int, Any]) -> None:
        self.scripted.setdefault(name, []).extend(answers)

    def names_called(self) -> list[str]:
        return [name for name, _ in self.calls]

    def count(self, name: str) -> int:
        return self.names_called().count(name)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    # transport

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.request_headers.append(request.headers)
        body = json.loads(request.content) if request.content else None
        path = request.url.path

        if path == "/auth/v1/signup":
            self.calls.append(("signup", body))
            return self._signup(body, request)
        if path.startswith("/rest/v1/rpc/"):
            name = path.removeprefix("/rest/v1/rpc/")
            self.calls.append((name, body))
            return self._answer(name, body, self._rpc)
        if path.startswith("/rest/v1/"):
            table = path.removeprefix("/rest/v1/")
            self.calls.append((table, body))
            return self._answer(table, body, self._upsert)
        return httpx.Response(404, json={"message": "unknown path"})

    def _answer(self, name: str, body: Any, default) -> httpx.Response:
        queue = self.scripted.get(name)
        if queue:
            status, payload = queue.pop(0)
            return httpx.Response(status, json=payload)
        if name in self.missing:
            status, payload = not_found(name)
            return httpx.Response(status, json=payload)
        return default(name, body)

    def _signup(self, body: dict, request: httpx.Request) -> httpx.Response:
        if self.signup_error is not None:
            status, payload = self.signup_error
            return httpx.Response(status, json=payload)
        email = body["email"]
        if any(u["email"] == email for u in self.auth_users.values()):
            return httpx.Response(422, json={"code": 422, "error_code": "user_already_exists", "msg": "User already registered"})
        if self.signup_without_id:
            return httpx.Response(200, json={"user": None, "session": None})
        user_id = str(uuid.uuid4())
        self.auth_users[user_id] = {
            "email": email,
            "password": body["password"],
            "data": body["data"],
            "redirect_to": request.url.params.get("redirect_to"),
        }
        return httpx.Response(200, json={"id": user_id, "email": email, "user_metadata": body["data"]})

    def _rpc(self, name: str, p: dict) -> httpx.Response:
        if name == "check_email_availability":
            taken = p["p_email"] in self.taken_emails or any(u["email"] == p["p_email"] for u in self.auth_users.values())
            return httpx.Response(200, json=not taken)
        if name == "check_phone_availability":
            return httpx.Response(200, json=p["p_phone"] not in self.taken_phones)
        if name in ("check_restaurant_name_availability", "check_restaurant_name_available"):
            return httpx.Response(200, json=p["p_name"] not in self.taken_names)

        if name in ("ensure_user_profile_v2", "ensure_user_profile_public"):
            user_id = p["p_user_id"]
            if user_id not in self.auth_users:
                status, payload = identity_not_visible(user_id)
                return httpx.Response(status, json=payload)
            self.profiles[user_id] = {**self.profiles.get(user_id, {}), **p}
            return httpx.Response(200, json={"success": True, "user_id": user_id})

        if name == "register_restaurant_v2":
            user_id = p["p_user_id"]
            if user_id not in self.profiles:
                status, payload = fk_violation("restaurants")
                return httpx.Response(status, json=payload)
            self.restaurants[user_id] = {"name": p["p_restaurant_name"], "status": "pending", "phone": p["p_phone"]}
            self.accounts[user_id] = {"account_type": "restaurant", "balance": 0.0}
            return httpx.Response(200, json={"success": True, "restaurant_id": f"r-{user_id}", "account_id": f"a-{user_id}"})

        if name in ("register_delivery_agent_v2", "register_delivery_agent"):
            user_id = p["p_user_id"]
            if user_id not in self.profiles:
                status, payload = fk_violation("delivery_agent_profiles")
                return httpx.Response(status, json=payload)
            self.delivery_agents[user_id] = {"status": "pending", "city": p["p_city"], "via": name}
            self.accounts[user_id] = {"account_type": "delivery_agent", "balance": 0.0}
            return httpx.Response(200, json={"success": True})

        if name == "create_restaurant_public":
            self.restaurants[p["p_user_id"]] = {"name": p["p_name"], "status": p["p_status"], "phone": p["p_phone"]}
            return httpx.Response(200, json={"success": True})

        if name == "create_account_public":
            if p["p_user_id"] in self.accounts:
                return httpx.Response(409, json={"code": "23505", "message": "duplicate key value violates unique constraint \"accounts_user_id_key\""})
            self.accounts[p["p_user_id"]] = {"account_type": p["p_account_type"], "balance": p["p_balance"]}
            return httpx.Response(200, json={"success": True})

        status, payload = not_found(name)
        return httpx.Response(status, json=payload)

    def _upsert(self, table: str, row: dict) -> httpx.Response:
        if table == "users":
            self.profiles[row["id"]] = {**self.profiles.get(row["id"], {}), **row}
            return httpx.Response(201)
        if table == "delivery_agent_profiles":
            if row["user_id"] not in self.profiles:
                status, payload = fk_violation("delivery_agent_profiles")
                return httpx.Response(status, json=payload)
            self.delivery_agents[row["user_id"]] = {**row, "via": "table"}
            return httpx.Response(201)
        return httpx.Response(404, json={"code": "42P01", "message": f'relation "public.{table}" does not exist'})


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.delays)


class ReconcileRecorder:
    def __init__(self):
        self.scheduled: list[tuple[str, str]] = []

    async def __call__(self, user_id: str, account_type: str) -> None:
        self.scheduled.append((user_id, account_type))


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def reconciler() -> ReconcileRecorder:
    return ReconcileRecorder()


@pytest.fixture
def policy() -> ProvisioningPolicy:
    return ProvisioningPolicy(profile_max_attempts=10, profile_retry_delay_s=0.3, domain_retry_delay_s=0.35)


@pytest_asyncio.fixture
async def backend_client(backend: FakeBackend):
    client = BackendClient(base_url=BASE_URL, api_key=ANON_KEY, transport=backend.transport)
    yield client
    await client.aclose()


@pytest.fixture
def orchestrator(backend_client, policy, sleeps, reconciler) -> RegistrationOrchestrator:
    return RegistrationOrchestrator(
        backend_client,
        policy=policy,
        sleep=sleeps,
        reconcile_financial_account=reconciler,
        email_redirect_url="https://portal.test/confirm",
        default_country_code="52",
    )
