"""
Pytest configuration for member_broker. Env is set before the app modules are imported;
Umbraco is replaced by an in-memory fake behind httpx.MockTransport.
"""
import asyncio
import json
import os
import uuid
from urllib.parse import parse_qs

os.environ["UMBRACO_HOST"] = "http://umbraco.test"
os.environ["UMBRACO_CLIENT_ID"] = "broker-client"
os.environ["UMBRACO_CLIENT_SECRET"] = "broker-secret"
os.environ["UMBRACO_MEMBER_TYPE_ID"] = "type-member"
os.environ["UMBRACO_MEMBER_GROUP_REGULAR_ID"] = "group-regular"
os.environ["UMBRACO_MEMBER_GROUP_VIP_ID"] = "group-vip"
os.environ.pop("UMBRACO_TOKEN_URL", None)

import httpx  # noqa: E402
import pytest  # noqa: E402

from member_broker.directory import MemberDirectoryClient  # noqa: E402
from member_broker.token_provider import AccessTokenProvider  # noqa: E402

HOST = "http://umbraco.test"
TOKEN_PATH = "/umbraco/management/api/v1/security/back-office/token"
MEMBER_PATH = "/umbraco/management/api/v1/member"
FILTER_PATH = "/umbraco/management/api/v1/filter/member"


class FakeUmbraco:
    """Just enough of the Umbraco Management API: token grant and member CRUD."""

    def __init__(self):
        self.members: dict[str, dict] = {}
        self.grants = 0
        self.grant_forms: list[dict] = []
        self.token_lifetime: int | None = 300
        self.token_body: dict | None = None
        self.token_response: httpx.Response | None = None
        self.requests: list[httpx.Request] = []
        self.failures: dict[str, httpx.Response] = {}
        self._issued: set[str] = set()

    def api_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path != TOKEN_PATH]

    def fail_next(self, method: str, response: httpx.Response) -> None:
        """Answer the next API call with this method with the given response."""
        self.failures[method] = response

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == TOKEN_PATH:
            return self._token(request)

        auth = request.headers.get("Authorization", "")
        if not auth.startswith("Bearer ") or auth[7:] not in self._issued:
            return httpx.Response(401)
        if request.method in self.failures:
            return self.failures.pop(request.method)

        if path == FILTER_PATH and request.method == "GET":
            return self._filter(request)
        if path == MEMBER_PATH and request.method == "POST":
            body = json.loads(request.content)
            member_key = str(uuid.uuid4())
            self.members[member_key] = {"id": member_key, **body}
            return httpx.Response(201, headers={"Location": f"{HOST}{MEMBER_PATH}/{member_key}"})
        if path.startswith(MEMBER_PATH + "/"):
            member_key = path.rsplit("/", 1)[1]
            if member_key not in self.members:
                return httpx.Response(404, json={"title": "Not Found", "detail": "The member could not be found"})
            if request.method == "PUT":
                self.members[member_key].update(json.loads(request.content))
                return httpx.Response(200)
            if request.method == "DELETE":
                del self.members[member_key]
                return httpx.Response(200)
        return httpx.Response(405)

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        self.grant_forms.append(form)
        if form.get("client_id") != "broker-client" or form.get("client_secret") != "broker-secret":
            return httpx.Response(400, json={"error": "invalid_client", "error_description": "Bad credentials"})
        self.grants += 1
        if self.token_response is not None:
            return self.token_response
        body = self.token_body
        if body is None:
            body = {"access_token": f"token-{self.grants}", "token_type": "Bearer"}
            if self.token_lifetime is not None:
                body["expires_in"] = self.token_lifetime
        if body.get("access_token"):
            self._issued.add(body["access_token"])
        return httpx.Response(200, json=body)

    def _filter(self, request: httpx.Request) -> httpx.Response:
        term = request.url.params.get("filter", "")
        take = int(request.url.params.get("take", "100"))
        matches = [m for m in self.members.values() if term in m["username"]]
        items = [
            {
                "id": m["id"],
                "email": m["email"],
                "username": m["username"],
                "isApproved": m["isApproved"],
                "groups": m["groups"],
                "variants": m["variants"],
            }
            for m in matches[:take]
        ]
        return httpx.Response(200, json={"total": len(matches), "items": items})


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def umbraco():
    return FakeUmbraco()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def http_client(umbraco):
    client = httpx.AsyncClient(transport=httpx.MockTransport(umbraco.handler))
    yield client
    asyncio.run(client.aclose())


@pytest.fixture
def tokens(http_client, clock):
    return AccessTokenProvider(
        http_client,
        f"{HOST}{TOKEN_PATH}",
        "broker-client",
        "broker-secret",
        expiry_leeway=10,
        clock=clock,
    )


@pytest.fixture
def directory(http_client, tokens):
    return MemberDirectoryClient(
        http_client,
        HOST,
        tokens,
        member_type_id="type-member",
        regular_group_id="group-regular",
        vip_group_id="group-vip",
    )
