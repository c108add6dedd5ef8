from __future__ import annotations

import copy
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from http import HTTPStatus
from http.client import HTTPMessage
from types import SimpleNamespace
from typing import Any
from urllib.parse import parse_qsl, unquote, urlsplit

import pytest
import requests
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict
from typer.testing import CliRunner

from silverpeak_orchestrator.client import OrchestratorClient
from silverpeak_orchestrator.connection import ConnectionParams

SERVER = "https://orchestrator.example.com"

LOGIN_PATH = "/gms/rest/authentication/login"
LOGOUT_PATH = "/gms/rest/authentication/logout"
VERSIONS_PATH = "/gms/rest/gms/versions"
TEMPLATE_GROUPS_PATH = "/gms/rest/template/templateGroups"
TEMPLATE_CREATE_PATH = "/gms/rest/template/templateCreate"
TEMPLATE_SELECTION_PATH = "/gms/rest/template/templateSelection"
TEMPLATE_ASSOCIATIONS_PATH = "/gms/rest/template/applianceAssociation"
ADDRESS_GROUP_PATH = "/gms/rest/ipObjects/addressGroup"
SERVICE_GROUP_PATH = "/gms/rest/ipObjects/serviceGroup"
APPLICATION_TAGS_PATH = "/gms/rest/applicationDefinition/applicationTags"

_WRONG_STYLE = object()


@dataclass
class RecordedRequest:
    method: str
    path: str
    raw_path: str
    query: dict[str, str]
    body: Any
    headers: dict[str, str] = field(default_factory=dict)


class InMemoryOrchestrator(BaseAdapter):
    """Transport adapter answering Orchestrator API calls from in-memory state.

    Resource identifiers are only accepted in the style matching ``version``:
    query parameters for 9.3+, path segments before that.
    """

    def __init__(self, version: str = "9.3.3.40000") -> None:
        super().__init__()
        self.version = version
        self.csrf_token = "csrf-token-1"
        self.csrf_cookie_attributes: str | None = "Path=/"
        self.requests: list[RecordedRequest] = []
        self.stubs: dict[tuple[str, str], tuple[int, Any]] = {}
        self.template_groups: dict[str, dict[str, Any]] = {}
        self.address_groups: dict[str, dict[str, Any]] = {}
        self.service_groups: dict[str, dict[str, Any]] = {}
        self.application_groups: dict[str, Any] = {}
        self.builtin_application_groups: dict[str, Any] = {}
        self.associations: dict[str, list[str]] = {}
        self._set_cookie: str | None = None

    @property
    def modern(self) -> bool:
        major, minor = (int(part) for part in self.version.split(".")[:2])
        return (major == 9 and minor >= 3) or major > 9

    def stub(self, method: str, path: str, status: int, payload: Any = None) -> None:
        self.stubs[(method, path)] = (status, payload)

    def calls(self, method: str, path: str) -> list[RecordedRequest]:
        return [r for r in self.requests if r.method == method and r.path == path]

    def writes(self) -> list[RecordedRequest]:
        return [r for r in self.requests if r.method in {"POST", "PUT", "DELETE"}]

    def send(
        self,
        request: requests.PreparedRequest,
        stream: bool = False,
        timeout: Any = None,
        verify: Any = True,
        cert: Any = None,
        proxies: Any = None,
    ) -> requests.Response:
        del stream, timeout, verify, cert, proxies

        split = urlsplit(request.url or "")
        method = request.method or "GET"
        path = unquote(split.path)
        query = dict(parse_qsl(split.query, keep_blank_values=True))
        body = json.loads(request.body) if request.body else None

        self.requests.append(
            RecordedRequest(
                method=method,
                path=path,
                raw_path=split.path,
                query=query,
                body=body,
                headers=dict(request.headers),
            )
        )

        status, payload = self._route(method, path, query, body)
        set_cookie, self._set_cookie = self._set_cookie, None
        return self._build_response(request, status, payload, set_cookie)

    def close(self) -> None:
        pass

    def _route(
        self, method: str, path: str, query: dict[str, str], body: Any
    ) -> tuple[int, Any]:
        if (method, path) in self.stubs:
            return self.stubs[(method, path)]

        if method == "POST" and path == LOGIN_PATH:
            return self._login(body)
        if method == "GET" and path == LOGOUT_PATH:
            return 200, {}
        if method == "GET" and path == VERSIONS_PATH:
            return 200, {"current": self.version}
        if method == "GET" and path == TEMPLATE_ASSOCIATIONS_PATH:
            return 200, copy.deepcopy(self.associations)
        if path == APPLICATION_TAGS_PATH:
            return self._application_groups(method, query, body)
        if method == "POST" and path == TEMPLATE_CREATE_PATH:
            self.template_groups[body["name"]] = copy.deepcopy(body)
            return 204, None
        if path.startswith(TEMPLATE_SELECTION_PATH):
            return self._template_selection(method, path, query, body)
        if path.startswith(TEMPLATE_GROUPS_PATH):
            return self._template_groups(method, path, query, body)
        if path == f"{ADDRESS_GROUP_PATH}Names":
            return 200, list(self.address_groups)
        if path == f"{SERVICE_GROUP_PATH}Names":
            return 200, list(self.service_groups)
        if path.startswith(ADDRESS_GROUP_PATH):
            return self._ip_objects(self.address_groups, ADDRESS_GROUP_PATH, method, path, query, body)
        if path.startswith(SERVICE_GROUP_PATH):
            return self._ip_objects(self.service_groups, SERVICE_GROUP_PATH, method, path, query, body)

        return 404, {"error": f"No route for {method} {path}"}

    def _identify(self, collection: str, path: str, query: dict[str, str], key: str) -> Any:
        if self.modern:
            if path != collection:
                return _WRONG_STYLE
            return query.get(key)
        if path == collection:
            return None
        return path[len(collection) + 1 :]

    def _login(self, body: Any) -> tuple[int, Any]:
        if body != {"user": "admin", "password": "secret"}:
            return 401, {"error": "Invalid credentials"}
        if self.csrf_cookie_attributes is not None:
            self._set_cookie = f"orchCsrfToken={self.csrf_token}; {self.csrf_cookie_attributes}"
        return 200, {}

    def _application_groups(
        self, method: str, query: dict[str, str], body: Any
    ) -> tuple[int, Any]:
        builtin = query.get("resourceKey") == "builtIn"
        if method == "GET":
            store = self.builtin_application_groups if builtin else self.application_groups
            return 200, copy.deepcopy(store)
        if method == "POST":
            if builtin:
                self.builtin_application_groups = copy.deepcopy(body)
            else:
                self.application_groups = copy.deepcopy(body)
            return 200, None
        return 405, {"error": "Method not allowed"}

    def _template_selection(
        self, method: str, path: str, query: dict[str, str], body: Any
    ) -> tuple[int, Any]:
        name = self._identify(TEMPLATE_SELECTION_PATH, path, query, "templateGroup")
        if method != "POST" or name is _WRONG_STYLE or name not in self.template_groups:
            return 404, {"error": f"Template group {name} not found"}
        group = self.template_groups[name]
        group["selectedTemplates"] = [{"templateName": template} for template in body]
        return 200, copy.deepcopy(group)

    def _template_groups(
        self, method: str, path: str, query: dict[str, str], body: Any
    ) -> tuple[int, Any]:
        name = self._identify(TEMPLATE_GROUPS_PATH, path, query, "templateGroup")
        if name is _WRONG_STYLE:
            return 404, {"error": f"No route for {method} {path}"}
        if method == "GET" and name is None:
            return 200, copy.deepcopy(list(self.template_groups.values()))
        if name not in self.template_groups:
            return 404, {"error": f"Template group {name} not found"}

        if method == "GET":
            group = copy.deepcopy(self.template_groups[name])
            return 200, [group] if self.modern else group
        if method == "POST":
            self.template_groups[name].update(copy.deepcopy(body))
            return 200, copy.deepcopy(self.template_groups[name])
        if method == "DELETE":
            del self.template_groups[name]
            return 204, None
        return 405, {"error": "Method not allowed"}

    def _ip_objects(
        self,
        store: dict[str, dict[str, Any]],
        collection: str,
        method: str,
        path: str,
        query: dict[str, str],
        body: Any,
    ) -> tuple[int, Any]:
        if method in {"POST", "PUT"} and path == collection:
            if method == "PUT" and body["name"] not in store:
                return 404, {"error": f"{body['name']} does not exist"}
            store[body["name"]] = copy.deepcopy(body)
            return 204, None

        name = self._identify(collection, path, query, "name")
        if name is _WRONG_STYLE:
            return 404, {"error": f"No route for {method} {path}"}
        if method == "GET" and name is None:
            return 200, copy.deepcopy(list(store.values()))
        if name not in store:
            return 404, {"error": f"{name} does not exist"}
        if method == "GET":
            return 200, copy.deepcopy(store[name])
        if method == "DELETE":
            del store[name]
            return 204, None
        return 405, {"error": "Method not allowed"}

    @staticmethod
    def _build_response(
        request: requests.PreparedRequest,
        status: int,
        payload: Any,
        set_cookie: str | None = None,
    ) -> requests.Response:
        response = requests.Response()
        response.status_code = status
        response.reason = HTTPStatus(status).phrase
        response.url = request.url or ""
        response.request = request
        response.encoding = "utf-8"
        response._content_consumed = True

        if payload is None:
            response.headers = CaseInsensitiveDict()
            response._content = b""
        elif isinstance(payload, str):
            response.headers = CaseInsensitiveDict({"Content-Type": "text/plain"})
            response._content = payload.encode("utf-8")
        else:
            response.headers = CaseInsensitiveDict({"Content-Type": "application/json"})
            response._content = json.dumps(payload).encode("utf-8")

        if set_cookie is not None:
            # requests reads Set-Cookie from the raw http.client message.
            message = HTTPMessage()
            message["Set-Cookie"] = set_cookie
            response.headers["Set-Cookie"] = set_cookie
            response.raw = SimpleNamespace(_original_response=SimpleNamespace(msg=message))
        return response


type Connect = Callable[..., OrchestratorClient]


@pytest.fixture
def orchestrator() -> InMemoryOrchestrator:
    return InMemoryOrchestrator()


@pytest.fixture
def connect(orchestrator: InMemoryOrchestrator) -> Connect:
    def _connect(server: str = SERVER, **kwargs: Any) -> OrchestratorClient:
        client = OrchestratorClient(server, **kwargs)
        client.transport.session.mount(server, orchestrator)
        return client

    return _connect


@pytest.fixture
def client(connect: Connect) -> OrchestratorClient:
    return connect(user="admin", password="secret")


@pytest.fixture
def api_key_client(connect: Connect) -> OrchestratorClient:
    return connect(api_key="api-key-1")


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def connection_args() -> list[str]:
    return [
        "--server",
        SERVER,
        "--user",
        "admin",
        "--password",
        "secret",
    ]


@pytest.fixture
def cli_orchestrator(
    monkeypatch: pytest.MonkeyPatch,
    orchestrator: InMemoryOrchestrator,
    connect: Connect,
) -> InMemoryOrchestrator:
    def _create_client(params: ConnectionParams) -> OrchestratorClient:
        return connect(user=params.user, password=params.password, api_key=params.api_key)

    monkeypatch.setattr("silverpeak_orchestrator.cli.create_client", _create_client)
    monkeypatch.setattr(
        "silverpeak_orchestrator.commands.address_groups.create_client", _create_client
    )
    return orchestrator
