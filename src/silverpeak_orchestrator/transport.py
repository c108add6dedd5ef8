"""HTTP transport used by the Orchestrator client."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import requests
import urllib3
from requests.cookies import get_cookie_header

from silverpeak_orchestrator.errors import OrchestratorConnectionError

type JsonObject = dict[str, Any]
type JsonList = list[Any]
type QueryParams = Mapping[str, Any]

logger = logging.getLogger("silverpeak_orchestrator.transport")

API_KEY_HEADER = "X-Auth-Token"
CSRF_HEADER = "X-XSRF-TOKEN"


class HttpTransport:
    """
    Thin wrapper around a ``requests.Session`` bound to one Orchestrator server.

    The session owns the cookie jar and the persistent headers; both live as long
    as the transport does.

    Usage:
        transport = HttpTransport("https://orchestrator.example.com", api_key="...")
        response = transport.request("GET", "/gms/rest/gms/versions")
    """

    def __init__(
        self,
        server: str,
        api_key: str | None = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        session: requests.Session | None = None,
    ) -> None:
        self._server = server.rstrip("/")
        self._timeout = timeout
        self._verify_ssl = verify_ssl

        if not verify_ssl:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        self.session = session if session is not None else requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )
        if api_key:
            self.session.headers[API_KEY_HEADER] = api_key

    @property
    def server(self) -> str:
        return self._server

    def set_persistent_header(self, name: str, value: str) -> None:
        self.session.headers[name] = value

    def remove_persistent_header(self, name: str) -> None:
        self.session.headers.pop(name, None)

    def cookie_value(self, name: str) -> str | None:
        """Return the value of the named cookie the session would send to the server.

        The cookie jar's own policy decides what applies, so host-only cookies
        of dotless hosts (stored as ``<host>.local``) are found as well.
        """

        request = requests.Request("GET", f"{self._server}/")
        header = get_cookie_header(self.session.cookies, request)
        if not header:
            return None
        for pair in header.split(";"):
            key, _, value = pair.strip().partition("=")
            if key == name:
                return value
        return None

    def request(
        self,
        method: str,
        path: str,
        params: QueryParams | None = None,
        json: Any = None,
    ) -> requests.Response:
        """
        Send a request and return the raw response regardless of its status.

        Args:
            method: HTTP method
            path: API path, appended to the server URL
            params: query parameters, encoded into the URL
            json: request body, serialized as JSON when not None
        """
        url = f"{self._server}/{path.lstrip('/')}"
        logger.debug("%s %s params=%s", method.upper(), url, dict(params) if params else {})

        try:
            response = self.session.request(
                method.upper(),
                url,
                params=dict(params) if params else None,
                json=json,
                timeout=self._timeout,
                verify=self._verify_ssl,
            )
        except requests.RequestException as err:
            logger.error("%s %s failed: %s", method.upper(), url, err)
            raise OrchestratorConnectionError(f"{method.upper()} {url} failed: {err}") from err

        logger.debug("%s %s -> %s", method.upper(), url, response.status_code)
        return response

    def get(self, path: str, params: QueryParams | None = None) -> requests.Response:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> requests.Response:
        return self.request("POST", path, json=json)

    def post_with_params(self, path: str, params: QueryParams, json: Any = None) -> requests.Response:
        """POST a JSON body while identifying the target resource through query parameters."""

        return self.request("POST", path, params=params, json=json)

    def put(self, path: str, json: Any = None) -> requests.Response:
        return self.request("PUT", path, json=json)

    def delete(self, path: str, params: QueryParams | None = None) -> requests.Response:
        return self.request("DELETE", path, params=params)

    def close(self) -> None:
        self.session.close()
