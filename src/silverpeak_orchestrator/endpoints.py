"""Endpoint styles for the Orchestrator REST API before and after release 9.3.

Orchestrator 9.3 moved resource identifiers out of the URL path and into named
query parameters. Each style turns a collection path plus an identifier into the
path and query parameters the server of that release expects.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from requests.utils import quote

from silverpeak_orchestrator.errors import OrchestratorVersionError

DOMAIN_APPLICATIONS_BASE = "dnsClassification"
APPLICATION_DEFINITION_PATH = "/gms/rest/applicationDefinition"


@dataclass(frozen=True, slots=True)
class Endpoint:
    """Resolved request target."""

    path: str
    params: dict[str, Any] = field(default_factory=dict)


class EndpointStyle(Protocol):
    """URL rules for one API tier."""

    modern: bool

    def resource(
        self,
        collection: str,
        key: str,
        value: str,
        params: Mapping[str, Any] | None = None,
    ) -> Endpoint: ...

    def domain_applications(self, resource_key: str) -> Endpoint: ...

    def single_templategroup(self, payload: Any) -> Any: ...


class LegacyEndpointStyle:
    """Pre-9.3 rules: the identifier is a percent-encoded path segment."""

    modern = False

    def resource(
        self,
        collection: str,
        key: str,
        value: str,
        params: Mapping[str, Any] | None = None,
    ) -> Endpoint:
        del key
        return Endpoint(f"{collection}/{quote(str(value), safe='')}", dict(params or {}))

    def domain_applications(self, resource_key: str) -> Endpoint:
        return Endpoint(
            f"{APPLICATION_DEFINITION_PATH}/{DOMAIN_APPLICATIONS_BASE}",
            {"resourceKey": resource_key},
        )

    def single_templategroup(self, payload: Any) -> Any:
        return payload


class ModernEndpointStyle:
    """9.3+ rules: the identifier is a named query parameter on the collection path."""

    modern = True

    def resource(
        self,
        collection: str,
        key: str,
        value: str,
        params: Mapping[str, Any] | None = None,
    ) -> Endpoint:
        return Endpoint(collection, {key: value, **(params or {})})

    def domain_applications(self, resource_key: str) -> Endpoint:
        return Endpoint(
            APPLICATION_DEFINITION_PATH,
            {"resourceKey": resource_key, "base": DOMAIN_APPLICATIONS_BASE},
        )

    def single_templategroup(self, payload: Any) -> Any:
        # a single-element array instead of the object
        if isinstance(payload, list):
            return payload[0] if payload else None
        return payload


def parse_version(version: str) -> tuple[int, int]:
    """Return ``(major, minor)`` of a dotted ``major.minor.patch.build`` string."""

    parts = str(version).strip().split(".")
    if len(parts) < 2:
        raise OrchestratorVersionError(f"Unsupported Orchestrator version: {version!r}")
    try:
        return int(parts[0]), int(parts[1])
    except ValueError as exc:
        raise OrchestratorVersionError(f"Unsupported Orchestrator version: {version!r}") from exc


def is_modern_version(version: str) -> bool:
    major, minor = parse_version(version)
    return (major == 9 and minor >= 3) or major > 9


def endpoint_style_for_version(version: str) -> EndpointStyle:
    if is_modern_version(version):
        return ModernEndpointStyle()
    return LegacyEndpointStyle()
