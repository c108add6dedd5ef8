"""Client for the Silverpeak Orchestrator REST API.

Developed against Orchestrator 9.3 and compatible with the pre-9.3 endpoint
layout: the first call that depends on the endpoint layout probes the server
version once and the decision is kept for the lifetime of the client.

Known Orchestrator bug: releases before 9.0.4 answer every request made with an
API key that has no expiration date with HTTP 500. Set an expiration date on the
key to work around it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence
from types import TracebackType
from typing import Any

import requests

from silverpeak_orchestrator.endpoints import Endpoint, EndpointStyle, endpoint_style_for_version
from silverpeak_orchestrator.errors import (
    ApplicationGroupNotFoundError,
    MissingCredentialsError,
    OrchestratorAPIError,
    OrchestratorRequestError,
)
from silverpeak_orchestrator.models.ip_objects import AddressGroup, ServiceGroup
from silverpeak_orchestrator.transport import (
    CSRF_HEADER,
    HttpTransport,
    JsonList,
    JsonObject,
    QueryParams,
)

logger = logging.getLogger("silverpeak_orchestrator.client")

CSRF_COOKIE = "orchCsrfToken"
DEFAULT_RESOURCE_KEY = "userDefined"

LOGIN_PATH = "/gms/rest/authentication/login"
LOGOUT_PATH = "/gms/rest/authentication/logout"
VERSIONS_PATH = "/gms/rest/gms/versions"

TEMPLATE_GROUPS_PATH = "/gms/rest/template/templateGroups"
TEMPLATE_CREATE_PATH = "/gms/rest/template/templateCreate"
TEMPLATE_SELECTION_PATH = "/gms/rest/template/templateSelection"
TEMPLATE_ASSOCIATIONS_PATH = "/gms/rest/template/applianceAssociation"

VRF_ENABLE_PATH = "/gms/rest/vrf/config/enable"
VRF_ZONES_MAP_PATH = "/gms/rest/zones/vrfZonesMap"
VRF_SEGMENTS_PATH = "/gms/rest/vrf/config/segments"
VRF_SECURITY_POLICIES_PATH = "/gms/rest/vrf/config/securityPolicies"

APPLIANCE_PATH = "/gms/rest/appliance"
APPLIANCE_EXTRA_INFO_PATH = "/gms/rest/appliance/extraInfo"
HA_GROUPS_PATH = "/gms/rest/haGroups"
GROUPS_PATH = "/gms/rest/gms/group"
DEPLOYMENT_PATH = "/gms/rest/deployment"
INTERFACE_STATE_PATH = "/gms/rest/interfaceState"
INTERFACE_LABELS_PATH = "/gms/rest/gms/interfaceLabels"
IPSLA_CONFIG_PATH = "/gms/rest/ipsla/config/managers"
IPSLA_STATE_PATH = "/gms/rest/ipsla/state/managers"
BGP_SYSTEM_PATH = "/gms/rest/bgp/config/system"
BGP_ALLVRFS_SYSTEM_PATH = "/gms/rest/bgp/config/allVrfs/system"
BGP_ALLVRFS_NEIGHBOR_PATH = "/gms/rest/bgp/config/allVrfs/neighbor"

ADDRESS_GROUP_PATH = "/gms/rest/ipObjects/addressGroup"
ADDRESS_GROUP_NAMES_PATH = "/gms/rest/ipObjects/addressGroupNames"
SERVICE_GROUP_PATH = "/gms/rest/ipObjects/serviceGroup"
SERVICE_GROUP_NAMES_PATH = "/gms/rest/ipObjects/serviceGroupNames"

DOMAIN_APPLICATION_PATH = "/gms/rest/applicationDefinition/dnsClassification"
DOMAIN_APPLICATION_SAVE_PATH = "/gms/rest/applicationDefinition/dnsClassification2/domain"
APPLICATION_TAGS_PATH = "/gms/rest/applicationDefinition/applicationTags"

type Payload = Mapping[str, Any] | AddressGroup | ServiceGroup


def _to_body(data: Payload | None, **identity: Any) -> JsonObject:
    """Copy ``data`` into a new request body with the identifying fields set."""

    if data is None:
        body: JsonObject = {}
    elif isinstance(data, (AddressGroup, ServiceGroup)):
        body = data.to_payload()
    else:
        body = dict(data)
    body.update(identity)
    return body


class OrchestratorClient:
    """Client for hitting the endpoints of a Silverpeak Orchestrator.

    Either ``user`` and ``password`` or ``api_key`` must be given. API key
    sessions need no login; username/password sessions call :meth:`login`
    first, or use the client as a context manager::

        with OrchestratorClient("https://orchestrator.example.com", "admin", "secret") as client:
            client.list_templategroups()

    A client instance is not safe to share between threads while logging in
    or out.

    Instance variables:
        transport -- the ``HttpTransport`` owning the HTTP session
        is_logged_in -- true after a successful :meth:`login`
    """

    def __init__(
        self,
        server: str,
        user: str | None = None,
        password: str | None = None,
        api_key: str | None = None,
        *,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        session: requests.Session | None = None,
        endpoint_style: EndpointStyle | None = None,
    ) -> None:
        self.user = user
        self.password = password
        self.api_key = api_key
        self.transport = HttpTransport(
            server,
            api_key=api_key,
            timeout=timeout,
            verify_ssl=verify_ssl,
            session=session,
        )
        self.is_logged_in = False
        self._endpoint_style = endpoint_style
        self._endpoint_style_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(server={self.transport.server!r})"

    def __enter__(self) -> OrchestratorClient:
        if self.has_credentials and not self.is_logged_in:
            try:
                self.login()
            except Exception:
                self.transport.close()
                raise
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def has_credentials(self) -> bool:
        return bool(self.user) and bool(self.password)

    def close(self) -> None:
        """Log out when logged in with user and password, then close the HTTP session.

        Logout failures are logged and not raised.
        """

        if self.has_credentials and self.is_logged_in:
            try:
                self.logout()
            except OrchestratorRequestError as exc:
                logger.warning("Logout from %s failed: %s", self.transport.server, exc)
        self.transport.close()

    def _require_credentials(self) -> None:
        if not self.has_credentials:
            raise MissingCredentialsError("user and password required")

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _expect(self, response: requests.Response, status_code: int) -> Any:
        if response.status_code != status_code:
            raise OrchestratorAPIError.from_response(response)
        return self._decode(response)

    def _get(self, path: str, params: QueryParams | None = None) -> Any:
        return self._expect(self.transport.get(path, params), 200)

    def _get_endpoint(self, endpoint: Endpoint) -> Any:
        return self._get(endpoint.path, endpoint.params)

    def _post_endpoint(self, endpoint: Endpoint, body: Any) -> requests.Response:
        if endpoint.params:
            return self.transport.post_with_params(endpoint.path, endpoint.params, body)
        return self.transport.post(endpoint.path, body)

    # Authentication

    def login(self) -> bool:
        """Log into the Orchestrator. Only required with user and password, not with an API key."""

        self._require_credentials()

        response = self.transport.post(
            LOGIN_PATH,
            {"user": self.user, "password": self.password},
        )
        self._expect(response, 200)

        csrf_token = self.transport.cookie_value(CSRF_COOKIE)
        if csrf_token is not None:
            self.transport.set_persistent_header(CSRF_HEADER, csrf_token)

        self.is_logged_in = True
        logger.info("Logged into %s as %s", self.transport.server, self.user)
        return True

    def logout(self) -> bool:
        """Log out of the Orchestrator. Only possible with user and password, not with an API key."""

        self._require_credentials()

        self._expect(self.transport.get(LOGOUT_PATH), 200)
        self.transport.remove_persistent_header(CSRF_HEADER)

        self.is_logged_in = False
        logger.info("Logged out of %s", self.transport.server)
        return True

    # Version handling

    def get_version(self) -> str:
        """Return the Orchestrator version, e.g. ``9.3.3.40000``."""

        data = self._get(VERSIONS_PATH)
        return str(data["current"])

    def endpoint_style(self) -> EndpointStyle:
        """Return the endpoint style of the server, probing its version on first use."""

        if self._endpoint_style is None:
            with self._endpoint_style_lock:
                if self._endpoint_style is None:
                    version = self.get_version()
                    self._endpoint_style = endpoint_style_for_version(version)
                    logger.info(
                        "Orchestrator %s uses the %s endpoint style",
                        version,
                        "modern" if self._endpoint_style.modern else "legacy",
                    )
        return self._endpoint_style

    @property
    def is_modern_api(self) -> bool:
        """True for Orchestrator 9.3 and later."""

        return self.endpoint_style().modern

    # Template groups

    def list_templategroups(self) -> JsonList:
        return self._get(TEMPLATE_GROUPS_PATH)

    def get_templategroup(self, name: str) -> JsonObject:
        """Return a template group by name."""

        style = self.endpoint_style()
        data = self._get_endpoint(style.resource(TEMPLATE_GROUPS_PATH, "templateGroup", name))
        return style.single_templategroup(data)

    def create_templategroup(self, name: str, data: Mapping[str, Any] | None = None) -> bool:
        """Create a template group from a name and its config."""

        response = self.transport.post(TEMPLATE_CREATE_PATH, _to_body(data, name=name))
        self._expect(response, 204)
        return True

    def update_templates_of_templategroup(self, name: str, templatenames: Sequence[str]) -> Any:
        """Replace the selected templates of a template group with ``templatenames``."""

        if isinstance(templatenames, (str, bytes)) or not isinstance(templatenames, (list, tuple)):
            raise TypeError("template names must be passed as a list")

        endpoint = self.endpoint_style().resource(TEMPLATE_SELECTION_PATH, "templateGroup", name)
        response = self._post_endpoint(endpoint, list(templatenames))
        return self._expect(response, 200)

    def update_templategroup(self, name: str, data: Mapping[str, Any]) -> Any:
        """Update the template configs of a template group."""

        endpoint = self.endpoint_style().resource(TEMPLATE_GROUPS_PATH, "templateGroup", name)
        response = self._post_endpoint(endpoint, dict(data))
        return self._expect(response, 200)

    def delete_templategroup(self, name: str) -> bool:
        endpoint = self.endpoint_style().resource(TEMPLATE_GROUPS_PATH, "templateGroup", name)
        self._expect(self.transport.delete(endpoint.path, endpoint.params), 204)
        return True

    def list_template_applianceassociations(self) -> JsonObject:
        """Return the template group names assigned to each appliance id."""

        return self._get(TEMPLATE_ASSOCIATIONS_PATH)

    def list_applianceids_by_templategroupname(self, name: str) -> list[str]:
        """Return the ids of the appliances a template group is assigned to."""

        associations = self.list_template_applianceassociations() or {}
        return [
            appliance_id
            for appliance_id, templategroups in associations.items()
            if templategroups and name in templategroups
        ]

    # VRF / segmentation

    def has_segmentation_enabled(self) -> bool:
        data = self._get(VRF_ENABLE_PATH)
        return bool(data["enable"])

    def get_vrf_zones_map(self) -> JsonObject:
        """Return the firewall zones indexed by VRF id and firewall zone id."""

        return self._get(VRF_ZONES_MAP_PATH)

    def get_vrf_by_id(self) -> JsonObject:
        """Return the VRFs indexed by their id."""

        return self._get(VRF_SEGMENTS_PATH)

    def get_vrf_security_policies_by_ids(
        self, source_vrf_id: int | str, destination_vrf_id: int | str
    ) -> JsonObject:
        """Return all settings and security policies between two VRFs."""

        endpoint = self.endpoint_style().resource(
            VRF_SECURITY_POLICIES_PATH, "map", f"{source_vrf_id}_{destination_vrf_id}"
        )
        return self._get_endpoint(endpoint)

    def update_vrf_security_policies_by_ids(
        self,
        source_vrf_id: int | str,
        destination_vrf_id: int | str,
        data: Mapping[str, Any],
    ) -> bool:
        endpoint = self.endpoint_style().resource(
            VRF_SECURITY_POLICIES_PATH, "map", f"{source_vrf_id}_{destination_vrf_id}"
        )
        self._expect(self._post_endpoint(endpoint, dict(data)), 204)
        return True

    # Appliances

    def list_appliances(self) -> JsonList:
        return self._get(APPLIANCE_PATH)

    def get_appliance(self, appliance_id: str) -> JsonObject:
        endpoint = self.endpoint_style().resource(APPLIANCE_PATH, "nePk", appliance_id)
        return self._get_endpoint(endpoint)

    def get_appliance_extrainfo(self, appliance_id: str) -> JsonObject:
        """Return additional appliance infos like its location."""

        endpoint = self.endpoint_style().resource(APPLIANCE_EXTRA_INFO_PATH, "nePk", appliance_id)
        return self._get_endpoint(endpoint)

    def get_ha_groups_by_id(self) -> JsonObject:
        return self._get(HA_GROUPS_PATH)

    def list_groups(self) -> JsonList:
        """Return the appliance groups."""

        return self._get(GROUPS_PATH)

    def get_deployment(self, appliance_id: str) -> JsonObject:
        endpoint = self.endpoint_style().resource(DEPLOYMENT_PATH, "nePk", appliance_id)
        return self._get_endpoint(endpoint)

    def get_interface_state(self, appliance_id: str) -> JsonObject:
        endpoint = self.endpoint_style().resource(INTERFACE_STATE_PATH, "nePk", appliance_id)
        return self._get_endpoint(endpoint)

    def get_interface_labels_by_type(self) -> JsonObject:
        """Return the interface labels indexed by LAN/WAN and their id."""

        return self._get(INTERFACE_LABELS_PATH)

    def get_appliance_ipsla_configs(self, appliance_id: str) -> JsonObject:
        endpoint = self.endpoint_style().resource(IPSLA_CONFIG_PATH, "nePk", appliance_id)
        return self._get_endpoint(endpoint)

    def get_appliance_ipsla_states(self, appliance_id: str) -> JsonObject:
        endpoint = self.endpoint_style().resource(IPSLA_STATE_PATH, "nePk", appliance_id)
        return self._get_endpoint(endpoint)

    def get_appliance_bgp_system_config(
        self, appliance_id: str, params: QueryParams | None = None
    ) -> JsonObject:
        """Return the BGP system config; ``params`` are passed as extra query parameters."""

        endpoint = self.endpoint_style().resource(BGP_SYSTEM_PATH, "nePk", appliance_id, params)
        return self._get_endpoint(endpoint)

    def get_appliance_bgp_system_config_allvrfs(
        self, appliance_id: str, params: QueryParams | None = None
    ) -> JsonObject:
        """Return the BGP system config of all VRFs indexed by VRF id."""

        endpoint = self.endpoint_style().resource(
            BGP_ALLVRFS_SYSTEM_PATH, "nePk", appliance_id, params
        )
        return self._get_endpoint(endpoint)

    def get_appliance_bgp_neighbors(
        self, appliance_id: str, params: QueryParams | None = None
    ) -> JsonObject:
        endpoint = self.endpoint_style().resource(
            BGP_ALLVRFS_NEIGHBOR_PATH, "nePk", appliance_id, params
        )
        return self._get_endpoint(endpoint)

    # Address groups

    def list_addressgroups(self) -> JsonList:
        return self._get(ADDRESS_GROUP_PATH)

    def list_addressgroup_names(self) -> list[str]:
        return self._get(ADDRESS_GROUP_NAMES_PATH)

    def get_addressgroup(self, name: str) -> JsonObject:
        endpoint = self.endpoint_style().resource(ADDRESS_GROUP_PATH, "name", name)
        return self._get_endpoint(endpoint)

    def create_or_update_addressgroup(self, name: str, data: Payload) -> bool:
        """Create an address group or replace an existing one of the same name."""

        body = _to_body(data, name=name, type="AG")
        self._expect(self.transport.post(ADDRESS_GROUP_PATH, body), 204)
        return True

    def update_addressgroup(self, name: str, data: Payload) -> bool:
        """Update an existing address group."""

        body = _to_body(data, name=name, type="AG")
        self._expect(self.transport.put(ADDRESS_GROUP_PATH, body), 204)
        return True

    def delete_addressgroup(self, name: str) -> bool:
        endpoint = self.endpoint_style().resource(ADDRESS_GROUP_PATH, "name", name)
        self._expect(self.transport.delete(endpoint.path, endpoint.params), 204)
        return True

    # Service groups

    def list_servicegroups(self) -> JsonList:
        return self._get(SERVICE_GROUP_PATH)

    def list_servicegroup_names(self) -> list[str]:
        return self._get(SERVICE_GROUP_NAMES_PATH)

    def get_servicegroup(self, name: str) -> JsonObject:
        endpoint = self.endpoint_style().resource(SERVICE_GROUP_PATH, "name", name)
        return self._get_endpoint(endpoint)

    def create_or_update_servicegroup(self, name: str, data: Payload) -> bool:
        body = _to_body(data, name=name, type="SG")
        self._expect(self.transport.post(SERVICE_GROUP_PATH, body), 204)
        return True

    def update_servicegroup(self, name: str, data: Payload) -> bool:
        body = _to_body(data, name=name, type="SG")
        self._expect(self.transport.put(SERVICE_GROUP_PATH, body), 204)
        return True

    def delete_servicegroup(self, name: str) -> bool:
        endpoint = self.endpoint_style().resource(SERVICE_GROUP_PATH, "name", name)
        self._expect(self.transport.delete(endpoint.path, endpoint.params), 204)
        return True

    # Domain name applications

    def list_domain_applications(self, resource_key: str = DEFAULT_RESOURCE_KEY) -> JsonList:
        """Return the domain name applications of a resource key."""

        return self._get_endpoint(self.endpoint_style().domain_applications(resource_key))

    def create_or_update_domain_application(self, domain: str, data: Mapping[str, Any]) -> bool:
        """Save a domain name application, identified by its domain and not its name."""

        body = _to_body(data, domain=domain)
        self._expect(self.transport.post(DOMAIN_APPLICATION_SAVE_PATH, body), 200)
        return True

    def delete_domain_application(self, domain: str) -> bool:
        """Delete a domain name application by its domain, not its name."""

        endpoint = self.endpoint_style().resource(DOMAIN_APPLICATION_PATH, "domain", domain)
        self._expect(self.transport.delete(endpoint.path, endpoint.params), 200)
        return True

    # Application groups

    def list_application_groups(self, resource_key: str = DEFAULT_RESOURCE_KEY) -> JsonObject:
        """Return the application groups of a resource key indexed by their name."""

        return self._get(APPLICATION_TAGS_PATH, {"resourceKey": resource_key})

    def _save_application_groups(self, application_groups: JsonObject, resource_key: str) -> None:
        response = self.transport.post_with_params(
            APPLICATION_TAGS_PATH, {"resourceKey": resource_key}, application_groups
        )
        self._expect(response, 200)

    def create_or_update_application_group(
        self,
        name: str,
        data: Mapping[str, Any],
        resource_key: str = DEFAULT_RESOURCE_KEY,
    ) -> bool:
        """Create or replace one application group.

        There is no endpoint for a single application group, so all groups are
        loaded, modified and saved back. Concurrent callers overwrite each
        other's changes; the last write wins.
        """

        application_groups = dict(self.list_application_groups(resource_key) or {})
        application_groups[name] = dict(data)
        self._save_application_groups(application_groups, resource_key)
        return True

    def delete_application_group(
        self,
        name: str,
        resource_key: str = DEFAULT_RESOURCE_KEY,
    ) -> bool:
        """Delete one application group by loading all groups and saving them without it."""

        application_groups = dict(self.list_application_groups(resource_key) or {})
        if name not in application_groups:
            raise ApplicationGroupNotFoundError(name)
        del application_groups[name]
        self._save_application_groups(application_groups, resource_key)
        return True
