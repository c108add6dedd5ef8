"""Models for address group and service group payloads."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

AddressGroupType = Literal["AG"]
ServiceGroupType = Literal["SG"]


def _strip_items(values: list[str] | None) -> list[str] | None:
    if values is None:
        return None
    cleaned = [value.strip() for value in values]
    if any(not value for value in cleaned):
        raise ValueError("list entries must not be empty")
    return cleaned


class _IpObjectModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_payload(self) -> dict[str, Any]:
        """Serialize using the camelCase field names the Orchestrator API expects."""

        return self.model_dump(by_alias=True, exclude_none=True)


class AddressGroupRule(_IpObjectModel):
    """A single include/exclude rule of an address group."""

    included_ips: list[str] | None = Field(default=None, alias="includedIPs")
    excluded_ips: list[str] | None = Field(default=None, alias="excludedIPs")
    included_groups: list[str] | None = Field(default=None, alias="includedGroups")
    comment: str | None = None

    @field_validator("included_ips", "excluded_ips", "included_groups")
    @classmethod
    def validate_items(cls, value: list[str] | None) -> list[str] | None:
        return _strip_items(value)


class AddressGroup(_IpObjectModel):
    """Request model for creating or updating an address group."""

    name: str = Field(min_length=1)
    type: AddressGroupType = "AG"
    rules: list[AddressGroupRule] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("name must not be empty")
        return normalized


class ServiceGroupRule(_IpObjectModel):
    """A single protocol/port rule of a service group."""

    protocol: str | None = None
    included_ports: list[str] | None = Field(default=None, alias="includedPorts")
    excluded_ports: list[str] | None = Field(default=None, alias="excludedPorts")
    included_groups: list[str] | None = Field(default=None, alias="includedGroups")
    excluded_groups: list[str] | None = Field(default=None, alias="excludedGroups")
    comment: str | None = None

    @field_validator("included_ports", "excluded_ports", "included_groups", "excluded_groups")
    @classmethod
    def validate_items(cls, value: list[str] | None) -> list[str] | None:
        return _strip_items(value)

    @model_validator(mode="after")
    def validate_ports_need_protocol(self) -> ServiceGroupRule:
        if (self.included_ports or self.excluded_ports) and not self.protocol:
            raise ValueError("port ranges require a protocol")
        return self


class ServiceGroup(_IpObjectModel):
    """Request model for creating or updating a service group."""

    name: str = Field(min_length=1)
    type: ServiceGroupType = "SG"
    rules: list[ServiceGroupRule] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("name must not be empty")
        return normalized
