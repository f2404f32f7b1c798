"""Pydantic models for the client-edited organization tree."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

type ClientId = int | str | None


class PayloadBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SectorEntry(PayloadBaseModel):
    id: int | str | None = None
    name: str


class RoleEntry(PayloadBaseModel):
    id: int | str | None = None
    name: str
    sector: str


class CompanyPayload(PayloadBaseModel):
    id: int | str | None = None
    owner_id: str | None = None
    org_key: str | None = None
    legal_name: str | None = None
    trade_name: str | None = None
    tax_id: str | None = None
    email: str | None = None
    phone: str | None = None
    contact_name: str | None = None
    address: dict[str, str | None] | None = None
    status: str | None = None


class UnitPayload(PayloadBaseModel):
    id: int | str | None = None
    name: str
    sectors: list[str] = Field(default_factory=list[str])
    roles: list[RoleEntry] = Field(default_factory=list["RoleEntry"])


class CollaboratorPayload(PayloadBaseModel):
    id: int | str | None = None
    unit_id: int | str | None = None
    name: str
    sector: str | None = None
    role: str | None = None
    email: str | None = None
    document: str | None = None
    phone: str | None = None
    birth_date: str | None = None
    gender: str | None = None
    termination_date: str | None = None
    category_code: int | None = None
    category_label: str | None = None


class OrganizationPayload(PayloadBaseModel):
    """One company save: the company row plus everything hanging off it."""

    company: CompanyPayload = Field(default_factory=CompanyPayload)
    sectors: list[str | SectorEntry] = Field(default_factory=list["str | SectorEntry"])
    roles: list[RoleEntry] = Field(default_factory=list["RoleEntry"])
    units: list[UnitPayload] = Field(default_factory=list["UnitPayload"])
    collaborators: list[CollaboratorPayload] = Field(
        default_factory=list["CollaboratorPayload"]
    )
