from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from orgsync.adapters.payload import parse_organization, translate_organization
from orgsync.domain.model import RoleDraft, SectorDraft

PAYLOAD: dict[str, object] = {
    "company": {
        "id": 7,
        "owner_id": "owner-from-payload",
        "legal_name": "Acme Ltda",
        "address": {"city": "Recife", "state": "PE"},
        "unknown": "ignored",
    },
    "sectors": ["Ops", {"id": 3, "name": "Sales"}],
    "roles": [{"name": "Clerk", "sector": "Ops"}],
    "units": [
        {
            "id": 1700000000001,
            "name": "North",
            "sectors": ["Ops", "Support"],
            "roles": [{"name": "Lead", "sector": "Sales"}],
        }
    ],
    "collaborators": [
        {
            "id": "1700000000101",
            "unit_id": 1700000000001,
            "name": "Ana",
            "sector": "Ops",
            "role": "Clerk",
            "email": "ana@example.com",
            "phone": "",
        }
    ],
}


def test_parse_accepts_json_text_and_mappings() -> None:
    from_text = parse_organization(json.dumps(PAYLOAD))
    from_mapping = parse_organization(PAYLOAD)

    assert from_text == from_mapping
    assert from_text.company.legal_name == "Acme Ltda"


def test_parse_rejects_collaborator_without_name() -> None:
    with pytest.raises(ValidationError):
        parse_organization({"collaborators": [{"id": 1, "unit_id": 2}]})


def test_company_draft_carries_identity_and_set_fields_only() -> None:
    drafts = translate_organization(parse_organization(PAYLOAD))

    company = drafts.company
    assert company.ref == 7
    assert company.owner_id == "owner-from-payload"
    assert company.org_key is None
    assert dict(company.fields) == {
        "legal_name": "Acme Ltda",
        "address": {"city": "Recife", "state": "PE"},
    }


def test_owner_override_wins() -> None:
    drafts = translate_organization(parse_organization(PAYLOAD), owner_id="authenticated")

    assert drafts.company.owner_id == "authenticated"


def test_unit_references_are_added_to_company_references() -> None:
    drafts = translate_organization(parse_organization(PAYLOAD))

    assert drafts.company.sectors == (
        SectorDraft(name="Ops"),
        SectorDraft(name="Sales", ref=3),
        SectorDraft(name="Ops"),
        SectorDraft(name="Support"),
    )
    assert drafts.company.roles == (
        RoleDraft(name="Clerk", sector="Ops"),
        RoleDraft(name="Lead", sector="Sales"),
    )


def test_units_and_collaborators_keep_client_identifiers() -> None:
    drafts = translate_organization(parse_organization(PAYLOAD))

    [unit] = drafts.units
    assert unit.ref == 1700000000001
    assert unit.sectors == ("Ops", "Support")
    assert unit.roles == (RoleDraft(name="Lead", sector="Sales"),)

    [collaborator] = drafts.collaborators
    assert collaborator.ref == "1700000000101"
    assert collaborator.unit_ref == 1700000000001
    assert (collaborator.sector, collaborator.role) == ("Ops", "Clerk")
    assert dict(collaborator.fields) == {"email": "ana@example.com", "phone": ""}
