# backend/tests/test_organizations.py
from __future__ import annotations

from app.domain.audit import list_audit_logs
from app.services import organizations as orgs
from app.services.results import ErrorKind


def test_slugify_and_unique_slug():
    assert orgs.slugify("  Acme Homes & Co. ") == "acme-homes-co"
    assert orgs.slugify("!!!") == ""
    assert orgs.unique_slug("acme", set()) == "acme"
    assert orgs.unique_slug("acme", {"acme", "acme-2"}) == "acme-3"


def test_creator_becomes_owner_and_slug_is_unique(db, world):
    res = orgs.create_organization(db, actor_user_id=world.manager, name="Acme")
    assert res.ok, res.error
    org = res.data
    assert org.slug == "acme-2"
    assert org.currency == "NGN"

    mine = orgs.list_memberships(db, actor_user_id=world.manager)
    roles = {m.org_slug: m.role for m in mine.data}
    assert roles == {"acme": "MANAGER", "acme-2": "OWNER"}


def test_name_and_currency_validation(db, world):
    assert orgs.create_organization(db, actor_user_id=world.owner, name="  ").error == "Company name is required"
    assert orgs.create_organization(db, actor_user_id=world.owner, name="***").error == "Please enter a valid company name"

    bad = orgs.create_organization(db, actor_user_id=world.owner, name="Beta", currency="dollars")
    assert bad.kind == ErrorKind.VALIDATION
    assert bad.error == orgs.CURRENCY_INVALID

    lower = orgs.create_organization(db, actor_user_id=world.owner, name="Beta", currency="usd")
    assert lower.ok and lower.data.currency == "USD"


def test_get_organization_requires_membership(db, world):
    assert orgs.get_organization(db, actor_user_id=world.director, org_slug=world.org_slug).ok
    denied = orgs.get_organization(db, actor_user_id=world.outsider, org_slug=world.org_slug)
    assert denied.kind == ErrorKind.DENIED


def test_currency_update_is_owner_only_validated_and_audited(db, world):
    denied = orgs.update_organization_currency(
        db, actor_user_id=world.manager, org_slug=world.org_slug, currency="USD"
    )
    assert (denied.kind, denied.error) == (ErrorKind.DENIED, "Only organization owners can update currency settings")

    # exact upper-case code only on update
    bad = orgs.update_organization_currency(db, actor_user_id=world.owner, org_slug=world.org_slug, currency="usd")
    assert (bad.kind, bad.error) == (ErrorKind.VALIDATION, orgs.CURRENCY_INVALID)

    ok = orgs.update_organization_currency(db, actor_user_id=world.owner, org_slug=world.org_slug, currency="USD")
    assert ok.ok and ok.data.currency == "USD"

    same = orgs.update_organization_currency(db, actor_user_id=world.owner, org_slug=world.org_slug, currency="USD")
    assert same.ok

    logs = list_audit_logs(db, org_id=world.org_id, action_type="ORGANIZATION_CURRENCY_UPDATED")
    assert len(logs) == 1
    assert logs[0].description == "Organization currency updated from NGN to USD"
    assert logs[0].entity_type == "organization"
