# backend/app/schemas.py
from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Any

from pydantic import BaseModel, ConfigDict, model_validator

# Request bodies keep fields optional and unconstrained: required-ness and ranges are
# checked by the services so every caller (HTTP, CLI, tests) gets the same messages.


# -------------------- Organizations --------------------

class OrganizationCreate(BaseModel):
    name: Optional[str] = None
    currency: Optional[str] = None


class CurrencyUpdate(BaseModel):
    currency: Optional[str] = None


class OrganizationOut(BaseModel):
    id: int
    slug: str
    name: str
    currency: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class MembershipOut(BaseModel):
    org_id: int
    org_slug: str
    org_name: str
    currency: str
    role: str
    model_config = ConfigDict(from_attributes=True)


# -------------------- Property records --------------------

class BuildingIn(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None


class BuildingOut(BaseModel):
    id: int
    name: str
    address: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class UnitIn(BaseModel):
    building_id: Optional[int] = None
    unit_number: Optional[str] = None


class UnitOut(BaseModel):
    id: int
    building_id: int
    unit_number: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class TenantIn(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class TenantOut(BaseModel):
    id: int
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class OccupancyIn(BaseModel):
    unit_id: Optional[int] = None
    tenant_id: Optional[int] = None
    active_from: Optional[date] = None
    active_to: Optional[date] = None


class OccupancyOut(BaseModel):
    id: int
    unit_id: int
    tenant_id: int
    active_from: date
    active_to: Optional[date] = None
    model_config = ConfigDict(from_attributes=True)


# -------------------- Rent lifecycle --------------------

class RentConfigIn(BaseModel):
    occupancy_id: Optional[int] = None
    amount: Optional[Decimal] = None
    cycle: Optional[str] = "MONTHLY"
    due_day: Optional[int] = None


class RentConfigOut(BaseModel):
    id: int
    occupancy_id: int
    amount: Decimal
    cycle: str
    due_day: int
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class RentPeriodCreate(BaseModel):
    rent_config_id: Optional[int] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    due_date: Optional[date] = None
    status: Optional[str] = "DUE"


class RentPeriodStatusUpdate(BaseModel):
    status: Optional[str] = None


class RentPeriodDatesUpdate(BaseModel):
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    due_date: Optional[date] = None


class RentPeriodOut(BaseModel):
    id: int
    rent_config_id: int
    period_start: date
    period_end: date
    due_date: date
    status: str
    days_overdue: int
    version_id: int
    model_config = ConfigDict(from_attributes=True)


class RefreshOut(BaseModel):
    updated: int


class PaymentCreate(BaseModel):
    rent_period_id: Optional[int] = None
    amount: Optional[Decimal] = None
    paid_at: Optional[datetime] = None
    reference: Optional[str] = None


class PaymentUpdate(BaseModel):
    # only fields present in the request body are applied; an explicit null
    # amount or paid_at is rejected, a null reference clears it
    amount: Optional[Decimal] = None
    paid_at: Optional[datetime] = None
    reference: Optional[str] = None


class PaymentOut(BaseModel):
    id: int
    rent_period_id: int
    amount: Decimal
    paid_at: datetime
    reference: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class PaymentDeleteOut(BaseModel):
    payment_id: int
    rent_period_id: int
    rent_period_status: str
    status_reverted: bool
    degraded: bool = False
    warning: Optional[str] = None


class DeletedOut(BaseModel):
    id: int
    deleted: bool = True


# -------------------- Audit --------------------

class AuditLogOut(BaseModel):
    """
    DB stores before_json / after_json (TEXT); the API returns parsed objects.
    Unparseable payloads come back as {"raw": "<text>"} instead of failing the list.
    """

    id: int
    actor_user_id: Optional[int] = None
    action_type: str
    entity_type: str
    entity_id: Optional[str] = None
    description: str
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    @model_validator(mode="before")
    @classmethod
    def _parse_payloads(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return data

        def parse(raw: Any) -> Optional[dict[str, Any]]:
            if raw is None:
                return None
            try:
                v = json.loads(raw)
            except (TypeError, ValueError):
                return {"raw": str(raw)}
            return v if isinstance(v, dict) else {"value": v}

        return {
            "id": getattr(data, "id"),
            "actor_user_id": getattr(data, "actor_user_id"),
            "action_type": getattr(data, "action_type"),
            "entity_type": getattr(data, "entity_type"),
            "entity_id": getattr(data, "entity_id"),
            "description": getattr(data, "description"),
            "before": parse(getattr(data, "before_json", None)),
            "after": parse(getattr(data, "after_json", None)),
            "ip_address": getattr(data, "ip_address"),
            "user_agent": getattr(data, "user_agent"),
            "created_at": getattr(data, "created_at"),
        }
