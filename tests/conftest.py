"""
Shared pytest fixtures for the Asset Insight test suite.

Provides:
  - ``as_of``: The fixed reference date every engine test measures against.
  - Asset factories (``make_asset``, ``make_software``) for building
    ``AssetRecord`` instances relative to ``AS_OF``.
  - Sample snapshots: ``sample_snapshot`` (mixed fleet with company costs)
    and ``empty_snapshot``.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Optional

import pytest

from asset_insight.models.asset import AssetRecord, CompanySnapshot

AS_OF = date(2026, 1, 15)


def days_ago(days: int) -> date:
    return AS_OF - timedelta(days=days)


def years_ago(years: float) -> date:
    return AS_OF - timedelta(days=round(years * 365))


def maintenance(on: date, cost: Optional[float] = None, action: str = "Maintenance") -> dict[str, Any]:
    """A traceability entry payload for a maintenance event."""
    event: dict[str, Any] = {"date": on.isoformat(), "action": action, "detail": "service"}
    if cost is not None:
        event["cost"] = cost
    return event


def make_asset(
    asset_id: str = "eq-1",
    age_years: Optional[float] = 1.0,
    status: Optional[str] = "Good",
    cost: Optional[float] = 1200.0,
    traceability: Optional[list[dict[str, Any]]] = None,
    **extra: Any,
) -> AssetRecord:
    """An equipment record purchased ``age_years`` before ``AS_OF``."""
    payload: dict[str, Any] = {
        "id": asset_id,
        "brand": "Dell",
        "model": "Latitude 5420",
        "status": status,
        "cost": cost,
        "purchase_date": years_ago(age_years).isoformat() if age_years is not None else None,
        "traceability": traceability or [],
    }
    payload.update(extra)
    return AssetRecord.model_validate(payload)


def make_software(
    software_id: str = "sw-1",
    stock: Optional[int] = 10,
    assigned: Optional[int] = 5,
    expires_in_days: Optional[int] = 365,
    name: str = "Office Suite",
) -> AssetRecord:
    return AssetRecord.model_validate({
        "id": software_id,
        "name": name,
        "stock": stock,
        "assigned_licenses": assigned,
        "expiry_date": (
            (AS_OF + timedelta(days=expires_in_days)).isoformat()
            if expires_in_days is not None else None
        ),
    })


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def empty_snapshot() -> CompanySnapshot:
    """A snapshot with no assets and no company aggregates."""
    return CompanySnapshot(as_of=AS_OF)


@pytest.fixture
def sample_snapshot() -> CompanySnapshot:
    """A small mixed fleet with rising costs and an over-budget latest month.

    - ``eq-old``: 6 years old, Good, last maintained 200 days ago.
    - ``eq-poor``: 9 years old, Poor, irregular maintenance with rising costs.
    - ``eq-new``: 1 year old, Fair, never maintained.
    - ``sw-full``: 9 of 10 seats assigned, expires in 20 days.
    - ``sw-idle``: 2 of 20 seats assigned, expires in a year.
    """
    return CompanySnapshot(
        as_of=AS_OF,
        equipment=[
            make_asset("eq-old", age_years=6, traceability=[maintenance(days_ago(200), 100.0)]),
            make_asset(
                "eq-poor",
                age_years=9,
                status="Poor",
                cost=1000.0,
                traceability=[
                    maintenance(days_ago(400), 50.0),
                    maintenance(days_ago(300), 50.0),
                    maintenance(days_ago(200), 60.0),
                    maintenance(days_ago(190), 400.0),
                    maintenance(days_ago(20), 500.0),
                ],
            ),
            make_asset("eq-new", age_years=1, status="Fair"),
        ],
        software=[
            make_software("sw-full", stock=10, assigned=9, expires_in_days=20),
            make_software("sw-idle", stock=20, assigned=2, expires_in_days=365, name="CAD Pro"),
        ],
        monthly_costs=[1000.0, 1000.0, 1000.0, 1500.0, 1500.0, 1500.0],
        budget=1200.0,
        growth_rate=0.1,
        historical_purchases=[2.0, 3.0, 2.0, 3.0, 2.0, 3.0, 2.0],
        investments=[10000.0],
        returns=[10500.0],
    )
