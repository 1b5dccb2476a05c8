"""
Asset and company snapshot models, the read-only input to every engine.

``AssetRecord`` is one inventoried equipment, software or peripheral item as
handed over by the CRUD layer, with its ``traceability`` log of lifecycle
events.  ``CompanySnapshot`` bundles the asset lists with company-level
aggregates (monthly spend, budget, growth rate, purchase history).

Input payloads arrive loosely shaped: the inventory front-end uses Spanish
field names (``fecha_compra``, ``trazabilidad``, ``estado`` ...) and stores
numbers as strings.  Both spellings are accepted through validation aliases,
and all optional-field defaulting lives in the derived-value methods on
``AssetRecord`` (``age_years``, ``days_since_maintenance``, ``usage_ratio``
...) so the engines never re-derive them ad hoc.

Both models are frozen: the engines treat a snapshot as immutable for the
duration of a call.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from asset_insight.taxonomy.asset_taxonomy import AssetStatus, parse_status
from asset_insight.utils.time_utils import days_between, to_date, years_between

# Traceability actions that count as a maintenance event (case-insensitive).
MAINTENANCE_ACTIONS: frozenset[str] = frozenset({"maintenance", "mantenimiento"})

# NaN and Infinity (which ``json.load`` accepts) are rejected at the boundary.
_SNAPSHOT_CONFIG = ConfigDict(
    frozen=True, populate_by_name=True, extra="ignore", allow_inf_nan=False,
)


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class TraceEvent(BaseModel):
    """One entry in an asset's traceability log.

    Attributes:
        date: Calendar date the event happened.
        action: Event label, e.g. ``"Maintenance"``, ``"Assignment"``.
        detail: Free-form description.
        cost: Cost attached to the event, if any (maintenance invoices).
        evidence_url: Link to an uploaded photo / document, if any.
    """

    model_config = _SNAPSHOT_CONFIG

    date: dt.date = Field(validation_alias=AliasChoices("date", "fecha"))
    action: str = Field(validation_alias=AliasChoices("action", "accion"))
    detail: str = Field(default="", validation_alias=AliasChoices("detail", "detalle", "descripcion"))
    cost: Optional[float] = Field(default=None, validation_alias=AliasChoices("cost", "costo"))
    evidence_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("evidence_url", "evidencia_url", "evidenceUrl")
    )

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Any:
        parsed = to_date(v)
        return parsed if parsed is not None else v

    @field_validator("detail", mode="before")
    @classmethod
    def none_detail_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("cost", mode="before")
    @classmethod
    def blank_cost_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("cost")
    @classmethod
    def validate_cost(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError(f"cost must be non-negative, got {v}.")
        return v

    @property
    def is_maintenance(self) -> bool:
        return self.action.strip().lower() in MAINTENANCE_ACTIONS


class AssetRecord(BaseModel):
    """An inventoried asset (equipment, software title or peripheral).

    Software records use ``stock`` (licenses owned) and ``assigned_licenses``;
    equipment records leave them ``None``.  ``expiry_date`` is the warranty
    end for hardware and the license expiry for software.

    Unrecognised ``status`` labels are stored as ``None`` rather than rejected.
    """

    model_config = _SNAPSHOT_CONFIG

    id: str
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "nombre"))
    brand: Optional[str] = Field(default=None, validation_alias=AliasChoices("brand", "marca"))
    model: Optional[str] = Field(default=None, validation_alias=AliasChoices("model", "modelo"))
    serial: Optional[str] = None
    status: Optional[AssetStatus] = Field(default=None, validation_alias=AliasChoices("status", "estado"))
    cost: Optional[float] = Field(default=None, validation_alias=AliasChoices("cost", "costo"))
    purchase_date: Optional[dt.date] = Field(
        default=None, validation_alias=AliasChoices("purchase_date", "fecha_compra", "purchaseDate")
    )
    expiry_date: Optional[dt.date] = Field(
        default=None,
        validation_alias=AliasChoices(
            "expiry_date", "fecha_vencimiento", "warranty_expiry", "license_expiry",
        ),
    )
    traceability: list[TraceEvent] = Field(
        default_factory=list, validation_alias=AliasChoices("traceability", "trazabilidad")
    )
    stock: Optional[int] = None
    assigned_licenses: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("assigned_licenses", "licencias_asignadas")
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> Optional[AssetStatus]:
        return parse_status(v)

    @field_validator("cost", "stock", "assigned_licenses", mode="before")
    @classmethod
    def blank_number_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("purchase_date", "expiry_date", mode="before")
    @classmethod
    def parse_optional_date(cls, v: Any) -> Optional[dt.date]:
        return to_date(v)

    @field_validator("traceability", mode="before")
    @classmethod
    def none_log_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    # ── Derived values ────────────────────────────────────────────────────────

    @property
    def label(self) -> str:
        """Human-readable name: ``brand model``, falling back to name / id."""
        parts = [p for p in (self.brand, self.model) if p]
        if parts:
            return " ".join(parts)
        return self.name or self.id

    def age_years(self, as_of: dt.date) -> float:
        """Fractional years since purchase; ``0.0`` when purchase date is unknown."""
        if self.purchase_date is None:
            return 0.0
        return years_between(self.purchase_date, as_of)

    def maintenance_events(self) -> list[TraceEvent]:
        """Maintenance events in chronological order (stable for equal dates)."""
        return sorted(
            (e for e in self.traceability if e.is_maintenance),
            key=lambda e: e.date,
        )

    def maintenance_costs(self) -> list[float]:
        """Non-zero costs of maintenance events, chronological."""
        return [e.cost for e in self.maintenance_events() if e.cost]

    def last_maintenance_date(self) -> Optional[dt.date]:
        events = self.maintenance_events()
        return events[-1].date if events else None

    def days_since_maintenance(
        self,
        as_of: dt.date,
        fallback_to_purchase: bool = True,
    ) -> Optional[int]:
        """Days since the latest maintenance event.

        With no maintenance on record, counts from the purchase date when
        ``fallback_to_purchase`` is set.  ``None`` when neither date is known.
        """
        last = self.last_maintenance_date()
        if last is None and fallback_to_purchase:
            last = self.purchase_date
        if last is None:
            return None
        return days_between(last, as_of)

    def days_to_expiry(self, as_of: dt.date) -> Optional[int]:
        """Signed days until ``expiry_date``; negative once expired."""
        if self.expiry_date is None:
            return None
        return days_between(as_of, self.expiry_date)

    def usage_ratio(self) -> Optional[float]:
        """``assigned_licenses / stock``; ``None`` when stock is missing or zero."""
        if not self.stock or self.stock <= 0:
            return None
        return (self.assigned_licenses or 0) / self.stock

    def recent_events(self, window: int) -> list[TraceEvent]:
        """The trailing ``window`` traceability entries, in log order."""
        if window <= 0:
            return []
        return self.traceability[-window:]

    def is_complete(self) -> bool:
        """True when purchase date, brand and model are all present."""
        return bool(self.purchase_date and self.brand and self.model)


class CompanySnapshot(BaseModel):
    """Everything the engines need about one company, captured at one moment.

    Attributes:
        equipment: Hardware assets.
        software: Software titles (with ``stock`` / ``assigned_licenses``).
        peripherals: Peripheral assets.
        monthly_costs: Monthly IT spend, oldest first.
        budget: Budget figure.  Cost analyses compare the latest month with
            it directly; the equipment forecast caps each month at
            ``budget / 12``.
        growth_rate: Expected annual headcount / fleet growth (0.1 = 10%).
        historical_purchases: Units purchased per past month, oldest first.
        investments: Investment amounts for ROI analysis.
        returns: Returns attributed to those investments.
        current_usage: Optional software usage telemetry; its presence raises
            software-forecast confidence.
        as_of: Reference date for all age / elapsed-time computations.
    """

    model_config = _SNAPSHOT_CONFIG

    equipment: list[AssetRecord] = Field(
        default_factory=list, validation_alias=AliasChoices("equipment", "equipos")
    )
    software: list[AssetRecord] = Field(default_factory=list)
    peripherals: list[AssetRecord] = Field(
        default_factory=list, validation_alias=AliasChoices("peripherals", "perifericos")
    )
    monthly_costs: list[float] = Field(
        default_factory=list, validation_alias=AliasChoices("monthly_costs", "monthlyCosts")
    )
    budget: Optional[float] = None
    growth_rate: float = Field(default=0.0, validation_alias=AliasChoices("growth_rate", "growthRate"))
    historical_purchases: list[float] = Field(
        default_factory=list,
        validation_alias=AliasChoices("historical_purchases", "historicalPurchases"),
    )
    investments: Optional[list[float]] = None
    returns: Optional[list[float]] = None
    current_usage: Optional[dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("current_usage", "currentUsage")
    )
    as_of: Optional[dt.date] = Field(default=None, validation_alias=AliasChoices("as_of", "asOf"))

    @field_validator(
        "equipment", "software", "peripherals", "monthly_costs", "historical_purchases",
        mode="before",
    )
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("growth_rate", mode="before")
    @classmethod
    def none_growth_to_zero(cls, v: Any) -> Any:
        return 0.0 if v is None else v

    @field_validator("as_of", mode="before")
    @classmethod
    def parse_as_of(cls, v: Any) -> Optional[dt.date]:
        return to_date(v)

    @field_validator("budget")
    @classmethod
    def validate_budget(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError(f"budget must be non-negative, got {v}.")
        return v
