"""Shared data models for the FBX freight rate tracker.

CRITICAL: All monetary values use Decimal. Never use float for rates or differentials.
Floats appear only at the JSON boundary (to_dict), where chart clients expect numbers.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any


class Interpretation(str, Enum):
    """Which leg of the FBX01/FBX11 spread is more expensive."""

    LA_PREMIUM = "LA Premium"
    ROTTERDAM_PREMIUM = "Rotterdam Premium"


@dataclass(frozen=True)
class RouteDefinition:
    """A tracked FBX lane and the terminal page slug it is published under."""

    code: str
    slug: str
    description: str


@dataclass(frozen=True)
class RateReading:
    """A single scraped index value for one route."""

    route_code: str
    rate: Decimal
    description: str = ""
    currency: str = "USD"
    unit: str = "per 40ft container"

    def to_dict(self) -> dict[str, Any]:
        return {
            "rate": float(self.rate),
            "description": self.description,
            "currency": self.currency,
            "unit": self.unit,
        }

    @classmethod
    def from_dict(cls, route_code: str, data: dict[str, Any]) -> "RateReading":
        return cls(
            route_code=route_code,
            rate=_to_decimal(data["rate"]),
            description=data.get("description", ""),
            currency=data.get("currency", "USD"),
            unit=data.get("unit", "per 40ft container"),
        )


@dataclass(frozen=True)
class DifferentialResult:
    """FBX01 minus FBX11, in USD and as a percentage of FBX11."""

    amount: Decimal
    percentage: Decimal
    interpretation: Interpretation

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": float(self.amount),
            "percentage": float(self.percentage),
            "interpretation": self.interpretation.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DifferentialResult":
        return cls(
            amount=_to_decimal(data["amount"]),
            percentage=_to_decimal(data["percentage"]),
            interpretation=Interpretation(data["interpretation"]),
        )


@dataclass
class Snapshot:
    """Result of one aggregation run. Replaces the previous current snapshot."""

    timestamp: datetime
    routes: dict[str, RateReading] = field(default_factory=dict)
    differential: DifferentialResult | None = None

    @property
    def date(self) -> date:
        return self.timestamp.date()

    @property
    def has_rates(self) -> bool:
        return bool(self.routes)

    def rate_for(self, route_code: str) -> Decimal | None:
        reading = self.routes.get(route_code)
        return reading.rate if reading is not None else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": format_timestamp(self.timestamp),
            "date": self.date.isoformat(),
            "routes": {code: r.to_dict() for code, r in self.routes.items()},
        }
        if self.differential is not None:
            data["differential"] = self.differential.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Snapshot":
        differential = data.get("differential")
        return cls(
            timestamp=parse_timestamp(data["timestamp"]),
            routes={
                code: RateReading.from_dict(code, reading)
                for code, reading in (data.get("routes") or {}).items()
            },
            differential=(
                DifferentialResult.from_dict(differential) if differential else None
            ),
        )


@dataclass(frozen=True)
class HistoryEntry:
    """Compact per-run summary kept in the bounded history log."""

    date: str
    timestamp: str
    fbx01: Decimal | None = None
    fbx11: Decimal | None = None
    differential: Decimal | None = None

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "HistoryEntry":
        return cls(
            date=snapshot.date.isoformat(),
            timestamp=format_timestamp(snapshot.timestamp),
            fbx01=snapshot.rate_for("FBX01"),
            fbx11=snapshot.rate_for("FBX11"),
            differential=(
                snapshot.differential.amount if snapshot.differential else None
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "timestamp": self.timestamp,
            "fbx01": _to_float(self.fbx01),
            "fbx11": _to_float(self.fbx11),
            "differential": _to_float(self.differential),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        return cls(
            date=data["date"],
            timestamp=data["timestamp"],
            fbx01=_to_optional_decimal(data.get("fbx01")),
            fbx11=_to_optional_decimal(data.get("fbx11")),
            differential=_to_optional_decimal(data.get("differential")),
        )


def format_timestamp(value: datetime) -> str:
    """Render a UTC datetime as ISO-8601 with millisecond precision and a Z suffix."""
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse timestamps written by format_timestamp (or any ISO-8601 string)."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _to_decimal(value: Any) -> Decimal:
    return Decimal(str(value))


def _to_optional_decimal(value: Any) -> Decimal | None:
    return None if value is None else _to_decimal(value)


def _to_float(value: Decimal | None) -> float | None:
    return None if value is None else float(value)
