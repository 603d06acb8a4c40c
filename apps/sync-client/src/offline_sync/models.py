"""Pydantic models describing buffered operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field, constr


NonEmptyStr = constr(strip_whitespace=True, min_length=1)


class OperationKind(str, Enum):
    BOOKING = "booking"


@dataclass(frozen=True)
class KindSpec:
    collection: str
    key_field: str


# Remote collection and natural-key field per kind; new kinds register here.
KIND_SPECS: Dict[OperationKind, KindSpec] = {
    OperationKind.BOOKING: KindSpec(collection="bookings", key_field="reference"),
}


class Operation(BaseModel):
    """A single buffered write awaiting remote commit."""

    model_config = ConfigDict(frozen=True)

    kind: OperationKind
    natural_key: NonEmptyStr
    payload: Dict[str, Any] = Field(default_factory=dict)

    @property
    def identity(self) -> Tuple[str, str]:
        return (self.kind.value, self.natural_key)

    @property
    def cache_key(self) -> str:
        return cache_key(self.kind, self.natural_key)

    @classmethod
    def booking(cls, payload: Mapping[str, Any]) -> "Operation":
        key_field = KIND_SPECS[OperationKind.BOOKING].key_field
        raw = payload.get(key_field)
        key = str(raw).strip() if raw else ""
        data = dict(payload)
        if key:
            data[key_field] = key
        return cls(kind=OperationKind.BOOKING, natural_key=key, payload=data)


def cache_key(kind: OperationKind | str, natural_key: str) -> str:
    value = kind.value if isinstance(kind, OperationKind) else kind
    return f"{value}_{natural_key}"


@dataclass
class SyncReport:
    snapshot_size: int = 0
    committed: List[Operation] = field(default_factory=list)
    already_present: int = 0
    outer_batches: int = 0
    sub_batches: int = 0
    failed_sub_batches: int = 0
    remaining: int = 0

    @property
    def drained(self) -> bool:
        return self.remaining == 0


__all__ = ["KIND_SPECS", "KindSpec", "Operation", "OperationKind", "SyncReport", "cache_key"]
