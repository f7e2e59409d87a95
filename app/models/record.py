"""Base record types shared by every persisted LMS entity.

Soft deletion is modelled as an explicit lifecycle tag rather than a
boolean flag: a record is either Active or Deleted(at, by).  The access
policy layer decides whether deleted records are visible; call sites
never test the tag themselves.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Active:
    pass


@dataclass(frozen=True, slots=True)
class Deleted:
    at: datetime.datetime
    by: int


Lifecycle = Active | Deleted

ACTIVE = Active()


@dataclass(frozen=True, slots=True, kw_only=True)
class Record:
    id: int = 0  # assigned by the store on add()
    is_active: bool = True
    lifecycle: Lifecycle = ACTIVE
    created_at: datetime.datetime
    created_by: int
    created_ip: str | None = None
    updated_at: datetime.datetime | None = None
    updated_by: int | None = None
    updated_ip: str | None = None

    @property
    def is_deleted(self) -> bool:
        return isinstance(self.lifecycle, Deleted)


@dataclass(frozen=True, slots=True, kw_only=True)
class TenantRecord(Record):
    tenant_id: int  # immutable after creation
