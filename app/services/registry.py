"""Wiring of the record services over one family of stores.

build_services() takes a `store_for(record_type)` callable and returns
every service sharing those stores, so cross-entity checks (live tenant,
program has courses, ...) always look at the same backend the request
writes to.  The HTTP layer gets a Services through the get_services
dependency; the in-memory backend keeps one for the process.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from app.models.entities import (
    Client,
    ClientTenant,
    Course,
    Program,
    Specialization,
    SpecializationProgram,
    Student,
    Teacher,
    Tenant,
)
from app.query.entity_config import CLIENTS, STUDENTS, TEACHERS
from app.repos.record_store import AsyncRecordStore, AsyncStoreAdapter, InMemoryRecordStore
from app.services.record_service import (
    ClientTenantService,
    Clock,
    CourseService,
    ProgramService,
    RecordService,
    SpecializationProgramService,
    SpecializationService,
    TenantService,
    utcnow,
)

logger = logging.getLogger(__name__)

RECORD_TYPES: tuple[type, ...] = (
    Tenant,
    Client,
    Program,
    Course,
    Student,
    Teacher,
    ClientTenant,
    Specialization,
    SpecializationProgram,
)


@dataclass(frozen=True, slots=True)
class Services:
    tenants: TenantService
    clients: RecordService[Client]
    programs: ProgramService
    courses: CourseService
    students: RecordService[Student]
    teachers: RecordService[Teacher]
    client_tenants: ClientTenantService
    specializations: SpecializationService
    specialization_programs: SpecializationProgramService


def build_services(
    store_for: Callable[[type], AsyncRecordStore[Any]], *, clock: Clock = utcnow
) -> Services:
    stores = {record_type: store_for(record_type) for record_type in RECORD_TYPES}
    tenant_store = stores[Tenant]
    links = stores[SpecializationProgram]

    clients: RecordService[Client] = RecordService(
        stores[Client], CLIENTS, tenants=tenant_store, clock=clock
    )
    programs = ProgramService(
        stores[Program],
        courses=stores[Course],
        links=links,
        tenants=tenant_store,
        clock=clock,
    )
    specializations = SpecializationService(
        stores[Specialization], links=links, tenants=tenant_store, clock=clock
    )
    return Services(
        tenants=TenantService(tenant_store, clock=clock),
        clients=clients,
        programs=programs,
        courses=CourseService(stores[Course], programs, tenants=tenant_store, clock=clock),
        students=RecordService(stores[Student], STUDENTS, tenants=tenant_store, clock=clock),
        teachers=RecordService(stores[Teacher], TEACHERS, tenants=tenant_store, clock=clock),
        client_tenants=ClientTenantService(
            stores[ClientTenant], clients, tenants=tenant_store, clock=clock
        ),
        specializations=specializations,
        specialization_programs=SpecializationProgramService(
            links, specializations, programs, tenants=tenant_store, clock=clock
        ),
    )


class InMemoryBackend:
    """Process-local stores, used when no DATABASE_URL is configured."""

    def __init__(self, *, clock: Clock = utcnow) -> None:
        self.stores: dict[type, InMemoryRecordStore] = {
            record_type: InMemoryRecordStore() for record_type in RECORD_TYPES
        }
        self.services = build_services(
            lambda record_type: AsyncStoreAdapter(self.stores[record_type]), clock=clock
        )

    def reset(self) -> None:
        for store in self.stores.values():
            store.clear()
        logger.debug("In-memory stores cleared")
