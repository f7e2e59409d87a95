"""Tenant-scoped CRUD over one entity.

RecordService is configured by an EntityConfig and an AsyncRecordStore;
it never branches on role itself.  Tenant scope, soft-delete visibility
and own-record rules all come from build_access_filter(), and listing
goes through the list orchestrator.

Mutations are stamped with audit fields (who, from which IP, when) and
each one is a single store write.  Deleting is a soft delete: the
record's lifecycle becomes Deleted(at, by) and it drops out of every
normal query.  A record that live records still point at (a program
with courses, say) cannot be deleted.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any, Generic, TypeVar

from app.models.entities import (
    Client,
    ClientTenant,
    Course,
    Program,
    Specialization,
    SpecializationProgram,
    Tenant,
)
from app.models.principal import Principal
from app.models.record import Record
from app.query.entity_config import (
    CLIENT_TENANTS,
    COURSES,
    PROGRAMS,
    SPECIALIZATION_PROGRAMS,
    SPECIALIZATIONS,
    TENANTS,
    EntityConfig,
)
from app.query.predicates import AnyOf, Eq, NotDeleted, Predicate, SortKey
from app.repos.record_store import AsyncRecordStore
from app.services.access_policy import (
    audit_on_create,
    audit_on_delete,
    audit_on_update,
    build_access_filter,
    resolve_create_tenant,
)
from app.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from app.services.list_query import ListQuery, ListResult, run_list_query_async

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)

Clock = Callable[[], datetime.datetime]

# Set by the service, never by callers.
SYSTEM_FIELDS = frozenset(
    {
        "id",
        "tenant_id",
        "is_active",
        "lifecycle",
        "created_at",
        "created_by",
        "created_ip",
        "updated_at",
        "updated_by",
        "updated_ip",
    }
)

# is_active may be toggled by an update; the rest are service-owned.
_UPDATABLE_SYSTEM_FIELDS = frozenset({"is_active"})


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def label_of(config: EntityConfig) -> str:
    return config.name.replace("_", " ")


@dataclass(frozen=True, slots=True)
class Dependent:
    """Live rows in `store` whose `field` holds the id of the record being deleted."""

    store: AsyncRecordStore[Any]
    field: str
    label: str
    error_code: str


class RecordService(Generic[R]):
    def __init__(
        self,
        store: AsyncRecordStore[R],
        config: EntityConfig,
        *,
        tenants: AsyncRecordStore[Tenant] | None = None,
        dependents: Sequence[Dependent] = (),
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._config = config
        self._tenants = tenants
        self._dependents = tuple(dependents)
        self._clock = clock

    @property
    def config(self) -> EntityConfig:
        return self._config

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list(self, principal: Principal, query: ListQuery) -> ListResult[R]:
        access = build_access_filter(
            principal,
            config=self._config,
            tenant_override=query.tenant_id,
            include_deleted=query.include_deleted,
        )
        return await run_list_query_async(access, query, self._config, self._store)

    async def get(
        self, principal: Principal, record_id: int, *, include_deleted: bool = False
    ) -> R:
        if include_deleted:
            # Refused before the lookup, whether or not the id exists.
            build_access_filter(principal, config=self._config, include_deleted=True)
        record = await self._store.get(record_id)
        if record is None:
            raise self._not_found()
        build_access_filter(
            principal, record, config=self._config, include_deleted=include_deleted
        )
        return record

    async def find(
        self,
        principal: Principal,
        where: Sequence[Predicate],
        order_by: Sequence[SortKey] = (SortKey("id"),),
    ) -> list[R]:
        """Every live record visible to `principal` that matches `where`, unpaged."""
        access = build_access_filter(principal, config=self._config)
        full = (*access.predicates(), *where)
        total = await self._store.count(full)
        if total == 0:
            return []
        return await self._store.fetch(full, order_by, 0, total)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        principal: Principal,
        fields: Mapping[str, Any],
        *,
        tenant_id: int | None = None,
        ip: str | None = None,
    ) -> R:
        values = self._reject_system_fields(fields, allowed=frozenset())
        tenant = resolve_create_tenant(principal, tenant_id)
        if principal.is_super_admin():
            await self._require_live_tenant(tenant)

        await self._check_unique(tenant, values)
        await self._validate(principal, tenant, values)

        now = self._clock()
        try:
            record = self._config.record_type(
                **values,
                **{self._config.tenant_field: tenant},
                **audit_on_create(principal, ip, now),
            )
        except TypeError as exc:
            raise InvalidInputError(str(exc)) from None

        created = await self._store.add(record)
        logger.info(
            "Created %s id=%s tenant=%s by user=%s",
            self._config.name,
            created.id,
            tenant,
            principal.user_id,
        )
        return created

    async def update(
        self,
        principal: Principal,
        record_id: int,
        changes: Mapping[str, Any],
        *,
        ip: str | None = None,
    ) -> R:
        current = await self.get(principal, record_id)
        values = self._reject_system_fields(changes, allowed=_UPDATABLE_SYSTEM_FIELDS)
        tenant = self._tenant_of(current)

        await self._check_unique(tenant, values, current=current)
        await self._validate(principal, tenant, values)

        try:
            updated = replace(
                current, **values, **audit_on_update(principal, ip, self._clock())
            )
        except TypeError as exc:
            raise InvalidInputError(str(exc)) from None

        await self._store.replace(updated)
        logger.info(
            "Updated %s id=%s fields=%s by user=%s",
            self._config.name,
            current.id,
            sorted(values),
            principal.user_id,
        )
        return updated

    async def delete(
        self, principal: Principal, record_id: int, *, ip: str | None = None
    ) -> None:
        current = await self.get(principal, record_id)
        await self._check_dependents(current)
        await self._store.replace(
            replace(current, **audit_on_delete(principal, ip, self._clock()))
        )
        logger.info(
            "Soft-deleted %s id=%s by user=%s",
            self._config.name,
            current.id,
            principal.user_id,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _validate(
        self, principal: Principal, tenant_id: int, values: Mapping[str, Any]
    ) -> None:
        """Entity-specific checks; the base service has none."""

    def _not_found(self) -> NotFoundError:
        return NotFoundError(
            f"{label_of(self._config).capitalize()} not found",
            error_code=f"{self._config.name.upper()}_NOT_FOUND",
        )

    def _tenant_of(self, record: R) -> int:
        return getattr(record, self._config.tenant_field)

    def _reject_system_fields(
        self, fields: Mapping[str, Any], *, allowed: frozenset[str]
    ) -> dict[str, Any]:
        reserved = (set(fields) & (SYSTEM_FIELDS | {self._config.tenant_field})) - allowed
        if reserved:
            raise InvalidInputError(
                f"{', '.join(sorted(reserved))} cannot be set directly",
                error_code="IMMUTABLE_FIELD",
            )
        return dict(fields)

    def _scope(self, tenant_id: int) -> tuple[Predicate, ...]:
        # A tenant's own row is keyed by id, so its names are unique globally.
        if self._config.tenant_field == self._config.primary_key:
            return (NotDeleted(),)
        return (Eq(self._config.tenant_field, tenant_id), NotDeleted())

    def _duplicate_error(self, fields: tuple[str, ...], *, single: bool) -> ConflictError:
        name = self._config.name
        label = label_of(self._config).capitalize()
        if not single:
            return ConflictError(
                f"{label} already exists", error_code=f"DUPLICATE_{name.upper()}"
            )
        (field,) = fields
        # tenant_name -> TENANT_NAME_EXISTS, not TENANT_TENANT_NAME_EXISTS
        suffix = field.removeprefix(f"{name}_")
        return ConflictError(
            f"{label} with this {field} already exists",
            error_code=f"{name.upper()}_{suffix.upper()}_EXISTS",
        )

    async def _check_unique(
        self,
        tenant_id: int,
        values: Mapping[str, Any],
        *,
        current: R | None = None,
    ) -> None:
        groups = [((f,), True) for f in self._config.unique_fields]
        groups += [(g, False) for g in self._config.unique_together]
        for fields, single in groups:
            if not any(f in values for f in fields):
                continue
            candidate = {
                f: values[f] if f in values else getattr(current, f, None) for f in fields
            }
            if any(v is None for v in candidate.values()):
                continue
            where = (*self._scope(tenant_id), *(Eq(f, v) for f, v in candidate.items()))
            clashes = await self._store.fetch(where, (SortKey("id"),), 0, 2)
            exclude_id = current.id if current is not None else None
            if any(r.id != exclude_id for r in clashes):
                logger.info(
                    "Rejected duplicate %s %s in tenant=%s",
                    self._config.name,
                    "/".join(fields),
                    tenant_id,
                )
                raise self._duplicate_error(fields, single=single)

    async def _check_dependents(self, record: R) -> None:
        for dependent in self._dependents:
            live = await dependent.store.count((Eq(dependent.field, record.id), NotDeleted()))
            if live:
                logger.info(
                    "Refused to delete %s id=%s: %d live %s",
                    self._config.name,
                    record.id,
                    live,
                    dependent.label,
                )
                raise InvalidInputError(
                    f"Cannot delete {label_of(self._config)} with existing {dependent.label}",
                    error_code=dependent.error_code,
                )

    async def _require_live_tenant(self, tenant_id: int) -> None:
        if self._tenants is None:
            return
        tenant = await self._tenants.get(tenant_id)
        if tenant is None or tenant.is_deleted:
            raise NotFoundError("Tenant not found", error_code="TENANT_NOT_FOUND")


async def require_related(
    service: RecordService[Any],
    principal: Principal,
    record_id: int,
    tenant_id: int,
) -> Any:
    """Load a record another record refers to; it must be live and in `tenant_id`."""
    try:
        related = await service.get(principal, record_id)
    except NotFoundError:
        related = None
    if related is None or getattr(related, service.config.tenant_field) != tenant_id:
        config = service.config
        raise InvalidInputError(
            f"{label_of(config).capitalize()} {record_id} does not exist in this tenant",
            error_code=f"{config.name.upper()}_NOT_FOUND",
        )
    return related


class TenantService(RecordService[Tenant]):
    """Tenants are keyed by their own id; only super admins create them."""

    def __init__(self, store: AsyncRecordStore[Tenant], *, clock: Clock = utcnow) -> None:
        super().__init__(store, TENANTS, clock=clock)

    async def create(
        self,
        principal: Principal,
        fields: Mapping[str, Any],
        *,
        tenant_id: int | None = None,
        ip: str | None = None,
    ) -> Tenant:
        return await self.create_tenant(principal, fields, ip=ip)

    async def create_tenant(
        self,
        principal: Principal,
        fields: Mapping[str, Any],
        *,
        ip: str | None = None,
    ) -> Tenant:
        if not principal.is_super_admin():
            logger.warning(
                "Access denied: user=%s role=%s tried to create a tenant",
                principal.user_id,
                principal.role,
            )
            raise ForbiddenError(
                "Only super admins may create tenants", error_code="INSUFFICIENT_ROLE"
            )
        values = self._reject_system_fields(fields, allowed=frozenset())
        await self._check_unique(0, values)

        try:
            record = Tenant(**values, **audit_on_create(principal, ip, self._clock()))
        except TypeError as exc:
            raise InvalidInputError(str(exc)) from None

        created = await self._store.add(record)
        logger.info("Created tenant id=%s by user=%s", created.id, principal.user_id)
        return created


class ProgramService(RecordService[Program]):
    """A program cannot be deleted while live courses or specialization links use it."""

    def __init__(
        self,
        store: AsyncRecordStore[Program],
        *,
        courses: AsyncRecordStore[Course] | None = None,
        links: AsyncRecordStore[SpecializationProgram] | None = None,
        tenants: AsyncRecordStore[Tenant] | None = None,
        clock: Clock = utcnow,
    ) -> None:
        dependents = []
        if courses is not None:
            dependents.append(
                Dependent(courses, "program_id", "courses", "PROGRAM_HAS_COURSES")
            )
        if links is not None:
            dependents.append(
                Dependent(
                    links, "program_id", "specializations", "PROGRAM_HAS_SPECIALIZATIONS"
                )
            )
        super().__init__(
            store, PROGRAMS, tenants=tenants, dependents=dependents, clock=clock
        )


class CourseService(RecordService[Course]):
    """Courses must point at a live program in their own tenant."""

    def __init__(
        self,
        store: AsyncRecordStore[Course],
        programs: ProgramService,
        *,
        tenants: AsyncRecordStore[Tenant] | None = None,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(store, COURSES, tenants=tenants, clock=clock)
        self._programs = programs

    async def _validate(
        self, principal: Principal, tenant_id: int, values: Mapping[str, Any]
    ) -> None:
        if "program_id" in values:
            await require_related(self._programs, principal, values["program_id"], tenant_id)


class ClientTenantService(RecordService[ClientTenant]):
    """Client-to-tenant associations.

    The association's tenant_id is the tenant being served.  Both ends
    must be live; a tenant admin may only link its own clients to its
    own tenant (resolve_create_tenant pins the tenant, the client lookup
    is tenant-scoped).  A super admin may link any live client to any
    live tenant.
    """

    def __init__(
        self,
        store: AsyncRecordStore[ClientTenant],
        clients: RecordService[Client],
        *,
        tenants: AsyncRecordStore[Tenant],
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(store, CLIENT_TENANTS, tenants=tenants, clock=clock)
        self._clients = clients

    async def _validate(
        self, principal: Principal, tenant_id: int, values: Mapping[str, Any]
    ) -> None:
        if "client_id" in values:
            await self._require_live_tenant(tenant_id)
            await self._clients.get(principal, values["client_id"])

    async def tenants_of_client(self, principal: Principal, client_id: int) -> list[Tenant]:
        """Live tenants a client is linked to; the client must be visible to `principal`."""
        await self._clients.get(principal, client_id)
        links = await self.find(principal, (Eq("client_id", client_id),))
        if not links or self._tenants is None:
            return []
        tenant_ids = tuple(dict.fromkeys(link.tenant_id for link in links))
        where = (AnyOf(tuple(Eq("id", t) for t in tenant_ids)), NotDeleted())
        return await self._tenants.fetch(
            where, (SortKey("tenant_name"), SortKey("id")), 0, len(tenant_ids)
        )


class SpecializationService(RecordService[Specialization]):
    """A specialization cannot be deleted while it is linked to live programs."""

    def __init__(
        self,
        store: AsyncRecordStore[Specialization],
        *,
        links: AsyncRecordStore[SpecializationProgram] | None = None,
        tenants: AsyncRecordStore[Tenant] | None = None,
        clock: Clock = utcnow,
    ) -> None:
        dependents = []
        if links is not None:
            dependents.append(
                Dependent(
                    links, "specialization_id", "programs", "SPECIALIZATION_HAS_PROGRAMS"
                )
            )
        super().__init__(
            store, SPECIALIZATIONS, tenants=tenants, dependents=dependents, clock=clock
        )


class SpecializationProgramService(RecordService[SpecializationProgram]):
    """Links a specialization to a program; both must be live in the link's tenant."""

    def __init__(
        self,
        store: AsyncRecordStore[SpecializationProgram],
        specializations: SpecializationService,
        programs: ProgramService,
        *,
        tenants: AsyncRecordStore[Tenant] | None = None,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(store, SPECIALIZATION_PROGRAMS, tenants=tenants, clock=clock)
        self._specializations = specializations
        self._programs = programs

    async def _validate(
        self, principal: Principal, tenant_id: int, values: Mapping[str, Any]
    ) -> None:
        if "specialization_id" in values:
            await require_related(
                self._specializations, principal, values["specialization_id"], tenant_id
            )
        if "program_id" in values:
            await require_related(self._programs, principal, values["program_id"], tenant_id)

    async def active_for_program(
        self, principal: Principal, program_id: int
    ) -> list[Specialization]:
        """Active specializations linked to a program, by name."""
        program = await self._programs.get(principal, program_id)
        links = await self.find(
            principal,
            (
                Eq("program_id", program.id),
                Eq("tenant_id", program.tenant_id),
                Eq("is_active", True),
            ),
        )
        if not links:
            return []
        ids = tuple(dict.fromkeys(link.specialization_id for link in links))
        return await self._specializations.find(
            principal,
            (AnyOf(tuple(Eq("id", i) for i in ids)), Eq("is_active", True)),
            (SortKey("specialization_name"), SortKey("id")),
        )
