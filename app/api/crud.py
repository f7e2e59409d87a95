"""Shared route wiring for the record resources.

Every resource exposes the same routes over a RecordService:

  GET    ""             list (paged, sorted, filtered)
  GET    "/{record_id}" get one
  POST   ""             create   -> 201
  PATCH  "/{record_id}" update (omitted for link resources)
  DELETE "/{record_id}" soft delete -> 204

Reads and writes each get their own role guard.  Everything past the
role guard (tenant scope, own-record rules, soft-delete visibility) is
the service's job.  The service itself comes from the get_services
dependency; `pick` selects this resource's one from the bundle.
"""

# No `from __future__ import annotations` here: FastAPI reads the route
# signatures at runtime and must see the closure's concrete models.

from collections.abc import Callable, Iterable
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, create_model

from app.api.dependencies import client_ip, get_services, require_roles
from app.api.listing import list_query_params
from app.api.schemas import PaginationOut
from app.models.principal import Principal, Role
from app.query.entity_config import EntityConfig
from app.services.list_query import ListQuery
from app.services.record_service import RecordService
from app.services.registry import Services

ServicesDep = Annotated[Services, Depends(get_services)]


def build_crud_router(
    *,
    prefix: str,
    tag: str,
    config: EntityConfig,
    pick: Callable[[Services], RecordService[Any]],
    out_model: type[BaseModel],
    create_model_: type[BaseModel],
    update_model: type[BaseModel] | None,
    read_roles: Iterable[Role],
    write_roles: Iterable[Role],
) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])
    read_guard = require_roles(read_roles)
    write_guard = require_roles(write_roles)
    list_params = list_query_params(config)
    list_out = create_model(
        f"{out_model.__name__.removesuffix('Out')}ListOut",
        items=(list[out_model], ...),
        pagination=(PaginationOut, ...),
    )

    def _out(record: Any) -> BaseModel:
        return out_model.model_validate(record)

    @router.get("", response_model=list_out)
    async def list_records(
        principal: Annotated[Principal, Depends(read_guard)],
        query: Annotated[ListQuery, Depends(list_params)],
        services: ServicesDep,
    ) -> Any:
        result = await pick(services).list(principal, query)
        return list_out(
            items=[_out(r) for r in result.items],
            pagination=PaginationOut.model_validate(result.pagination),
        )

    @router.get("/{record_id}", response_model=out_model)
    async def get_record(
        record_id: int,
        principal: Annotated[Principal, Depends(read_guard)],
        services: ServicesDep,
        include_deleted: bool = False,
    ) -> Any:
        record = await pick(services).get(
            principal, record_id, include_deleted=include_deleted
        )
        return _out(record)

    @router.post("", response_model=out_model, status_code=status.HTTP_201_CREATED)
    async def create_record(
        body: create_model_,  # type: ignore[valid-type]
        request: Request,
        principal: Annotated[Principal, Depends(write_guard)],
        services: ServicesDep,
    ) -> Any:
        fields = body.model_dump(exclude_unset=True)
        tenant_id = fields.pop("tenant_id", None)
        record = await pick(services).create(
            principal, fields, tenant_id=tenant_id, ip=client_ip(request)
        )
        return _out(record)

    if update_model is not None:

        @router.patch("/{record_id}", response_model=out_model)
        async def update_record(
            record_id: int,
            body: update_model,  # type: ignore[valid-type]
            request: Request,
            principal: Annotated[Principal, Depends(write_guard)],
            services: ServicesDep,
        ) -> Any:
            # null means "not supplied"; required columns cannot be cleared
            changes = body.model_dump(exclude_unset=True, exclude_none=True)
            record = await pick(services).update(
                principal, record_id, changes, ip=client_ip(request)
            )
            return _out(record)

    @router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_record(
        record_id: int,
        request: Request,
        principal: Annotated[Principal, Depends(write_guard)],
        services: ServicesDep,
    ) -> Response:
        await pick(services).delete(principal, record_id, ip=client_ip(request))
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router
