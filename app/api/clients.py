"""Client endpoints: tenant-scoped customer records, admin-only.

GET /v1/clients/{id}/tenants lists the live tenants a client is
associated with (see client_tenants.py).
"""

from typing import Annotated, Any

from fastapi import Depends

from app.api.crud import ServicesDep, build_crud_router
from app.api.dependencies import require_roles
from app.api.schemas import ClientCreateIn, ClientOut, ClientUpdateIn, TenantOut
from app.models.principal import ADMIN_ROLES, Principal
from app.query.entity_config import CLIENTS

router = build_crud_router(
    prefix="/v1/clients",
    tag="clients",
    config=CLIENTS,
    pick=lambda services: services.clients,
    out_model=ClientOut,
    create_model_=ClientCreateIn,
    update_model=ClientUpdateIn,
    read_roles=ADMIN_ROLES,
    write_roles=ADMIN_ROLES,
)


@router.get("/{record_id}/tenants", response_model=list[TenantOut])
async def list_client_tenants(
    record_id: int,
    principal: Annotated[Principal, Depends(require_roles(ADMIN_ROLES))],
    services: ServicesDep,
) -> Any:
    tenants = await services.client_tenants.tenants_of_client(principal, record_id)
    return [TenantOut.model_validate(t) for t in tenants]
