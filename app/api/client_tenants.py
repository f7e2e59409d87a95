"""Client-tenant association endpoints, admin-only.

An association says a client is served in a tenant.  Both must be live;
a tenant admin can only associate its own clients with its own tenant,
and a client can be associated with a tenant once.  Associations are
created and soft-deleted, never edited.
"""

from __future__ import annotations

from app.api.crud import build_crud_router
from app.api.schemas import ClientTenantCreateIn, ClientTenantOut
from app.models.principal import ADMIN_ROLES
from app.query.entity_config import CLIENT_TENANTS

router = build_crud_router(
    prefix="/v1/client-tenants",
    tag="client-tenants",
    config=CLIENT_TENANTS,
    pick=lambda services: services.client_tenants,
    out_model=ClientTenantOut,
    create_model_=ClientTenantCreateIn,
    update_model=None,
    read_roles=ADMIN_ROLES,
    write_roles=ADMIN_ROLES,
)
