"""Tenant endpoints.

A tenant admin can read only its own tenant (a tenant's tenant key is
its id); creating, renaming and deleting tenants is super-admin work.
"""

from __future__ import annotations

from app.api.crud import build_crud_router
from app.api.schemas import TenantCreateIn, TenantOut, TenantUpdateIn
from app.models.principal import ADMIN_ROLES, Role
from app.query.entity_config import TENANTS

router = build_crud_router(
    prefix="/v1/tenants",
    tag="tenants",
    config=TENANTS,
    pick=lambda services: services.tenants,
    out_model=TenantOut,
    create_model_=TenantCreateIn,
    update_model=TenantUpdateIn,
    read_roles=ADMIN_ROLES,
    write_roles={Role.SUPER_ADMIN},
)
