"""Specialization endpoints and specialization-program links.

Every role reads; admins write.  A specialization cannot be deleted
while linked to a live program, and a link's specialization and program
must both be live in the link's tenant.
"""

from __future__ import annotations

from app.api.crud import build_crud_router
from app.api.schemas import (
    SpecializationCreateIn,
    SpecializationOut,
    SpecializationProgramCreateIn,
    SpecializationProgramOut,
    SpecializationUpdateIn,
)
from app.models.principal import ADMIN_ROLES, ALL_ROLES
from app.query.entity_config import SPECIALIZATION_PROGRAMS, SPECIALIZATIONS

router = build_crud_router(
    prefix="/v1/specializations",
    tag="specializations",
    config=SPECIALIZATIONS,
    pick=lambda services: services.specializations,
    out_model=SpecializationOut,
    create_model_=SpecializationCreateIn,
    update_model=SpecializationUpdateIn,
    read_roles=ALL_ROLES,
    write_roles=ADMIN_ROLES,
)

links_router = build_crud_router(
    prefix="/v1/specialization-programs",
    tag="specializations",
    config=SPECIALIZATION_PROGRAMS,
    pick=lambda services: services.specialization_programs,
    out_model=SpecializationProgramOut,
    create_model_=SpecializationProgramCreateIn,
    update_model=None,
    read_roles=ALL_ROLES,
    write_roles=ADMIN_ROLES,
)
