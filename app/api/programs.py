"""Program endpoints: every role reads, admins write.

GET /v1/programs/{id}/specializations lists the active specializations
linked to a program.
"""

from typing import Annotated, Any

from fastapi import Depends

from app.api.crud import ServicesDep, build_crud_router
from app.api.dependencies import require_roles
from app.api.schemas import (
    ProgramCreateIn,
    ProgramOut,
    ProgramUpdateIn,
    SpecializationOut,
)
from app.models.principal import ADMIN_ROLES, ALL_ROLES, Principal
from app.query.entity_config import PROGRAMS

router = build_crud_router(
    prefix="/v1/programs",
    tag="programs",
    config=PROGRAMS,
    pick=lambda services: services.programs,
    out_model=ProgramOut,
    create_model_=ProgramCreateIn,
    update_model=ProgramUpdateIn,
    read_roles=ALL_ROLES,
    write_roles=ADMIN_ROLES,
)


@router.get("/{record_id}/specializations", response_model=list[SpecializationOut])
async def list_program_specializations(
    record_id: int,
    principal: Annotated[Principal, Depends(require_roles(ALL_ROLES))],
    services: ServicesDep,
) -> Any:
    found = await services.specialization_programs.active_for_program(principal, record_id)
    return [SpecializationOut.model_validate(s) for s in found]
