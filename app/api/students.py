"""Student endpoints.

Teachers read every student in their tenant; a student reads only its
own record (own-record rule on STUDENTS).  Admins write.
"""

from __future__ import annotations

from app.api.crud import build_crud_router
from app.api.schemas import StudentCreateIn, StudentOut, StudentUpdateIn
from app.models.principal import ADMIN_ROLES, Role
from app.query.entity_config import STUDENTS

router = build_crud_router(
    prefix="/v1/students",
    tag="students",
    config=STUDENTS,
    pick=lambda services: services.students,
    out_model=StudentOut,
    create_model_=StudentCreateIn,
    update_model=StudentUpdateIn,
    read_roles=ADMIN_ROLES | {Role.TEACHER, Role.STUDENT},
    write_roles=ADMIN_ROLES,
)
