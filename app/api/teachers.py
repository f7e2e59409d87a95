"""Teacher endpoints.

A teacher reads only its own record (own-record rule on TEACHERS).
Admins read and write.
"""

from __future__ import annotations

from app.api.crud import build_crud_router
from app.api.schemas import TeacherCreateIn, TeacherOut, TeacherUpdateIn
from app.models.principal import ADMIN_ROLES, Role
from app.query.entity_config import TEACHERS

router = build_crud_router(
    prefix="/v1/teachers",
    tag="teachers",
    config=TEACHERS,
    pick=lambda services: services.teachers,
    out_model=TeacherOut,
    create_model_=TeacherCreateIn,
    update_model=TeacherUpdateIn,
    read_roles=ADMIN_ROLES | {Role.TEACHER},
    write_roles=ADMIN_ROLES,
)
