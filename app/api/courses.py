"""Course endpoints.

Every role reads; admins write.  A course's program_id must name a live
program in the same tenant (CourseService).
"""

from __future__ import annotations

from app.api.crud import build_crud_router
from app.api.schemas import CourseCreateIn, CourseOut, CourseUpdateIn
from app.models.principal import ADMIN_ROLES, ALL_ROLES
from app.query.entity_config import COURSES

router = build_crud_router(
    prefix="/v1/courses",
    tag="courses",
    config=COURSES,
    pick=lambda services: services.courses,
    out_model=CourseOut,
    create_model_=CourseCreateIn,
    update_model=CourseUpdateIn,
    read_roles=ALL_ROLES,
    write_roles=ADMIN_ROLES,
)
