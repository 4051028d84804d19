from __future__ import annotations

from flask import Blueprint, request

from app.webadmin.db import db_session
from app.webadmin.errors import predefined_error, validation_error
from app.webadmin.models import Role
from app.webadmin.modules.roles.service import create_role, delete_role, serialize_role, update_role, validate_role_payload
from app.webadmin.query import FilterSpec, apply_filters, apply_search, apply_sort, paginate, parse_list_query
from app.webadmin.rbac import require_permission
from app.webadmin.responses import paginated_response, success_response
from app.webadmin.seed import require_seed_endpoints, seed_roles
from app.webadmin.utils import current_user, json_body

bp = Blueprint("roles", __name__)

PERMISSION = "user_management.roles"

ROLE_FILTERS = {
    "isActive": FilterSpec("is_active", "bool"),
    "name": FilterSpec("name", "like"),
    "code": FilterSpec("code", "exact"),
}

ROLE_SORTS = {
    "name": Role.name,
    "code": Role.code,
    "createdAt": Role.created_at,
    "updatedAt": Role.updated_at,
}


def _get_role(role_id: int) -> Role:
    role = db_session().get(Role, role_id)
    if not role:
        raise predefined_error("ROLE_NOT_FOUND")
    return role


@bp.get("")
@require_permission(PERMISSION)
def roles_list():
    s = db_session()
    lq = parse_list_query(request.args)

    q = s.query(Role)
    q = apply_filters(q, Role, lq.filters, ROLE_FILTERS)
    q = apply_search(q, [Role.name, Role.description, Role.code], lq.search)
    q = apply_sort(q, lq.sort_field, lq.sort_order, ROLE_SORTS, [Role.created_at.desc(), Role.id.desc()])

    roles, total = paginate(q, lq)
    return paginated_response([serialize_role(r) for r in roles], lq.page, lq.limit, total)


@bp.get("/<int:role_id>")
@require_permission(PERMISSION)
def role_detail(role_id: int):
    return success_response(serialize_role(_get_role(role_id)))


@bp.post("")
@require_permission(PERMISSION)
def role_create():
    s = db_session()
    payload = json_body()
    errors = validate_role_payload(payload)
    if errors:
        raise validation_error(errors)

    role = create_role(s, payload, current_user())
    s.commit()
    return success_response(serialize_role(role), message_key="CREATE_SUCCESS"), 201


@bp.put("/<int:role_id>")
@require_permission(PERMISSION)
def role_update(role_id: int):
    s = db_session()
    role = _get_role(role_id)
    payload = json_body()
    errors = validate_role_payload(payload, partial=True)
    if errors:
        raise validation_error(errors)

    update_role(s, role, payload, current_user())
    s.commit()
    return success_response(serialize_role(role), message_key="UPDATE_SUCCESS")


@bp.delete("/<int:role_id>")
@require_permission(PERMISSION)
def role_delete(role_id: int):
    s = db_session()
    role = _get_role(role_id)
    delete_role(s, role, current_user())
    s.commit()
    return success_response({"id": role_id}, message_key="DELETE_SUCCESS")


@bp.post("/seed")
@require_seed_endpoints
def roles_seed():
    s = db_session()
    result = seed_roles(s)
    s.commit()
    return success_response(result)
