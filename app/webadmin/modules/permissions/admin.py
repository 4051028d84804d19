from __future__ import annotations

from flask import Blueprint, request

from app.webadmin.db import db_session
from app.webadmin.errors import predefined_error, validation_error
from app.webadmin.models import Permission
from app.webadmin.modules.permissions.service import (
    create_permission,
    delete_permission,
    list_modules,
    migrate_permission_types,
    serialize_permission,
    update_permission,
    validate_permission_payload,
)
from app.webadmin.query import FilterSpec, apply_filters, apply_search, apply_sort, paginate, parse_list_query
from app.webadmin.rbac import require_permission
from app.webadmin.responses import paginated_response, success_response
from app.webadmin.seed import require_seed_endpoints, seed_permissions
from app.webadmin.utils import current_user, json_body

bp = Blueprint("permissions", __name__)

PERMISSION = "user_management.permissions"

PERMISSION_FILTERS = {
    "module": FilterSpec("module", "exact"),
    "action": FilterSpec("action", "exact"),
    "type": FilterSpec("type", "exact"),
    "isActive": FilterSpec("is_active", "bool"),
    "resource": FilterSpec("resource", "exact"),
}

PERMISSION_SORTS = {
    "code": Permission.code,
    "name": Permission.name,
    "module": Permission.module,
    "action": Permission.action,
    "createdAt": Permission.created_at,
}


def _get_permission(permission_id: int) -> Permission:
    p = db_session().get(Permission, permission_id)
    if not p:
        raise predefined_error("PERMISSION_NOT_FOUND")
    return p


@bp.get("")
@require_permission(PERMISSION)
def permissions_list():
    s = db_session()
    lq = parse_list_query(request.args)

    q = s.query(Permission)
    q = apply_filters(q, Permission, lq.filters, PERMISSION_FILTERS)
    q = apply_search(
        q,
        [Permission.code, Permission.name, Permission.description, Permission.module, Permission.resource],
        lq.search,
    )
    q = apply_sort(
        q,
        lq.sort_field,
        lq.sort_order,
        PERMISSION_SORTS,
        [Permission.module.asc(), Permission.action.asc(), Permission.code.asc()],
    )

    perms, total = paginate(q, lq)
    return paginated_response([serialize_permission(p) for p in perms], lq.page, lq.limit, total)


@bp.get("/modules")
@require_permission(PERMISSION)
def permissions_modules():
    return success_response(list_modules(db_session()))


@bp.get("/<int:permission_id>")
@require_permission(PERMISSION)
def permission_detail(permission_id: int):
    return success_response(serialize_permission(_get_permission(permission_id)))


@bp.post("")
@require_permission(PERMISSION)
def permission_create():
    s = db_session()
    payload = json_body()
    errors = validate_permission_payload(payload)
    if errors:
        raise validation_error(errors)

    p = create_permission(s, payload, current_user())
    s.commit()
    return success_response(serialize_permission(p), message_key="CREATE_SUCCESS"), 201


@bp.put("/<int:permission_id>")
@require_permission(PERMISSION)
def permission_update(permission_id: int):
    s = db_session()
    p = _get_permission(permission_id)
    payload = json_body()
    errors = validate_permission_payload(payload, partial=True)
    if errors:
        raise validation_error(errors)

    update_permission(s, p, payload, current_user())
    s.commit()
    return success_response(serialize_permission(p), message_key="UPDATE_SUCCESS")


@bp.delete("/<int:permission_id>")
@require_permission(PERMISSION)
def permission_delete(permission_id: int):
    s = db_session()
    p = _get_permission(permission_id)
    delete_permission(s, p, current_user())
    s.commit()
    return success_response({"id": permission_id}, message_key="DELETE_SUCCESS")


@bp.post("/migrate")
@require_permission(PERMISSION)
def permissions_migrate():
    s = db_session()
    result = migrate_permission_types(s, current_user())
    s.commit()
    return success_response(
        result,
        message=f"Migration completed. Updated {result['updated']} permissions with default type 'action'.",
    )


@bp.post("/seed")
@require_seed_endpoints
def permissions_seed():
    s = db_session()
    result = seed_permissions(s)
    s.commit()
    return success_response(result)
