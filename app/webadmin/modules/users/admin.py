from __future__ import annotations

from flask import Blueprint, request

from app.webadmin.db import db_session
from app.webadmin.errors import predefined_error, validation_error
from app.webadmin.models import Role, User
from app.webadmin.modules.roles.service import serialize_role
from app.webadmin.modules.users.service import (
    create_user,
    serialize_user,
    set_user_roles,
    soft_delete_user,
    update_user,
    validate_user_payload,
)
from app.webadmin.query import FilterSpec, apply_filters, apply_search, apply_sort, paginate, parse_list_query
from app.webadmin.rbac import has_permission, require_login, require_permission
from app.webadmin.responses import paginated_response, success_response
from app.webadmin.utils import current_user, json_body

bp = Blueprint("users", __name__)

PERMISSION = "user_management.users"

USER_FILTERS = {
    "role": FilterSpec("role", "exact"),
    "isActive": FilterSpec("is_active", "bool"),
    "department": FilterSpec("department", "exact"),
    "roles": FilterSpec("roles", "in", cast=int, build=lambda ids: User.roles.any(Role.id.in_(ids))),
}

USER_SORTS = {
    "name": User.name,
    "email": User.email,
    "department": User.department,
    "createdAt": User.created_at,
    "lastLogin": User.last_login,
}


def _get_user(user_id: int) -> User:
    user = db_session().get(User, user_id)
    if not user:
        raise predefined_error("USER_NOT_FOUND")
    return user


@bp.get("")
@require_permission(PERMISSION)
def users_list():
    s = db_session()
    lq = parse_list_query(request.args)

    q = s.query(User)
    q = apply_filters(q, User, lq.filters, USER_FILTERS)
    q = apply_search(q, [User.name, User.email, User.department], lq.search)
    q = apply_sort(q, lq.sort_field, lq.sort_order, USER_SORTS, [User.name.asc(), User.id.asc()])

    users, total = paginate(q, lq)
    return paginated_response([serialize_user(u) for u in users], lq.page, lq.limit, total)


@bp.post("")
@require_permission(PERMISSION)
def user_create():
    s = db_session()
    payload = json_body()
    errors = validate_user_payload(s, payload)
    if errors:
        raise validation_error(errors)

    user = create_user(s, payload, current_user())
    s.commit()
    return success_response(serialize_user(user), message_key="CREATE_SUCCESS"), 201


@bp.get("/<int:user_id>")
@require_login
def user_detail(user_id: int):
    me = current_user()
    if me.id != user_id and not has_permission(me, PERMISSION):
        raise predefined_error("FORBIDDEN")
    return success_response(serialize_user(_get_user(user_id), with_permissions=True))


@bp.put("/<int:user_id>")
@require_permission(PERMISSION)
def user_update(user_id: int):
    s = db_session()
    user = _get_user(user_id)
    payload = json_body()
    errors = validate_user_payload(s, payload, user_id=user.id)
    if errors:
        raise validation_error(errors)

    update_user(s, user, payload, current_user())
    s.commit()
    return success_response(serialize_user(user), message_key="UPDATE_SUCCESS")


@bp.delete("/<int:user_id>")
@require_permission(PERMISSION)
def user_delete(user_id: int):
    s = db_session()
    user = _get_user(user_id)
    soft_delete_user(s, user, current_user())
    s.commit()
    return success_response(
        {"id": user.id, "name": user.name, "email": user.email, "isActive": user.is_active},
        message_key="DELETE_SUCCESS",
        message="User deleted successfully",
    )


@bp.get("/<int:user_id>/roles")
@require_permission(PERMISSION)
def user_roles_get(user_id: int):
    user = _get_user(user_id)
    return success_response([serialize_role(r) for r in user.roles])


@bp.put("/<int:user_id>/roles")
@require_permission(PERMISSION)
def user_roles_put(user_id: int):
    s = db_session()
    user = _get_user(user_id)
    role_ids = json_body().get("roleIds")
    if not isinstance(role_ids, list) or not all(isinstance(r, int) and not isinstance(r, bool) for r in role_ids):
        raise validation_error({"roleIds": "roleIds must be a list of role ids"})

    set_user_roles(s, user, role_ids, current_user())
    s.commit()
    return success_response([serialize_role(r) for r in user.roles], message_key="UPDATE_SUCCESS")
