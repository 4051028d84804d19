from __future__ import annotations

from flask import Blueprint, request
from sqlalchemy import func, or_

from app.webadmin.db import db_session
from app.webadmin.errors import predefined_error, validation_error
from app.webadmin.modules.feature1.models import Feature1
from app.webadmin.modules.feature1.service import (
    create_feature1,
    delete_feature1,
    serialize_feature1,
    update_feature1,
    validate_feature1_payload,
)
from app.webadmin.query import FilterSpec, apply_filters, apply_sort, paginate, parse_list_query
from app.webadmin.rbac import require_login
from app.webadmin.responses import paginated_response, success_response
from app.webadmin.seed import require_seed_endpoints, seed_feature1
from app.webadmin.utils import current_user, json_body

bp = Blueprint("feature1", __name__)

FEATURE1_FILTERS = {
    "type": FilterSpec("type", "exact"),
    "isActive": FilterSpec("is_active", "bool"),
    "startDate": FilterSpec("start_date", "gte"),
    "endDate": FilterSpec("end_date", "lte"),
}

FEATURE1_SORTS = {
    "code": Feature1.code,
    "title": Feature1.title,
    "type": Feature1.type,
    "startDate": Feature1.start_date,
    "endDate": Feature1.end_date,
    "createdAt": Feature1.created_at,
    "updatedAt": Feature1.updated_at,
}


def _get_feature1(feature_id: int) -> Feature1:
    f = db_session().get(Feature1, feature_id)
    if not f:
        raise predefined_error("NOT_FOUND")
    return f


def _apply_feature1_search(q, term: str):
    if not term:
        return q
    needle = term.lower()
    clauses = [
        func.lower(Feature1.title).contains(needle, autoescape=True),
        func.lower(Feature1.description).contains(needle, autoescape=True),
    ]
    if term.isdigit():
        clauses.append(Feature1.code == int(term))
    return q.filter(or_(*clauses))


@bp.get("")
@require_login
def feature1_list():
    s = db_session()
    lq = parse_list_query(request.args)

    q = s.query(Feature1)
    q = apply_filters(q, Feature1, lq.filters, FEATURE1_FILTERS)
    q = _apply_feature1_search(q, lq.search)
    q = apply_sort(q, lq.sort_field, lq.sort_order, FEATURE1_SORTS, [Feature1.created_at.desc(), Feature1.id.desc()])

    items, total = paginate(q, lq)
    return paginated_response([serialize_feature1(f) for f in items], lq.page, lq.limit, total)


@bp.get("/<int:feature_id>")
@require_login
def feature1_detail(feature_id: int):
    return success_response(serialize_feature1(_get_feature1(feature_id)))


@bp.post("")
@require_login
def feature1_create():
    s = db_session()
    payload = json_body()
    errors = validate_feature1_payload(payload)
    if errors:
        raise validation_error(errors)

    f = create_feature1(s, payload, current_user())
    s.commit()
    return success_response(serialize_feature1(f), message_key="CREATE_SUCCESS"), 201


@bp.put("/<int:feature_id>")
@require_login
def feature1_update(feature_id: int):
    s = db_session()
    f = _get_feature1(feature_id)
    payload = json_body()
    errors = validate_feature1_payload(payload, partial=True, current=f)
    if errors:
        raise validation_error(errors)

    update_feature1(s, f, payload, current_user())
    s.commit()
    return success_response(serialize_feature1(f), message_key="UPDATE_SUCCESS")


@bp.delete("/<int:feature_id>")
@require_login
def feature1_delete(feature_id: int):
    s = db_session()
    f = _get_feature1(feature_id)
    delete_feature1(s, f, current_user())
    s.commit()
    return success_response({"id": feature_id, "code": f.code}, message_key="DELETE_SUCCESS")


@bp.post("/seed")
@require_seed_endpoints
def feature1_seed():
    s = db_session()
    result = seed_feature1(s)
    s.commit()
    return success_response(result)
