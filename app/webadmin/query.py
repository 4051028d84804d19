"""
List-endpoint query parsing.

The admin client sends bracketed query strings (``pagination[page]=2``,
``filter[type][]=news``, ``sort[field]=code``); ``parse_list_query`` turns
them into a ``ListQuery`` and the ``apply_*`` helpers push it onto a
SQLAlchemy query.
"""
from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, or_

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

FILTER_KINDS = ("exact", "bool", "in", "gte", "lte", "like")

_KEY_RE = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_PART_RE = re.compile(r"\[([^\[\]]*)\]")


def parse_query(args: Mapping[str, Any]) -> dict[str, Any]:
    """
    Nest a flat (multi)dict of bracketed keys:
    ``{"filter[role]": "admin", "filter[ids][]": ["1", "2"]}`` ->
    ``{"filter": {"role": "admin", "ids": ["1", "2"]}}``.
    """
    out: dict[str, Any] = {}
    for key in args.keys():
        values = args.getlist(key) if hasattr(args, "getlist") else _as_list(args[key])
        m = _KEY_RE.match(key)
        if not m:
            continue
        path = [m.group(1), *_PART_RE.findall(m.group(2))]
        is_list = len(path) > 1 and path[-1] == ""
        if is_list:
            path = path[:-1]

        node = out
        for part in path[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child

        leaf = path[-1]
        if is_list:
            existing = node.get(leaf)
            node[leaf] = (existing if isinstance(existing, list) else []) + list(values)
        elif len(values) == 1:
            node[leaf] = values[0]
        else:
            node[leaf] = list(values)
    return out


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _to_int(value: Any, default: int) -> int:
    try:
        n = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return n if n > 0 else default


def parse_pagination(parsed: Mapping[str, Any]) -> tuple[int, int]:
    pagination = parsed.get("pagination")
    if not isinstance(pagination, dict):
        pagination = {}
    page = _to_int(pagination.get("page", parsed.get("page")), DEFAULT_PAGE)
    limit = _to_int(pagination.get("limit", parsed.get("limit")), DEFAULT_LIMIT)
    return page, min(limit, MAX_LIMIT)


@dataclass
class ListQuery:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    filters: dict[str, Any] = field(default_factory=dict)
    search: str = ""
    sort_field: str | None = None
    sort_order: str = "asc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def parse_list_query(args: Mapping[str, Any]) -> ListQuery:
    parsed = parse_query(args)
    page, limit = parse_pagination(parsed)

    filters = parsed.get("filter")
    if not isinstance(filters, dict):
        filters = {}

    search = parsed.get("search") or ""
    if isinstance(search, list):
        search = search[-1] if search else ""
    if not isinstance(search, str):
        search = ""

    sort = parsed.get("sort")
    if isinstance(sort, dict):
        sort_field = sort.get("field")
        sort_order = sort.get("order") or "asc"
    else:
        sort_field = sort if isinstance(sort, str) else None
        sort_order = parsed.get("order") or "asc"
    if not isinstance(sort_field, str):
        sort_field = None
    if not isinstance(sort_order, str):
        sort_order = "asc"
    sort_order = "desc" if sort_order.lower() in ("desc", "-1") else "asc"

    return ListQuery(
        page=page,
        limit=limit,
        filters=filters,
        search=search.strip(),
        sort_field=(sort_field or None),
        sort_order=sort_order,
    )


def parse_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    v = str(value).strip().lower()
    if v in ("true", "1", "yes"):
        return True
    if v in ("false", "0", "no"):
        return False
    return None


@dataclass(frozen=True)
class FilterSpec:
    """
    One allowed filter: ``column`` is the model attribute name, ``kind`` one of
    FILTER_KINDS. ``cast`` converts raw strings (values that fail to cast are
    dropped). ``build`` replaces the column comparison entirely.
    """

    column: str
    kind: str = "exact"
    cast: Callable[[Any], Any] | None = None
    build: Callable[[Any], Any] | None = None


def _cast_all(spec: FilterSpec, values: Iterable[Any]) -> list[Any]:
    out = []
    for v in values:
        if v is None or v == "":
            continue
        if spec.cast is None:
            out.append(v)
            continue
        try:
            out.append(spec.cast(v))
        except (TypeError, ValueError):
            continue
    return out


def _clause(model: Any, spec: FilterSpec, value: Any) -> Any:
    if spec.kind == "bool":
        b = parse_bool(value[-1] if isinstance(value, list) and value else value)
        if b is None:
            return None
        return spec.build(b) if spec.build else getattr(model, spec.column).is_(b)

    if spec.kind == "in" or isinstance(value, list):
        raw = value if isinstance(value, list) else str(value).split(",")
        values = _cast_all(spec, [r.strip() if isinstance(r, str) else r for r in raw])
        if not values:
            return None
        if spec.build:
            return spec.build(values)
        col = getattr(model, spec.column)
        return col == values[0] if len(values) == 1 else col.in_(values)

    values = _cast_all(spec, [value])
    if not values:
        return None
    v = values[0]
    if spec.build:
        return spec.build(v)
    col = getattr(model, spec.column)
    if spec.kind == "gte":
        return col >= v
    if spec.kind == "lte":
        return col <= v
    if spec.kind == "like":
        return func.lower(col).contains(str(v).lower(), autoescape=True)
    return col == v


def apply_filters(q: Any, model: Any, filters: Mapping[str, Any], config: Mapping[str, FilterSpec]) -> Any:
    for name, value in filters.items():
        spec = config.get(name)
        # nested brackets (filter[role][x]=...) arrive as dicts
        if spec is None or value is None or value == "" or isinstance(value, dict):
            continue
        clause = _clause(model, spec, value)
        if clause is not None:
            q = q.filter(clause)
    return q


def apply_search(q: Any, columns: Iterable[Any], term: str | None) -> Any:
    term = (term or "").strip()
    if not term:
        return q
    needle = term.lower()
    return q.filter(or_(*[func.lower(c).contains(needle, autoescape=True) for c in columns]))


def apply_sort(q: Any, field: str | None, order: str, allowed: Mapping[str, Any], default: Iterable[Any]) -> Any:
    col = allowed.get(field or "")
    if col is None:
        return q.order_by(*default)
    return q.order_by(col.desc() if order == "desc" else col.asc())


def paginate(q: Any, lq: ListQuery) -> tuple[list[Any], int]:
    total = q.order_by(None).count()
    items = q.offset(lq.offset).limit(lq.limit).all()
    return items, total
