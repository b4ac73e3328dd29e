from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Connection

from cellar.core.db import get_engine

from .domain import DenominationOfOrigin, Grape


def _row_to_do(row: Any) -> DenominationOfOrigin:
    return DenominationOfOrigin(
        id=int(row["id"]),
        name=str(row["name"]),
        region=str(row["region"]),
        country=row["country"],
        country_code=str(row["country_code"]),
    )


def find_do(conn: Connection, do_id: int) -> Optional[DenominationOfOrigin]:
    row = (
        conn.execute(
            text('SELECT id, name, region, country, country_code FROM "do" WHERE id = :id'),
            {"id": do_id},
        )
        .mappings()
        .first()
    )
    if row is None:
        return None
    return _row_to_do(row)


def find_existing_grape_ids(conn: Connection, ids: Iterable[int]) -> Set[int]:
    wanted = sorted(set(int(i) for i in ids))
    if not wanted:
        return set()
    stmt = text("SELECT id FROM grape WHERE id IN :ids").bindparams(bindparam("ids", expanding=True))
    return {int(r[0]) for r in conn.execute(stmt, {"ids": wanted})}


def list_dos() -> List[Dict[str, Any]]:
    with get_engine().connect() as conn:
        rows = conn.execute(
            text('SELECT id, name, region, country, country_code FROM "do" ORDER BY country ASC, name ASC')
        ).mappings()
        return [_do_dict(_row_to_do(r)) for r in rows]


def list_grapes() -> List[Dict[str, Any]]:
    with get_engine().connect() as conn:
        rows = conn.execute(
            text(
                """
                SELECT g.id, g.name, g.color
                FROM grape g
                ORDER BY
                  CASE g.color WHEN 'red' THEN 0 WHEN 'white' THEN 1 ELSE 2 END,
                  g.name ASC
                """
            )
        ).mappings()
        out: List[Dict[str, Any]] = []
        for r in rows:
            g = Grape(id=int(r["id"]), name=str(r["name"]), color=r["color"])
            out.append({"id": g.id, "name": g.name, "color": g.color.value})
        return out


def _do_dict(do: DenominationOfOrigin) -> Dict[str, Any]:
    return {
        "id": do.id,
        "name": do.name,
        "region": do.region,
        "country": do.country.value,
        "country_code": do.country_code,
    }
