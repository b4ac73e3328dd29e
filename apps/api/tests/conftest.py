from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict

import pytest
from sqlalchemy import text

from cellar.core.db import get_engine, init_db, reset_engine
from cellar.modules.reviews.domain import WineReview
from cellar.modules.reviews.service import create_review
from cellar.modules.wines.domain import Award, CreateWineCommand, Place, Purchase, Wine, WineGrape
from cellar.modules.wines.service import create_wine

RIOJA, RIAS_BAIXAS, BORDEAUX = 9, 4, 12
TEMPRANILLO, MENCIA, ALBARINO, GARNACHA = 1, 2, 3, 5


def _seed(engine) -> None:
    with engine.begin() as conn:
        conn.execute(
            text('INSERT INTO "do" (id, name, region, country, country_code) VALUES (:id, :name, :region, :country, :cc)'),
            [
                {"id": RIOJA, "name": "Rioja", "region": "La Rioja", "country": "spain", "cc": "ES"},
                {"id": RIAS_BAIXAS, "name": "Rías Baixas", "region": "Galicia", "country": "spain", "cc": "ES"},
                {"id": BORDEAUX, "name": "Bordeaux", "region": "Nouvelle-Aquitaine", "country": "france", "cc": "FR"},
            ],
        )
        conn.execute(
            text("INSERT INTO grape (id, name, color) VALUES (:id, :name, :color)"),
            [
                {"id": TEMPRANILLO, "name": "Tempranillo", "color": "red"},
                {"id": MENCIA, "name": "Mencia", "color": "red"},
                {"id": ALBARINO, "name": "Albarino", "color": "white"},
                {"id": GARNACHA, "name": "Garnacha", "color": "red"},
            ],
        )
        conn.execute(
            text(
                "INSERT INTO users (id, email, name, lastname, password_hash, created_at) "
                "VALUES (:id, :email, :name, :lastname, 'x', '2026-01-01T00:00:00.000000Z')"
            ),
            [
                {"id": 1, "email": "ana@example.com", "name": "Ana", "lastname": "Lopez"},
                {"id": 2, "email": "bruno@example.com", "name": "Bruno", "lastname": "Diaz"},
                {"id": 3, "email": "carla@example.com", "name": "Carla", "lastname": "Ruiz"},
            ],
        )


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    return tmp_path / "storage"


@pytest.fixture(autouse=True)
def db(tmp_path: Path, storage_root: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{(tmp_path / 'cellar.db').as_posix()}")
    monkeypatch.setenv("STORAGE_ROOT", str(storage_root))
    monkeypatch.setenv("PHOTO_URL_PREFIX", "/images/wines/")
    reset_engine()
    init_db()
    engine = get_engine()
    _seed(engine)
    yield engine
    reset_engine()


def restaurant_purchase(**overrides: Any) -> Purchase:
    place = Place(
        place_type="restaurant",
        name=overrides.pop("place_name", "Casa Paco"),
        address="Calle A",
        city="Madrid",
        country="spain",
    )
    return Purchase(
        place=place,
        price_paid=overrides.pop("price_paid", 19.99),
        purchased_at=overrides.pop("purchased_at", "2026-02-28T10:00:00+00:00"),
    )


@pytest.fixture
def make_wine() -> Callable[..., int]:
    def _make(
        name: str = "Mencia Joven",
        grapes=(),
        purchases=(),
        awards=(),
        **fields: Any,
    ) -> int:
        wine = Wine(name=name, **fields)
        return create_wine(
            CreateWineCommand(
                wine=wine,
                grapes=tuple(WineGrape(grape_id=g, percentage=p) for g, p in grapes),
                purchases=tuple(purchases),
                awards=tuple(Award(**a) for a in awards),
            )
        )

    return _make


@pytest.fixture
def make_review() -> Callable[..., int]:
    def _make(user_id: int, wine_id: int, score=None, bullets=(), **axes: Any) -> int:
        values: Dict[str, Any] = {
            "intensity_aroma": 3,
            "sweetness": 1,
            "acidity": 3,
            "body": 3,
            "persistence": 3,
            "tannin": None,
        }
        values.update(axes)
        return create_review(WineReview(user_id=user_id, wine_id=wine_id, score=score, bullets=tuple(bullets), **values))

    return _make


def count(engine, table: str) -> int:
    with engine.connect() as conn:
        return int(conn.execute(text(f'SELECT COUNT(*) FROM "{table}"')).scalar_one())
