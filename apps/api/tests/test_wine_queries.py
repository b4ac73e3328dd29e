from __future__ import annotations

import math

import pytest
from sqlalchemy import text

from cellar.modules.wines.queries import WineListQuery, get_wine_detail, list_wines

from conftest import ALBARINO, BORDEAUX, MENCIA, RIAS_BAIXAS, RIOJA, TEMPRANILLO


def _ids(page):
    return [item["id"] for item in page["items"]]


def test_empty_catalog_has_zero_pages(db):
    page = list_wines(WineListQuery())
    assert page["items"] == []
    assert page["pagination"]["total_items"] == 0
    assert page["pagination"]["total_pages"] == 0
    assert page["pagination"]["has_next"] is False


@pytest.mark.parametrize("total, limit", [(1, 1), (7, 3), (9, 3), (10, 4)])
def test_pagination_math(db, make_wine, total, limit):
    for i in range(total):
        make_wine(name=f"wine {i}")

    expected_pages = math.ceil(total / limit)
    seen = []
    for p in range(1, expected_pages + 1):
        page = list_wines(WineListQuery(page=p, limit=limit))
        pg = page["pagination"]
        assert pg["total_items"] == total
        assert pg["total_pages"] == expected_pages
        if p < expected_pages:
            assert len(page["items"]) == limit
            assert pg["has_next"] is True
        else:
            assert 1 <= len(page["items"]) <= limit
            assert pg["has_next"] is False
        assert pg["has_prev"] is (p > 1)
        seen.extend(_ids(page))

    assert len(seen) == total == len(set(seen))
    assert list_wines(WineListQuery(page=expected_pages + 1, limit=limit))["items"] == []


def test_default_order_is_newest_first(db, make_wine):
    a = make_wine(name="a")
    b = make_wine(name="b")
    c = make_wine(name="c")
    assert _ids(list_wines(WineListQuery())) == [c, b, a]
    assert _ids(list_wines(WineListQuery(sort_dir="asc"))) == [a, b, c]


def test_sort_by_name_and_vintage_nulls_last(db, make_wine):
    old = make_wine(name="Beta", vintage_year=1995)
    new = make_wine(name="Alpha", vintage_year=2020)
    unknown = make_wine(name="Gamma")

    assert _ids(list_wines(WineListQuery(sort_by="name", sort_dir="asc"))) == [new, old, unknown]
    assert _ids(list_wines(WineListQuery(sort_by="vintage_year", sort_dir="asc"))) == [old, new, unknown]
    assert _ids(list_wines(WineListQuery(sort_by="vintage_year", sort_dir="desc"))) == [new, old, unknown]


def test_score_sort_uses_average_and_puts_unscored_last(db, make_wine, make_review):
    high = make_wine(name="high")
    low = make_wine(name="low")
    unscored = make_wine(name="unscored")
    no_reviews = make_wine(name="no reviews")

    make_review(1, high, score=90)
    make_review(2, high, score=95)
    make_review(1, low, score=60)
    make_review(2, low, score=None)  # ignored by the average
    make_review(1, unscored, score=None)

    desc = list_wines(WineListQuery(sort_by="score", sort_dir="desc"))
    assert _ids(desc)[:2] == [high, low]
    assert set(_ids(desc)[2:]) == {unscored, no_reviews}

    asc = list_wines(WineListQuery(sort_by="score", sort_dir="asc"))
    assert _ids(asc)[:2] == [low, high]

    scores = {item["id"]: item["avg_score"] for item in desc["items"]}
    assert scores[high] == 92.5
    assert scores[low] == 60.0
    assert scores[unscored] is None


def test_unscored_ties_break_by_id_desc(db, make_wine):
    a = make_wine(name="a")
    b = make_wine(name="b")
    assert _ids(list_wines(WineListQuery(sort_by="score", sort_dir="asc"))) == [b, a]


def test_search_is_case_insensitive_over_name_winery_and_do(db, make_wine):
    by_name = make_wine(name="Pago de Carraovejas")
    by_winery = make_wine(name="Tinto", winery="CARRA Bodegas")
    by_do = make_wine(name="Blanco", do_id=RIAS_BAIXAS)
    by_region = make_wine(name="Crianza", do_id=RIOJA)
    make_wine(name="Other", winery="Nothing")

    assert set(_ids(list_wines(WineListQuery(search="carra")))) == {by_name, by_winery}
    assert _ids(list_wines(WineListQuery(search="baixas"))) == [by_do]
    assert _ids(list_wines(WineListQuery(search="la rioja"))) == [by_region]


def test_search_treats_like_wildcards_literally(db, make_wine):
    make_wine(name="100% Garnacha")
    make_wine(name="Garnacha")
    assert len(list_wines(WineListQuery(search="100%"))["items"]) == 1
    assert list_wines(WineListQuery(search="_"))["items"] == []


def test_combined_filters(db, make_wine, make_review):
    target = make_wine(name="Albariño top", wine_type="white", do_id=RIAS_BAIXAS, grapes=[(ALBARINO, 100)])
    other_score = make_wine(name="Albariño ok", wine_type="white", do_id=RIAS_BAIXAS, grapes=[(ALBARINO, 100)])
    other_grape = make_wine(name="Blend", wine_type="white", do_id=RIAS_BAIXAS, grapes=[(TEMPRANILLO, 100)])
    other_type = make_wine(name="Tinto", wine_type="red", do_id=RIAS_BAIXAS, grapes=[(ALBARINO, 100)])
    other_country = make_wine(name="Blanc", wine_type="white", do_id=BORDEAUX, grapes=[(ALBARINO, 100)])

    make_review(1, target, score=94)
    make_review(2, target, score=92)
    make_review(1, other_score, score=85)
    for wid in (other_grape, other_type, other_country):
        make_review(1, wid, score=97)

    page = list_wines(
        WineListQuery(
            wine_type="white",
            country="spain",
            do_id=RIAS_BAIXAS,
            grape_id=ALBARINO,
            score_min=90,
            sort_by="score",
            sort_dir="desc",
        )
    )
    assert _ids(page) == [target]
    assert page["items"][0]["do_name"] == "Rías Baixas"


def test_score_bounds(db, make_wine, make_review):
    w70 = make_wine(name="seventy")
    w85 = make_wine(name="eighty five")
    make_review(1, w70, score=70)
    make_review(1, w85, score=85)

    assert _ids(list_wines(WineListQuery(score_min=70, score_max=80))) == [w70]
    assert _ids(list_wines(WineListQuery(score_max=69))) == []
    assert set(_ids(list_wines(WineListQuery(score_min=0)))) == {w70, w85}


def test_grape_filter_uses_links(db, make_wine):
    blend = make_wine(name="Blend", grapes=[(TEMPRANILLO, 50), (MENCIA, 50)])
    make_wine(name="Mono", grapes=[(TEMPRANILLO, 100)])
    assert _ids(list_wines(WineListQuery(grape_id=MENCIA))) == [blend]


def test_list_items_carry_photo_summary(db, make_wine):
    wine_id = make_wine()
    with db.begin() as conn:
        conn.execute(
            text(
                "INSERT INTO wine_photo (wine_id, url, type, hash, size, extension) "
                "VALUES (:w, '/images/wines/1/a.jpg', 'bottle', '0123456789abcdef', 3, 'jpg')"
            ),
            {"w": wine_id},
        )
    item = list_wines(WineListQuery())["items"][0]
    assert item["photos"] == [{"type": "bottle", "url": "/images/wines/1/a.jpg"}]


def test_detail_reviews_with_users_and_legacy_bullets(db, make_wine, make_review):
    wine_id = make_wine()
    first = make_review(1, wine_id, score=80, bullets=["fruity"])
    second = make_review(2, wine_id, score=90, tannin=4)
    with db.begin() as conn:
        conn.execute(
            text("INSERT INTO review_bullets (review_id, bullet) VALUES (:r, 'especiado'), (:r, 'marked_wood')"),
            {"r": second},
        )

    reviews = get_wine_detail(wine_id)["reviews"]
    assert [r["id"] for r in reviews] == [second, first]
    assert reviews[0]["user"] == {"id": 2, "name": "Bruno", "lastname": "Diaz"}
    assert sorted(reviews[0]["bullets"]) == ["oak_forward", "spicy"]
    assert reviews[0]["tannin"] == 4
    assert reviews[1]["bullets"] == ["fruity"]
