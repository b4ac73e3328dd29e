from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from cellar.main import app

from conftest import ALBARINO, BORDEAUX, MENCIA, RIOJA

@pytest.fixture
def client(db):
    with TestClient(app) as c:
        yield c

MENCIA_PAYLOAD = {
    "name": "Mencía",
    "do_id": RIOJA,
    "grapes": [{"grape_id": MENCIA, "percentage": 40}],
    "purchases": [
        {
            "place": {
                "place_type": "restaurant",
                "name": "Casa Paco",
                "address": "Calle A",
                "city": "Madrid",
                "country": "spain",
            },
            "price_paid": 19.99,
            "purchased_at": "2026-02-28T10:00:00+00:00",
        }
    ],
}

AXES = {"intensity_aroma": 3, "sweetness": 1, "acidity": 4, "body": 3, "persistence": 4}

def _error(resp, status):
    assert resp.status_code == status, resp.text
    body = resp.json()
    assert set(body) == {"error", "message", "request_id", "details"}
    assert body["request_id"] == resp.headers["X-Request-Id"]
    return body

def test_health_echoes_request_id(client):
    r = client.get("/health", headers={"X-Request-Id": "abc123"})
    assert r.status_code == 200
    assert r.headers["X-Request-Id"] == "abc123"
    body = r.json()
    assert body["status"] == "ok"
    assert body["db"]["status"] == "ok"
    assert body["storage"]["status"] == "ok"

def test_catalog_lists(client):
    dos = client.get("/dos").json()["items"]
    assert [(d["country"], d["name"]) for d in dos] == [
        ("france", "Bordeaux"),
        ("spain", "Rioja"),
        ("spain", "Rías Baixas"),
    ]
    grapes = client.get("/grapes").json()["items"]
    assert [g["name"] for g in grapes] == ["Garnacha", "Mencia", "Tempranillo", "Albarino"]

def test_create_and_fetch_wine(client):
    r = client.post("/wines", json=MENCIA_PAYLOAD)
    assert r.status_code == 201, r.text
    wine_id = r.json()["id"]

    detail = client.get(f"/wines/{wine_id}").json()
    assert detail["country"] == "spain"
    assert detail["do"]["name"] == "Rioja"
    assert detail["grapes"][0]["percentage"] == 40.0
    assert detail["purchases"][0]["place"]["name"] == "Casa Paco"

def test_country_mismatch_is_400(client):
    body = _error(client.post("/wines", json={**MENCIA_PAYLOAD, "country": "france"}), 400)
    assert body["error"] == "validation_error"
    assert body["details"] == {"field": "country"}

def test_bad_value_object_is_400(client):
    payload = {**MENCIA_PAYLOAD, "vintage_year": 1500}
    body = _error(client.post("/wines", json=payload), 400)
    assert body["details"]["field"] == "vintage_year"

def test_missing_references_are_404(client):
    payload = {**MENCIA_PAYLOAD, "grapes": [{"grape_id": 70}, {"grape_id": 8}]}
    body = _error(client.post("/wines", json=payload), 404)
    assert body["error"] == "reference_not_found"
    assert body["details"] == {"resource": "grape", "missing_ids": [8, 70]}

def test_malformed_body_is_422(client):
    body = _error(client.post("/wines", json={"winery": "no name"}), 422)
    assert body["error"] == "validation_error"

def test_patch_wine(client):
    wine_id = client.post("/wines", json=MENCIA_PAYLOAD).json()["id"]

    assert client.patch(f"/wines/{wine_id}", json={"winery": "Bodegas Y", "do_id": BORDEAUX}).status_code == 204
    detail = client.get(f"/wines/{wine_id}").json()
    assert detail["winery"] == "Bodegas Y"
    assert detail["country"] == "france"
    # grapes were not part of the patch
    assert [g["id"] for g in detail["grapes"]] == [MENCIA]

    assert client.patch(f"/wines/{wine_id}", json={"grapes": [{"grape_id": ALBARINO}]}).status_code == 204
    assert [g["id"] for g in client.get(f"/wines/{wine_id}").json()["grapes"]] == [ALBARINO]

def test_patch_errors(client):
    wine_id = client.post("/wines", json=MENCIA_PAYLOAD).json()["id"]
    body = _error(client.patch(f"/wines/{wine_id}", json={}), 400)
    assert body["message"] == "at least one field required"

    body = _error(client.patch("/wines/999", json={"name": "x"}), 404)
    assert body["error"] == "not_found"

def test_list_wines_endpoint(client):
    for i in range(3):
        client.post("/wines", json={"name": f"wine {i}", "wine_type": "red"})
    r = client.get("/wines", params={"limit": 2, "wine_type": "red", "sort_by": "name", "sort_dir": "asc"})
    assert r.status_code == 200
    body = r.json()
    assert [i["name"] for i in body["items"]] == ["wine 0", "wine 1"]
    assert body["pagination"] == {
        "page": 1,
        "limit": 2,
        "total_items": 3,
        "total_pages": 2,
        "has_next": True,
        "has_prev": False,
    }

@pytest.mark.parametrize(
    "params",
    [{"limit": 0}, {"limit": 500}, {"page": 0}, {"sort_by": "price"}, {"score_min": 80, "score_max": 10}, {"score_bucket": "x"}],
)
def test_list_wines_rejects_bad_params(client, params):
    body = _error(client.get("/wines", params=params), 400)
    assert body["error"] == "validation_error"

def test_score_bucket_param(client):
    wine_id = client.post("/wines", json={"name": "scored"}).json()["id"]
    client.post("/reviews", json={**AXES, "wine_id": wine_id, "score": 93}, headers={"X-User-Id": "1"})
    assert [i["id"] for i in client.get("/wines", params={"score_bucket": "90+"}).json()["items"]] == [wine_id]
    assert client.get("/wines", params={"score_bucket": "80-90"}).json()["items"] == []

def test_reviews_flow(client):
    wine_id = client.post("/wines", json=MENCIA_PAYLOAD).json()["id"]
    headers = {"X-User-Id": "2"}

    r = client.post("/reviews", json={**AXES, "wine_id": wine_id, "score": 90, "bullets": ["fruity"]}, headers=headers)
    assert r.status_code == 201, r.text
    review_id = r.json()["id"]

    body = _error(client.post("/reviews", json={**AXES, "wine_id": wine_id}, headers=headers), 409)
    assert body["error"] == "already_exists"

    r = client.put(f"/reviews/{review_id}", json={**AXES, "sweetness": 5, "bullets": ["elegant"]}, headers=headers)
    assert r.status_code == 200
    assert r.json()["sweetness"] == 5
    assert r.json()["score"] == 90
    assert r.json()["bullets"] == ["elegant"]

    detail = client.get(f"/wines/{wine_id}").json()
    assert detail["reviews"][0]["user"]["name"] == "Bruno"

    assert client.delete(f"/reviews/{review_id}", headers=headers).status_code == 204
    _error(client.get(f"/reviews/{review_id}"), 404)

def test_review_requires_user_header(client):
    wine_id = client.post("/wines", json=MENCIA_PAYLOAD).json()["id"]
    _error(client.post("/reviews", json={**AXES, "wine_id": wine_id}), 422)

def test_review_changes_need_the_author(client):
    wine_id = client.post("/wines", json=MENCIA_PAYLOAD).json()["id"]
    review_id = client.post(
        "/reviews", json={**AXES, "wine_id": wine_id, "score": 85}, headers={"X-User-Id": "1"}
    ).json()["id"]

    body = _error(client.put(f"/reviews/{review_id}", json={**AXES, "score": 1}, headers={"X-User-Id": "2"}), 403)
    assert body["error"] == "forbidden"
    _error(client.delete(f"/reviews/{review_id}", headers={"X-User-Id": "3"}), 403)
    # no user at all is a malformed request
    _error(client.delete(f"/reviews/{review_id}"), 422)

    assert client.get(f"/reviews/{review_id}").json()["score"] == 85


def test_review_axis_out_of_range(client):
    wine_id = client.post("/wines", json=MENCIA_PAYLOAD).json()["id"]
    body = _error(
        client.post("/reviews", json={**AXES, "wine_id": wine_id, "body": 9}, headers={"X-User-Id": "1"}), 400
    )
    assert body["details"] == {"field": "body"}

def test_photo_upload_and_delete(client, storage_root):
    wine_id = client.post("/wines", json=MENCIA_PAYLOAD).json()["id"]
    r = client.put(
        f"/wines/{wine_id}/photos/front_label",
        params={"filename": "label.jpeg"},
        content=b"\xff\xd8\xff fake jpeg",
    )
    assert r.status_code == 200, r.text
    photo = r.json()
    assert photo["extension"] == "jpeg"

    items = client.get("/wines").json()["items"]
    assert items[0]["photos"] == [{"type": "front_label", "url": photo["url"]}]

    r = client.delete(f"/wines/{wine_id}")
    assert r.status_code == 200
    assert r.json()["photo_files_deleted"] == 1
    assert not (storage_root / str(wine_id)).exists()
    _error(client.get(f"/wines/{wine_id}"), 404)
    _error(client.delete(f"/wines/{wine_id}"), 404)

def test_photo_bad_type(client):
    wine_id = client.post("/wines", json=MENCIA_PAYLOAD).json()["id"]
    body = _error(client.put(f"/wines/{wine_id}/photos/selfie", content=b"x"), 400)
    assert body["details"] == {"field": "type"}

def test_photo_over_size_limit_is_400(client, storage_root, monkeypatch):
    monkeypatch.setenv("MAX_PHOTO_BYTES", "8")
    wine_id = client.post("/wines", json=MENCIA_PAYLOAD).json()["id"]
    body = _error(client.put(f"/wines/{wine_id}/photos/bottle", content=b"123456789"), 400)
    assert body["details"] == {"field": "file"}
    assert not (storage_root / str(wine_id)).exists()

    assert client.put(f"/wines/{wine_id}/photos/bottle", content=b"12345678").status_code == 200

def test_unknown_vocabulary_value_is_422(client):
    body = _error(client.post("/wines", json={**MENCIA_PAYLOAD, "wine_type": "orange"}), 422)
    assert body["details"][0]["loc"] == ["body", "wine_type"]
    _error(client.patch("/wines/1", json={"aging_type": "ancient"}), 422)
