from __future__ import annotations

from starlette.testclient import TestClient

from halalmap.api import deps
from halalmap.api.app import app
from halalmap.config.settings import get_settings
from halalmap.core.errors import TransientStorageError
from halalmap.search.service import NearbyQueryService
from halalmap.spatial.engine import InMemorySpatialEngine

AUTH = {"Authorization": "Bearer test-admin-token"}


def test_nearby_endpoint(repo):
    with TestClient(app) as c:
        resp = c.get("/api/places/nearby", params={"lat": 41.7151, "lng": 44.8271, "distance": 5000, "type": "restaurant"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["count"] == 5
    assert body["data"][0]["name"] == "Shawarma King"
    assert body["data"][0]["distance_text"] == "0 m"
    assert all(p["distance"] == p["distance_meters"] for p in body["data"])
    distances = [p["distance_meters"] for p in body["data"]]
    assert distances == sorted(distances)
    assert body["search"] == {
        "latitude": 41.7151,
        "longitude": 44.8271,
        "radius_meters": 5000,
        "type": "restaurant",
        "radius_defaulted": False,
    }


def test_nearby_rejects_small_radius_with_field_message(repo):
    with TestClient(app) as c:
        resp = c.get("/api/places/nearby", params={"lat": 41.7151, "lng": 44.8271, "distance": 99})
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["code"] == "VALIDATION_ERROR"
    assert detail["field"] == "distance"


def test_nearby_requires_coordinates(repo):
    with TestClient(app) as c:
        resp = c.get("/api/places/nearby", params={"lng": 44.8271})
    assert resp.status_code == 400
    assert resp.json()["detail"]["field"] == "lat"


def test_nearby_storage_failure_is_generic_503(repo):
    class _Broken:
        def find_within_radius(self, center, radius_m, place_type=None):
            raise TransientStorageError("database is locked at /secret/path")

    app.dependency_overrides[deps.get_search_service] = lambda: NearbyQueryService(_Broken(), get_settings().search)
    try:
        with TestClient(app) as c:
            resp = c.get("/api/places/nearby", params={"lat": 41.7, "lng": 44.8})
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 503
    detail = resp.json()["detail"]
    assert detail["code"] == "STORAGE_UNAVAILABLE"
    assert "secret" not in detail["message"]


def test_listing_filters(repo):
    with TestClient(app) as c:
        resp = c.get("/api/places", params={"type": "mosque", "verified": "true", "city": "tbil"})
        bad = c.get("/api/places", params={"type": "bar"})
    assert resp.status_code == 200
    names = [p["name"] for p in resp.json()["data"]]
    assert names == ["Abu Bakr Mosque", "Lilo Mosque", "Tbilisi Central Mosque (Juma Mosque)"]
    assert all("distance_meters" not in p for p in resp.json()["data"])
    assert bad.status_code == 400
    assert bad.json()["detail"]["field"] == "type"


def test_cities_statistics_and_single_place(repo):
    with TestClient(app) as c:
        cities = c.get("/api/places/cities").json()
        stats = c.get("/api/places/statistics").json()
        one = c.get("/api/places/1")
        missing = c.get("/api/places/9999")
    assert cities["count"] == 4
    assert stats["data"]["total_places"] == 14
    assert one.status_code == 200
    assert one.json()["data"]["id"] == 1
    assert missing.status_code == 404
    assert missing.json()["detail"] == {"code": "NOT_FOUND", "message": "Place with ID 9999 not found"}


def test_admin_routes_require_token(repo):
    payload = {"name": "New Place", "type": "restaurant", "latitude": 41.7, "longitude": 44.8}
    with TestClient(app) as c:
        none = c.post("/api/admin/places", json=payload)
        wrong = c.post("/api/admin/places", json=payload, headers={"Authorization": "Bearer nope"})
        basic = c.post("/api/admin/places", json=payload, headers={"Authorization": "Basic abc"})
    for resp in (none, wrong, basic):
        assert resp.status_code == 401
        assert resp.json()["detail"]["code"] == "UNAUTHORIZED"


def test_admin_create_is_visible_to_the_next_search(repo):
    payload = {
        "name": "Gori Halal Kitchen",
        "type": "restaurant",
        "latitude": 41.9842,
        "longitude": 44.1158,
        "city": "Gori",
        "phone": "+995 555 000 111",
    }
    with TestClient(app) as c:
        created = c.post("/api/admin/places", json=payload, headers=AUTH)
        found = c.get("/api/places/nearby", params={"lat": 41.9842, "lng": 44.1158, "distance": 100})
    assert created.status_code == 201
    new_id = created.json()["data"]["id"]
    assert [p["id"] for p in found.json()["data"]] == [new_id]


def test_memory_backend_search_sees_admin_writes(repo, monkeypatch):
    monkeypatch.setenv("HALALMAP_STORAGE_BACKEND", "memory")
    get_settings.cache_clear()
    deps.reset_caches()
    telavi = {"lat": 41.9198, "lng": 45.4731, "distance": 1000}
    sighnaghi = {"lat": 41.6197, "lng": 45.9225, "distance": 1000}
    payload = {"name": "Telavi Halal Grill", "type": "restaurant", "latitude": 41.9198, "longitude": 45.4731}

    with TestClient(app) as c:
        assert isinstance(deps.get_spatial_engine(), InMemorySpatialEngine)
        seeded = c.get("/api/places/nearby", params={"lat": 41.7151, "lng": 44.8271, "type": "restaurant"})
        created = c.post("/api/admin/places", json=payload, headers=AUTH)
        new_id = created.json()["data"]["id"]
        after_create = c.get("/api/places/nearby", params=telavi)
        moved = c.put(
            f"/api/admin/places/{new_id}",
            json={"latitude": 41.6197, "longitude": 45.9225, "city": "Sighnaghi"},
            headers=AUTH,
        )
        old_spot = c.get("/api/places/nearby", params=telavi)
        new_spot = c.get("/api/places/nearby", params=sighnaghi)
        verified = c.patch(f"/api/admin/places/{new_id}/verify", headers=AUTH)
        after_verify = c.get("/api/places/nearby", params=sighnaghi)
        deleted = c.delete(f"/api/admin/places/{new_id}", headers=AUTH)
        after_delete = c.get("/api/places/nearby", params=sighnaghi)

    assert seeded.json()["count"] == 5
    assert created.status_code == 201
    assert [p["id"] for p in after_create.json()["data"]] == [new_id]
    assert moved.status_code == 200
    assert old_spot.json()["count"] == 0
    assert [p["city"] for p in new_spot.json()["data"]] == ["Sighnaghi"]
    assert verified.json()["data"]["verified"] is True
    assert after_verify.json()["data"][0]["verified"] is True
    assert deleted.status_code == 200
    assert after_delete.json()["count"] == 0


def test_admin_create_rejects_bad_payload(repo):
    payload = {"name": "X", "type": "restaurant", "latitude": 95, "longitude": 44.8}
    with TestClient(app) as c:
        resp = c.post("/api/admin/places", json=payload, headers=AUTH)
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["code"] == "VALIDATION_ERROR"
    assert {e["field"] for e in detail["errors"]} == {"name", "latitude"}


def test_admin_update_verify_and_delete(repo):
    with TestClient(app) as c:
        moved = c.put("/api/admin/places/1", json={"latitude": 41.6417, "longitude": 41.6333}, headers=AUTH)
        near_batumi = c.get("/api/places/nearby", params={"lat": 41.6417, "lng": 41.6333, "distance": 100})
        toggled = c.patch("/api/admin/places/1/verify", headers=AUTH)
        deleted = c.delete("/api/admin/places/1", headers=AUTH)
        gone = c.get("/api/places/1")
        missing = c.put("/api/admin/places/9999", json={"city": "Gori"}, headers=AUTH)
    assert moved.status_code == 200
    assert 1 in [p["id"] for p in near_batumi.json()["data"]]
    assert toggled.json()["data"]["verified"] is False
    assert toggled.json()["message"] == "Place marked as unverified"
    assert deleted.status_code == 200
    assert gone.status_code == 404
    assert missing.status_code == 404


def test_health(settings):
    with TestClient(app) as c:
        assert c.get("/api/health").json() == {"status": "ok"}
