"""
Home pickup scheduling: public booking, staff visit tracking and shifts.
"""
from datetime import timedelta
from pathlib import Path

from app.core.config import settings
from app.utils.timezone import today_local
from tests.conftest import PNG_BYTES


def _form(shift_id, **kw):
    data = {
        "name": "Joana Prado",
        "address": "Rua das Flores",
        "number": "120",
        "district": "Centro",
        "postal_code": "74000-000",
        "phone": "62 98888-7777",
        "visit_date": str(today_local() + timedelta(days=2)),
        "shift_id": str(shift_id),
    }
    data.update(kw)
    return data


def test_shifts_listed_without_login(client, make):
    make.shift("Morning")
    make.shift("Afternoon")
    r = client.get("/api/shifts")
    assert r.status_code == 200
    assert [s["description"] for s in r.json()["data"]] == ["Morning", "Afternoon"]


def test_shift_admin(client, admin_headers, staff_headers):
    r = client.post("/api/shifts", json={"description": "Night"}, headers=staff_headers)
    assert r.status_code == 403

    r = client.post("/api/shifts", json={"description": "Night"}, headers=admin_headers)
    assert r.status_code == 201
    sid = r.json()["data"]["id"]

    r = client.post("/api/shifts", json={"description": "Night"}, headers=admin_headers)
    assert r.status_code == 400

    assert client.delete(f"/api/shifts/{sid}", headers=admin_headers).status_code == 200


def test_public_booking_with_photos(client, make):
    shift = make.shift()
    files = [
        ("fotos", ("a.png", PNG_BYTES, "image/png")),
        ("fotos", ("b.png", PNG_BYTES, "image/png")),
    ]
    r = client.post("/api/pickups", data=_form(shift.id), files=files)
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert len(data["photos"]) == 2
    assert all(ref.startswith("pickups/") for ref in data["photos"])
    assert data["shift"] == "Morning"
    assert data["visited_by_id"] is None


def test_booking_without_photos_and_bad_shift(client, make):
    shift = make.shift()
    r = client.post("/api/pickups", data=_form(shift.id))
    assert r.status_code == 201
    assert r.json()["data"]["photos"] == []

    r = client.post("/api/pickups", data=_form(999))
    assert r.status_code == 404


def test_booking_rejects_blank_fields(client, make):
    shift = make.shift()
    r = client.post("/api/pickups", data=_form(shift.id, district="   "))
    assert r.status_code == 400
    assert "district" in r.json()["error"]["msg"]


def test_too_many_photos(client, make):
    shift = make.shift()
    files = [("fotos", (f"{i}.png", PNG_BYTES, "image/png")) for i in range(11)]
    r = client.post("/api/pickups", data=_form(shift.id), files=files)
    assert r.status_code == 400


def test_visit_once(client, admin, admin_headers, make):
    shift = make.shift()
    pid = client.post("/api/pickups", data=_form(shift.id)).json()["data"]["id"]

    r = client.get("/api/pickups", params={"visited": "false"}, headers=admin_headers)
    assert [p["id"] for p in r.json()["data"]] == [pid]

    r = client.post(f"/api/pickups/{pid}/visit", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["visited_by_id"] == admin.id
    assert r.json()["data"]["visited_at"] is not None

    r = client.post(f"/api/pickups/{pid}/visit", headers=admin_headers)
    assert r.status_code == 409

    r = client.get("/api/pickups", params={"visited": "true"}, headers=admin_headers)
    assert [p["id"] for p in r.json()["data"]] == [pid]


def test_update_and_delete(client, admin_headers, make):
    shift = make.shift()
    other = make.shift("Afternoon")
    pid = client.post("/api/pickups", data=_form(shift.id)).json()["data"]["id"]

    r = client.put(f"/api/pickups/{pid}", json={"shift_id": other.id, "phone": "62 1111-2222"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["shift"] == "Afternoon"

    r = client.delete(f"/api/shifts/{other.id}", headers=admin_headers)
    assert r.status_code == 409

    assert client.delete(f"/api/pickups/{pid}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/pickups/{pid}", headers=admin_headers).status_code == 404


def test_pickups_need_login(client):
    assert client.get("/api/pickups").status_code == 401


def _stored_pickup_files():
    root = Path(settings.STORAGE_DIR) / "pickups"
    return {p for p in root.rglob("*") if p.is_file()} if root.exists() else set()


def test_stored_extension_follows_content_type(client, make):
    shift = make.shift()
    files = [("fotos", ("x.html", b"<script>alert(1)</script>", "image/png"))]
    r = client.post("/api/pickups", data=_form(shift.id), files=files)
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["photos"][0].endswith(".png")

    r = client.get(data["photo_urls"][0])
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("image/png")


def test_rejected_batch_leaves_no_files(client, make):
    shift = make.shift()
    before = _stored_pickup_files()
    files = [
        ("fotos", ("a.png", PNG_BYTES, "image/png")),
        ("fotos", ("b.png", PNG_BYTES, "image/png")),
        ("fotos", ("notes.txt", b"hello", "text/plain")),
    ]
    r = client.post("/api/pickups", data=_form(shift.id), files=files)
    assert r.status_code == 400
    assert _stored_pickup_files() == before
