"""
HTTP surface for lots, withdrawals and solicitations.
"""
from datetime import timedelta

from app.models import Lot
from app.utils.timezone import today_local
from tests.conftest import PNG_BYTES


def _qty(db, lot_id):
    db.expire_all()
    return db.get(Lot, lot_id).quantity


def test_envelope_on_success_and_error(client, admin_headers, make):
    lot = make.lot(quantity=3)
    r = client.get(f"/api/lots/{lot.id}", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["status"] is True
    assert body["error"] is None
    assert body["data"]["quantity"] == 3

    r = client.get("/api/lots/9999", headers=admin_headers)
    assert r.status_code == 404
    assert r.json() == {"status": False, "data": None, "error": {"msg": "Lot not found"}}


def test_requires_token(client):
    r = client.get("/api/lots")
    assert r.status_code == 401
    assert r.json()["status"] is False


def test_missing_permission_is_403(client, staff_headers, make):
    lot = make.lot()
    r = client.delete(f"/api/lots/{lot.id}", headers=staff_headers)
    assert r.status_code == 403
    assert "lots.delete" in r.json()["error"]["msg"]


def test_available_lots_is_public(client, make):
    ok_lot = make.lot(quantity=2, expiry_in_days=3)
    make.lot(quantity=2, expiry_in_days=-3)
    r = client.get("/api/lots/available")
    assert r.status_code == 200
    assert [x["id"] for x in r.json()["data"]] == [ok_lot.id]


def test_create_lot_and_quantity_not_editable(client, admin_headers, make):
    med, form, mtype = make.catalog()
    today = today_local()
    payload = {
        "batch_number": "ABC123",
        "manufacture_date": str(today - timedelta(days=10)),
        "expiry_date": str(today + timedelta(days=300)),
        "quantity": 40,
        "medication_id": med.id,
        "form_id": form.id,
        "type_id": mtype.id,
    }
    r = client.post("/api/lots", json=payload, headers=admin_headers)
    assert r.status_code == 201, r.text
    lot_id = r.json()["data"]["id"]
    assert r.json()["data"]["medication"] == med.description

    r = client.put(f"/api/lots/{lot_id}", json={"quantity": 1}, headers=admin_headers)
    assert r.status_code == 422

    bad = dict(payload, manufacture_date=payload["expiry_date"])
    r = client.post("/api/lots", json=bad, headers=admin_headers)
    assert r.status_code == 422


def test_withdrawal_crud_moves_stock(client, db, staff, staff_headers, admin_headers, make):
    patient = make.patient()
    lot = make.lot(quantity=10, expiry_in_days=1)

    r = client.post(
        "/api/withdrawals",
        json={"quantity": 4, "lot_id": lot.id, "patient_id": patient.id},
        headers=staff_headers,
    )
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["user_id"] == staff.id
    assert data["batch_number"] == lot.batch_number
    wid = data["id"]
    assert _qty(db, lot.id) == 6

    r = client.put(f"/api/withdrawals/{wid}", json={"quantity": 7}, headers=admin_headers)
    assert r.status_code == 200, r.text
    assert _qty(db, lot.id) == 3

    r = client.put(f"/api/withdrawals/{wid}", json={"quantity": 20}, headers=admin_headers)
    assert r.status_code == 409
    assert "Insufficient stock" in r.json()["error"]["msg"]
    assert _qty(db, lot.id) == 3

    r = client.delete(f"/api/withdrawals/{wid}", headers=admin_headers)
    assert r.status_code == 200
    assert _qty(db, lot.id) == 10


def test_withdrawal_validation_codes(client, staff_headers, make):
    patient = make.patient()
    expired = make.lot(quantity=10, expiry_in_days=-1)

    r = client.post(
        "/api/withdrawals",
        json={"quantity": 0, "lot_id": expired.id, "patient_id": patient.id},
        headers=staff_headers,
    )
    assert r.status_code == 422

    r = client.post(
        "/api/withdrawals",
        json={"quantity": 1, "lot_id": expired.id, "patient_id": patient.id},
        headers=staff_headers,
    )
    assert r.status_code == 409
    assert "expired" in r.json()["error"]["msg"]

    r = client.post(
        "/api/withdrawals",
        json={"quantity": 1, "lot_id": expired.id, "patient_id": 777},
        headers=staff_headers,
    )
    assert r.status_code == 404


def test_solicitation_flow_over_http(client, db, staff_headers, admin_headers, make):
    patient = make.patient()
    lot = make.lot(quantity=10, expiry_in_days=20)

    r = client.post(
        "/api/solicitations",
        data={"quantity": "3", "lot_id": str(lot.id), "patient_id": str(patient.id)},
        files={"foto_receita": ("rx.png", PNG_BYTES, "image/png")},
        headers=staff_headers,
    )
    assert r.status_code == 201, r.text
    sol = r.json()["data"]
    assert sol["status"] == "pending_approval"
    assert sol["prescription_photo"].startswith("solicitations/")
    assert sol["prescription_photo_url"].endswith(sol["prescription_photo"])

    r = client.get("/api/solicitations/pending/count", headers=admin_headers)
    assert r.json()["data"] == {"count": 1}

    r = client.post(f"/api/solicitations/{sol['id']}/conclude", headers=admin_headers)
    assert r.status_code == 409

    r = client.post(f"/api/solicitations/{sol['id']}/confirm", headers=admin_headers)
    assert r.json()["data"]["status"] == "approved_for_withdrawal"

    r = client.delete(f"/api/solicitations/{sol['id']}", headers=admin_headers)
    assert r.status_code == 409

    r = client.post(f"/api/solicitations/{sol['id']}/conclude", headers=admin_headers)
    assert r.status_code == 200
    done = r.json()["data"]
    assert done["status"] == "withdrawal_completed"
    assert done["withdrawal_id"] is not None
    assert _qty(db, lot.id) == 7

    r = client.post(f"/api/solicitations/{sol['id']}/conclude", headers=admin_headers)
    assert r.status_code == 409
    assert _qty(db, lot.id) == 7

    r = client.get("/api/solicitations", params={"status": "withdrawal_completed"}, headers=admin_headers)
    assert [x["id"] for x in r.json()["data"]] == [sol["id"]]

    r = client.get("/api/solicitations", params={"status": "bogus"}, headers=admin_headers)
    assert r.status_code == 400


def test_solicitation_refuse_with_reason(client, staff_headers, admin_headers, make):
    patient = make.patient()
    lot = make.lot(quantity=10, expiry_in_days=20)
    r = client.post(
        "/api/solicitations",
        data={"quantity": "1", "lot_id": str(lot.id), "patient_id": str(patient.id)},
        files={"foto_receita": ("rx.jpg", b"\xff\xd8\xff\xe0fakejpeg", "image/jpeg")},
        headers=staff_headers,
    )
    sid = r.json()["data"]["id"]

    r = client.post(f"/api/solicitations/{sid}/refuse", json={"reason": "expired prescription"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "refused"
    assert r.json()["data"]["refusal_reason"] == "expired prescription"

    r = client.delete(f"/api/solicitations/{sid}", headers=admin_headers)
    assert r.status_code == 200


def test_solicitation_upload_rules(client, staff_headers, make):
    patient = make.patient()
    lot = make.lot(quantity=10, expiry_in_days=20)
    form = {"quantity": "1", "lot_id": str(lot.id), "patient_id": str(patient.id)}

    r = client.post("/api/solicitations", data=form, headers=staff_headers)
    assert r.status_code == 400
    assert "Prescription photo" in r.json()["error"]["msg"]

    r = client.post(
        "/api/solicitations",
        data=form,
        files={"foto_receita": ("rx.txt", b"hello", "text/plain")},
        headers=staff_headers,
    )
    assert r.status_code == 400
    assert "image" in r.json()["error"]["msg"]

    big = b"\x89PNG" + b"0" * (5 * 1024 * 1024)
    r = client.post(
        "/api/solicitations",
        data=form,
        files={"foto_receita": ("big.png", big, "image/png")},
        headers=staff_headers,
    )
    assert r.status_code == 400
    assert "too large" in r.json()["error"]["msg"]
