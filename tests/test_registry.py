"""
Lots, patients and catalog registries.
"""
from datetime import timedelta

import pytest

from app.db.session import transaction
from app.models import Medication, Lot
from app.services import catalog, lots, patients
from app.services.errors import IntegrityConflict, InvalidInput, NotFound
from app.services.withdrawals import create_withdrawal
from app.utils.timezone import today_local


def _lot_kwargs(med, form, mtype, **kw):
    today = today_local()
    data = dict(
        batch_number="  L-001 ",
        manufacture_date=today - timedelta(days=100),
        expiry_date=today + timedelta(days=100),
        quantity=20,
        medication_id=med.id,
        form_id=form.id,
        type_id=mtype.id,
    )
    data.update(kw)
    return data


class TestLots:
    def test_create_trims_batch(self, db, make):
        med, form, mtype = make.catalog()
        with transaction(db):
            lot = lots.create_lot(db, **_lot_kwargs(med, form, mtype))
        assert lot.batch_number == "L-001"
        assert lot.quantity == 20

    def test_create_rejects_bad_dates(self, db, make):
        med, form, mtype = make.catalog()
        today = today_local()
        with pytest.raises(InvalidInput, match="before"):
            with transaction(db):
                lots.create_lot(db, **_lot_kwargs(med, form, mtype, manufacture_date=today, expiry_date=today))

    def test_create_rejects_blank_batch_and_negative_qty(self, db, make):
        med, form, mtype = make.catalog()
        with pytest.raises(InvalidInput):
            with transaction(db):
                lots.create_lot(db, **_lot_kwargs(med, form, mtype, batch_number="   "))
        with pytest.raises(InvalidInput):
            with transaction(db):
                lots.create_lot(db, **_lot_kwargs(med, form, mtype, quantity=-1))

    def test_create_needs_catalog_refs(self, db, make):
        med, form, mtype = make.catalog()
        with pytest.raises(NotFound, match="Pharmaceutical form"):
            with transaction(db):
                lots.create_lot(db, **_lot_kwargs(med, form, mtype, form_id=999))

    def test_available_lots_order_and_filter(self, db, make):
        later = make.lot(quantity=5, expiry_in_days=60)
        sooner = make.lot(quantity=5, expiry_in_days=2)
        today = make.lot(quantity=1, expiry_in_days=0)
        make.lot(quantity=0, expiry_in_days=10)
        make.lot(quantity=9, expiry_in_days=-1)

        ids = [x.id for x in lots.list_available_lots(db)]
        assert ids == [today.id, sooner.id, later.id]

    def test_update_dates_checked_against_stored(self, db, make):
        lot = make.lot(quantity=5, expiry_in_days=10)
        with pytest.raises(InvalidInput):
            with transaction(db):
                lots.update_lot(db, lot.id, manufacture_date=lot.expiry_date + timedelta(days=1))

        new_expiry = today_local() + timedelta(days=90)
        with transaction(db):
            lots.update_lot(db, lot.id, expiry_date=new_expiry, batch_number="NEW")
        db.expire_all()
        stored = db.get(Lot, lot.id)
        assert stored.expiry_date == new_expiry
        assert stored.batch_number == "NEW"
        assert stored.quantity == 5

    def test_update_refuses_quantity(self, db, make):
        lot = make.lot(quantity=5)
        with pytest.raises(InvalidInput):
            with transaction(db):
                lots.update_lot(db, lot.id, quantity=50)

    def test_delete_guarded_by_withdrawals(self, db, make):
        user, patient = make.user(), make.patient()
        lot = make.lot(quantity=5)
        with transaction(db):
            create_withdrawal(db, quantity=1, lot_id=lot.id, patient_id=patient.id, user_id=user.id)
        with pytest.raises(IntegrityConflict):
            with transaction(db):
                lots.delete_lot(db, lot.id)
        assert db.get(Lot, lot.id) is not None

    def test_delete_unused(self, db, make):
        lot = make.lot()
        with transaction(db):
            lots.delete_lot(db, lot.id)
        assert db.get(Lot, lot.id) is None


class TestPatients:
    def _data(self, **kw):
        data = {
            "name": " Maria Silva ",
            "cpf": "123.456.789-09",
            "birth_date": today_local() - timedelta(days=10000),
            "phone": "62 99999-0000",
            "sus_card": "700000000000000",
        }
        data.update(kw)
        return data

    def test_create_normalizes(self, db):
        with transaction(db):
            p = patients.create_patient(db, self._data())
        assert p.name == "Maria Silva"
        assert p.cpf == "12345678909"

    def test_cpf_unique(self, db):
        with transaction(db):
            patients.create_patient(db, self._data())
        with pytest.raises(InvalidInput, match="CPF"):
            with transaction(db):
                patients.create_patient(db, self._data(cpf="12345678909", name="Other"))

    def test_update_rechecks_cpf_against_others(self, db):
        with transaction(db):
            a = patients.create_patient(db, self._data())
            b = patients.create_patient(db, self._data(cpf="98765432100"))
        with pytest.raises(InvalidInput):
            with transaction(db):
                patients.update_patient(db, b.id, {"cpf": "123.456.789-09"})
        # same CPF on the same patient is fine
        with transaction(db):
            patients.update_patient(db, a.id, {"cpf": "12345678909", "phone": "111"})

    def test_missing_fields(self, db):
        with pytest.raises(InvalidInput, match="sus_card"):
            with transaction(db):
                patients.create_patient(db, self._data(sus_card="  "))

    def test_history_newest_first(self, db, make):
        user, patient = make.user(), make.patient()
        lot = make.lot(quantity=10)
        ids = []
        for qty in (1, 2):
            with transaction(db):
                ids.append(
                    create_withdrawal(db, quantity=qty, lot_id=lot.id, patient_id=patient.id, user_id=user.id).id
                )
        db.expire_all()
        p = patients.get_patient(db, patient.id, with_history=True)
        assert {w.id for w in p.withdrawals} == set(ids)
        created = [w.created_at for w in p.withdrawals]
        assert created == sorted(created, reverse=True)

    def test_delete_guarded(self, db, make):
        user, patient = make.user(), make.patient()
        lot = make.lot(quantity=10)
        with transaction(db):
            create_withdrawal(db, quantity=1, lot_id=lot.id, patient_id=patient.id, user_id=user.id)
        with pytest.raises(IntegrityConflict):
            with transaction(db):
                patients.delete_patient(db, patient.id)

        free = make.patient()
        with transaction(db):
            patients.delete_patient(db, free.id)

    def test_search(self, db, make):
        make.patient(name="Ana Souza", cpf="11122233344")
        make.patient(name="Bruno Lima", cpf="55566677788")
        assert [p.name for p in patients.list_patients(db, q="ana")] == ["Ana Souza"]
        assert [p.name for p in patients.list_patients(db, q="555.666")] == ["Bruno Lima"]


class TestCatalog:
    def test_crud_and_delete_guard(self, db, make):
        with transaction(db):
            med = catalog.create_item(db, Medication, {"description": "Amoxicillin", "active_ingredient": "Amoxicillin"})
        with transaction(db):
            catalog.update_item(db, Medication, med.id, {"description": "Amoxicillin 500mg"})
        assert catalog.get_item(db, Medication, med.id).description == "Amoxicillin 500mg"

        lot = make.lot()
        with pytest.raises(IntegrityConflict):
            with transaction(db):
                catalog.delete_item(db, Medication, lot.medication_id)

        with transaction(db):
            catalog.delete_item(db, Medication, med.id)
        with pytest.raises(NotFound):
            catalog.get_item(db, Medication, med.id)

    def test_required_fields(self, db):
        with pytest.raises(InvalidInput):
            with transaction(db):
                catalog.create_item(db, Medication, {"description": "X", "active_ingredient": " "})
