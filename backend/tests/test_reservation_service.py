# Overview: Pytest coverage for the reservation book.

from datetime import date

import pytest

from tireplan.services import reservation_service
from tireplan.services.reservation_service import ReservationError
from tireplan.services.scope_service import ScopeError
from tireplan.validation import ValidationError


def _payload(store, **extra):
    payload = {
        "store_id": store.id,
        "date": "2025-11-03",
        "time": "14:00",
        "customer_name": "최예약",
        "phone_number": "010-1111-2222",
        "product_name": "벤투스 S1 에보3",
        "specification": "245/45R18",
    }
    payload.update(extra)
    return payload


class TestCreateReservation:

    def test_defaults(self, db_session, owner_a, store_a1):
        reservation = reservation_service.create_reservation(owner_a, _payload(store_a1))
        db_session.commit()
        assert reservation.status == "PENDING"
        assert reservation.stock_status == "CHECKING"
        assert reservation.quantity == 4
        assert reservation.date == date(2025, 11, 3)

    @pytest.mark.parametrize("missing", ["date", "time", "customer_name", "product_name"])
    def test_required_fields(self, db_session, owner_a, store_a1, missing):
        payload = _payload(store_a1)
        payload.pop(missing)
        with pytest.raises(ValidationError, match=missing):
            reservation_service.create_reservation(owner_a, payload)

    @pytest.mark.parametrize("bad", [{"time": "25:00"}, {"time": "2pm"}, {"quantity": 0}, {"status": "LOST"}])
    def test_invalid_values(self, db_session, owner_a, store_a1, bad):
        with pytest.raises(ReservationError):
            reservation_service.create_reservation(owner_a, _payload(store_a1, **bad))

    def test_foreign_branch(self, db_session, owner_a, store_b1):
        with pytest.raises(ScopeError):
            reservation_service.create_reservation(owner_a, _payload(store_b1))


class TestManageReservations:

    def test_status_transition(self, db_session, owner_a, store_a1):
        reservation = reservation_service.create_reservation(owner_a, _payload(store_a1))
        reservation_service.set_status(owner_a, reservation.id, "confirmed")
        db_session.commit()
        assert reservation.status == "CONFIRMED"

    def test_update_and_remove(self, db_session, owner_a, store_a1):
        reservation = reservation_service.create_reservation(owner_a, _payload(store_a1))
        reservation_service.update_reservation(owner_a, reservation.id, {"time": "09:30", "stock_status": "ORDERED"})
        db_session.commit()
        assert reservation.time == "09:30"
        assert reservation.stock_status == "ORDERED"

        reservation_service.remove_reservation(owner_a, reservation.id)
        db_session.commit()
        assert reservation_service.list_reservations(owner_a) == []

    def test_foreign_reservation_not_found(self, db_session, owner_a, owner_b, store_a1):
        reservation = reservation_service.create_reservation(owner_a, _payload(store_a1))
        db_session.commit()
        with pytest.raises(ScopeError):
            reservation_service.set_status(owner_b, reservation.id, "CANCELED")

    def test_date_range(self, db_session, owner_a, store_a1):
        for day in ("2025-11-01", "2025-11-03", "2025-11-05"):
            reservation_service.create_reservation(owner_a, _payload(store_a1, date=day))
        db_session.commit()
        found = reservation_service.list_reservations(owner_a, date_from="2025-11-02", date_to="2025-11-05")
        assert [r.date.day for r in found] == [3, 5]


class TestStockSuggestion:

    def test_enough_stock(self, db_session, owner_a, store_a1, make_product):
        make_product("벤투스 S1 에보3", {store_a1.id: 6}, specification="245/45R18")
        reservation = reservation_service.create_reservation(owner_a, _payload(store_a1))
        assert reservation_service.suggest_stock_status(reservation) == "IN_STOCK"

    def test_not_enough_stock(self, db_session, owner_a, store_a1, make_product):
        make_product("벤투스 S1 에보3", {store_a1.id: 2}, specification="245/45R18")
        reservation = reservation_service.create_reservation(owner_a, _payload(store_a1))
        assert reservation_service.suggest_stock_status(reservation) == "OUT_OF_STOCK"

    def test_spec_must_match(self, db_session, owner_a, store_a1, make_product):
        make_product("벤투스 S1 에보3", {store_a1.id: 10}, specification="205/55R16")
        reservation = reservation_service.create_reservation(owner_a, _payload(store_a1))
        assert reservation_service.suggest_stock_status(reservation) == "OUT_OF_STOCK"
