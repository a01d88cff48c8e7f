# Overview: Pytest coverage for inter-branch stock transfers.

import pytest

from tireplan.models import StockTransferRecord
from tireplan.services import inventory_service
from tireplan.services.transfer_service import TransferError, transfer_stock


class TestTransferStock:

    def test_conserves_total_stock(self, db_session, owner_a, store_a1, store_a2, tire):
        record = transfer_stock(tire.id, store_a1.id, store_a2.id, 4, staff_name="박매니저", identity=owner_a)
        db_session.commit()
        db_session.refresh(tire)

        assert tire.stock_by_store == {store_a1.id: 6, store_a2.id: 9}
        assert tire.stock == 15
        assert record.quantity == 4
        assert record.staff_name == "박매니저"
        assert record.product_name == tire.name

    def test_entire_source_stock(self, db_session, owner_a, store_a1, store_a2, tire):
        transfer_stock(tire.id, store_a2.id, store_a1.id, 5, identity=owner_a)
        db_session.commit()
        assert inventory_service.get_quantity(tire.id, store_a2.id) == 0
        assert inventory_service.get_quantity(tire.id, store_a1.id) == 15

    def test_insufficient_stock_rejected_without_change(self, db_session, owner_a, store_a1, store_a2, tire):
        """Unlike sales, a transfer never clamps."""
        with pytest.raises(TransferError, match="Insufficient stock"):
            transfer_stock(tire.id, store_a2.id, store_a1.id, 6, identity=owner_a)
        db_session.rollback()

        db_session.refresh(tire)
        assert tire.stock_by_store == {store_a1.id: 10, store_a2.id: 5}
        assert db_session.query(StockTransferRecord).count() == 0

    def test_same_branch_rejected(self, db_session, owner_a, store_a1, tire):
        with pytest.raises(TransferError, match="same branch"):
            transfer_stock(tire.id, store_a1.id, store_a1.id, 1, identity=owner_a)

    @pytest.mark.parametrize("quantity", [0, -3, 1.5, "abc", True, None])
    def test_bad_quantity_rejected(self, db_session, owner_a, store_a1, store_a2, tire, quantity):
        with pytest.raises(TransferError, match="positive integer"):
            transfer_stock(tire.id, store_a1.id, store_a2.id, quantity, identity=owner_a)

    def test_unknown_product_rejected(self, db_session, owner_a, store_a1, store_a2):
        with pytest.raises(TransferError, match="not found"):
            transfer_stock(424242, store_a1.id, store_a2.id, 1, identity=owner_a)

    def test_other_tenant_branch_rejected(self, db_session, owner_a, store_a1, store_b1, tire):
        with pytest.raises(TransferError, match="Store not found"):
            transfer_stock(tire.id, store_a1.id, store_b1.id, 1, identity=owner_a)
        db_session.rollback()
        assert inventory_service.get_quantity(tire.id, store_a1.id) == 10

    def test_destination_entry_created_when_missing(self, db_session, owner_a, store_a1, store_a2, make_product):
        product = make_product("엔페라 AU7", {store_a1.id: 3})
        transfer_stock(product.id, store_a1.id, store_a2.id, 2, identity=owner_a)
        db_session.commit()
        db_session.refresh(product)
        assert product.stock_by_store == {store_a1.id: 1, store_a2.id: 2}
