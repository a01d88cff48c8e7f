# Overview: Pytest coverage for stock receiving and its audit log.

import pytest

from tireplan.models import Brand, Product, StockInRecord
from tireplan.services import inventory_service
from tireplan.services.receive_service import (
    ReceiveError, receive_stock, update_stock_in_record, list_stock_in,
)
from tireplan.services.scope_service import ScopeError


def _receive(store, name="파일럿 스포츠 5", qty=20, spec="245/40R19", **extra):
    return receive_stock(
        store_id=store.id,
        product_name=name,
        quantity=qty,
        specification=spec,
        brand=extra.pop("brand", "미쉐린"),
        supplier=extra.pop("supplier", "미쉐린코리아"),
        **extra,
    )


class TestReceiveStock:

    def test_new_product_then_increment(self, db_session, owner_a, store_a1, store_a2):
        """20 units of a new name+spec create the product; 5 more raise the branch to 25."""
        record = _receive(store_a1, purchase_price=150000, selling_price=230000, identity=owner_a)
        db_session.commit()

        product = db_session.get(Product, record.product_id)
        assert product.stock_by_store == {store_a1.id: 20, store_a2.id: 0}
        assert product.price == 230000
        assert db_session.query(StockInRecord).count() == 1

        again = _receive(store_a1, qty=5, identity=owner_a)
        db_session.commit()
        db_session.refresh(product)

        assert again.product_id == product.id
        assert product.stock_by_store[store_a1.id] == 25
        assert product.stock == 25
        assert db_session.query(StockInRecord).count() == 2

    def test_same_name_different_spec_creates_new_product(self, db_session, store_a1, make_product):
        existing = make_product("파일럿 스포츠 5", {store_a1.id: 2}, specification="225/45R17")
        record = _receive(store_a1, spec="245/40R19")
        db_session.commit()
        assert record.product_id != existing.id

    def test_name_only_match_when_product_has_no_spec(self, db_session, store_a1, make_product):
        part = make_product("와이퍼 세트", {store_a1.id: 2}, specification=None)
        record = _receive(store_a1, name="와이퍼 세트", qty=3, spec="600mm")
        db_session.commit()
        assert record.product_id == part.id
        assert inventory_service.get_quantity(part.id, store_a1.id) == 5

    def test_forced_product_id_wins(self, db_session, store_a1, make_product):
        target = make_product("벤투스 S1", {store_a1.id: 1}, specification="225/45R17")
        record = _receive(store_a1, name="다른 이름", qty=4, spec="999/99R99", force_product_id=target.id)
        db_session.commit()
        assert record.product_id == target.id
        assert inventory_service.get_quantity(target.id, store_a1.id) == 5

    def test_forced_unknown_product_rejected(self, db_session, store_a1):
        with pytest.raises(ReceiveError, match="not found"):
            _receive(store_a1, force_product_id=424242)

    def test_new_brand_is_registered(self, db_session, store_a1):
        _receive(store_a1, brand="요코하마")
        db_session.commit()
        assert db_session.query(Brand).filter_by(name="요코하마").count() == 1
        _receive(store_a1, qty=1, brand="요코하마")
        db_session.commit()
        assert db_session.query(Brand).filter_by(name="요코하마").count() == 1

    @pytest.mark.parametrize("qty", [0, -1, "1.5", None])
    def test_bad_quantity_rejected(self, db_session, store_a1, qty):
        with pytest.raises(ReceiveError):
            _receive(store_a1, qty=qty)

    def test_other_tenant_branch_rejected(self, db_session, owner_a, store_b1):
        with pytest.raises(ReceiveError, match="Store not found"):
            _receive(store_b1, identity=owner_a)


class TestStockInRecords:

    def test_audit_fields_are_editable(self, db_session, owner_a, store_a1):
        record = _receive(store_a1)
        db_session.commit()

        updated = update_stock_in_record(owner_a, record.id, {"supplier": "대리점", "purchase_price": 140000})
        db_session.commit()
        assert updated.supplier == "대리점"
        assert updated.purchase_price == 140000

    @pytest.mark.parametrize("field", ["quantity", "store_id", "product_id"])
    def test_applied_fields_are_locked(self, db_session, owner_a, store_a1, field):
        record = _receive(store_a1)
        db_session.commit()
        with pytest.raises(ReceiveError, match="cannot be changed"):
            update_stock_in_record(owner_a, record.id, {field: 1})

    def test_other_tenant_record_is_not_found(self, db_session, owner_b, store_a1):
        record = _receive(store_a1)
        db_session.commit()
        with pytest.raises(ScopeError):
            update_stock_in_record(owner_b, record.id, {"supplier": "x"})

    def test_listing_is_scoped(self, db_session, owner_a, owner_b, store_a1, store_b1):
        _receive(store_a1)
        _receive(store_b1, name="엔페라 AU7")
        db_session.commit()
        assert [r.store_id for r in list_stock_in(owner_a)] == [store_a1.id]
        assert [r.store_id for r in list_stock_in(owner_b)] == [store_b1.id]
