# Overview: Pytest coverage for the per-branch stock ledger.

"""
Inventory ledger tests.

Verifies:
- stock is always the sum of the per-branch entries
- completed sales decrement the sale's branch and clamp at zero
- the placeholder line and service items are never decremented
- edits reconcile by per-product delta; cancels leave stock alone
- sales recorded without inventory adjustment never move stock
- stock movements retry on lock contention but not on rejections
- zero-fill and low-stock rules
"""

import pytest
from sqlalchemy.exc import OperationalError

from tireplan.extensions import db
from tireplan.models import PLACEHOLDER_PRODUCT_ID, ProductStock, Sale
from tireplan.services import concurrency, inventory_service, sales_service, transfer_service
from tireplan.services.sales_service import SaleError
from tireplan.services.transfer_service import TransferError


def _sell(identity, store, lines, **extra):
    payload = {
        "store_id": store.id,
        "items": [{"product_id": pid, "quantity": qty} for pid, qty in lines],
        "payment_method": "CARD",
        "staff_name": "이정비",
    }
    payload.update(extra)
    sale = sales_service.complete_sale(identity, payload)
    db.session.commit()
    return sale


def _assert_sum_invariant(product):
    db.session.refresh(product)
    assert product.stock == sum(product.stock_by_store.values())


class TestWorkedExample:
    """Transfer then sale on a two-branch tenant."""

    def test_transfer_then_sale(self, db_session, owner_a, store_a1, store_a2, tire):
        """{A: 10, B: 5} -> transfer 3 A->B -> {A: 7, B: 8} -> sell 2 at A -> {A: 5, B: 8}."""
        transfer_service.transfer_stock(tire.id, store_a1.id, store_a2.id, 3, identity=owner_a)
        db_session.commit()
        db_session.refresh(tire)
        assert tire.stock_by_store == {store_a1.id: 7, store_a2.id: 8}
        assert tire.stock == 15

        _sell(owner_a, store_a1, [(tire.id, 2)])
        db_session.refresh(tire)
        assert tire.stock_by_store == {store_a1.id: 5, store_a2.id: 8}
        assert tire.stock == 13


class TestApplySale:

    def test_sale_decrements_only_its_branch(self, db_session, owner_a, store_a1, store_a2, tire):
        _sell(owner_a, store_a2, [(tire.id, 4)])
        db_session.refresh(tire)
        assert tire.stock_by_store == {store_a1.id: 10, store_a2.id: 1}
        _assert_sum_invariant(tire)

    def test_sale_clamps_at_zero(self, db_session, owner_a, store_a1, store_a2, tire):
        """Overselling never rejects and never goes negative."""
        sale = _sell(owner_a, store_a2, [(tire.id, 8)])
        assert sale.id is not None
        db_session.refresh(tire)
        assert tire.stock_by_store[store_a2.id] == 0
        assert tire.stock == 10

    def test_duplicate_lines_are_summed(self, db_session, owner_a, store_a1, tire):
        _sell(owner_a, store_a1, [(tire.id, 2), (tire.id, 3)])
        db_session.refresh(tire)
        assert tire.stock_by_store[store_a1.id] == 5

    def test_placeholder_line_is_not_decremented(self, db_session, owner_a, store_a1, placeholder):
        sale = _sell(owner_a, store_a1, [(PLACEHOLDER_PRODUCT_ID, 4)])
        assert sale.items[0].product_name == "우선결제_임시"
        assert inventory_service.get_quantity(PLACEHOLDER_PRODUCT_ID, store_a1.id) == 0

    def test_placeholder_line_keeps_typed_name(self, db_session, owner_a, store_a1, placeholder):
        sale = sales_service.complete_sale(owner_a, {
            "store_id": store_a1.id,
            "items": [{
                "product_id": PLACEHOLDER_PRODUCT_ID, "quantity": 1,
                "price_at_sale": 50000, "product_name": "타이어 교체 선결제",
            }],
            "payment_method": "CASH",
            "staff_name": "이정비",
        })
        db_session.commit()
        assert sale.items[0].product_name == "타이어 교체 선결제"
        assert sale.total_amount == 50000

    def test_service_item_is_not_decremented(self, db_session, owner_a, store_a1, make_product):
        balance = make_product("휠 밸런스 조정", {store_a1.id: 999}, price=20000, specification=None)
        _sell(owner_a, store_a1, [(balance.id, 4)])
        assert inventory_service.get_quantity(balance.id, store_a1.id) == 999

    def test_missing_branch_entry_is_created_at_zero(self, db_session, owner_a, store_a1, make_product):
        product = make_product("신상품", {})
        _sell(owner_a, store_a1, [(product.id, 2)])
        row = db_session.query(ProductStock).filter_by(product_id=product.id, store_id=store_a1.id).one()
        assert row.quantity == 0

    def test_unknown_product_rejects_the_sale(self, db_session, owner_a, store_a1):
        with pytest.raises(SaleError):
            sales_service.complete_sale(owner_a, {
                "store_id": store_a1.id,
                "items": [{"product_id": 424242, "quantity": 1}],
                "payment_method": "CARD",
                "staff_name": "이정비",
            })


class TestApplySaleEdit:

    def test_increase_quantity_decrements_delta(self, db_session, owner_a, store_a1, tire):
        sale = _sell(owner_a, store_a1, [(tire.id, 2)])
        sales_service.update_sale(owner_a, sale.id, {"items": [{"product_id": tire.id, "quantity": 5}]})
        db_session.commit()
        assert inventory_service.get_quantity(tire.id, store_a1.id) == 5

    def test_decrease_quantity_returns_stock(self, db_session, owner_a, store_a1, tire):
        sale = _sell(owner_a, store_a1, [(tire.id, 4)])
        sales_service.update_sale(owner_a, sale.id, {"items": [{"product_id": tire.id, "quantity": 1}]})
        db_session.commit()
        assert inventory_service.get_quantity(tire.id, store_a1.id) == 9

    def test_swapping_products(self, db_session, owner_a, store_a1, tire, make_product):
        other = make_product("키너지 EX", {store_a1.id: 6})
        sale = _sell(owner_a, store_a1, [(tire.id, 2)])

        sales_service.update_sale(owner_a, sale.id, {"items": [{"product_id": other.id, "quantity": 2}]})
        db_session.commit()

        assert inventory_service.get_quantity(tire.id, store_a1.id) == 10
        assert inventory_service.get_quantity(other.id, store_a1.id) == 4

    def test_edit_clamps_at_zero(self, db_session, owner_a, store_a1, store_a2, tire):
        sale = _sell(owner_a, store_a2, [(tire.id, 1)])
        sales_service.update_sale(owner_a, sale.id, {"items": [{"product_id": tire.id, "quantity": 50}]})
        db_session.commit()
        assert inventory_service.get_quantity(tire.id, store_a2.id) == 0

    def test_returned_deltas(self, db_session, owner_a, store_a1, tire):
        sale = _sell(owner_a, store_a1, [(tire.id, 3)])
        previous = sale.quantities_by_product()
        sale.items[0].quantity = 1
        deltas = inventory_service.apply_sale_edit(previous, sale)
        assert deltas == {tire.id: -2}


class TestUnadjustedSales:
    """Back-dated entries recorded with inventory_adjusted=False."""

    def test_unadjusted_sale_leaves_stock(self, db_session, owner_a, store_a1, tire):
        sale = _sell(owner_a, store_a1, [(tire.id, 4)], inventory_adjusted=False)
        assert sale.inventory_adjusted is False
        assert sale.to_dict()["inventory_adjusted"] is False
        assert inventory_service.get_quantity(tire.id, store_a1.id) == 10

    def test_adjust_inventory_alias(self, db_session, owner_a, store_a1, tire):
        sale = _sell(owner_a, store_a1, [(tire.id, 4)], adjust_inventory=False)
        assert sale.inventory_adjusted is False
        assert inventory_service.get_quantity(tire.id, store_a1.id) == 10

    def test_adjusted_by_default(self, db_session, owner_a, store_a1, tire):
        sale = _sell(owner_a, store_a1, [(tire.id, 1)])
        assert sale.inventory_adjusted is True

    def test_editing_unadjusted_items_leaves_stock(self, db_session, owner_a, store_a1, tire):
        sale = _sell(owner_a, store_a1, [(tire.id, 2)], inventory_adjusted=False)
        sales_service.update_sale(owner_a, sale.id, {"items": [{"product_id": tire.id, "quantity": 6}]})
        db_session.commit()
        assert inventory_service.get_quantity(tire.id, store_a1.id) == 10

    def test_switching_on_sells_whole_sale(self, db_session, owner_a, store_a1, tire):
        sale = _sell(owner_a, store_a1, [(tire.id, 3)], inventory_adjusted=False)
        sales_service.update_sale(owner_a, sale.id, {"inventory_adjusted": True})
        db_session.commit()
        assert inventory_service.get_quantity(tire.id, store_a1.id) == 7

    def test_switching_off_returns_whole_sale(self, db_session, owner_a, store_a1, tire):
        sale = _sell(owner_a, store_a1, [(tire.id, 3)])
        assert inventory_service.get_quantity(tire.id, store_a1.id) == 7
        sales_service.update_sale(owner_a, sale.id, {
            "inventory_adjusted": False,
            "items": [{"product_id": tire.id, "quantity": 5}],
        })
        db_session.commit()
        assert inventory_service.get_quantity(tire.id, store_a1.id) == 10

    def test_edit_deltas_for_untracked_previous_version(self, db_session, owner_a, store_a1, tire):
        sale = _sell(owner_a, store_a1, [(tire.id, 2)], inventory_adjusted=False)
        sale.inventory_adjusted = True
        deltas = inventory_service.apply_sale_edit(sale.quantities_by_product(), sale, previously_adjusted=False)
        assert deltas == {tire.id: 2}


class TestStockMovementRetry:

    @staticmethod
    def _locked():
        return OperationalError("UPDATE product_stocks", {}, Exception("database is locked"))

    def test_locked_checkout_is_retried_once(self, db_session, monkeypatch, owner_a, store_a1, tire):
        sleeps = []
        monkeypatch.setattr(concurrency.time, "sleep", sleeps.append)
        real_apply = sales_service.apply_sale
        calls = []

        def flaky_apply(sale):
            calls.append(sale.id)
            if len(calls) == 1:
                raise self._locked()
            real_apply(sale)

        monkeypatch.setattr(sales_service, "apply_sale", flaky_apply)
        _sell(owner_a, store_a1, [(tire.id, 3)])

        assert len(calls) == 2
        assert sleeps == [0.1]
        assert inventory_service.get_quantity(tire.id, store_a1.id) == 7
        assert db_session.query(Sale).count() == 1

    def test_rejected_transfer_is_not_retried(self, db_session, monkeypatch, owner_a, store_a1, store_a2, tire):
        sleeps = []
        monkeypatch.setattr(concurrency.time, "sleep", sleeps.append)
        with pytest.raises(TransferError):
            transfer_service.transfer_stock(tire.id, store_a2.id, store_a1.id, 50, identity=owner_a)
        assert sleeps == []

    def test_gives_up_after_last_attempt(self, db_session, monkeypatch):
        sleeps = []
        monkeypatch.setattr(concurrency.time, "sleep", sleeps.append)
        attempts = []

        def always_locked():
            attempts.append(1)
            raise self._locked()

        with pytest.raises(OperationalError):
            concurrency.run_with_retry(always_locked)
        assert len(attempts) == 3
        assert sleeps == [0.1, 0.2]


class TestCancel:

    def test_cancel_does_not_restore_stock(self, db_session, owner_a, store_a1, tire):
        sale = _sell(owner_a, store_a1, [(tire.id, 3)])
        sales_service.cancel_sale(owner_a, sale.id)
        db_session.commit()
        assert inventory_service.get_quantity(tire.id, store_a1.id) == 7


class TestZeroFillAndLowStock:

    def test_zero_fill_store(self, db_session, store_a1, store_a2, tire, make_product):
        make_product("키너지 EX", {store_a1.id: 1})
        added = inventory_service.zero_fill_store(store_a2.id)
        db_session.commit()
        assert added == 1
        assert inventory_service.zero_fill_store(store_a2.id) == 0

    def test_placeholder_gets_entry_for_every_branch(self, db_session, store_a1, store_a2, placeholder):
        assert placeholder.stock_by_store == {store_a1.id: 0, store_a2.id: 0}

    def test_ensure_placeholder_is_idempotent(self, db_session, placeholder):
        again = inventory_service.ensure_placeholder_product()
        assert again is placeholder
        assert again.name == "우선결제_임시"
        assert again.specification == "규격미정"

    def test_low_stock_flags(self, db_session, store_a1, make_product, placeholder):
        low = make_product("재고 부족", {store_a1.id: 3})
        plenty = make_product("재고 충분", {store_a1.id: 30})
        service = make_product("엔진오일 교환", {store_a1.id: 999}, specification=None)

        assert inventory_service.is_low_stock(low, 5) is True
        assert inventory_service.is_low_stock(plenty, 5) is False
        assert inventory_service.is_low_stock(service, 5) is False
        assert inventory_service.is_low_stock(placeholder, 5) is False

        names = [p["name"] for p in inventory_service.list_low_stock(5)]
        assert names == ["재고 부족"]

    def test_low_stock_counts_only_own_branches(self, db_session, store_a1, store_b1, make_product):
        """A well-stocked foreign branch must not hide an empty shelf at home."""
        product = make_product("키너지 EX", {store_a1.id: 0, store_b1.id: 100})

        assert inventory_service.is_low_stock(product, 5, {store_a1.id}) is True
        assert inventory_service.is_low_stock(product, 5, {store_b1.id}) is False

        listed = inventory_service.list_low_stock(5, {store_a1.id})
        assert [(p["name"], p["stock"]) for p in listed] == [("키너지 EX", 0)]

    def test_service_flag_is_per_tenant(self, db_session, store_a1, store_b1, make_product):
        product = make_product("휠 밸런스 조정", {store_a1.id: 0, store_b1.id: 999}, specification=None)

        assert product.to_dict({store_a1.id})["is_service"] is False
        assert product.to_dict({store_b1.id})["is_service"] is True
        assert inventory_service.is_low_stock(product, 5, {store_a1.id}) is True

    def test_catalog_excludes_placeholder_and_restricts_branches(
        self, db_session, store_a1, store_b1, make_product, placeholder
    ):
        make_product("벤투스", {store_a1.id: 4, store_b1.id: 9})
        catalog = inventory_service.list_catalog({store_a1.id})
        assert [p["name"] for p in catalog] == ["벤투스"]
        assert catalog[0]["stock_by_store"] == {str(store_a1.id): 4}
        assert catalog[0]["stock"] == 4
