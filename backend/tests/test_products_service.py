# Overview: Pytest coverage for catalog maintenance and direct stock corrections.

import pytest

from tireplan.models import Brand
from tireplan.services import products_service
from tireplan.services.inventory_service import InventoryError
from tireplan.services.scope_service import ScopeError
from tireplan.validation import ValidationError


class TestCreateProduct:

    def test_zero_fills_every_branch(self, db_session, owner_a, store_a1, store_a2, store_b1):
        product = products_service.create_product(owner_a, {
            "name": "키너지 EX", "brand": "한국", "category": "타이어",
            "price": 98000, "specification": "205/55R16",
            "stock_by_store": {str(store_a1.id): 6},
        })
        db_session.commit()

        assert product.stock_by_store == {store_a1.id: 6, store_a2.id: 0, store_b1.id: 0}
        assert product.stock == 6

    def test_new_brand_joins_the_list(self, db_session, owner_a, store_a1):
        products_service.create_product(owner_a, {"name": "X FIT HT", "brand": "라우펜"})
        db_session.commit()
        assert db_session.query(Brand).filter_by(name="라우펜").count() == 1
        assert "라우펜" in products_service.list_brands()

    def test_name_required(self, db_session, owner_a, store_a1):
        with pytest.raises(ValidationError):
            products_service.create_product(owner_a, {"brand": "한국"})

    def test_cannot_stock_foreign_branch(self, db_session, owner_a, store_a1, store_b1):
        with pytest.raises(InventoryError):
            products_service.create_product(owner_a, {
                "name": "엑스타 PS71", "stock_by_store": {str(store_b1.id): 3},
            })


class TestUpdateProduct:

    def test_direct_stock_correction(self, db_session, owner_a, store_a1, store_a2, tire):
        products_service.update_product(owner_a, tire.id, {"stock_by_store": {str(store_a2.id): 12}})
        db_session.commit()
        assert tire.stock_by_store[store_a1.id] == 10
        assert tire.stock_by_store[store_a2.id] == 12

    def test_negative_quantity_rejected(self, db_session, owner_a, store_a1, tire):
        with pytest.raises(InventoryError):
            products_service.update_product(owner_a, tire.id, {"stock_by_store": {str(store_a1.id): -1}})

    def test_placeholder_is_not_editable(self, db_session, owner_a, placeholder):
        with pytest.raises(ScopeError):
            products_service.update_product(owner_a, placeholder.id, {"price": 1000})

    def test_categories_are_distinct_and_sorted(self, db_session, placeholder, make_product, store_a1):
        make_product("와이퍼 세트", {store_a1.id: 3}, category="기타")
        make_product("벤투스", {store_a1.id: 3})
        assert products_service.list_categories() == ["기타", "타이어"]
