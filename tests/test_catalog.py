import pytest

from warehouse_erp.models import Warehouse
from warehouse_erp.repositories.catalog_repository import (
    create_product,
    create_warehouse,
    get_product,
    list_products,
    list_warehouses,
)
from warehouse_erp.repositories.numbering import build_warehouse_code
from warehouse_erp.services.catalog_cache import ProductCatalogCache
from warehouse_erp.services.exceptions import DocumentNotFound, DocumentValidationError


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestCatalogRepository:
    def test_warehouse_codes_are_generated(self, db):
        first = create_warehouse(db, name="Main")
        second = create_warehouse(db, name="Field", address="Kungrad")

        assert (first.code, second.code) == ("WH001", "WH002")
        assert [w.name for w in list_warehouses(db)] == ["Field", "Main"]

    def test_generated_code_follows_highest_existing(self, db):
        db.add_all([Warehouse(code="WH001", name="a"), Warehouse(code="WH007", name="b"),
                    Warehouse(code="SPARE", name="c")])
        db.commit()

        assert build_warehouse_code(db) == "WH008"

    def test_duplicate_warehouse_code(self, db):
        create_warehouse(db, name="Main", code="W1")

        with pytest.raises(DocumentValidationError):
            create_warehouse(db, name="Other", code="W1")

    def test_products_by_type(self, db):
        reagent = create_product(db, "reagent", code="R-2", name="Деэмульгатор")
        create_product(db, "reagent", code="R-1", name="Ингибитор")
        create_product(db, "consumable", code="C-1", name="Фильтр")

        assert [p.code for p in list_products(db, "reagent")] == ["R-1", "R-2"]
        assert get_product(db, "reagent", reagent.id).name == "Деэмульгатор"

    def test_unknown_product(self, db):
        with pytest.raises(DocumentNotFound):
            get_product(db, "consumable", 1)
        with pytest.raises(DocumentValidationError):
            get_product(db, "tool", 1)

    def test_duplicate_product_code(self, db):
        create_product(db, "reagent", code="R-1", name="a")

        with pytest.raises(DocumentValidationError):
            create_product(db, "reagent", code="R-1", name="b")
        # в другой категории код свободен
        assert create_product(db, "consumable", code="R-1", name="c").code == "R-1"


class TestProductCatalogCache:
    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def cache(self, session_factory, clock):
        return ProductCatalogCache(session_factory, ttl_seconds=60, clock=clock)

    def test_catalog_is_cached_until_ttl(self, db, cache, clock):
        create_product(db, "reagent", code="R-1", name="a")
        assert [p.code for p in cache.get().all_products()] == ["R-1"]

        create_product(db, "consumable", code="C-1", name="b")
        clock.now = 59
        assert [p.code for p in cache.get().all_products()] == ["R-1"]

        clock.now = 60
        products = cache.get().all_products()
        assert [(p.code, p.product_type) for p in products] == [("R-1", "reagent"), ("C-1", "consumable")]

    def test_invalidate_forces_reload(self, db, cache):
        assert cache.get().all_products() == []

        create_product(db, "reagent", code="R-1", name="a")
        cache.invalidate()

        assert [p.code for p in cache.get().reagents] == ["R-1"]
