"""
Tests for catalog brands and makes.

The database session is mocked; these tests pin the business rules
(highlight limit, delete guards, duplicate slugs) and the derived numeric
columns.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import HTTPException

from api.models.catalog import MakeCreate
from api.services.catalog_service import CatalogService, derive_numeric_fields
from database.models import Brand, Make

MODULE = "api.services.catalog_service"


@pytest.fixture(autouse=True)
def cache():
    cache = MagicMock(invalidate_catalog_cache=AsyncMock(return_value=0))
    with patch(f"{MODULE}.get_cache_service", return_value=cache):
        yield cache


def build_make(**kwargs) -> Make:
    values = dict(
        id=uuid.uuid4(),
        brand_id=uuid.uuid4(),
        name="MT-07",
        slug="mt-07",
        is_highlighted=False,
    )
    values.update(kwargs)
    return Make(**values)


# =============================================================================
# Derived numeric columns
# =============================================================================


class TestDeriveNumericFields:
    def test_all_fields(self):
        derived = derive_numeric_fields(
            {
                "price_range_new": "RD$350,000 - RD$420,000",
                "price_range_used": "RD$250,000",
                "torque": "67 Nm",
                "fuel_capacity": "14 L",
                "engine_size": "689 cc",
                "weight": "184 kg",
                "horsepower": "73.4 HP",
            }
        )

        assert derived == {
            "price_new_min": 350000.0,
            "price_new_max": 420000.0,
            "price_used_min": 250000.0,
            "price_used_max": 250000.0,
            "torque_nm": 67.0,
            "fuel_capacity_liters": 14.0,
            "engine_cc": 689,
            "weight_kg": 184.0,
            "horsepower_hp": 73.4,
        }

    def test_missing_text_clears_numbers(self):
        derived = derive_numeric_fields({"torque": "", "engine_size": "n/a"})
        assert set(derived.values()) == {None}

    def test_engine_cc_is_truncated_to_int(self):
        assert derive_numeric_fields({"engine_size": "199.5cc"})["engine_cc"] == 199


# =============================================================================
# Brands
# =============================================================================


class TestDeleteBrand:
    async def test_refused_while_brand_has_makes(self, fake_session, cache):
        session = fake_session(MODULE)
        session.get.return_value = Brand(id=uuid.uuid4(), name="Yamaha", slug="yamaha")
        session.scalar.return_value = 4

        with pytest.raises(HTTPException) as exc:
            await CatalogService().delete_brand(uuid.uuid4())

        assert exc.value.status_code == 409
        assert "4 modelos" in exc.value.detail
        session.delete.assert_not_awaited()
        cache.invalidate_catalog_cache.assert_not_awaited()

    async def test_deletes_empty_brand(self, fake_session, cache):
        session = fake_session(MODULE)
        brand = Brand(id=uuid.uuid4(), name="Vento", slug="vento")
        session.get.return_value = brand
        session.scalar.return_value = 0

        await CatalogService().delete_brand(brand.id)

        session.delete.assert_awaited_once_with(brand)
        session.commit.assert_awaited_once()
        cache.invalidate_catalog_cache.assert_awaited_once_with(brand.id)

    async def test_missing_brand_is_404(self, fake_session):
        session = fake_session(MODULE)
        session.get.return_value = None

        with pytest.raises(HTTPException) as exc:
            await CatalogService().delete_brand(uuid.uuid4())
        assert exc.value.status_code == 404


# =============================================================================
# Makes
# =============================================================================


class TestCreateMake:
    async def test_duplicate_slug_for_brand_is_409(self, fake_session, make_user):
        session = fake_session(MODULE)
        session.get.return_value = Brand(id=uuid.uuid4(), name="Yamaha", slug="yamaha")
        session.scalar.return_value = uuid.uuid4()

        data = MakeCreate(brand_id=uuid.uuid4(), name="MT 07")
        with pytest.raises(HTTPException) as exc:
            await CatalogService().create_make(data, make_user("dealer"))

        assert exc.value.status_code == 409
        session.add.assert_not_called()

    async def test_customer_cannot_create(self, make_user):
        data = MakeCreate(brand_id=uuid.uuid4(), name="MT 07")
        with pytest.raises(HTTPException) as exc:
            await CatalogService().create_make(data, make_user("customer"))
        assert exc.value.status_code == 403

    async def test_creates_with_derived_columns(self, fake_session, make_user):
        session = fake_session(MODULE)
        session.get.return_value = Brand(id=uuid.uuid4(), name="Yamaha", slug="yamaha")
        session.scalar.return_value = None
        service = CatalogService()

        data = MakeCreate(
            brand_id=uuid.uuid4(),
            name="MT 07",
            engine_size="689 cc",
            price_range_new="RD$350,000",
            assigned_seller_id=uuid.uuid4(),
        )
        with patch.object(service, "get_make", AsyncMock(return_value="response")):
            assert await service.create_make(data, make_user("dealer")) == "response"

        make = session.add.call_args.args[0]
        assert make.slug == "mt-07"
        assert make.engine_cc == 689
        assert make.price_new_min == make.price_new_max == 350000.0
        # Only admins assign sellers
        assert make.assigned_seller_id is None

    async def test_admin_must_assign_a_dealer(self, fake_session, make_user):
        session = fake_session(MODULE)
        session.get.return_value = make_user("customer")

        with pytest.raises(HTTPException) as exc:
            await CatalogService()._resolve_seller(session, make_user("admin"), uuid.uuid4(), None)
        assert exc.value.status_code == 400


class TestToggleHighlight:
    async def test_fourth_highlight_for_brand_is_refused(self, fake_session, cache):
        session = fake_session(MODULE)
        make = build_make()
        session.get.return_value = make
        session.scalar.return_value = 3

        with pytest.raises(HTTPException) as exc:
            await CatalogService().toggle_highlight(make.id)

        assert exc.value.status_code == 409
        assert "hasta 3 modelos" in exc.value.detail
        assert make.is_highlighted is False
        session.commit.assert_not_awaited()

    async def test_highlight_below_limit(self, fake_session, cache):
        session = fake_session(MODULE)
        make = build_make()
        session.get.return_value = make
        session.scalar.return_value = 2

        assert await CatalogService().toggle_highlight(make.id) is True
        assert make.is_highlighted is True
        cache.invalidate_catalog_cache.assert_awaited_once_with(make.brand_id)

    async def test_unhighlight_skips_the_limit(self, fake_session):
        session = fake_session(MODULE)
        make = build_make(is_highlighted=True)
        session.get.return_value = make

        assert await CatalogService().toggle_highlight(make.id) is False
        session.scalar.assert_not_awaited()


class TestDeleteMake:
    async def test_refused_while_active_listings_exist(self, fake_session):
        session = fake_session(MODULE)
        make = build_make()
        session.get.return_value = make
        session.scalar.return_value = 2

        with pytest.raises(HTTPException) as exc:
            await CatalogService().delete_make(make.id)

        assert exc.value.status_code == 409
        assert "tiene 2 motores activos" in exc.value.detail
        session.execute.assert_not_awaited()
        session.delete.assert_not_awaited()

    async def test_detaches_inactive_listings(self, fake_session, cache):
        session = fake_session(MODULE)
        make = build_make(name="XTZ 125")
        session.get.return_value = make
        session.scalar.return_value = 0

        assert await CatalogService().delete_make(make.id) == "XTZ 125"

        detach = session.execute.await_args.args[0]
        assert detach.is_update
        assert detach.table.name == "motorcycles"
        assert detach.compile().params["make_id"] is None
        session.delete.assert_awaited_once_with(make)
        cache.invalidate_catalog_cache.assert_awaited_once_with(make.brand_id)
