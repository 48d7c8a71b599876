"""
Tests for catalog import/export parsing.

Tests cover:
- Makes CSV: header aliases, BOM, per-line errors, normalized values
- CSV export rendering
- Scraped catalog JSON
- Legacy SQL dump (brands and makes tuples)
- Image gallery folder scanning
- Service: applying CSV, legacy and gallery imports, pre-import backup
"""

import csv
import io
import json
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import HTTPException

from api.services.catalog_io_service import (
    CSV_EXPORT_COLUMNS,
    CatalogFormatError,
    CatalogIOService,
    build_header_map,
    colors_from_model_dir,
    decode_csv,
    format_file_size,
    load_catalog_json,
    parse_catalog_json,
    parse_legacy_brands,
    parse_legacy_make_record,
    parse_legacy_makes,
    parse_makes_csv,
    render_makes_csv,
    scan_image_tree,
    summarize_errors,
)
from database.models import Brand, Make


# =============================================================================
# CSV Import
# =============================================================================


class TestParseMakesCsv:
    def test_basic_rows(self):
        text = (
            "brand_name,name,type,engine_size,cylinders,can_import,available_colors\n"
            "Honda,CB190R,Naked,184 cc,1,si,Rojo | Negro\n"
            "Yamaha,MT-07,Naked,689,2,no,\n"
        )
        records, errors = parse_makes_csv(text)

        assert errors == []
        assert [r.line for r in records] == [2, 3]

        honda = records[0]
        assert honda.brand_name == "Honda"
        assert honda.slug == "cb190r"
        assert honda.values["engine_size"] == "184"
        assert honda.values["cylinders"] == 1
        assert honda.values["can_import"] is True
        assert honda.values["available_colors"] == "Rojo, Negro"

        yamaha = records[1]
        assert yamaha.slug == "mt-07"
        assert yamaha.values["can_import"] is False
        assert "available_colors" not in yamaha.values

    def test_aliases(self):
        text = "Brand,Model,Model_Slug,Max_Torque\nKTM,Duke 390,duke-390-2024,37 Nm\n"
        records, errors = parse_makes_csv(text)

        assert errors == []
        assert records[0].brand_name == "KTM"
        assert records[0].name == "Duke 390"
        assert records[0].slug == "duke-390-2024"
        assert records[0].values["torque"] == "37 Nm"

    def test_alias_does_not_override_real_column(self):
        header_map = build_header_map(["brand", "brand_name", "name"])
        assert header_map["brand_name"] == 1

    def test_missing_required_column(self):
        with pytest.raises(CatalogFormatError):
            parse_makes_csv("brand_name,type\nHonda,Naked\n")

    def test_empty_file(self):
        with pytest.raises(CatalogFormatError):
            parse_makes_csv("")

    def test_rows_without_brand_or_name_are_reported(self):
        text = "brand_name,name\nHonda,\n,MT-07\n\nBajaj,Pulsar NS200\n"
        records, errors = parse_makes_csv(text)

        assert [r.name for r in records] == ["Pulsar NS200"]
        assert errors == [
            "Línea 2: brand_name y name son requeridos",
            "Línea 3: brand_name y name son requeridos",
        ]

    def test_blank_cells_are_omitted(self):
        records, _ = parse_makes_csv("brand_name,name,importer,year_from\nHonda,XR150L,  ,\n")
        assert records[0].values == {}

    def test_decode_csv_strips_bom(self):
        assert decode_csv("\ufeffbrand_name,name\n".encode("utf-8")) == "brand_name,name\n"

    def test_decode_csv_latin1_fallback(self):
        assert decode_csv("Año".encode("latin-1")) == "Año"

    def test_summarize_errors(self):
        errors = [f"Línea {n}: error" for n in range(2, 17)]
        summary = summarize_errors(errors)
        assert len(summary) == 11
        assert summary[-1] == "... y 5 más."

    def test_summarize_few_errors(self):
        assert summarize_errors(["a", "b"]) == ["a", "b"]


# =============================================================================
# CSV Export
# =============================================================================


class TestRenderMakesCsv:
    def test_render_has_bom_and_header(self):
        content = render_makes_csv(
            [{"brand_name": "Honda", "name": "CB190R", "cylinders": 1, "can_import": True, "importer": None}]
        )
        assert content.startswith("\ufeff".encode("utf-8"))

        rows = list(csv.reader(io.StringIO(content.decode("utf-8-sig"))))
        assert tuple(rows[0]) == CSV_EXPORT_COLUMNS

        row = dict(zip(rows[0], rows[1]))
        assert row["brand_name"] == "Honda"
        assert row["cylinders"] == "1"
        assert row["can_import"] == "True"
        assert row["importer"] == ""

    def test_export_can_be_reimported(self):
        content = render_makes_csv([{"brand_name": "Suzuki", "name": "Gixxer 150", "type": "Naked"}])
        records, errors = parse_makes_csv(decode_csv(content))
        assert errors == []
        assert records[0].brand_name == "Suzuki"
        assert records[0].values["type"] == "Naked"


# =============================================================================
# Scraped Catalog JSON
# =============================================================================


class TestCatalogJson:
    def test_parse(self):
        entries = parse_catalog_json(
            {
                "brands": [
                    {
                        "name": "Bajaj",
                        "models": [
                            {"name": "Pulsar NS200", "engine_size": "199.5", "year_from": 2012},
                            {"name": "Boxer", "slug": "boxer-bm", "engine_size": 0},
                            {"slug": "no-name"},
                        ],
                    },
                    {"slug": "anonymous"},
                ]
            }
        )

        assert len(entries) == 1
        bajaj = entries[0]
        assert bajaj.slug == "bajaj"
        assert [m.slug for m in bajaj.models] == ["pulsar-ns200", "boxer-bm"]
        assert bajaj.models[0].engine_size == 199
        assert bajaj.models[0].year_from == 2012
        assert bajaj.models[1].engine_size is None

    @pytest.mark.parametrize("data", [{}, {"brands": []}, [], {"brands": "x"}])
    def test_invalid_document(self, data):
        with pytest.raises(CatalogFormatError):
            parse_catalog_json(data)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(CatalogFormatError):
            load_catalog_json(tmp_path / "missing.json")

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CatalogFormatError):
            load_catalog_json(path)

    def test_load_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"brands": [{"name": "KTM", "models": []}]}), encoding="utf-8")
        assert load_catalog_json(path)[0].name == "KTM"


# =============================================================================
# Legacy SQL Dump
# =============================================================================

LEGACY_DUMP = """
-- MySQL dump
INSERT INTO `brands` VALUES (1,'Honda','honda',NULL,'Motos','2020-01-01 00:00:00'),(2,'Ford','','https://cdn.example.com/ford.png','Carros','2020-01-01 00:00:00');
INSERT INTO `makes` VALUES (10,1,'CB190R','cb190r','Naked',184,'Very Common','Motor monocilindrico'),(11,1,'','xr-150-l','Scrambler',NULL,'Rare',''),(12,1,'35 models available','garbage','Sport',NULL,'Common',''),(13,2,'F-150','f-150','Pickup',NULL,'Unknown','');
"""


class TestLegacyDump:
    def test_brands(self):
        brands = parse_legacy_brands(LEGACY_DUMP)

        assert [b.legacy_id for b in brands] == [1, 2]
        assert brands[0].logo_url is None
        assert brands[0].type == "motorcycle"
        assert brands[1].slug == "ford"
        assert brands[1].logo_url == "https://cdn.example.com/ford.png"
        assert brands[1].type == "car"

    def test_makes(self):
        makes = parse_legacy_makes(LEGACY_DUMP)

        assert [m.legacy_id for m in makes] == [10, 11, 13]

        cb = makes[0]
        assert cb.brand_legacy_id == 1
        assert cb.type == "Naked"
        assert cb.engine_size == 184
        assert cb.market_presence == "Alta"
        assert cb.key_features == "Motor monocilindrico"

        xr = makes[1]
        assert xr.name == "Xr 150 L"
        assert xr.type == "Classic"
        assert xr.engine_size is None
        assert xr.market_presence == "Baja"
        assert xr.key_features is None

        pickup = makes[2]
        assert pickup.type == "Standard"
        assert pickup.market_presence == "Media"

    def test_record_without_ids(self):
        assert parse_legacy_make_record("'a','b'") is None

    def test_dump_without_inserts(self):
        assert parse_legacy_brands("-- empty") == []
        assert parse_legacy_makes("-- empty") == []


# =============================================================================
# Image Gallery Folders
# =============================================================================


class TestImageTree:
    def test_colors_from_file_names(self, tmp_path):
        model = tmp_path / "mt-07"
        model.mkdir()
        for name in ("icon-blue.jpg", "default.png", "1.jpg", "tech-black.webp", "notes.txt"):
            (model / name).write_bytes(b"x")

        assert colors_from_model_dir(model) == "1, Icon Blue, Tech Black"

    def test_numeric_names_skipped_only_on_request(self, tmp_path):
        model = tmp_path / "mt-07"
        model.mkdir()
        for name in ("2023.jpg", "icon-blue.jpg"):
            (model / name).write_bytes(b"x")

        assert colors_from_model_dir(model) == "2023, Icon Blue"
        assert colors_from_model_dir(model, skip_numeric=True) == "Icon Blue"

    def test_colors_include_folders(self, tmp_path):
        model = tmp_path / "cb190r"
        (model / "rojo").mkdir(parents=True)
        (model / ".hidden").mkdir()
        assert colors_from_model_dir(model) is None
        assert colors_from_model_dir(model, include_color_folders=True) == "Rojo"

    def test_scan_image_tree(self, tmp_path):
        (tmp_path / "yamaha" / "mt-07").mkdir(parents=True)
        (tmp_path / "yamaha" / "mt-07" / "icon-blue.jpg").write_bytes(b"x")
        (tmp_path / "honda" / "cb190r").mkdir(parents=True)

        assert scan_image_tree(tmp_path) == [
            ("honda", [("cb190r", None)]),
            ("yamaha", [("mt-07", "Icon Blue")]),
        ]

    def test_format_file_size(self):
        assert format_file_size(512) == "512 bytes"
        assert format_file_size(2048) == "2.0 KB"


# =============================================================================
# Service: applying imports
# =============================================================================

MODULE = "api.services.catalog_io_service"


@pytest.fixture
def cache():
    cache = MagicMock(invalidate_all=AsyncMock(return_value=0))
    with patch(f"{MODULE}.get_cache_service", return_value=cache):
        yield cache


class TestCsvUpsert:
    async def test_blank_cells_keep_existing_values(self, fake_session):
        session = fake_session(MODULE)
        existing = Make(
            brand_id=uuid.uuid4(),
            name="MT-07",
            slug="mt-07",
            engine_size="689",
            torque="60 Nm",
            importer="Yamaha RD",
            price_range_new="RD$350,000",
        )
        session.scalar.return_value = existing
        records, _ = parse_makes_csv("brand_name,name,torque,importer\nYamaha,MT-07,67 Nm,\n")

        await CatalogIOService()._upsert_csv_make(session, existing.brand_id, records[0])

        assert existing.importer == "Yamaha RD"
        assert existing.torque == "67 Nm"
        assert existing.torque_nm == 67.0
        assert existing.engine_cc == 689
        assert existing.price_new_min == 350000.0
        session.add.assert_not_called()

    async def test_existing_make_found_by_slug_or_name(self, fake_session):
        session = fake_session(MODULE)
        session.scalar.return_value = None
        records, _ = parse_makes_csv("brand_name,name,slug\nYamaha,MT-07,mt07-2024\n")

        await CatalogIOService()._upsert_csv_make(session, uuid.uuid4(), records[0])

        lookup = str(session.scalar.await_args.args[0])
        assert "makes.slug" in lookup
        assert " OR makes.name" in lookup

    async def test_new_make_is_inserted(self, fake_session):
        session = fake_session(MODULE)
        session.scalar.return_value = None
        brand_id = uuid.uuid4()
        records, _ = parse_makes_csv("brand_name,name,engine_size\nYamaha,XTZ 125,125 cc\n")

        await CatalogIOService()._upsert_csv_make(session, brand_id, records[0])

        make = session.add.call_args.args[0]
        assert make.brand_id == brand_id
        assert make.slug == "xtz-125"
        assert make.engine_size == "125"
        assert make.engine_cc == 125

    async def test_failing_line_does_not_stop_import(self, fake_session, cache):
        session = fake_session(MODULE)
        service = CatalogIOService()
        brand_id = uuid.uuid4()
        content = b"brand_name,name\nYamaha,MT-07\nYamaha,R3\n"

        with patch.object(service, "_pre_import_backup", AsyncMock(return_value="Backup creado")), \
             patch.object(service, "_get_or_create_brand_by_name", AsyncMock(return_value=brand_id)) as brands, \
             patch.object(service, "_upsert_csv_make", AsyncMock(side_effect=[None, ValueError("valor inválido")])):
            result = await service.import_makes_csv(content)

        assert result.counts == {"processed": 1}
        assert result.errors == ["Línea 3: valor inválido"]
        assert result.error_count == 1
        assert result.backup_notice == "Backup creado"
        brands.assert_awaited_once()
        session.commit.assert_awaited_once()
        cache.invalidate_all.assert_awaited_once()


class TestPreImportBackup:
    async def test_unusable_backup_dir_only_changes_notice(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        service = CatalogIOService()
        service.backup_dir = blocker / "backups"

        notice = await service._pre_import_backup()

        assert notice == "Backup automático no disponible. Continuando sin backup."

    async def test_unusable_backup_dir_is_502(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        service = CatalogIOService()
        service.backup_dir = blocker / "backups"

        with pytest.raises(HTTPException) as exc:
            await service.create_backup()
        assert exc.value.status_code == 502

    async def test_invalid_database_url_is_502(self, tmp_path):
        service = CatalogIOService()
        service.backup_dir = tmp_path

        with patch(f"{MODULE}.get_settings", return_value=MagicMock(DATABASE_URL="not a url")):
            with pytest.raises(HTTPException) as exc:
                await service.create_backup()
        assert exc.value.status_code == 502


class TestCatalogJsonImport:
    async def test_updates_existing_and_adds_new(self, fake_session, cache, tmp_path):
        session = fake_session(MODULE)
        brand = Brand(id=uuid.uuid4(), name="Bajaj", slug="bajaj")
        pulsar = Make(brand_id=brand.id, name="Pulsar", slug="pulsar-ns200", engine_size="200")
        session.scalar.side_effect = [brand, pulsar, None]

        path = tmp_path / "catalog.json"
        path.write_text(
            json.dumps(
                {
                    "brands": [
                        {
                            "name": "Bajaj",
                            "models": [
                                {"name": "Pulsar NS200", "engine_size": "199.5", "year_from": 2012},
                                {"name": "Boxer", "slug": "boxer-bm", "engine_size": 0},
                            ],
                        }
                    ]
                }
            ),
            encoding="utf-8",
        )

        result = await CatalogIOService().import_catalog_json(path)

        assert result.counts == {"brands_new": 0, "makes_new": 1, "makes_updated": 1}
        assert pulsar.name == "Pulsar NS200"
        assert pulsar.engine_cc == 199
        assert pulsar.year_from == 2012

        boxer = session.add.call_args.args[0]
        assert boxer.slug == "boxer-bm"
        assert boxer.engine_size is None
        session.commit.assert_awaited_once()

    async def test_missing_file_is_400(self, tmp_path):
        with pytest.raises(HTTPException) as exc:
            await CatalogIOService().import_catalog_json(tmp_path / "missing.json")
        assert exc.value.status_code == 400


class TestLegacyImport:
    async def test_makes_of_unknown_brands_are_skipped(self, fake_session, cache, tmp_path):
        session = fake_session(MODULE)
        honda_id = uuid.uuid4()
        # Only Honda (legacy id 1) made it into the database
        brand_rows = MagicMock()
        brand_rows.all.return_value = [(1, honda_id)]
        session.execute.side_effect = [brand_rows, MagicMock(), MagicMock()]

        path = tmp_path / "backup.sql"
        path.write_text(LEGACY_DUMP, encoding="utf-8")
        service = CatalogIOService()

        with patch.object(
            service,
            "_upsert_legacy_brand",
            AsyncMock(side_effect=[None, ValueError("slug duplicado")]),
        ), patch.object(service, "_legacy_make_upsert", MagicMock(return_value="upsert")) as upsert:
            result = await service.import_legacy_backup(path)

        assert result.counts == {"brands": 1, "makes": 2}
        assert result.error_count == 0
        assert [call.args[0] for call in upsert.call_args_list] == [honda_id, honda_id]
        assert [call.args[1].legacy_id for call in upsert.call_args_list] == [10, 11]

    async def test_missing_dump_is_400(self, tmp_path):
        with pytest.raises(HTTPException) as exc:
            await CatalogIOService().import_legacy_backup(tmp_path / "missing.sql")
        assert exc.value.status_code == 400


class TestGalleryImports:
    async def test_import_keeps_numeric_file_names(self, fake_session, cache, tmp_path):
        session = fake_session(MODULE)
        session.scalar.return_value = None
        model = tmp_path / "yamaha" / "mt-07"
        model.mkdir(parents=True)
        for name in ("2023.jpg", "icon-blue.jpg", "default.jpg"):
            (model / name).write_bytes(b"x")

        result = await CatalogIOService().import_from_images(tmp_path)

        brand, make = [call.args[0] for call in session.add.call_args_list]
        assert brand.name == "Yamaha"
        assert make.name == "Mt 07"
        assert make.available_colors == "2023, Icon Blue"
        assert result.counts["brands_new"] == 1
        assert result.counts["makes_new"] == 1

    async def test_sync_skips_numeric_file_names(self, fake_session, cache, tmp_path):
        session = fake_session(MODULE)
        make = Make(name="MT-07", slug="mt-07", available_colors="Old Color")
        make.brand = Brand(name="Yamaha", slug="yamaha")
        orphan = Make(name="R3", slug="r3", available_colors=None)
        orphan.brand = make.brand
        rows = MagicMock()
        rows.unique.return_value.scalars.return_value.all.return_value = [make, orphan]
        session.execute.return_value = rows

        model = tmp_path / "yamaha" / "mt-07"
        (model / "rojo").mkdir(parents=True)
        for name in ("2023.jpg", "icon-blue.jpg"):
            (model / name).write_bytes(b"x")

        result = await CatalogIOService().sync_images(tmp_path)

        assert make.available_colors == "Icon Blue, Rojo"
        assert result.counts == {"updated": 1, "unchanged": 0, "missing": 1}
        assert result.missing_folders == ["yamaha/r3"]
