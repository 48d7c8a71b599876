"""
MotoresRD - Catalog import/export service.

Bulk operations on the catalog:
- CSV export and import of makes (COALESCE updates, blank cells never erase)
- Scraped catalog JSON import (brands + models)
- Legacy SQL dump import (brands and makes from the previous site)
- Brand/model bootstrap and color sync from the image gallery folders
- pg_dump database backups

File parsing is kept in plain functions so it can be exercised without
a database; the service methods apply the parsed records.
"""

import asyncio
import csv
import io
import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, NamedTuple

from fastapi import HTTPException
from sqlalchemy import func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from api.models.catalog import CatalogImportResult
from api.services.cache_service import get_cache_service
from api.services.catalog_service import derive_numeric_fields
from database.connection import get_async_session
from database.models import Brand, Make
from shared.config import MAKE_TYPES, get_settings
from shared.parsers import parse_bool, parse_int
from shared.slug import humanize_slug, slugify
from shared.time_utils import timestamp_for_filename

logger = logging.getLogger(__name__)


class CatalogFormatError(ValueError):
    """An import file is unreadable or lacks its required structure."""


# =============================================================================
# CSV
# =============================================================================

CSV_EXPORT_COLUMNS = (
    "brand_name",
    "name",
    "type",
    "engine_size",
    "torque",
    "fuel_capacity",
    "cylinders",
    "market_presence",
    "price_range_new",
    "price_range_used",
    "importer",
    "country_origin",
    "can_import",
    "is_highlighted",
    "key_features",
    "year_from",
    "year_to",
)

CSV_COLUMN_ALIASES = {
    "brand": "brand_name",
    "model": "name",
    "model_slug": "slug",
    "engine_displacement": "engine_size",
    "max_power": "horsepower",
    "max_torque": "torque",
}

CSV_REQUIRED_COLUMNS = ("brand_name", "name")

# Text columns copied as-is when not blank
CSV_TEXT_COLUMNS = (
    "type",
    "torque",
    "fuel_capacity",
    "market_presence",
    "price_range_new",
    "price_range_used",
    "importer",
    "country_origin",
    "key_features",
    "horsepower",
    "weight",
    "seat_height",
    "top_speed",
)

MAX_REPORTED_ERRORS = 10
BACKUP_MIN_BYTES = 100


@dataclass
class CsvMakeRecord:
    """One data line of a makes CSV, already normalized."""

    line: int
    brand_name: str
    name: str
    slug: str
    values: dict[str, Any] = field(default_factory=dict)


def decode_csv(content: bytes) -> str:
    """Decode an uploaded CSV, dropping a UTF-8 BOM; Latin-1 as last resort."""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")


def build_header_map(header: list[str]) -> dict[str, int]:
    """
    Map lowercased column names to indexes, then apply aliases.

    An alias only applies when its target column is absent.
    """
    header_map: dict[str, int] = {}
    for index, name in enumerate(header):
        key = str(name).strip().lower()
        if key:
            header_map[key] = index

    for alias, target in CSV_COLUMN_ALIASES.items():
        if alias in header_map and target not in header_map:
            header_map[target] = header_map[alias]

    return header_map


def _csv_make_values(get) -> dict[str, Any]:
    """Normalized make values for one CSV row; blank cells are omitted."""
    values: dict[str, Any] = {}

    for column in CSV_TEXT_COLUMNS:
        raw = (get(column) or "").strip()
        if raw:
            values[column] = raw

    engine_cc = parse_int(get("engine_size"), digits_only=True)
    if engine_cc:
        values["engine_size"] = str(engine_cc)

    for column in ("cylinders", "year_from", "year_to"):
        number = parse_int(get(column))
        if number:
            values[column] = number

    colors = (get("available_colors") or "").strip()
    if colors:
        values["available_colors"] = colors.replace(" | ", ", ")

    can_import = (get("can_import") or "").strip()
    if can_import:
        values["can_import"] = parse_bool(can_import)

    return values


def parse_makes_csv(text: str) -> tuple[list[CsvMakeRecord], list[str]]:
    """
    Parse a makes CSV into records plus per-line error messages.

    Lines are numbered from 2 (the header is line 1).

    Raises:
        CatalogFormatError: Empty file or missing brand/name columns
    """
    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if not header:
        raise CatalogFormatError("El archivo CSV está vacío o no tiene encabezado")

    header_map = build_header_map(header)
    if any(column not in header_map for column in CSV_REQUIRED_COLUMNS):
        raise CatalogFormatError(
            "Faltan columnas requeridas en el CSV: brand_name/brand, name/model"
        )

    records: list[CsvMakeRecord] = []
    errors: list[str] = []

    for line, row in enumerate(reader, start=2):
        if not any(cell.strip() for cell in row):
            continue

        def get(column: str, row=row) -> str | None:
            index = header_map.get(column)
            if index is None or index >= len(row):
                return None
            return row[index]

        brand_name = (get("brand_name") or "").strip()
        name = (get("name") or "").strip()
        if not brand_name or not name:
            errors.append(f"Línea {line}: brand_name y name son requeridos")
            continue

        csv_slug = (get("slug") or "").strip()
        records.append(
            CsvMakeRecord(
                line=line,
                brand_name=brand_name,
                name=name,
                slug=slugify(csv_slug or name),
                values=_csv_make_values(get),
            )
        )

    return records, errors


def summarize_errors(errors: list[str], limit: int = MAX_REPORTED_ERRORS) -> list[str]:
    """First `limit` errors plus a "... y N más." line for the rest."""
    shown = list(errors[:limit])
    if len(errors) > limit:
        shown.append(f"... y {len(errors) - limit} más.")
    return shown


def render_makes_csv(rows: list[dict[str, Any]]) -> bytes:
    """Serialize export rows as UTF-8 CSV with BOM for spreadsheet tools."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_EXPORT_COLUMNS)
    for row in rows:
        writer.writerow(["" if row.get(c) is None else row.get(c) for c in CSV_EXPORT_COLUMNS])
    return ("\ufeff" + buffer.getvalue()).encode("utf-8")


# =============================================================================
# Scraped catalog JSON
# =============================================================================


class CatalogModelEntry(NamedTuple):
    name: str
    slug: str
    engine_size: int | None
    year_from: int | None
    year_to: int | None


class CatalogBrandEntry(NamedTuple):
    name: str
    slug: str
    models: list[CatalogModelEntry]


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def parse_catalog_json(data: Any) -> list[CatalogBrandEntry]:
    """
    Normalize a scraped catalog document.

    Brands and models without a name are skipped; slugs fall back to the name.

    Raises:
        CatalogFormatError: No "brands" list
    """
    brands = data.get("brands") if isinstance(data, dict) else None
    if not brands or not isinstance(brands, list):
        raise CatalogFormatError("Catálogo inválido: no hay marcas")

    entries: list[CatalogBrandEntry] = []
    for brand in brands:
        if not isinstance(brand, dict) or not brand.get("name"):
            continue

        models = []
        for model in brand.get("models") or []:
            if not isinstance(model, dict) or not model.get("name"):
                continue
            models.append(
                CatalogModelEntry(
                    name=str(model["name"]).strip(),
                    slug=slugify(model.get("slug") or model["name"]),
                    engine_size=_positive_int(model.get("engine_size")),
                    year_from=_positive_int(model.get("year_from")),
                    year_to=_positive_int(model.get("year_to")),
                )
            )

        entries.append(
            CatalogBrandEntry(
                name=str(brand["name"]).strip(),
                slug=slugify(brand.get("slug") or brand["name"]),
                models=models,
            )
        )

    return entries


def load_catalog_json(path: Path) -> list[CatalogBrandEntry]:
    if not path.is_file():
        raise CatalogFormatError(f"Archivo de catálogo no encontrado: {path.name}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CatalogFormatError(f"Catálogo inválido: {e.msg}")
    return parse_catalog_json(data)


# =============================================================================
# Legacy SQL dump
# =============================================================================

_LEGACY_BRANDS_INSERT = re.compile(r"INSERT INTO `brands` VALUES\s*(.+?);", re.S)
_LEGACY_MAKES_INSERT = re.compile(r"INSERT INTO `makes` VALUES\s*(.+?);", re.S)
_LEGACY_BRAND_ROW = re.compile(
    r"\((\d+),'([^']*?)','([^']*?)',([^,]*?),'([^']*?)','([^']*?)'\)"
)
_LEGACY_RECORD_SPLIT = re.compile(r"\),\s*\(")
_LEGACY_MAKE_IDS = re.compile(r"^(\d+),(\d+),")
_LEGACY_QUOTED = re.compile(r"'([^']*?)'")
_LEGACY_ENGINE = re.compile(r"^\d+,\d+,'[^']*','[^']*','[^']*',(\d+|NULL)")

LEGACY_CATEGORY_TO_TYPE = {
    "Motos": "motorcycle",
    "Carros": "car",
    "Camiones": "truck",
    "Botes": "both",
    "Otros": "both",
}

LEGACY_MAKE_TYPE_MAP = {
    **{make_type: make_type for make_type in MAKE_TYPES},
    "Scrambler": "Classic",
    "Supermoto": "Dual Sport",
}

LEGACY_PRESENCE_MAP = {
    "Very Common": "Alta",
    "Common": "Media",
    "Uncommon": "Baja",
    "Rare": "Baja",
}

LEGACY_GARBAGE_MARKERS = ("models available", "more reviews")


class LegacyBrand(NamedTuple):
    legacy_id: int
    name: str
    slug: str
    logo_url: str | None
    type: str


class LegacyMake(NamedTuple):
    legacy_id: int
    brand_legacy_id: int
    name: str
    slug: str
    type: str
    engine_size: int | None
    market_presence: str
    key_features: str | None


def parse_legacy_brands(sql: str) -> list[LegacyBrand]:
    """Brands from the `brands` INSERT of a legacy dump."""
    match = _LEGACY_BRANDS_INSERT.search(sql)
    if not match:
        return []

    brands = []
    for legacy_id, name, slug, logo, category, _created in _LEGACY_BRAND_ROW.findall(match.group(1)):
        logo = logo.strip()
        brands.append(
            LegacyBrand(
                legacy_id=int(legacy_id),
                name=name,
                slug=slug or slugify(name),
                logo_url=None if logo.upper() == "NULL" else logo.strip("'") or None,
                type=LEGACY_CATEGORY_TO_TYPE.get(category, "motorcycle"),
            )
        )
    return brands


def parse_legacy_make_record(record: str) -> LegacyMake | None:
    """
    Parse one `makes` tuple of a legacy dump.

    Returns None for rows that carry nothing importable (no ids, too few
    fields, empty or scraped-garbage names).
    """
    record = record.strip(" \t\n\r()\x0b")
    if not record:
        return None

    ids = _LEGACY_MAKE_IDS.match(record)
    if not ids:
        return None

    strings = _LEGACY_QUOTED.findall(record)
    if len(strings) < 2:
        return None

    name, slug = strings[0], strings[1]
    if not name and not slug:
        return None
    if not slug:
        slug = slugify(name)
    if not name:
        name = humanize_slug(slug)

    if any(marker in name for marker in LEGACY_GARBAGE_MARKERS):
        return None

    old_type = strings[2] if len(strings) > 2 else "Standard"
    old_presence = strings[3] if len(strings) > 3 else "Common"
    key_features = strings[4] if len(strings) > 4 else None

    engine = _LEGACY_ENGINE.match(record)
    engine_size = int(engine.group(1)) if engine and engine.group(1) != "NULL" else None

    return LegacyMake(
        legacy_id=int(ids.group(1)),
        brand_legacy_id=int(ids.group(2)),
        name=name,
        slug=slug,
        type=LEGACY_MAKE_TYPE_MAP.get(old_type, "Standard"),
        engine_size=engine_size,
        market_presence=LEGACY_PRESENCE_MAP.get(old_presence, "Media"),
        key_features=key_features or None,
    )


def parse_legacy_makes(sql: str) -> list[LegacyMake]:
    """Makes from the `makes` INSERT of a legacy dump, garbage rows dropped."""
    match = _LEGACY_MAKES_INSERT.search(sql)
    if not match:
        return []

    makes = []
    for record in _LEGACY_RECORD_SPLIT.split(match.group(1)):
        make = parse_legacy_make_record(record)
        if make is not None:
            makes.append(make)
    return makes


# =============================================================================
# Image gallery folders
# =============================================================================

COLOR_IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp"})


def _visible_dirs(path: Path) -> list[Path]:
    return sorted(p for p in path.iterdir() if p.is_dir() and not p.name.startswith("."))


def _image_stems(path: Path) -> list[str]:
    return [
        p.stem
        for p in sorted(path.iterdir())
        if p.is_file() and p.suffix.lower() in COLOR_IMAGE_EXTENSIONS
    ]


def colors_from_model_dir(
    model_dir: Path,
    include_color_folders: bool = False,
    skip_numeric: bool = False,
) -> str | None:
    """
    Color list of a model folder as stored in `available_colors`.

    Image file names give the colors ("pearl-glare-white.jpg" -> "Pearl Glare
    White"); "default" is ignored, and so are purely numeric names when
    skip_numeric is set. Color subfolders count too when
    include_color_folders is set. None when nothing is found.
    """
    colors = [
        humanize_slug(stem)
        for stem in _image_stems(model_dir)
        if stem and stem != "default" and not (skip_numeric and stem.isdigit())
    ]
    if include_color_folders:
        colors.extend(humanize_slug(d.name) for d in _visible_dirs(model_dir))

    unique = list(dict.fromkeys(colors))
    return ", ".join(unique) if unique else None


def scan_image_tree(root: Path) -> list[tuple[str, list[tuple[str, str | None]]]]:
    """
    Walk `<root>/<brand-slug>/<model-slug>/`.

    Returns:
        [(brand_slug, [(model_slug, colors), ...]), ...] sorted by slug
    """
    tree = []
    for brand_dir in _visible_dirs(root):
        models = [
            (model_dir.name, colors_from_model_dir(model_dir))
            for model_dir in _visible_dirs(brand_dir)
        ]
        tree.append((brand_dir.name, models))
    return tree


def format_file_size(size: int) -> str:
    return f"{round(size / 1024, 2)} KB" if size > 1024 else f"{size} bytes"


class BackupResult(NamedTuple):
    path: Path
    size: int


# =============================================================================
# Service
# =============================================================================


class CatalogIOService:
    """Service for catalog imports, exports and backups."""

    def __init__(self):
        settings = get_settings()
        self.images_dir = Path(settings.CATALOG_IMAGES_DIR)
        self.backup_dir = Path(settings.BACKUP_DIR)

    # -------------------------------------------------------------------------
    # CSV
    # -------------------------------------------------------------------------

    async def export_makes_csv(self) -> tuple[str, bytes]:
        """
        Export all makes ordered by brand and make name.

        Returns:
            (filename, csv_bytes)
        """
        async with get_async_session() as session:
            result = await session.execute(
                select(Make).join(Brand, Make.brand_id == Brand.id).order_by(Brand.name, Make.name)
            )
            makes = result.unique().scalars().all()

        rows = [
            {
                "brand_name": make.brand.name,
                "name": make.name,
                "type": make.type,
                "engine_size": make.engine_size,
                "torque": make.torque,
                "fuel_capacity": make.fuel_capacity,
                "cylinders": make.cylinders,
                "market_presence": make.market_presence,
                "price_range_new": make.price_range_new,
                "price_range_used": make.price_range_used,
                "importer": make.importer,
                "country_origin": make.country_origin,
                "can_import": "yes" if make.can_import else "no",
                "is_highlighted": 1 if make.is_highlighted else 0,
                "key_features": make.key_features,
                "year_from": make.year_from,
                "year_to": make.year_to,
            }
            for make in makes
        ]

        filename = f"makes_export_{timestamp_for_filename()}.csv"
        logger.info(f"Exported {len(rows)} makes to {filename}")
        return filename, render_makes_csv(rows)

    async def import_makes_csv(self, content: bytes) -> CatalogImportResult:
        """
        Import makes from CSV, creating missing brands.

        A best-effort backup is attempted first. Existing makes (same brand
        and slug or name) are updated with COALESCE semantics; per-line
        failures are collected and do not stop the import.

        Raises:
            HTTPException 400: Unreadable file or missing required columns
        """
        backup_notice = await self._pre_import_backup()

        try:
            records, errors = parse_makes_csv(decode_csv(content))
        except (CatalogFormatError, csv.Error) as e:
            raise HTTPException(status_code=400, detail=f"Error al importar: {e}")

        imported = 0
        async with get_async_session() as session:
            brand_ids: dict[str, Any] = {}

            for record in records:
                try:
                    async with session.begin_nested():
                        brand_id = brand_ids.get(record.brand_name)
                        if brand_id is None:
                            brand_id = await self._get_or_create_brand_by_name(
                                session, record.brand_name
                            )
                            brand_ids[record.brand_name] = brand_id
                        await self._upsert_csv_make(session, brand_id, record)
                    imported += 1
                except Exception as e:
                    logger.warning(f"CSV import line {record.line} failed: {e}")
                    errors.append(f"Línea {record.line}: {e}")

            await session.commit()

        await get_cache_service().invalidate_all()

        errors.sort(key=_line_number)
        message = f"Importación completada: {imported} registros procesados."
        logger.info(f"{message} Errores: {len(errors)}")

        return CatalogImportResult(
            message=message,
            counts={"processed": imported},
            errors=summarize_errors(errors),
            error_count=len(errors),
            backup_notice=backup_notice,
        )

    async def _get_or_create_brand_by_name(self, session, name: str):
        brand_id = await session.scalar(select(Brand.id).where(Brand.name == name).limit(1))
        if brand_id:
            return brand_id

        slug = slugify(name)
        brand_id = await session.scalar(select(Brand.id).where(Brand.slug == slug))
        if brand_id:
            return brand_id

        brand = Brand(name=name, slug=slug)
        session.add(brand)
        await session.flush()
        return brand.id

    async def _upsert_csv_make(self, session, brand_id, record: CsvMakeRecord) -> None:
        make = await session.scalar(
            select(Make)
            .where(
                Make.brand_id == brand_id,
                or_(Make.slug == record.slug, Make.name == record.name),
            )
            .limit(1)
        )

        if make is None:
            make = Make(brand_id=brand_id, name=record.name, slug=record.slug)
            session.add(make)

        for column, value in record.values.items():
            setattr(make, column, value)

        current = {c: getattr(make, c) for c in ("price_range_new", "price_range_used", "torque",
                                                 "fuel_capacity", "engine_size", "weight", "horsepower")}
        for column, value in derive_numeric_fields(current).items():
            if value is not None:
                setattr(make, column, value)

        await session.flush()

    async def _pre_import_backup(self) -> str:
        try:
            backup = await self.create_backup(prefix="pre_import")
        except HTTPException:
            return "Backup automático no disponible. Continuando sin backup."
        return f"Backup creado: {backup.path.name} ({format_file_size(backup.size)})"

    # -------------------------------------------------------------------------
    # Scraped catalog JSON
    # -------------------------------------------------------------------------

    async def import_catalog_json(self, path: Path | None = None) -> CatalogImportResult:
        """
        Import brands and models from the scraped catalog JSON in one transaction.

        Raises:
            HTTPException 400: Missing or invalid catalog file
        """
        path = path or Path(get_settings().CATALOG_JSON_PATH)
        try:
            entries = load_catalog_json(path)
        except CatalogFormatError as e:
            raise HTTPException(status_code=400, detail=f"Error al importar catálogo: {e}")

        brands_new = makes_new = makes_updated = 0

        async with get_async_session() as session:
            for entry in entries:
                brand = await session.scalar(select(Brand).where(Brand.slug == entry.slug))
                if brand is None:
                    brand = Brand(name=entry.name, slug=entry.slug)
                    session.add(brand)
                    await session.flush()
                    brands_new += 1

                for model in entry.models:
                    engine_size = str(model.engine_size) if model.engine_size else None
                    make = await session.scalar(
                        select(Make).where(Make.brand_id == brand.id, Make.slug == model.slug)
                    )
                    if make is None:
                        make = Make(brand_id=brand.id, slug=model.slug)
                        session.add(make)
                        makes_new += 1
                    else:
                        makes_updated += 1

                    make.name = model.name
                    make.engine_size = engine_size
                    make.engine_cc = model.engine_size
                    make.year_from = model.year_from
                    make.year_to = model.year_to
                    await session.flush()

            await session.commit()

        await get_cache_service().invalidate_all()

        message = (
            f"Catálogo importado exitosamente. Marcas nuevas: {brands_new}. "
            f"Modelos nuevos: {makes_new}. Modelos actualizados: {makes_updated}."
        )
        logger.info(message)
        return CatalogImportResult(
            message=message,
            counts={"brands_new": brands_new, "makes_new": makes_new, "makes_updated": makes_updated},
        )

    # -------------------------------------------------------------------------
    # Legacy SQL dump
    # -------------------------------------------------------------------------

    async def import_legacy_backup(self, path: Path | None = None) -> CatalogImportResult:
        """
        Import brands and makes from a legacy SQL dump.

        Brands are matched by legacy id, then slug. Makes are upserted on
        (brand, slug) and never blank out existing type, engine size,
        market presence or key features. Records whose brand is unknown
        are skipped; failing records are counted.
        """
        path = path or Path(get_settings().LEGACY_BACKUP_PATH)
        if not path.is_file():
            raise HTTPException(
                status_code=400,
                detail=f"Archivo de backup no encontrado: {path.name}",
            )

        sql = path.read_text(encoding="utf-8", errors="replace")
        legacy_brands = parse_legacy_brands(sql)
        legacy_makes = parse_legacy_makes(sql)

        brands_done = makes_done = failures = 0

        async with get_async_session() as session:
            for legacy in legacy_brands:
                try:
                    async with session.begin_nested():
                        await self._upsert_legacy_brand(session, legacy)
                    brands_done += 1
                except Exception as e:
                    logger.warning(f"Legacy brand {legacy.legacy_id} import issue: {e}")

            result = await session.execute(
                select(Brand.legacy_id, Brand.id).where(Brand.legacy_id.is_not(None))
            )
            brand_ids = dict(result.all())

            for index, legacy in enumerate(legacy_makes):
                brand_id = brand_ids.get(legacy.brand_legacy_id)
                if brand_id is None:
                    continue
                try:
                    async with session.begin_nested():
                        await session.execute(self._legacy_make_upsert(brand_id, legacy))
                    makes_done += 1
                except Exception as e:
                    failures += 1
                    if failures <= 5:
                        logger.warning(f"Legacy make import error at record {index}: {e}")

            await session.commit()

        await get_cache_service().invalidate_all()

        message = (
            f"Importación desde backup completada. Marcas procesadas: {brands_done}. "
            f"Modelos procesados: {makes_done}."
        )
        if failures:
            message += f" Errores: {failures}"
        logger.info(message)

        return CatalogImportResult(
            message=message,
            counts={"brands": brands_done, "makes": makes_done},
            error_count=failures,
        )

    async def _upsert_legacy_brand(self, session, legacy: LegacyBrand) -> None:
        brand = await session.scalar(select(Brand).where(Brand.legacy_id == legacy.legacy_id))
        if brand is None:
            brand = await session.scalar(select(Brand).where(Brand.slug == legacy.slug))
        if brand is None:
            brand = Brand(slug=legacy.slug)
            session.add(brand)

        brand.legacy_id = legacy.legacy_id
        brand.name = legacy.name
        brand.slug = legacy.slug
        brand.type = legacy.type or brand.type
        if legacy.logo_url:
            brand.logo_url = legacy.logo_url
        await session.flush()

    @staticmethod
    def _legacy_make_upsert(brand_id, legacy: LegacyMake):
        engine_size = str(legacy.engine_size) if legacy.engine_size is not None else None
        stmt = pg_insert(Make).values(
            brand_id=brand_id,
            name=legacy.name,
            slug=legacy.slug,
            type=legacy.type,
            engine_size=engine_size,
            engine_cc=legacy.engine_size,
            market_presence=legacy.market_presence,
            key_features=legacy.key_features,
        )
        return stmt.on_conflict_do_update(
            constraint="uq_makes_brand_slug",
            set_={
                "name": stmt.excluded.name,
                "type": func.coalesce(stmt.excluded.type, Make.type),
                "engine_size": func.coalesce(stmt.excluded.engine_size, Make.engine_size),
                "engine_cc": func.coalesce(stmt.excluded.engine_cc, Make.engine_cc),
                "market_presence": func.coalesce(stmt.excluded.market_presence, Make.market_presence),
                "key_features": func.coalesce(stmt.excluded.key_features, Make.key_features),
                "updated_at": func.now(),
            },
        )

    # -------------------------------------------------------------------------
    # Image gallery
    # -------------------------------------------------------------------------

    def _require_images_dir(self, root: Path | None) -> Path:
        root = root or self.images_dir
        if not root.is_dir():
            raise HTTPException(
                status_code=400,
                detail="Directorio de imágenes no encontrado",
            )
        return root

    async def import_from_images(self, root: Path | None = None) -> CatalogImportResult:
        """
        Create brands and makes from `<brand-slug>/<model-slug>/` folders.

        Colors come from the image file names. Existing makes are only
        touched when the folder yields a different color list.
        """
        root = self._require_images_dir(root)
        tree = scan_image_tree(root)

        counts = {"brands_new": 0, "makes_new": 0, "makes_updated": 0, "unchanged": 0}

        async with get_async_session() as session:
            for brand_slug, models in tree:
                brand = await session.scalar(select(Brand).where(Brand.slug == brand_slug))
                if brand is None:
                    brand_name = humanize_slug(brand_slug)
                    brand = await session.scalar(select(Brand).where(Brand.name == brand_name))
                if brand is None:
                    brand = Brand(name=humanize_slug(brand_slug), slug=brand_slug)
                    session.add(brand)
                    await session.flush()
                    counts["brands_new"] += 1

                for model_slug, colors in models:
                    make = await session.scalar(
                        select(Make).where(Make.brand_id == brand.id, Make.slug == model_slug)
                    )
                    if make is None:
                        session.add(
                            Make(
                                brand_id=brand.id,
                                name=humanize_slug(model_slug),
                                slug=model_slug,
                                available_colors=colors,
                            )
                        )
                        await session.flush()
                        counts["makes_new"] += 1
                    elif colors and colors != make.available_colors:
                        make.available_colors = colors
                        counts["makes_updated"] += 1
                    else:
                        counts["unchanged"] += 1

            await session.commit()

        await get_cache_service().invalidate_all()

        message = (
            f"Importación desde imágenes completada. Marcas nuevas: {counts['brands_new']}. "
            f"Modelos nuevos: {counts['makes_new']}. Modelos actualizados: {counts['makes_updated']}. "
            f"Sin cambios: {counts['unchanged']}."
        )
        logger.info(message)
        return CatalogImportResult(message=message, counts=counts)

    async def sync_images(self, root: Path | None = None) -> CatalogImportResult:
        """
        Recompute `available_colors` of every make from its gallery folder.

        File names and color subfolders both count. Makes without a folder
        are reported (up to 10 listed).
        """
        root = self._require_images_dir(root)
        updated = unchanged = 0
        missing: list[str] = []

        async with get_async_session() as session:
            result = await session.execute(select(Make).join(Brand, Make.brand_id == Brand.id))
            for make in result.unique().scalars().all():
                relative = f"{make.brand.slug}/{make.slug}"
                model_dir = root / make.brand.slug / make.slug
                if not model_dir.is_dir():
                    missing.append(relative)
                    continue

                colors = colors_from_model_dir(
                    model_dir, include_color_folders=True, skip_numeric=True
                )
                if colors != make.available_colors:
                    make.available_colors = colors
                    updated += 1
                else:
                    unchanged += 1

            await session.commit()

        await get_cache_service().invalidate_all()

        message = (
            f"Sincronización de imágenes completada. Modelos actualizados: {updated}. "
            f"Sin cambios: {unchanged}."
        )
        if missing:
            message += f" Sin carpeta de imágenes: {len(missing)}"
            if len(missing) <= 10:
                message += f" ({', '.join(missing)})"
        logger.info(message)

        return CatalogImportResult(
            message=message,
            counts={"updated": updated, "unchanged": unchanged, "missing": len(missing)},
            missing_folders=missing[:10],
        )

    # -------------------------------------------------------------------------
    # Backups
    # -------------------------------------------------------------------------

    async def create_backup(self, prefix: str = "manual_backup") -> BackupResult:
        """
        Dump the database with pg_dump into BACKUP_DIR.

        Raises:
            HTTPException 502: Unusable BACKUP_DIR or DATABASE_URL, or pg_dump
                missing, failing, timing out or producing an implausibly small file
        """
        settings = get_settings()
        failure = HTTPException(
            status_code=502,
            detail=(
                "Error al crear el backup SQL. Verifique que pg_dump esté "
                "instalado y los permisos sean correctos."
            ),
        )

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            url = make_url(settings.DATABASE_URL)
        except (OSError, ArgumentError) as e:
            logger.error(f"Backup could not be prepared: {e}")
            raise failure

        target = self.backup_dir / f"{prefix}_{timestamp_for_filename()}.sql"
        args = [
            settings.PG_DUMP_PATH,
            "--no-owner",
            "--file", str(target),
            "--host", url.host or "localhost",
            "--port", str(url.port or 5432),
            "--username", url.username or "",
            url.database or "",
        ]
        env = {**os.environ, "PGPASSWORD": url.password or ""}

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as e:
            logger.error(f"pg_dump could not be started: {e}")
            raise failure

        try:
            _, stderr = await asyncio.wait_for(
                process.communicate(), timeout=settings.BACKUP_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.error(f"pg_dump timed out after {settings.BACKUP_TIMEOUT_SECONDS}s")
            target.unlink(missing_ok=True)
            raise failure

        size = target.stat().st_size if target.exists() else 0
        if process.returncode != 0 or size < BACKUP_MIN_BYTES:
            logger.error(
                f"pg_dump failed (exit {process.returncode}, {size} bytes): "
                f"{stderr.decode(errors='replace')[:500]}"
            )
            target.unlink(missing_ok=True)
            raise failure

        logger.info(f"Backup created: {target.name} ({format_file_size(size)})")
        return BackupResult(path=target, size=size)


def _line_number(error: str) -> int:
    match = re.match(r"Línea (\d+)", error)
    return int(match.group(1)) if match else 0


# Singleton
_catalog_io_service: CatalogIOService | None = None


def get_catalog_io_service() -> CatalogIOService:
    """Get singleton catalog import/export service instance."""
    global _catalog_io_service
    if _catalog_io_service is None:
        _catalog_io_service = CatalogIOService()
    return _catalog_io_service
