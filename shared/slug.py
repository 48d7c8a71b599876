"""
Slug utilities for URL-friendly strings and color names.

Slugs identify brands, makes and listings in URLs and in the image gallery
folder layout (images/<brand-slug>/<make-slug>/<color-slug>/).
"""

import re
import unicodedata
import uuid
from collections.abc import Iterable

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_WORD_START = re.compile(r"\b\w")


def _slug_core(text: str | None) -> str:
    if not text:
        return ""
    normalized = unicodedata.normalize("NFD", str(text).strip().lower())
    without_accents = "".join(c for c in normalized if not unicodedata.combining(c))
    return _NON_ALNUM.sub("-", without_accents).strip("-")


def slugify(text: str | None) -> str:
    """
    Convert text to a URL-friendly slug.

    "Harley-Davidson Fat Boy" -> "harley-davidson-fat-boy",
    "Motocicletas Económicas" -> "motocicletas-economicas".
    Text with no usable characters gets a unique "item-<hex>" slug.
    """
    slug = _slug_core(text)
    if not slug:
        slug = f"item-{uuid.uuid4().hex[:12]}"
    return slug


def color_slug(color: str | None) -> str:
    """Folder-safe color token ("Rojo Metálico" -> "rojo-metalico"); empty for blank input."""
    return _slug_core(color)


def humanize_slug(slug: str | None) -> str:
    """Convert a slug back to display form ("yamaha-mt-07" -> "Yamaha Mt 07")."""
    if not slug:
        return ""
    text = re.sub(r"[-_]", " ", slug)
    return _WORD_START.sub(lambda m: m.group(0).upper(), text)


def generate_unique_slug(base: str, existing: Iterable[str]) -> str:
    """Slugify base and append -1, -2, ... until it is not in existing."""
    taken = set(existing)
    root = slugify(base)
    slug = root
    counter = 1
    while slug in taken:
        slug = f"{root}-{counter}"
        counter += 1
    return slug


def create_motorcycle_slug(brand: str, model: str) -> str:
    return slugify(f"{brand}-{model}")


def parse_colors(text: str | None) -> list[str]:
    """
    Split a comma or pipe separated color list into normalized names.

    "rojo, AZUL | negro mate" -> ["Rojo", "Azul", "Negro Mate"]
    """
    if not text:
        return []
    colors = []
    for raw in re.split(r"[,|]", text):
        raw = raw.strip()
        if raw:
            colors.append(humanize_slug(slugify(raw)))
    return colors


def format_colors(colors: list[str] | None) -> str:
    """Join colors for display ("N/A" when empty)."""
    if not colors:
        return "N/A"
    return ", ".join(colors)
