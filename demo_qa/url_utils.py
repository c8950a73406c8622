"""Shared URL utilities — site variant selection and stable name slugs."""

from __future__ import annotations

import enum
import re
from typing import Optional

_SLUG_RE = re.compile(r"[^a-z0-9]+")


class SiteVariant(str, enum.Enum):
    ORIGINAL = "original"
    ALTERNATE = "alternate"


def resolve_site_variant(raw: Optional[str]) -> SiteVariant:
    """Map the raw environment switch value to a site variant.

    Unset, blank and exactly ``original`` select the default page; any other
    value, including other spellings of ``original``, selects the alternate page.
    """
    if raw is None or not raw.strip() or raw == SiteVariant.ORIGINAL.value:
        return SiteVariant.ORIGINAL
    return SiteVariant.ALTERNATE


def build_site_url(base_url: str, variant: SiteVariant, alternate_page: str = "/index_v2.html") -> str:
    """Return the URL to load for a site variant."""
    base = base_url.rstrip("/")
    if variant is SiteVariant.ORIGINAL:
        return base
    return base + "/" + alternate_page.lstrip("/")


def slugify(value: str) -> str:
    """Lowercase, filesystem-safe form of a display name."""
    return _SLUG_RE.sub("-", value.lower()).strip("-") or "unnamed"
