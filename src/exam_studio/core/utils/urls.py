"""
URL helpers for the exam header form.

The editor previews the public URL an exam will get from its category,
subcategory and slug. When no slug is set, one is derived from the title.
"""

from __future__ import annotations

import re
from typing import Optional

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """
    Lowercase and collapse every non-alphanumeric run into "-".

    Example:
        >>> slugify("  SSC CGL: Tier 1 (2024) ")
        'ssc-cgl-tier-1-2024'
    """
    return _NON_ALNUM.sub("-", text.lower()).strip("-")


def build_exam_url(
    title: str,
    slug: str = "",
    category_slug: Optional[str] = None,
    subcategory_slug: Optional[str] = None,
) -> str:
    """
    Preview the public path for an exam.

    Returns:
        "/<category>/<subcategory>/<slug>" with empty parts dropped, or ""
        when every part is empty.
    """
    parts = [p for p in (category_slug, subcategory_slug, slug or slugify(title)) if p]
    return f"/{'/'.join(parts)}" if parts else ""
