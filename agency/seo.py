"""
SEO view model for public entity pages.
"""

from __future__ import annotations

from typing import Optional

from agency.config import Settings
from agency.entities import EntityKind


def build_seo(
    settings: Settings,
    *,
    title: str = "",
    description: str = "",
    keywords: str = "",
    image_url: str = "",
    canonical_path: Optional[str] = None,
    site_name: str = "",
    twitter_card: str = "summary_large_image",
    no_index: bool = False,
    no_follow: bool = False,
) -> dict:
    site_name = site_name or settings.site_name
    full_title = f"{title} - {site_name}" if title else site_name
    description = description or settings.default_description
    seo = {
        "title": full_title,
        "description": description,
        "keywords": keywords or None,
        "canonicalUrl": (
            f"{settings.site_url.rstrip('/')}{canonical_path}" if canonical_path else None
        ),
        "og": {
            "type": "website",
            "title": full_title,
            "description": description,
            "image": image_url or None,
            "siteName": site_name,
        },
        "twitter": {
            "card": twitter_card,
            "title": full_title,
            "description": description,
            "image": image_url or None,
        },
        "robots": None,
    }
    if no_index or no_follow:
        seo["robots"] = (
            f"{'noindex' if no_index else 'index'},{'nofollow' if no_follow else 'follow'}"
        )
    return seo


def entity_seo(
    settings: Settings, kind: EntityKind, view: dict, *, site_name: str = ""
) -> dict:
    """SEO for a loaded entity view: overlay values first, entity fields as fallback."""
    title = view.get("seoTitle") or view.get(kind.title_field) or ""
    description = (
        view.get("metaDescription") or view.get("excerpt") or view.get("description") or ""
    )
    return build_seo(
        settings,
        title=title,
        description=description,
        keywords=view.get("seoKeywords") or "",
        image_url=settings.file_url(view.get("featuredImage") or ""),
        canonical_path=kind.url_for(view.get("slug") or ""),
        site_name=site_name,
    )
