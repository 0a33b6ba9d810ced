"""Translation completeness of articles and news.

An item's own language is complete whenever its source fields are filled;
other locales are read from the item's ``translations`` map.  A locale is
complete when every translatable field is non-blank; an item is fully
translated when the mean completeness over all locales is 100%.
"""

from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Session

from newsdesk.db.models import Article, ArticleStatus, News

LOCALES = ("en", "es")

ARTICLE_FIELDS = ("title", "content", "excerpt")
NEWS_FIELDS = ("title", "summary", "content")

# translation map keys that hold the article's excerpt
_TRANSLATION_KEYS = {"excerpt": "summary"}


def _filled(value) -> bool:
    return isinstance(value, str) and value.strip() != ""


def locale_percentage(item: Article | News, fields: tuple[str, ...], locale: str) -> float:
    if item.language.value == locale:
        values = [getattr(item, f) for f in fields]
    else:
        translated = (item.translations or {}).get(locale) or {}
        values = [translated.get(f, translated.get(_TRANSLATION_KEYS.get(f, f))) for f in fields]
    return sum(1 for v in values if _filled(v)) / len(fields) * 100


def _fields_for(item: Article | News) -> tuple[str, ...]:
    return ARTICLE_FIELDS if isinstance(item, Article) else NEWS_FIELDS


def _recent_activity(items: list[Article | News], limit: int) -> list[dict]:
    activity = []
    for item in items:
        for locale, entry in (item.translations or {}).items():
            if not isinstance(entry, dict) or not entry.get("updated_at"):
                continue
            activity.append(
                {
                    "content_id": str(item.id),
                    "content_title": item.title,
                    "content_type": "article" if isinstance(item, Article) else "news",
                    "source_locale": item.language.value,
                    "target_locale": locale,
                    "updated_at": entry["updated_at"],
                }
            )
    activity.sort(key=lambda a: a["updated_at"], reverse=True)
    return activity[:limit]


def content_translation_stats(session: Session, content_id: uuid.UUID) -> dict:
    """Per-locale completeness of one article or news item.

    Raises:
        LookupError: If neither an article nor a news item has the id.
    """
    item: Article | News | None = session.get(Article, content_id)
    content_type = "article"
    if item is None:
        item = session.get(News, content_id)
        content_type = "news"
    if item is None:
        raise LookupError(f"Content '{content_id}' not found")

    fields = _fields_for(item)
    fully = partially = pending = 0
    by_locale = {}
    for locale in LOCALES:
        percentage = locale_percentage(item, fields, locale)
        translated = round(percentage * len(fields) / 100)
        by_locale[locale] = {
            "translated": translated,
            "pending": len(fields) - translated,
            "percentage": percentage,
        }
        if percentage == 100:
            fully += 1
        elif percentage > 0:
            partially += 1
        else:
            pending += 1

    return {
        "total_content": 1,
        "fully_translated": fully,
        "partially_translated": partially,
        "pending_translation": pending,
        "by_locale": by_locale,
        "by_content_type": {
            content_type: {"total": 1, "translated": fully, "pending": pending}
        },
        "recent_activity": _recent_activity([item], limit=10),
    }


def global_translation_stats(session: Session) -> dict:
    """Completeness over published articles and all news."""
    articles = session.execute(
        sa.select(Article).where(Article.status == ArticleStatus.published)
    ).scalars().all()
    news = session.execute(sa.select(News)).scalars().all()
    items: list[Article | News] = [*articles, *news]

    fully = partially = pending = 0
    by_locale = {locale: {"translated": 0, "pending": 0, "percentage": 0.0} for locale in LOCALES}
    by_content_type = {
        "articles": {"total": 0, "translated": 0, "pending": 0},
        "news": {"total": 0, "translated": 0, "pending": 0},
    }

    for item in items:
        fields = _fields_for(item)
        percentages = []
        for locale in LOCALES:
            percentage = locale_percentage(item, fields, locale)
            percentages.append(percentage)
            by_locale[locale]["translated" if percentage == 100 else "pending"] += 1

        completeness = sum(percentages) / len(percentages)
        if completeness == 100:
            fully += 1
        elif completeness > 0:
            partially += 1
        else:
            pending += 1

        bucket = by_content_type["articles" if isinstance(item, Article) else "news"]
        bucket["total"] += 1
        bucket["translated" if completeness == 100 else "pending"] += 1

    for stats in by_locale.values():
        total = stats["translated"] + stats["pending"]
        stats["percentage"] = stats["translated"] / total * 100 if total else 0.0

    return {
        "total_content": len(items),
        "fully_translated": fully,
        "partially_translated": partially,
        "pending_translation": pending,
        "by_locale": by_locale,
        "by_content_type": by_content_type,
        "recent_activity": _recent_activity(items, limit=20),
    }
