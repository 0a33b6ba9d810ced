"""Top-level FastAPI APIRouter for the Newsdesk REST API (v1).

Prefix:  /api/v1

Sub-routers included:
- trending_router, personalized_router  : GET /news/trending, GET /news/personalized
- news_router, admin_news_router        : public news, interactions, translations, admin CRUD
- duplicates_router                     : /admin/news/duplicates scan and resolve
- categories routers, bulk_router       : categories and /admin/bulk/categories
- tags_router, articles_router          : admin tag and article management
- analytics_router                      : /admin/analytics/*
- gamification and citizenship routers  : points, achievements, leaderboard, citizenship
- translation_router                    : /translation/stats
- roles_router                          : /admin/users/{id}/role
- cron_router                           : /cron/* (X-Cron-Secret)
"""

from __future__ import annotations

from fastapi import APIRouter

from newsdesk.api.routes.analytics import analytics_router
from newsdesk.api.routes.articles import articles_router
from newsdesk.api.routes.categories import (
    admin_categories_router,
    bulk_router,
    categories_router,
)
from newsdesk.api.routes.cron import cron_router
from newsdesk.api.routes.duplicates import duplicates_router
from newsdesk.api.routes.gamification import (
    admin_gamification_router,
    citizenship_router,
    gamification_router,
)
from newsdesk.api.routes.news import admin_news_router, news_router
from newsdesk.api.routes.personalized import personalized_router
from newsdesk.api.routes.roles import roles_router
from newsdesk.api.routes.tags import tags_router
from newsdesk.api.routes.translation import translation_router
from newsdesk.api.routes.trending import trending_router

api_router = APIRouter(prefix="/api/v1")

# Registered before news_router so /news/{news_id} does not capture them.
api_router.include_router(trending_router)
api_router.include_router(personalized_router)
api_router.include_router(news_router)
# Registered before admin_news_router for the same reason.
api_router.include_router(duplicates_router)
api_router.include_router(admin_news_router)
api_router.include_router(categories_router)
api_router.include_router(admin_categories_router)
api_router.include_router(bulk_router)
api_router.include_router(tags_router)
api_router.include_router(articles_router)
api_router.include_router(analytics_router)
api_router.include_router(gamification_router)
api_router.include_router(admin_gamification_router)
api_router.include_router(citizenship_router)
api_router.include_router(translation_router)
api_router.include_router(roles_router)
api_router.include_router(cron_router)
