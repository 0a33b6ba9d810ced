"""Ranking signals for news items.

Public API:
- trending.compute_trending_score          : weighted engagement / recency / velocity score
- trending.rank_trending                   : score the recent pool and persist the top items
- trending.recompute_trending_scores       : batch recompute (cron, CLI, Celery beat)
- personalization.compute_personalization_score : per-user ranking score
- personalization.personalized_feed        : paginated personalized feed
"""
