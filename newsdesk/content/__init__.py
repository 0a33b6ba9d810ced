"""Editorial content services shared by the API, CLI and background jobs.

- tags.merge_tags / merge_duplicate_tags / cleanup_unused_tags
- publishing.approve_article / reject_article / publish_scheduled_articles
"""
