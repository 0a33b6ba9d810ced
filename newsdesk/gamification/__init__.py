"""Gamification: contribution points, achievements and citizenship.

Public API:
- points.award_content_points          : record a contribution and credit its points
- points.leaderboard / points_breakdown : read models for the gamification API
- achievements.check_and_award_achievements
- citizenship.get_citizenship_progress / check_and_update_citizenship
"""
