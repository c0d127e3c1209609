"""Pipelines for matching, sentiment, pricing, health checks and reminders.

Each pipeline takes an ``AsyncSession`` so it can be called from API routes
and from scheduled jobs alike.
"""
