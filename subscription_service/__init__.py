"""Subscription Service: CRUD and cost totals for user subscriptions."""

__version__ = "1.0.0"
