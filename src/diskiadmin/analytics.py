"""Engagement figures for the dashboard: subscription funnel and feedback."""

import logging

from diskiadmin.schema import (
    CREATED_AT_FIELD,
    FEEDBACK,
    METRICS,
    SUBSCRIPTION_ATTEMPTS,
    SUBSCRIPTION_CLICKS_DOC,
)
from diskiadmin.store import DocumentStore

logger = logging.getLogger(__name__)


def get_dashboard(store: DocumentStore, feedback_limit: int = 20) -> dict:
    """Collect the figures shown on the analytics page.

    Returns:
        Dict with subscription_clicks, clicks_updated_at,
        subscription_attempts and feedback (newest first).
    """
    clicks = store.get(METRICS, SUBSCRIPTION_CLICKS_DOC) or {}
    dashboard = {
        "subscription_clicks": clicks.get("count") or 0,
        "clicks_updated_at": clicks.get("updatedAt"),
        "subscription_attempts": store.count(SUBSCRIPTION_ATTEMPTS),
        "feedback": store.list(
            FEEDBACK,
            order_by=CREATED_AT_FIELD,
            descending=True,
            limit=feedback_limit,
        ),
    }
    logger.debug(
        "Dashboard: %d clicks, %d attempts, %d feedback entries",
        dashboard["subscription_clicks"],
        dashboard["subscription_attempts"],
        len(dashboard["feedback"]),
    )
    return dashboard
