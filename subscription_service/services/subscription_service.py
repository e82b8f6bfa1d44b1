"""
Subscription CRUD and cost totals.

Each method maps one API operation onto a single parameterised statement
and raises ``SubscriptionNotFoundError`` / ``PersistenceError`` on failure.
The session is borrowed from the request; the service never closes it.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import ValidationError
from sqlalchemy import String, delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from subscription_service.core.exceptions import PersistenceError, SubscriptionNotFoundError
from subscription_service.models import Subscription
from subscription_service.schemas.subscription import SubscriptionPayload, SubscriptionRead

logger = logging.getLogger(__name__)

subscriptions_table = Subscription.__table__


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def month_key(value: str) -> str:
    """Turn ``MM-YYYY`` into a sortable ``YYYYMM`` string.

    Malformed input is not rejected; it just produces a key that sorts
    somewhere meaningless.
    """
    return value[3:7] + value[0:2]


def month_key_expr(column: Any) -> ColumnElement:
    """SQL counterpart of :func:`month_key` for a ``MM-YYYY`` column."""
    year = func.substr(column, 4, 4, type_=String)
    month = func.substr(column, 1, 2, type_=String)
    return year.concat(month)


class SubscriptionFilter:
    """Ordered list of WHERE clauses shared by list and total queries."""

    def __init__(self) -> None:
        self._clauses: List[ColumnElement] = []

    def equals(self, column: Any, value: Optional[str]) -> "SubscriptionFilter":
        # Empty query parameters mean "no filter".
        if value:
            self._clauses.append(column == value)
        return self

    def active_between(self, start_date: str, end_date: str) -> "SubscriptionFilter":
        """Keep subscriptions active during any month of [start_date, end_date]."""
        self._clauses.append(month_key_expr(Subscription.start_date) <= month_key(end_date))
        self._clauses.append(
            Subscription.end_date.is_(None)
            | (month_key_expr(Subscription.end_date) >= month_key(start_date))
        )
        return self

    @property
    def clauses(self) -> List[ColumnElement]:
        return list(self._clauses)

    def apply(self, stmt: Any) -> Any:
        if not self._clauses:
            return stmt
        return stmt.where(*self._clauses)


class SubscriptionService:
    def __init__(self, db: Session, log: Optional[logging.Logger] = None) -> None:
        self.db = db
        self.logger = log or logger

    def _parse_id(self, operation: str, subscription_id: str) -> uuid.UUID:
        try:
            return uuid.UUID(subscription_id)
        except (ValueError, AttributeError, TypeError):
            self.logger.error("%s: malformed subscription id %r", operation, subscription_id)
            raise SubscriptionNotFoundError(subscription_id, reason="malformed_id")

    def create(self, payload: SubscriptionPayload) -> SubscriptionRead:
        now = now_utc()
        sub = Subscription(**payload.model_dump(), created_at=now, updated_at=now)
        try:
            self.db.add(sub)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.logger.error("failed to create subscription: %s", exc)
            raise PersistenceError("create", "failed to create subscription") from exc

        self.logger.info("subscription created id=%s", sub.id)
        return SubscriptionRead.model_validate(sub)

    def get(self, subscription_id: str) -> SubscriptionRead:
        sub_id = self._parse_id("get", subscription_id)
        try:
            sub = self.db.get(Subscription, sub_id)
        except SQLAlchemyError as exc:
            self.logger.error("failed to get subscription id=%s: %s", subscription_id, exc)
            raise SubscriptionNotFoundError(subscription_id, reason="store_error") from exc
        if sub is None:
            self.logger.error("subscription not found id=%s", subscription_id)
            raise SubscriptionNotFoundError(subscription_id)

        self.logger.info("subscription retrieved id=%s", subscription_id)
        return SubscriptionRead.model_validate(sub)

    def update(self, subscription_id: str, payload: SubscriptionPayload) -> SubscriptionRead:
        """Replace every mutable field of the record wholesale."""
        sub_id = self._parse_id("update", subscription_id)
        stmt = (
            update(subscriptions_table)
            .where(subscriptions_table.c.id == sub_id)
            .values(**payload.model_dump(), updated_at=now_utc())
            .returning(*subscriptions_table.c)
        )
        try:
            row = self.db.execute(stmt).mappings().first()
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.logger.error("failed to update subscription id=%s: %s", subscription_id, exc)
            raise SubscriptionNotFoundError(subscription_id, reason="store_error") from exc
        if row is None:
            self.logger.error("subscription not found for update id=%s", subscription_id)
            raise SubscriptionNotFoundError(subscription_id)

        self.logger.info("subscription updated id=%s", subscription_id)
        return SubscriptionRead.model_validate(dict(row))

    def delete(self, subscription_id: str) -> None:
        sub_id = self._parse_id("delete", subscription_id)
        try:
            result = self.db.execute(delete(subscriptions_table).where(subscriptions_table.c.id == sub_id))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            self.logger.error("failed to delete subscription id=%s: %s", subscription_id, exc)
            raise SubscriptionNotFoundError(subscription_id, reason="store_error") from exc
        if result.rowcount == 0:
            self.logger.error("subscription not found for delete id=%s", subscription_id)
            raise SubscriptionNotFoundError(subscription_id)

        self.logger.info("subscription deleted id=%s", subscription_id)

    def list(
        self,
        user_id: Optional[str] = None,
        service_name: Optional[str] = None,
    ) -> List[SubscriptionRead]:
        filters = (
            SubscriptionFilter()
            .equals(Subscription.user_id, user_id)
            .equals(Subscription.service_name, service_name)
        )
        try:
            rows = self.db.execute(filters.apply(select(Subscription))).scalars().all()
        except SQLAlchemyError as exc:
            self.logger.error("failed to list subscriptions: %s", exc)
            raise PersistenceError("list", "failed to list subscriptions") from exc

        subscriptions: List[SubscriptionRead] = []
        for row in rows:
            try:
                subscriptions.append(SubscriptionRead.model_validate(row))
            except ValidationError as exc:
                # A bad row must not fail the whole listing.
                self.logger.error("failed to read subscription id=%s: %s", row.id, exc)
                continue

        self.logger.info("subscriptions listed count=%d", len(subscriptions))
        return subscriptions

    def calculate_total(
        self,
        start_date: str,
        end_date: str,
        user_id: Optional[str] = None,
        service_name: Optional[str] = None,
    ) -> int:
        """Sum prices of subscriptions active at any point in the window."""
        filters = (
            SubscriptionFilter()
            .active_between(start_date, end_date)
            .equals(Subscription.user_id, user_id)
            .equals(Subscription.service_name, service_name)
        )
        stmt = filters.apply(select(func.coalesce(func.sum(Subscription.price), 0)))
        try:
            total = self.db.execute(stmt).scalar_one()
        except SQLAlchemyError as exc:
            self.logger.error("failed to calculate total: %s", exc)
            raise PersistenceError("total", "failed to calculate total") from exc

        self.logger.info("total calculated total=%s start=%s end=%s", total, start_date, end_date)
        return int(total)
