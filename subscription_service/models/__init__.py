"""
SQLAlchemy models for the subscription service.
"""
from __future__ import annotations

import uuid

from sqlalchemy import DDL, CheckConstraint, Column, DateTime, Index, Integer, String, Text, Uuid, event
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class Subscription(Base):
    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_subscriptions_price_non_negative"),
        Index("idx_user_id", "user_id"),
        Index("idx_service_name", "service_name"),
    )

    # The ORM assigns ids on insert; PostgreSQL also gets a column default for rows inserted by hand.
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    service_name = Column(String(255), nullable=False)
    price = Column(Integer, nullable=False)
    user_id = Column(Text, nullable=False)
    start_date = Column(String(7), nullable=False)
    end_date = Column(String(7))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


id_server_default = DDL(
    "ALTER TABLE subscriptions ALTER COLUMN id SET DEFAULT gen_random_uuid()"
).execute_if(dialect="postgresql")

event.listen(Subscription.__table__, "after_create", id_server_default)
