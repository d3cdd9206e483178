from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import BigInteger, DateTime, Integer, String


class Base(DeclarativeBase):
    pass


class ReservationStatus(StrEnum):
    CONFIRMED = "confirmed"
    CANCELED = "canceled"
    BLOCKED = "blocked"


class Tenant(Base):
    __tablename__ = "tenants"
    __table_args__ = (
        CheckConstraint("capacity_per_slot >= 1", name="chk_tenants_capacity"),
        CheckConstraint("booking_horizon_days >= 0", name="chk_tenants_horizon"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="America/Los_Angeles")
    capacity_per_slot: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    booking_horizon_days: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    weekly_hours: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    reservations: Mapped[list["Reservation"]] = relationship(back_populates="tenant")


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        UniqueConstraint("tenant_id", "confirmation_code", name="uq_res_tenant_code"),
        Index("idx_res_tenant_date", "tenant_id", "date"),
    )

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(ForeignKey("tenants.id"), nullable=False)
    # Tenant-local wall-clock values, stored as written ("YYYY-MM-DD" / "HH:mm").
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    time_slot: Mapped[str] = mapped_column(String(5), nullable=False)
    # Free text; operator tooling writes values outside ReservationStatus.
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ReservationStatus.CONFIRMED.value)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    party_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    contact_info: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    confirmation_code: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    tenant: Mapped["Tenant"] = relationship(back_populates="reservations")
