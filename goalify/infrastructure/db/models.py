"""
SQLAlchemy ORM models: users, default task templates and dated task instances
"""
from datetime import date as date_type
from sqlalchemy import String, DateTime, Integer, SmallInteger, Text, TIMESTAMP, Date, func, Boolean, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from goalify.infrastructure.db.session import Base


class User(Base):
    """
    Account owning default tasks and task instances
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class DefaultTaskModel(Base):
    """Recurring habit definitions, materialized once per day while enabled"""
    __tablename__ = "default_tasks"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    sort_order: Mapped[int] = mapped_column(SmallInteger, nullable=False, server_default="1")
    color: Mapped[str] = mapped_column(String(7), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class TaskInstanceModel(Base):
    """One task on one calendar date, materialized from a default task or added ad-hoc"""
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    task_type: Mapped[str] = mapped_column(String(16), nullable=False, server_default="TEMPLATE")  # TEMPLATE/ADHOC

    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[DateTime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    sort_order: Mapped[int] = mapped_column(SmallInteger, nullable=False, server_default="1")
    color: Mapped[str] = mapped_column(String(7), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        # Conflict target for daily materialization: concurrent sessions insert the
        # same rows and the loser's are dropped by ON CONFLICT DO NOTHING.
        UniqueConstraint('account_id', 'name', 'date', name='uq_task_owner_name_date'),
        Index('ix_tasks_account_date', 'account_id', 'date'),
    )
