"""SQLAlchemy ORM models."""

from datetime import datetime
from typing import Any
from uuid import UUID as PyUUID
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    true,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from reelflow.utils.time import utcnow

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests and local runs)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Job Queue
# =============================================================================


class JobModel(Base):
    """Durable background job ORM model."""

    __tablename__ = "jobs"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    job_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    state: Mapped[str] = mapped_column(
        String(20), nullable=False, default="queued", server_default="queued"
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    max_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=3, server_default="3"
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    worker_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    enqueued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    available_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        # Dequeue scans queued jobs by availability, then priority
        Index("ix_jobs_state_available_at", "state", "available_at"),
    )


# =============================================================================
# Content Models
# =============================================================================


class SeriesModel(Base):
    """A recurring content series that groups videos."""

    __tablename__ = "series"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    frequency: Mapped[str] = mapped_column(
        String(20), nullable=False, default="weekly", server_default="weekly"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    # Relationships
    videos: Mapped[list["VideoModel"]] = relationship(
        "VideoModel", back_populates="series", cascade="all, delete-orphan"
    )
    # Calendars outlive their series; deleting a series only detaches them
    calendars: Mapped[list["PublishingCalendarModel"]] = relationship(
        "PublishingCalendarModel", back_populates="series"
    )


class VideoModel(Base):
    """A short video moving through generation, rendering and publishing."""

    __tablename__ = "videos"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    series_id: Mapped[PyUUID | None] = mapped_column(
        Uuid, ForeignKey("series.id", ondelete="CASCADE"), nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    script: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="draft", server_default="draft", index=True
    )
    media: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    narration: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    captions: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    hashtags: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    video_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    published_links: Mapped[dict[str, str]] = mapped_column(
        JSONType, nullable=False, default=dict
    )
    publish_results: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )
    platform_optimizations: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    failed_stage: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    series: Mapped["SeriesModel | None"] = relationship("SeriesModel", back_populates="videos")
    scheduled_posts: Mapped[list["ScheduledPostModel"]] = relationship(
        "ScheduledPostModel", back_populates="video", cascade="all, delete-orphan"
    )


# =============================================================================
# Scheduling Models
# =============================================================================


class ScheduledPostModel(Base):
    """A one-shot publish of a video to a set of platforms at a given time."""

    __tablename__ = "scheduled_posts"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    video_id: Mapped[PyUUID] = mapped_column(
        Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    platforms: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", server_default="pending"
    )
    published_urls: Mapped[dict[str, str]] = mapped_column(JSONType, nullable=False, default=dict)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    publish_job_id: Mapped[PyUUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    video: Mapped["VideoModel"] = relationship("VideoModel", back_populates="scheduled_posts")

    __table_args__ = (Index("ix_scheduled_posts_status_scheduled_at", "status", "scheduled_at"),)


class PublishingCalendarModel(Base):
    """A recurring publishing schedule that triggers content generation."""

    __tablename__ = "publishing_calendars"

    id: Mapped[PyUUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    series_id: Mapped[PyUUID | None] = mapped_column(
        Uuid, ForeignKey("series.id", ondelete="SET NULL"), nullable=True, index=True
    )
    frequency: Mapped[str] = mapped_column(String(20), nullable=False)
    time_slots: Mapped[list[dict[str, int]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    platforms: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )
    next_scheduled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_triggered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    # Relationships
    series: Mapped["SeriesModel | None"] = relationship(
        "SeriesModel", back_populates="calendars"
    )

    __table_args__ = (
        Index("ix_publishing_calendars_active_next", "is_active", "next_scheduled_at"),
    )
