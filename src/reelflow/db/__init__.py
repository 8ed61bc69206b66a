"""Database layer."""

from reelflow.db.models import (
    Base,
    JobModel,
    PublishingCalendarModel,
    ScheduledPostModel,
    SeriesModel,
    VideoModel,
)
from reelflow.db.session import (
    SessionLocal,
    engine,
    get_session,
    init_db,
    session_scope,
)

__all__ = [
    "Base",
    "JobModel",
    "PublishingCalendarModel",
    "ScheduledPostModel",
    "SeriesModel",
    "SessionLocal",
    "VideoModel",
    "engine",
    "get_session",
    "init_db",
    "session_scope",
]
