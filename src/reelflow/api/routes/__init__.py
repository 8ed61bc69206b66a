"""API route modules."""

from reelflow.api.routes import health, jobs, schedules, videos

__all__ = ["health", "jobs", "schedules", "videos"]
