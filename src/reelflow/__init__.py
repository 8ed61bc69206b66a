"""reelflow - job orchestration and scheduling for AI-generated social videos."""

__version__ = "0.1.0"
