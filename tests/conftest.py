"""Pytest configuration and fixtures."""

import os
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Set test environment before importing app modules
_TEST_DIR = Path(tempfile.mkdtemp(prefix="reelflow-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'app.db'}"
os.environ["STORAGE_PATH"] = str(_TEST_DIR / "storage")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["WORKER_ENABLED"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"

from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from reelflow.config import Settings  # noqa: E402
from reelflow.db.models import Base  # noqa: E402


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings with no artificial waits."""
    return Settings(
        storage_path=str(tmp_path / "storage"),
        batch_item_delay_seconds=0,
        publish_poll_interval_seconds=0,
        publish_poll_max_attempts=3,
        queue_poll_interval_seconds=0.05,
        worker_shutdown_timeout_seconds=5,
        adapter_timeout_seconds=5,
        auto_chain_render=True,
    )


@pytest.fixture
def session_factory(tmp_path: Path) -> Generator[sessionmaker[Session], None, None]:
    """A fresh SQLite database per test."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def queue(session_factory, test_settings):
    """Job queue bound to the test database."""
    from reelflow.services.job_queue import JobQueue

    return JobQueue(session_factory, test_settings)


@pytest.fixture
def videos(session_factory):
    """Video store bound to the test database."""
    from reelflow.services.videos import VideoStore

    return VideoStore(session_factory)


@pytest.fixture
def series_store(session_factory):
    """Series store bound to the test database."""
    from reelflow.services.videos import SeriesStore

    return SeriesStore(session_factory)


@pytest.fixture
def publishers():
    """Stub publishers for every platform."""
    from reelflow.adapters.publisher.stub import StubPublisher
    from reelflow.domain.enums import Platform

    return {platform.value: StubPublisher(platform) for platform in Platform}


@pytest.fixture
def context(session_factory, queue, videos, publishers, test_settings, tmp_path: Path):
    """Processor context wired to stub adapters and the test database."""
    from reelflow.adapters.image_gen.stub import StubImageGenProvider
    from reelflow.adapters.llm.stub import StubLLMProvider
    from reelflow.adapters.renderer.stub import StubRendererProvider
    from reelflow.adapters.voiceover.stub import StubVoiceoverProvider
    from reelflow.jobs.processors import ProcessorContext
    from reelflow.services.content_generator import ContentGenerator
    from reelflow.services.publish_orchestrator import PublishOrchestrator
    from reelflow.services.scheduling import SchedulingService
    from reelflow.services.storage import StorageService

    content = ContentGenerator(
        llm=StubLLMProvider(),
        image_gen=StubImageGenProvider(),
        voiceover=StubVoiceoverProvider(),
        storage=StorageService(tmp_path / "storage"),
        settings=test_settings,
    )
    return ProcessorContext(
        videos=videos,
        queue=queue,
        content=content,
        renderer=StubRendererProvider(tmp_path / "renders"),
        orchestrator=PublishOrchestrator(publishers, test_settings),
        scheduling=SchedulingService(queue, videos, session_factory, test_settings),
        settings=test_settings,
    )


@pytest.fixture
def make_completed_video(videos):
    """Factory for rendered videos."""
    from reelflow.domain.enums import VideoStatus

    def make(title: str = "Why octopuses have three hearts", owner_id: str = "owner-1"):
        video = videos.create(owner_id, title, script="Octopus facts.")
        videos.transition(video.id, VideoStatus.PROCESSING)
        return videos.transition(
            video.id, VideoStatus.COMPLETED, video_url="file:///tmp/rendered.mp4"
        )

    return make


@pytest.fixture
def completed_video(make_completed_video):
    """A rendered video ready to be scheduled or published."""
    return make_completed_video()


@pytest.fixture
def test_client(context) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app backed by the test context."""
    from reelflow.api.deps import get_context
    from reelflow.main import app

    app.dependency_overrides[get_context] = lambda: context
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
