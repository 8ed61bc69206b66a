"""Tests for the HTTP API."""

from uuid import uuid4

from fastapi.testclient import TestClient

from reelflow.domain.enums import JobType, PipelineStage, VideoStatus


def test_health_check(test_client: TestClient) -> None:
    """Test the basic health check endpoint."""
    response = test_client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["components"]["llm"] is False


def test_liveness_check(test_client: TestClient) -> None:
    """Test the liveness probe endpoint."""
    response = test_client.get("/health/live")

    assert response.status_code == 200
    assert response.json()["status"] == "alive"


def test_readiness_reports_queue(test_client: TestClient) -> None:
    response = test_client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["database"] is True
    assert data["queue"]["queued"] == 0


def test_root_endpoint(test_client: TestClient) -> None:
    """Test the root endpoint."""
    response = test_client.get("/")

    assert response.status_code == 200
    assert response.json()["name"] == "reelflow"


class TestJobEndpoints:
    """Queue endpoints."""

    def test_enqueue_and_get(self, test_client: TestClient) -> None:
        response = test_client.post(
            "/api/v1/jobs",
            json={"job_type": "render-video", "payload": {"video_id": "x"}, "priority": 5},
        )

        assert response.status_code == 202
        job_id = response.json()["job_id"]

        job = test_client.get(f"/api/v1/jobs/{job_id}").json()
        assert job["job_type"] == JobType.RENDER_VIDEO.value
        assert job["state"] == "queued"
        assert job["priority"] == 5
        assert job["attempts"] == 0

        stats = test_client.get("/api/v1/jobs/stats").json()
        assert stats["queued"] == 1

    def test_unknown_job_type_is_rejected(self, test_client: TestClient) -> None:
        response = test_client.post("/api/v1/jobs", json={"job_type": "mine-bitcoin"})

        assert response.status_code == 422

    def test_cancel(self, test_client: TestClient) -> None:
        job_id = test_client.post(
            "/api/v1/jobs", json={"job_type": "publish-video", "payload": {}}
        ).json()["job_id"]

        response = test_client.delete(f"/api/v1/jobs/{job_id}")
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        again = test_client.delete(f"/api/v1/jobs/{job_id}")
        assert again.status_code == 409

    def test_missing_job(self, test_client: TestClient) -> None:
        assert test_client.get(f"/api/v1/jobs/{uuid4()}").status_code == 404
        assert test_client.delete(f"/api/v1/jobs/{uuid4()}").status_code == 404

    def test_list_filters_by_state(self, test_client: TestClient, queue) -> None:
        queue.enqueue(JobType.RENDER_VIDEO, {})
        cancelled = queue.enqueue(JobType.RENDER_VIDEO, {})
        queue.cancel(cancelled)

        response = test_client.get("/api/v1/jobs", params={"state": "cancelled"})

        assert [j["id"] for j in response.json()] == [str(cancelled)]


class TestVideoEndpoints:
    """Video and series endpoints."""

    def test_create_enqueues_generation(self, test_client: TestClient, queue) -> None:
        response = test_client.post(
            "/api/v1/videos",
            json={
                "owner_id": "owner-1",
                "title": "Why cats purr",
                "publish_platforms": ["youtube"],
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["video"]["status"] == "draft"
        job = queue.get(data["job_id"])
        assert job.job_type == JobType.GENERATE_CONTENT
        assert job.payload["publish_platforms"] == ["youtube"]

    def test_create_without_generation(self, test_client: TestClient) -> None:
        response = test_client.post(
            "/api/v1/videos",
            json={"owner_id": "owner-1", "title": "Why cats purr", "generate": False},
        )

        assert response.json()["job_id"] is None

    def test_missing_video(self, test_client: TestClient) -> None:
        assert test_client.get(f"/api/v1/videos/{uuid4()}").status_code == 404

    def test_retry_requires_failed_video(self, test_client: TestClient, videos) -> None:
        video = videos.create("owner-1", "Why cats purr")

        response = test_client.post(f"/api/v1/videos/{video.id}/retry")

        assert response.status_code == 409

    def test_retry_failed_video(self, test_client: TestClient, videos) -> None:
        video = videos.create("owner-1", "Why cats purr", script="Cats purr.")
        videos.transition(video.id, VideoStatus.PROCESSING)
        videos.mark_failed(video.id, "renderer down", PipelineStage.RENDER)

        response = test_client.post(f"/api/v1/videos/{video.id}/retry")

        assert response.status_code == 200
        assert response.json()["video"]["status"] == "processing"
        assert response.json()["job_id"]

    def test_list_by_status(self, test_client: TestClient, completed_video) -> None:
        response = test_client.get("/api/v1/videos", params={"status": "completed"})

        assert [v["id"] for v in response.json()] == [str(completed_video.id)]

    def test_publish_enqueues_job(self, test_client: TestClient, completed_video, queue) -> None:
        response = test_client.post(
            f"/api/v1/videos/{completed_video.id}/publish", json={"platforms": ["tiktok"]}
        )

        assert response.status_code == 202
        job = queue.get(response.json()["job_id"])
        assert job.payload == {"video_id": str(completed_video.id), "platforms": ["tiktok"]}

    def test_batch(self, test_client: TestClient) -> None:
        response = test_client.post(
            "/api/v1/videos/batch", json={"owner_id": "owner-1", "topics": ["a", "b"]}
        )

        assert response.status_code == 202
        assert response.json()["topics"] == 2

    def test_series_lifecycle(self, test_client: TestClient) -> None:
        created = test_client.post(
            "/api/v1/series", json={"owner_id": "owner-1", "title": "Space oddities"}
        )
        assert created.status_code == 201
        series_id = created.json()["id"]
        assert created.json()["frequency"] == "weekly"

        assert test_client.get(f"/api/v1/series/{series_id}/videos").json() == []
        assert test_client.delete(f"/api/v1/series/{series_id}").status_code == 204
        assert test_client.get(f"/api/v1/series/{series_id}").status_code == 404


class TestScheduleEndpoints:
    """Scheduled posts, calendars and analytics."""

    def test_calendar_crud(self, test_client: TestClient) -> None:
        response = test_client.post(
            "/api/v1/schedules/calendars",
            json={
                "owner_id": "owner-1",
                "frequency": "weekly",
                "time_slots": [{"day_of_week": 3, "hour": 10}],
                "platforms": ["YouTube"],
                "category": "science",
            },
        )

        assert response.status_code == 201
        calendar = response.json()
        assert calendar["platforms"] == ["youtube"]
        assert calendar["next_scheduled_at"] is not None

        listed = test_client.get("/api/v1/schedules/calendars", params={"owner_id": "owner-1"})
        assert [c["id"] for c in listed.json()] == [calendar["id"]]

        updated = test_client.patch(
            f"/api/v1/schedules/calendars/{calendar['id']}", json={"is_active": False}
        )
        assert updated.json()["is_active"] is False

        path = f"/api/v1/schedules/calendars/{calendar['id']}"
        assert test_client.delete(path).status_code == 204
        assert test_client.delete(path).status_code == 404

    def test_invalid_slot_is_rejected(self, test_client: TestClient) -> None:
        response = test_client.post(
            "/api/v1/schedules/calendars",
            json={
                "owner_id": "owner-1",
                "frequency": "daily",
                "time_slots": [{"hour": 24}],
                "platforms": ["youtube"],
            },
        )

        assert response.status_code == 422

    def test_scheduled_post_and_analytics(
        self, test_client: TestClient, completed_video, videos
    ) -> None:
        response = test_client.post(
            "/api/v1/schedules/posts",
            json={
                "owner_id": "owner-1",
                "video_id": str(completed_video.id),
                "platforms": ["youtube", "tiktok"],
                "scheduled_at": "2099-01-01T10:00:00Z",
            },
        )
        assert response.status_code == 201
        post = response.json()
        assert post["status"] == "pending"
        assert post["publish_job_id"] is not None
        assert videos.get(completed_video.id).status == VideoStatus.SCHEDULED

        analytics = test_client.get(
            "/api/v1/schedules/analytics", params={"owner_id": "owner-1"}
        ).json()
        assert analytics["total_scheduled"] == 1
        assert analytics["upcoming_posts"] == 1
        assert analytics["platform_breakdown"] == {"youtube": 1, "tiktok": 1}

        assert test_client.get("/api/v1/schedules/posts/due").json() == []
        assert test_client.delete(f"/api/v1/schedules/posts/{post['id']}").status_code == 204
        assert test_client.delete(f"/api/v1/schedules/posts/{post['id']}").status_code == 404
        assert videos.get(completed_video.id).status == VideoStatus.COMPLETED

    def test_post_for_draft_video_conflicts(self, test_client: TestClient, videos) -> None:
        draft = videos.create("owner-1", "Not rendered yet")

        response = test_client.post(
            "/api/v1/schedules/posts",
            json={
                "owner_id": "owner-1",
                "video_id": str(draft.id),
                "platforms": ["youtube"],
                "scheduled_at": "2099-01-01T10:00:00Z",
            },
        )

        assert response.status_code == 409
        assert videos.get(draft.id).status == VideoStatus.DRAFT
        assert test_client.get("/api/v1/schedules/posts").json() == []

    def test_bulk_schedule(self, test_client: TestClient, completed_video, videos) -> None:
        draft = videos.create("owner-1", "Not rendered yet")
        item = {"platforms": ["youtube"], "scheduled_at": "2099-01-01T10:00:00Z"}

        rejected = test_client.post(
            "/api/v1/schedules/bulk",
            json={"owner_id": "owner-1", "schedules": [{**item, "video_id": str(draft.id)}]},
        )
        accepted = test_client.post(
            "/api/v1/schedules/bulk",
            json={
                "owner_id": "owner-1",
                "schedules": [{**item, "video_id": str(completed_video.id)}],
            },
        )

        assert rejected.status_code == 409
        assert accepted.status_code == 201
        assert accepted.json()[0]["video_id"] == str(completed_video.id)
        assert videos.get(completed_video.id).status == VideoStatus.SCHEDULED

    def test_post_for_missing_video(self, test_client: TestClient) -> None:
        response = test_client.post(
            "/api/v1/schedules/posts",
            json={
                "owner_id": "owner-1",
                "video_id": str(uuid4()),
                "platforms": ["youtube"],
                "scheduled_at": "2099-01-01T10:00:00Z",
            },
        )

        assert response.status_code == 404

    def test_generate_next_for_missing_series(self, test_client: TestClient) -> None:
        response = test_client.post(f"/api/v1/schedules/series/{uuid4()}/generate-next")

        assert response.status_code == 404

    def test_generate_next(self, test_client: TestClient, series_store, queue) -> None:
        series = series_store.create("owner-1", "Space oddities")

        response = test_client.post(
            f"/api/v1/schedules/series/{series['id']}/generate-next",
            json={"platforms": ["instagram"]},
        )

        assert response.status_code == 202
        job = queue.get(response.json()["job_id"])
        assert job.payload["series_id"] == str(series["id"])
        assert job.payload["publish_platforms"] == ["instagram"]

    def test_bulk_options(self, test_client: TestClient) -> None:
        ids = [str(uuid4()), str(uuid4())]

        response = test_client.post(
            "/api/v1/schedules/bulk/options",
            json={
                "video_ids": ids,
                "platforms": ["youtube"],
                "start_date": "2026-10-21T10:00:00Z",
                "frequency": "weekly",
            },
        )

        assert response.status_code == 200
        options = response.json()
        assert [o["video_id"] for o in options] == ids
        assert options[1]["scheduled_at"].startswith("2026-10-28T10:00:00")
