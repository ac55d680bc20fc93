import json
import sys
import unittest
import uuid
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tests.support import CV_TEXT, JOB_TEXT, configure_test_env  # noqa: E402

# Keep API tests deterministic and offline.
configure_test_env()

from fastapi.testclient import TestClient  # noqa: E402
from starlette.requests import Request  # noqa: E402

from cvmatch.api.v1.progress import progress_frames  # noqa: E402
from cvmatch.core.rate_limit import client_key  # noqa: E402
from cvmatch.main import app  # noqa: E402
from cvmatch.services.progress import ProgressTracker  # noqa: E402


WIRE_KEYS = {"currentStep", "percentage", "message", "details", "completed", "timestamp"}


def _sse_frames(body: str) -> list[dict]:
    frames = []
    for chunk in body.split("\n\n"):
        chunk = chunk.strip()
        if chunk.startswith("data: "):
            frames.append(json.loads(chunk[len("data: "):]))
    return frames


class AnalysesApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)
        cls.client.__enter__()

    @classmethod
    def tearDownClass(cls):
        cls.client.__exit__(None, None, None)

    def setUp(self):
        self.user_id = f"user-{uuid.uuid4().hex[:8]}"

    def _submit(self, **overrides):
        payload = {
            "cvText": CV_TEXT,
            "jobDescriptionText": JOB_TEXT,
            "jobTitle": "Senior Backend Engineer",
            "userId": self.user_id,
        }
        payload.update(overrides)
        return self.client.post("/v1/analyses", json=payload)

    def test_health(self):
        response = self.client.get("/v1/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "healthy"})

        runs = self.client.get("/v1/health/llm-runs")
        self.assertEqual(runs.status_code, 200)
        self.assertEqual(runs.json(), {"enabled": False})

    def test_submit_then_fetch_completed_analysis(self):
        response = self._submit()
        self.assertEqual(response.status_code, 202)
        accepted = response.json()
        analysis_id = accepted["analysisId"]
        self.assertEqual(accepted["status"], "processing")
        self.assertEqual(accepted["progressUrl"], f"/v1/progress/{analysis_id}")
        self.assertEqual(accepted["streamUrl"], f"/v1/progress/{analysis_id}/stream")

        progress = self.client.get(accepted["progressUrl"])
        self.assertEqual(progress.status_code, 200)
        snapshot = progress.json()
        self.assertTrue(snapshot["completed"])
        self.assertEqual(snapshot["percentage"], 100)
        self.assertEqual(snapshot["status"], "completed")
        self.assertEqual(len(snapshot["allSteps"]), 9)

        result = self.client.get(f"/v1/analyses/{analysis_id}")
        self.assertEqual(result.status_code, 200)
        body = result.json()
        self.assertEqual(body["status"], "completed")
        self.assertEqual(body["jobTitle"], "Senior Backend Engineer")
        self.assertEqual(body["atsReport"]["score"], 100)
        self.assertEqual(set(body["scores"]), {"hardSkills", "softSkills", "experience", "education", "overall"})
        self.assertEqual(set(body["attentionMatrix"]["cells"]), {"hardSkills", "softSkills", "experience", "education"})
        self.assertNotIn("cvEmbeddings", body)

        full = self.client.get(f"/v1/analyses/{analysis_id}", params={"includeEmbeddings": "true"}).json()
        self.assertEqual(len(full["cvEmbeddings"]["full"]), 256)

    def test_progress_stream_ends_with_completed_event(self):
        accepted = self._submit().json()

        response = self.client.get(accepted["streamUrl"])

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/event-stream"))
        frames = _sse_frames(response.text)
        self.assertTrue(frames)
        for frame in frames:
            self.assertTrue(WIRE_KEYS <= set(frame))
        self.assertTrue(frames[-1]["completed"])
        self.assertEqual(frames[-1]["status"], "completed")
        self.assertEqual(frames[-1]["percentage"], 100)
        self.assertEqual(frames[-1]["currentStep"]["id"], "complete")

    def test_short_cv_is_rejected(self):
        response = self._submit(cvText="Python developer")

        self.assertEqual(response.status_code, 400)
        detail = response.json()["detail"]
        self.assertEqual(detail["field"], "cvText")
        self.assertEqual(detail["code"], "invalid_input")

    def test_short_job_description_is_rejected(self):
        response = self._submit(jobDescriptionText="Python dev")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"]["field"], "jobDescriptionText")

    def test_unknown_ids_return_404(self):
        self.assertEqual(self.client.get("/v1/analyses/does-not-exist").status_code, 404)
        self.assertEqual(self.client.get("/v1/progress/does-not-exist").status_code, 404)
        self.assertEqual(self.client.get("/v1/progress/does-not-exist/stream").status_code, 404)

    def test_running_analysis_returns_409(self):
        analysis_id = f"pending-{uuid.uuid4().hex}"
        app.state.tracker.init(analysis_id)
        try:
            response = self.client.get(f"/v1/analyses/{analysis_id}")
            self.assertEqual(response.status_code, 409)
        finally:
            app.state.tracker.remove(analysis_id)

    def test_history_lists_user_analyses(self):
        first = self._submit(jobTitle="").json()["analysisId"]
        second = self._submit().json()["analysisId"]

        response = self.client.get("/v1/analyses", params={"userId": self.user_id, "limit": 5})

        self.assertEqual(response.status_code, 200)
        items = response.json()
        self.assertEqual({item["analysisId"] for item in items}, {first, second})
        titles = {item["analysisId"]: item["jobTitle"] for item in items}
        self.assertEqual(titles[first], "Untitled Position")
        for item in items:
            self.assertEqual(item["status"], "completed")
            self.assertEqual(item["atsScore"], 100)

    def test_history_requires_user_id(self):
        self.assertEqual(self.client.get("/v1/analyses").status_code, 422)


class ProgressFramesTests(unittest.IsolatedAsyncioTestCase):
    async def test_frames_use_event_shape_and_end_after_terminal_event(self):
        tracker = ProgressTracker()
        tracker.init("s1")
        tracker.advance("s1", "parsing")
        tracker.fail("s1", "Failed to analyze CV. Please try again.")

        frames = _sse_frames("".join([frame async for frame in progress_frames(tracker, "s1")]))

        self.assertEqual(len(frames), 1)
        self.assertTrue(WIRE_KEYS <= set(frames[0]))
        self.assertEqual(frames[0]["status"], "failed")
        self.assertEqual(frames[0]["currentStep"]["id"], "parsing")

    async def test_evicted_analysis_ends_the_stream_quietly(self):
        tracker = ProgressTracker()
        tracker.init("s2")
        tracker.remove("s2")

        frames = [frame async for frame in progress_frames(tracker, "s2")]

        self.assertEqual(frames, [])


class RateLimitKeyTests(unittest.TestCase):
    def _request(self, headers):
        scope = {
            "type": "http",
            "method": "POST",
            "path": "/v1/analyses",
            "headers": [(name.encode(), value.encode()) for name, value in headers.items()],
            "client": ("10.0.0.7", 5000),
        }
        return Request(scope)

    def test_api_key_clients_share_one_bucket_across_addresses(self):
        key = client_key(self._request({"x-api-key": "secret"}))

        self.assertTrue(key.startswith("key:"))
        self.assertNotIn("secret", key)

    def test_anonymous_clients_are_keyed_by_address(self):
        self.assertEqual(client_key(self._request({})), "10.0.0.7")


if __name__ == "__main__":
    unittest.main()
