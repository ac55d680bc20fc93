import asyncio
import sys
import tempfile
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tests.support import CV_TEXT, JOB_TEXT, configure_test_env  # noqa: E402

configure_test_env()

from cvmatch.core.analysis_store import SQLiteAnalysisStore  # noqa: E402
from cvmatch.core.errors import EmbeddingFailure, InputValidationError  # noqa: E402
from cvmatch.extraction import HeuristicExtractor, LLMExtractor, ResilientExtractor  # noqa: E402
from cvmatch.schemas.analysis import GENERIC_FAILURE_MESSAGE, AnalysisRequest  # noqa: E402
from cvmatch.semantic.embeddings import SimpleEmbeddingProvider  # noqa: E402
from cvmatch.services.pipeline import AnalysisPipeline  # noqa: E402
from cvmatch.services.progress import ProgressTracker  # noqa: E402


class _BrokenEmbeddingProvider:
    dimension = 16

    def __init__(self):
        self.calls = 0

    async def embed(self, text):
        self.calls += 1
        raise EmbeddingFailure("embedding service unavailable")

    async def embed_batch(self, texts):
        return [await self.embed(text) for text in texts]


class _ExplodingExtractor:
    async def parse(self, kind, text):
        raise RuntimeError("parser crashed")

    async def extract_keywords(self, kind, sections, source_text=""):
        raise RuntimeError("parser crashed")


class _CompletedWriteFailsStore(SQLiteAnalysisStore):
    def create(self, record):
        if record.status == "completed":
            raise OSError("disk full")
        return super().create(record)


class AnalysisPipelineTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.store = SQLiteAnalysisStore(str(Path(self.tmp.name) / "analyses.db"))
        self.tracker = ProgressTracker(ttl_s=60, retention_s=30)

    def tearDown(self):
        self.store.close()
        self.tmp.cleanup()

    def _pipeline(self, *, extractor=None, provider=None):
        return AnalysisPipeline(
            extractor=extractor or ResilientExtractor(primary=LLMExtractor(), fallback=HeuristicExtractor()),
            embedding_provider=provider or SimpleEmbeddingProvider(dimension=256),
            tracker=self.tracker,
            store=self.store,
        )

    async def _analyze_and_collect(self, pipeline, request, analysis_id):
        self.tracker.init(analysis_id)
        events = []

        async def collect():
            async for event in self.tracker.subscribe(analysis_id):
                events.append(event)

        listener = asyncio.create_task(collect())
        await asyncio.sleep(0)
        record = await pipeline.analyze(request, analysis_id)
        await asyncio.wait_for(listener, timeout=1)
        return record, events

    async def test_offline_analysis_completes_with_full_results(self):
        request = AnalysisRequest(cv_text=CV_TEXT, job_description_text=JOB_TEXT, job_title="Backend Engineer", user_id="u-1")

        record, events = await self._analyze_and_collect(self._pipeline(), request, "run-ok")

        self.assertEqual(record.status, "completed")
        self.assertIsNone(record.error)
        self.assertEqual(record.ats_report.score, 100)
        for value in [*record.scores.by_category().values(), record.scores.overall]:
            self.assertTrue(0 <= value <= 100)
        self.assertEqual(record.cv_embeddings.dimension, 256)
        self.assertEqual(len(record.attention_matrix.cells), 4)
        self.assertIn("Python", record.cv_keywords.keywords("hardSkills"))
        self.assertIn("Terraform", record.job_keywords.keywords("hardSkills"))
        self.assertIsNotNone(record.term_analysis)
        self.assertIsNotNone(record.gap_analysis)
        self.assertIsNotNone(record.processing_time_ms)

        percentages = [event.percentage for event in events]
        self.assertEqual(percentages, sorted(percentages))
        self.assertEqual(sum(1 for event in events if event.completed), 1)
        self.assertEqual(events[-1].status, "completed")
        self.assertEqual(events[-1].percentage, 100)
        self.assertEqual(events[-1].details["analysisId"], "run-ok")

        stored = self.store.find_by_id("run-ok")
        self.assertEqual(stored.status, "completed")
        self.assertEqual(stored.scores, record.scores)
        self.assertEqual(stored.cv_keywords.keywords("hardSkills"), record.cv_keywords.keywords("hardSkills"))

    async def test_embedding_failure_ends_in_failed_record_and_terminal_event(self):
        provider = _BrokenEmbeddingProvider()
        request = AnalysisRequest(cv_text=CV_TEXT, job_description_text=JOB_TEXT)

        record, events = await self._analyze_and_collect(self._pipeline(provider=provider), request, "run-broken")

        self.assertEqual(record.status, "failed")
        self.assertEqual(record.error, GENERIC_FAILURE_MESSAGE)
        self.assertTrue(record.error_detail.startswith("embedding_failed"))
        self.assertIsNone(record.scores)
        self.assertTrue(events[-1].completed)
        self.assertEqual(events[-1].status, "failed")
        self.assertEqual(sum(1 for event in events if event.completed), 1)
        self.assertEqual(self.store.find_by_id("run-broken").status, "failed")

    async def test_incomplete_extraction_fails_instead_of_returning_partial_scores(self):
        request = AnalysisRequest(
            cv_text=CV_TEXT,
            job_description_text="We are hiring a friendly person to join our growing team in the city centre soon.",
        )

        record = await self._pipeline().analyze(request, "run-incomplete")

        self.assertEqual(record.status, "failed")
        self.assertTrue(record.error_detail.startswith("incomplete_analysis"))
        self.assertIn("Job keywords for 'hardSkills' are empty", record.error_detail)
        self.assertEqual(self.tracker.snapshot("run-incomplete").status, "failed")

    async def test_unexpected_error_is_reported_as_failure(self):
        request = AnalysisRequest(cv_text=CV_TEXT, job_description_text=JOB_TEXT)

        record = await self._pipeline(extractor=_ExplodingExtractor()).analyze(request, "run-crash")

        self.assertEqual(record.status, "failed")
        self.assertEqual(record.error_detail, "unexpected_error: parser crashed")
        self.assertTrue(self.tracker.snapshot("run-crash").completed)

    async def test_store_error_on_success_fails_the_run_with_terminal_event(self):
        self.store.close()
        self.store = _CompletedWriteFailsStore(str(Path(self.tmp.name) / "failing.db"))
        request = AnalysisRequest(cv_text=CV_TEXT, job_description_text=JOB_TEXT)

        record, events = await self._analyze_and_collect(self._pipeline(), request, "run-disk")

        self.assertEqual(record.status, "failed")
        self.assertEqual(record.error_detail, "unexpected_error: disk full")
        self.assertTrue(events[-1].completed)
        self.assertEqual(events[-1].status, "failed")
        self.assertEqual(sum(1 for event in events if event.completed), 1)
        self.assertEqual(self.tracker.snapshot("run-disk").status, "failed")
        self.assertEqual(self.store.find_by_id("run-disk").status, "failed")

    async def test_short_inputs_are_rejected_before_any_provider_call(self):
        provider = _BrokenEmbeddingProvider()
        pipeline = self._pipeline(provider=provider)

        with self.assertRaises(InputValidationError) as ctx:
            await pipeline.analyze(AnalysisRequest(cv_text="too short", job_description_text=JOB_TEXT))
        self.assertEqual(ctx.exception.field, "cvText")

        with self.assertRaises(InputValidationError) as ctx:
            await pipeline.analyze(AnalysisRequest(cv_text=CV_TEXT, job_description_text="Python dev"))
        self.assertEqual(ctx.exception.field, "jobDescriptionText")

        self.assertEqual(provider.calls, 0)
        self.assertEqual(len(self.tracker), 0)


if __name__ == "__main__":
    unittest.main()
