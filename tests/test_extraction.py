import sys
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tests.support import CV_TEXT, JOB_TEXT, configure_test_env  # noqa: E402

configure_test_env()

from cvmatch.core.errors import ExtractionFailure, LLMError  # noqa: E402
from cvmatch.extraction import HeuristicExtractor, LLMExtractor, ResilientExtractor  # noqa: E402
from cvmatch.schemas.keywords import GroupedKeywords, ParsedSections  # noqa: E402


class HeuristicExtractorTests(unittest.TestCase):
    def setUp(self):
        self.extractor = HeuristicExtractor()

    def test_cv_sections_follow_headers(self):
        sections = self.extractor.parse_sync("cv", CV_TEXT)

        self.assertIn("FastAPI", sections.hardSkills)
        self.assertIn("mentoring", sections.softSkills)
        self.assertIn("Acme Analytics", sections.experience)
        self.assertIn("University of Lisbon", sections.education)
        self.assertIn("8 years", sections.summary)

    def test_cv_keywords_are_grouped_and_capped(self):
        sections = self.extractor.parse_sync("cv", CV_TEXT)
        keywords = self.extractor.extract_keywords_sync("cv", sections, CV_TEXT)

        self.assertIsInstance(keywords, GroupedKeywords)
        self.assertIn("Python", keywords.groups["hardSkills"]["languages"])
        self.assertIn("Kubernetes", keywords.groups["hardSkills"]["cloud"])
        self.assertIn("leadership", keywords.keywords("softSkills"))
        self.assertIn("microservices", keywords.keywords("experience"))
        self.assertIn("Computer Science", keywords.keywords("education"))
        self.assertIn("University of Lisbon", keywords.groups["education"]["institutions"])
        for category in ("hardSkills", "softSkills", "experience", "education"):
            self.assertLessEqual(len(keywords.keywords(category)), 15)

    def test_job_without_headers_uses_line_filters(self):
        sections = self.extractor.parse_sync("job", JOB_TEXT)
        keywords = self.extractor.extract_keywords_sync("job", sections, JOB_TEXT)

        self.assertIn("5+ years of experience", sections.experience)
        self.assertIn("Bachelor degree", sections.education)
        self.assertIn("Terraform", keywords.keywords("hardSkills"))
        self.assertIn("teamwork", keywords.keywords("softSkills"))
        self.assertIn("5+ years", keywords.keywords("experience"))
        self.assertIn("Bachelor", keywords.keywords("education"))

    def test_empty_text_yields_empty_categories(self):
        sections = self.extractor.parse_sync("cv", "")
        keywords = self.extractor.extract_keywords_sync("cv", sections, "")

        self.assertEqual(sections, ParsedSections())
        for category in ("hardSkills", "softSkills", "experience", "education"):
            self.assertTrue(keywords.is_empty(category))


class LLMExtractorTests(unittest.IsolatedAsyncioTestCase):
    async def test_disabled_model_surfaces_extraction_failure(self):
        with patch(
            "cvmatch.extraction.llm_extractor.json_completion_required",
            AsyncMock(side_effect=LLMError("OpenAI is not configured.", code="llm_disabled")),
        ):
            with self.assertRaises(ExtractionFailure) as ctx:
                await LLMExtractor().parse("cv", CV_TEXT)
        self.assertEqual(ctx.exception.code, "llm_disabled")

    async def test_parse_and_keywords_from_model_payload(self):
        completion = AsyncMock(
            side_effect=[
                {"hardSkills": ["Python", "Docker"], "softSkills": "Mentoring", "responsibilities": "Build APIs"},
                {"hardSkills": {"languages": ["Python"]}, "softSkills": ["mentoring"]},
            ]
        )
        with patch("cvmatch.extraction.llm_extractor.json_completion_required", completion):
            extractor = LLMExtractor()
            sections = await extractor.parse("job", JOB_TEXT)
            keywords = await extractor.extract_keywords("job", sections, JOB_TEXT)

        self.assertEqual(sections.hardSkills, "Python, Docker")
        self.assertEqual(sections.experience, "Build APIs")
        self.assertEqual(keywords.keywords("hardSkills"), ["Python"])
        self.assertEqual(keywords.groups["softSkills"], {"general": ["mentoring"]})
        self.assertTrue(keywords.is_empty("education"))

    async def test_empty_payload_is_a_failure(self):
        with patch("cvmatch.extraction.llm_extractor.json_completion_required", AsyncMock(return_value={"summary": ""})):
            with self.assertRaises(ExtractionFailure) as ctx:
                await LLMExtractor().parse("cv", CV_TEXT)
        self.assertEqual(ctx.exception.code, "empty_extraction")


class _InventingExtractor:
    async def parse(self, kind, text):
        return ParsedSections(hardSkills="Python", softSkills="mentoring", experience="fintech")

    async def extract_keywords(self, kind, sections, source_text=""):
        return GroupedKeywords(groups={"hardSkills": {"languages": ["Python", "Haskell"]}})


class _FailingExtractor:
    async def parse(self, kind, text):
        raise ExtractionFailure("model unavailable", code="llm_disabled")

    async def extract_keywords(self, kind, sections, source_text=""):
        raise ExtractionFailure("model unavailable", code="llm_disabled")


class ResilientExtractorTests(unittest.IsolatedAsyncioTestCase):
    async def test_falls_back_when_primary_fails(self):
        extractor = ResilientExtractor(primary=_FailingExtractor(), fallback=HeuristicExtractor())

        sections = await extractor.parse("cv", CV_TEXT)
        keywords = await extractor.extract_keywords("cv", sections, CV_TEXT)

        self.assertIn("FastAPI", sections.hardSkills)
        self.assertIn("FastAPI", keywords.keywords("hardSkills"))

    async def test_cv_keywords_not_in_text_are_dropped(self):
        extractor = ResilientExtractor(primary=_InventingExtractor(), fallback=HeuristicExtractor())

        keywords = await extractor.extract_keywords("cv", ParsedSections(), CV_TEXT)

        self.assertEqual(keywords.keywords("hardSkills"), ["Python"])

    async def test_job_keywords_are_not_filtered(self):
        extractor = ResilientExtractor(primary=_InventingExtractor(), fallback=HeuristicExtractor())

        keywords = await extractor.extract_keywords("job", ParsedSections(), JOB_TEXT)

        self.assertEqual(keywords.keywords("hardSkills"), ["Python", "Haskell"])


if __name__ == "__main__":
    unittest.main()
