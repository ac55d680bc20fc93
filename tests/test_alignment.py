import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvmatch.core.errors import DimensionMismatch  # noqa: E402
from cvmatch.schemas.analysis import AttentionMatrix, EmbeddingBundle  # noqa: E402
from cvmatch.schemas.keywords import CATEGORIES, FlatKeywords, GroupedKeywords  # noqa: E402
from cvmatch.semantic.alignment import (  # noqa: E402
    compute_alignment_scores,
    jaccard_similarity,
    overall_score,
    score_category,
)
from cvmatch.semantic.match_matrix import analyze_gaps, build_attention_matrix  # noqa: E402


def _matrix(diagonal: dict[str, float], off_diagonal: float = 0.1) -> AttentionMatrix:
    return AttentionMatrix(
        cells={
            cv: {job: (diagonal[cv] if cv == job else off_diagonal) for job in CATEGORIES}
            for cv in CATEGORIES
        }
    )


class CategoryScoreTests(unittest.TestCase):
    def test_jaccard_is_case_insensitive(self):
        self.assertAlmostEqual(jaccard_similarity(["Python", "Docker"], ["python", "AWS"]), 1 / 3)
        self.assertEqual(jaccard_similarity([], []), 0.0)

    def test_blend_lies_between_lexical_and_semantic(self):
        cv = ["Python", "Docker"]
        job = ["Python", "AWS"]

        score = score_category(cv, job, 0.9)

        self.assertEqual(score, 67)
        self.assertGreater(score, round(jaccard_similarity(cv, job) * 100))
        self.assertLess(score, 90)

    def test_empty_job_category_is_full_match(self):
        self.assertEqual(score_category(["MSc"], [], 0.0), 100)

    def test_empty_cv_category_is_no_match(self):
        self.assertEqual(score_category([], ["MSc"], 0.95), 0)
        self.assertEqual(score_category([], [], 0.95), 0)

    def test_semantic_similarity_is_clamped(self):
        self.assertEqual(score_category(["a"], ["b"], -0.4), 0)
        self.assertEqual(score_category(["a"], ["a"], 1.7), 100)

    def test_overall_uses_category_weights(self):
        scores = {"hardSkills": 80, "softSkills": 60, "experience": 40, "education": 20}
        self.assertEqual(overall_score(scores), 56)

    def test_compute_alignment_scores_uses_diagonal(self):
        cv = GroupedKeywords(
            groups={
                "hardSkills": {"languages": ["Python"], "cloud": ["Docker"]},
                "softSkills": {"leadership": ["mentoring"]},
                "experience": {"domains": ["fintech"]},
                "education": {"degrees": ["MSc"]},
            }
        )
        job = FlatKeywords(
            categories={
                "hardSkills": ["Python", "AWS"],
                "softSkills": ["mentoring"],
                "experience": ["fintech", "SaaS"],
                "education": [],
            }
        )
        matrix = _matrix({"hardSkills": 0.9, "softSkills": 1.0, "experience": 0.5, "education": 0.0}, off_diagonal=0.99)

        scores = compute_alignment_scores(matrix, cv, job)

        self.assertEqual(scores.hard_skills, 67)
        self.assertEqual(scores.soft_skills, 100)
        self.assertEqual(scores.experience, 50)
        self.assertEqual(scores.education, 100)
        self.assertEqual(scores.overall, overall_score(scores.by_category()))
        for value in [*scores.by_category().values(), scores.overall]:
            self.assertTrue(0 <= value <= 100)


class AttentionMatrixTests(unittest.TestCase):
    def _bundle(self, vectors: dict[str, list[float]]) -> EmbeddingBundle:
        full = next(iter(vectors.values()))
        return EmbeddingBundle(vectors=vectors, full=full)

    def test_matrix_has_all_sixteen_cells_in_unit_range(self):
        cv = self._bundle({c: [1.0, float(i), -0.5] for i, c in enumerate(CATEGORIES)})
        job = self._bundle({c: [-1.0, 0.5, float(i)] for i, c in enumerate(CATEGORIES)})

        matrix = build_attention_matrix(cv, job)

        self.assertEqual(set(matrix.cells), set(CATEGORIES))
        for row in matrix.cells.values():
            self.assertEqual(set(row), set(CATEGORIES))
            for value in row.values():
                self.assertGreaterEqual(value, 0.0)
                self.assertLessEqual(value, 1.0)
        self.assertEqual(matrix.defects, [])

    def test_negative_cosine_is_clamped_to_zero(self):
        cv = self._bundle({c: [1.0, 0.0] for c in CATEGORIES})
        job = self._bundle({c: [-1.0, 0.0] for c in CATEGORIES})

        matrix = build_attention_matrix(cv, job)

        self.assertEqual(matrix.value("hardSkills", "hardSkills"), 0.0)

    def test_missing_embedding_is_recorded_as_defect(self):
        cv = self._bundle({"hardSkills": [1.0, 0.0], "softSkills": [0.0, 1.0], "experience": [1.0, 1.0]})
        job = self._bundle({c: [1.0, 0.0] for c in CATEGORIES})

        matrix = build_attention_matrix(cv, job)

        self.assertEqual(matrix.value("education", "hardSkills"), 0.0)
        self.assertEqual(len(matrix.defects), 4)
        self.assertIn("education->experience", matrix.defects)
        self.assertAlmostEqual(matrix.value("hardSkills", "hardSkills"), 1.0)

    def test_dimension_mismatch_between_documents_raises(self):
        cv = self._bundle({c: [1.0, 0.0] for c in CATEGORIES})
        job = self._bundle({c: [1.0, 0.0, 0.0] for c in CATEGORIES})

        with self.assertRaises(DimensionMismatch):
            build_attention_matrix(cv, job)

    def test_gaps_and_transfer_opportunities(self):
        matrix = AttentionMatrix(
            cells={
                "hardSkills": {"hardSkills": 0.1, "softSkills": 0.2, "experience": 0.25, "education": 0.05},
                "softSkills": {"hardSkills": 0.3, "softSkills": 0.6, "experience": 0.8, "education": 0.1},
                "experience": {"hardSkills": 0.5, "softSkills": 0.5, "experience": 0.9, "education": 0.2},
                "education": {"hardSkills": 0.75, "softSkills": 0.2, "experience": 0.4, "education": 0.7},
            }
        )

        analysis = analyze_gaps(matrix)

        self.assertEqual([gap.category for gap in analysis.gaps], ["hardSkills"])
        self.assertEqual(analysis.gaps[0].best_match, "experience")
        self.assertEqual(
            [(item.cv_category, item.job_category) for item in analysis.opportunities],
            [("softSkills", "experience"), ("education", "hardSkills")],
        )


if __name__ == "__main__":
    unittest.main()
