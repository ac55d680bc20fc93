import math
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvmatch.core.config.scoring import get_category_weights, get_scoring_config, get_scoring_value  # noqa: E402


class ScoringConfigTests(unittest.TestCase):
    def test_loader_and_value_lookup(self):
        config = get_scoring_config()
        self.assertIsInstance(config, dict)
        self.assertEqual(get_scoring_value("ablation.score_threshold"), 70)
        self.assertEqual(get_scoring_value("ats.points_per_check"), 20)
        self.assertEqual(get_scoring_value("alignment.lexical_weight"), 0.4)

    def test_missing_path_returns_default(self):
        self.assertEqual(get_scoring_value("alignment.nope", 7), 7)
        self.assertEqual(get_scoring_value("ablation.score_threshold.deeper", "x"), "x")
        self.assertIsNone(get_scoring_value(""))

    def test_category_weights_sum_to_one(self):
        weights = get_category_weights()
        self.assertEqual(set(weights), {"hardSkills", "softSkills", "experience", "education"})
        self.assertTrue(math.isclose(sum(weights.values()), 1.0))
        self.assertEqual(weights["hardSkills"], 0.35)
        self.assertEqual(weights["education"], 0.15)

    def test_blend_weights_sum_to_one(self):
        lexical = get_scoring_value("alignment.lexical_weight")
        semantic = get_scoring_value("alignment.semantic_weight")
        self.assertTrue(math.isclose(lexical + semantic, 1.0))


if __name__ == "__main__":
    unittest.main()
