import json
import sys
import tempfile
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from cvmatch.taxonomy import get_default_taxonomy_provider  # noqa: E402
from cvmatch.taxonomy.local_taxonomy import LocalTaxonomy, term_pattern  # noqa: E402


class TaxonomyTests(unittest.TestCase):
    def test_find_terms_groups_hits_by_subcategory(self):
        taxonomy = LocalTaxonomy()

        found = taxonomy.find_terms("Built services in Python and Go on AWS with Docker.", "hardSkills")

        self.assertEqual(found["languages"], ["Python"])
        self.assertEqual(found["cloud"], ["AWS", "Docker"])

    def test_terms_do_not_match_inside_longer_words(self):
        self.assertIsNone(term_pattern("SQL").search("PostgreSQL only"))
        self.assertIsNotNone(term_pattern("C++").search("Modern C++ and Rust"))
        self.assertIsNone(term_pattern("Java").search("JavaScript"))

    def test_indicators_are_separate_from_categories(self):
        taxonomy = get_default_taxonomy_provider()

        self.assertIn("mentored", taxonomy.soft_skill_indicators())
        self.assertEqual(set(taxonomy.categories()), {"hardSkills", "softSkills", "experience", "education"})

    def test_custom_dictionary_and_invalid_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "keywords.json"
            path.write_text(json.dumps({"hardSkills": {"languages": ["Elixir"]}}), encoding="utf-8")
            taxonomy = LocalTaxonomy(path)
            self.assertEqual(taxonomy.find_terms("Elixir and Phoenix", "hardSkills"), {"languages": ["Elixir"]})
            self.assertEqual(taxonomy.soft_skill_indicators(), [])

            bad = Path(tmp) / "bad.json"
            bad.write_text("[]", encoding="utf-8")
            with self.assertRaises(RuntimeError):
                LocalTaxonomy(bad)


if __name__ == "__main__":
    unittest.main()
