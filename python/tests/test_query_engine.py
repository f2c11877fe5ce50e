import unittest

from cookbook.document_loader import DocumentLoader
from cookbook.errors import QueryError
from cookbook.index_store import IndexStore
from cookbook.query_engine import (
    QueryEngine,
    RecipeRef,
    clean_snippet,
    free_text_query,
)


class TestCleanSnippet(unittest.TestCase):
    """Test cases for snippet cleanup."""

    def test_drops_blank_and_short_boundary_lines(self):
        fragment = "  \n ab \nthe quick brown fox \nxy \n  "
        self.assertEqual(clean_snippet(fragment), "the quick brown fox")

    def test_only_short_lines_returns_original_fragment(self):
        fragment = " ab \n\nxy\n"
        self.assertEqual(clean_snippet(fragment), fragment)

    def test_empty_fragment_is_returned_unchanged(self):
        self.assertEqual(clean_snippet(""), "")

    def test_short_lines_in_the_middle_are_kept(self):
        fragment = "first line\nab\nlast line"
        self.assertEqual(clean_snippet(fragment), "first line\nab\nlast line")

    def test_lines_are_trimmed(self):
        self.assertEqual(clean_snippet("   mix the flour   "), "mix the flour")

    def test_four_character_lines_are_kept(self):
        self.assertEqual(clean_snippet("salt\npepper"), "salt\npepper")


class TestFreeTextQuery(unittest.TestCase):
    """Test cases for turning typed text into an FTS5 query."""

    def test_terms_become_quoted_phrases(self):
        self.assertEqual(free_text_query("chicken  soup"), '"chicken" "soup"')

    def test_punctuation_stays_inside_phrases(self):
        self.assertEqual(
            free_text_query("don't chicken-noodle"), "\"don't\" \"chicken-noodle\""
        )

    def test_double_quotes_are_doubled(self):
        self.assertEqual(free_text_query('say"cheese'), '"say""cheese"')

    def test_terms_without_word_characters_are_dropped(self):
        self.assertEqual(free_text_query("mac & cheese ?"), '"mac" "cheese"')
        self.assertEqual(free_text_query("& -- ?"), "")


class TestQueryEngine(unittest.TestCase):
    """Test cases for QueryEngine class."""

    def setUp(self):
        self.store = IndexStore()
        self.loader = DocumentLoader()
        self.engine = QueryEngine(self.store)

    def tearDown(self):
        self.store.close()

    def _add(self, filename: str, content: str):
        self.store.upsert(self.loader.load(filename, content.encode("utf-8")))

    def test_groups_are_sorted_and_recipes_sorted_within_groups(self):
        self._add("Chicken Soup.md", "tags: dinner, soup\n\nBroth.")
        self._add("Apple Pie.md", "tags: dessert\n\nApples.")
        self._add("Bread.md", "Flour.")

        groups = self.engine.list_grouped_by_tag()

        self.assertEqual(
            [group.tag_name for group in groups], ["dessert", "dinner", "Other", "soup"]
        )
        self.assertEqual(groups[0].recipes, [RecipeRef("Apple Pie", "ApplePie")])
        self.assertEqual(groups[2].recipes, [RecipeRef("Bread", "Bread")])

    def test_recipes_within_group_sorted_by_name(self):
        self._add("Zucchini Bread.md", "tags: baking\n\nZ.")
        self._add("banana bread.md", "tags: baking\n\nB.")
        self._add("Apple Cake.md", "tags: baking\n\nA.")

        groups = self.engine.list_grouped_by_tag()

        self.assertEqual(len(groups), 1)
        self.assertEqual(
            [ref.name for ref in groups[0].recipes],
            ["Apple Cake", "banana bread", "Zucchini Bread"],
        )

    def test_document_with_three_tags_appears_in_three_groups(self):
        self._add("Stew.md", "tags: winter, dinner, beef\n\nSlow cook.")

        groups = self.engine.list_grouped_by_tag()
        appearances = [
            group.tag_name
            for group in groups
            if RecipeRef("Stew", "Stew") in group.recipes
        ]
        self.assertEqual(sorted(appearances), ["beef", "dinner", "winter"])

    def test_empty_tag_forms_its_own_group(self):
        self._add("Odd.md", "tags: a,,b\n\nBody")

        groups = self.engine.list_grouped_by_tag()
        self.assertEqual([group.tag_name for group in groups], ["", "a", "b"])

    def test_empty_index_has_no_groups(self):
        self.assertEqual(self.engine.list_grouped_by_tag(), [])

    def test_search_orders_results_by_name(self):
        """Results are ordered by name, not by relevance."""
        self._add("Zucchini Bread.md", "bread bread bread bread")
        self._add("Apple Bread.md", "A cake-like loaf.")

        results = self.engine.search("bread")

        self.assertEqual(
            [result.webpath for result in results], ["AppleBread", "ZucchiniBread"]
        )

    def test_search_highlights_name_when_it_matches(self):
        self._add("Chicken Soup.md", "tags: dinner\n\nSimmer the chicken slowly.")

        result = self.engine.search("chicken")[0]

        self.assertEqual(result.name, "<mark>Chicken</mark> Soup")
        self.assertEqual(result.webpath, "ChickenSoup")
        self.assertIn("<mark>chicken</mark>", result.snippet)

    def test_search_uses_raw_name_when_only_body_matches(self):
        self._add("Apple Pie.md", "Dust with cinnamon before baking.")

        result = self.engine.search("cinnamon")[0]

        self.assertEqual(result.name, "Apple Pie")
        self.assertIn("<mark>cinnamon</mark>", result.snippet)

    def test_search_without_body_match_has_empty_snippet(self):
        self._add("Lemon Tart.md", "Zest and juice.")

        result = self.engine.search("lemon")[0]
        self.assertEqual(result.snippet, "")

    def test_search_matches_plural_forms(self):
        self._add("Tomato Salad.md", "Toss the salad.")
        self.assertEqual(len(self.engine.search("salads")), 1)

    def test_blank_query_returns_no_results(self):
        self._add("Bread.md", "Flour.")
        self.assertEqual(self.engine.search("   "), [])

    def test_malformed_raw_query_raises_query_error(self):
        self._add("Bread.md", "Flour.")
        with self.assertRaises(QueryError):
            self.engine.search('"flour', raw=True)

    def test_raw_query_allows_fts_syntax(self):
        self._add("Bread.md", "Flour.")
        self._add("Stew.md", "Beef.")

        results = self.engine.search("flour OR beef", raw=True)
        self.assertEqual([result.webpath for result in results], ["Bread", "Stew"])

    def test_unbalanced_quote_in_free_text_is_not_an_error(self):
        self._add("Bread.md", "Flour.")
        results = self.engine.search('"flour')
        self.assertEqual([result.webpath for result in results], ["Bread"])

    def test_search_text_with_punctuation(self):
        """Apostrophes, hyphens, ampersands and question marks are plain text."""
        self._add("Chicken-Noodle Soup.md", "Don't overcook the noodles.")
        self._add("Mac & Cheese.md", "Stir in the cheddar.")

        for query, webpath in [
            ("don't", "Chicken-NoodleSoup"),
            ("chicken-noodle", "Chicken-NoodleSoup"),
            ("noodles?", "Chicken-NoodleSoup"),
            ("mac & cheese", "Mac&Cheese"),
        ]:
            with self.subTest(query=query):
                results = self.engine.search(query)
                self.assertEqual([result.webpath for result in results], [webpath])

    def test_punctuation_only_query_returns_no_results(self):
        self._add("Bread.md", "Flour.")
        self.assertEqual(self.engine.search("& ?"), [])

    def test_result_names_are_escaped(self):
        self._add("Mac & Cheese.md", "Stir in the cheddar & butter.")

        highlighted = self.engine.search("cheese")[0]
        self.assertEqual(highlighted.name, "Mac &amp; <mark>Cheese</mark>")

        body_only = self.engine.search("cheddar")[0]
        self.assertEqual(body_only.name, "Mac &amp; Cheese")
        self.assertIn("<mark>cheddar</mark> &amp; butter", body_only.snippet)

    def test_search_limit_selects_by_relevance_before_sorting(self):
        """Only the best-ranked hits are kept, then ordered by name."""
        engine = QueryEngine(self.store, search_limit=1)
        self._add("Apple Bread.md", "Mentions loaf once.")
        self._add("Zucchini Loaf.md", "loaf loaf loaf loaf loaf")

        results = engine.search("loaf")

        self.assertEqual([result.webpath for result in results], ["ZucchiniLoaf"])


if __name__ == "__main__":
    unittest.main()
