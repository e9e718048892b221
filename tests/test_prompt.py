from propmatch.prompt import (
    ParsedScore,
    build_comparison_prompt,
    parse_comparison_response,
)


class TestBuildPrompt:
    def test_enumerates_items_and_candidates(self):
        prompt = build_comparison_prompt(
            [
                ("Marina Facility", ["Coastal Boating Center", "Shopping Mall"]),
                ("Industrial Warehouse", ["Large Storage Facility"]),
            ]
        )
        assert "Item 1.1: A = 'Marina Facility' | B = 'Coastal Boating Center'" in prompt
        assert "Item 1.2: A = 'Marina Facility' | B = 'Shopping Mall'" in prompt
        assert (
            "Item 2.1: A = 'Industrial Warehouse' | B = 'Large Storage Facility'"
            in prompt
        )

    def test_states_rubric_and_format(self):
        prompt = build_comparison_prompt([("a", ["b"])])
        assert "at least 60%" in prompt
        assert "at least 70%" in prompt
        assert "at least 45%" in prompt
        assert "Item <i>.<j>: <percent>%. <short rationale>" in prompt

    def test_quotes_are_escaped(self):
        prompt = build_comparison_prompt([("Joe's Diner", ["O'Hare Lot"])])
        assert "A = \"Joe's Diner\"" in prompt


class TestParseResponse:
    def test_strict_lines(self):
        text = (
            "Item 1.1: 72%. Same function, different wording.\n"
            "Item 1.2: 10%. Unrelated.\n"
        )
        scores = parse_comparison_response(text)
        assert scores == {
            (1, 1): ParsedScore(72.0, "Same function, different wording."),
            (1, 2): ParsedScore(10.0, "Unrelated."),
        }

    def test_decimal_confidence(self):
        scores = parse_comparison_response("Item 3.4: 88.5%. Close.")
        assert scores[(3, 4)].confidence == 88.5

    def test_loose_fallback(self):
        text = (
            "**Item 2.1** - I'd estimate 55 % since both are retail\n"
            "- Item 2.2 confidence: 90% (same marina)\n"
        )
        scores = parse_comparison_response(text)
        assert scores[(2, 1)].confidence == 55
        assert "both are retail" in scores[(2, 1)].rationale
        assert scores[(2, 2)].confidence == 90

    def test_unparseable_lines_dropped(self):
        text = (
            "Here are the results:\n"
            "Item 1.1: 80%. Same.\n"
            "Item 1.2: no idea\n"
            "1.3: 40%. Missing the tag\n"
        )
        scores = parse_comparison_response(text)
        assert list(scores) == [(1, 1)]

    def test_out_of_range_dropped(self):
        scores = parse_comparison_response("Item 1.1: 150%. Very sure.")
        assert scores == {}

    def test_first_occurrence_wins(self):
        scores = parse_comparison_response(
            "Item 1.1: 30%. First.\nItem 1.1: 90%. Second."
        )
        assert scores[(1, 1)] == ParsedScore(30.0, "First.")

    def test_case_insensitive_tag(self):
        scores = parse_comparison_response("item 1.1: 65%. ok")
        assert scores[(1, 1)].confidence == 65

    def test_empty_response(self):
        assert parse_comparison_response("") == {}
