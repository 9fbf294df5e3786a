"""
Field extraction heuristics over free email text.
"""

import pytest

from services.extraction import (
    APPROACH_SUMMARY_LIMIT,
    extract_experience,
    extract_fields,
    extract_price,
    extract_team_size,
    extract_timeline,
    summarize_approach,
)


@pytest.mark.unit
class TestExtractPrice:

    @pytest.mark.parametrize("text, expected", [
        ("Our price: $42,000 for the full scope", 42000.0),
        ("Total cost 15000.50 including support", 15000.5),
        ("BUDGET: $ 1,250,000", 1250000.0),
        ("Fits the budget: 9,999", 9999.0),
    ])
    def test_labelled_amounts(self, text, expected):
        assert extract_price(text) == expected

    def test_first_label_wins(self):
        assert extract_price("Price: $100\nCost: $200") == 100.0

    def test_unlabelled_number_is_ignored(self):
        assert extract_price("We would charge $42,000 for this.") is None

    @pytest.mark.parametrize("text", [None, "", "Pricing to follow"])
    def test_missing(self, text):
        assert extract_price(text) is None


@pytest.mark.unit
class TestExtractTimeline:

    @pytest.mark.parametrize("text, expected", [
        ("Timeline: 6 weeks", "6 weeks"),
        ("Estimated duration 90 days from kickoff", "90 days"),
        ("Delivery time: 3 MONTHS", "3 MONTHS"),
        ("Timeline: 6 Weeks", "6 Weeks"),
    ])
    def test_quantity_and_unit(self, text, expected):
        assert extract_timeline(text) == expected

    def test_unit_is_required(self):
        assert extract_timeline("Timeline: 6 sprints") is None

    def test_missing(self):
        assert extract_timeline(None) is None
        assert extract_timeline("We start next month") is None


@pytest.mark.unit
class TestExtractExperience:

    @pytest.mark.parametrize("text, expected", [
        ("Experience: 12 years in e-commerce", "12 years"),
        ("experience 1 year", "1 years"),
    ])
    def test_years(self, text, expected):
        assert extract_experience(text) == expected

    def test_missing(self):
        assert extract_experience("Lots of experience") is None
        assert extract_experience("") is None


@pytest.mark.unit
class TestExtractTeamSize:

    def test_team_size_label(self):
        assert extract_team_size("Team size: 7 engineers") == 7

    def test_members_label(self):
        assert extract_team_size("members 4") == 4

    def test_missing(self):
        assert extract_team_size("A dedicated team") is None
        assert extract_team_size(None) is None


@pytest.mark.unit
class TestSummarizeApproach:

    def test_truncates_to_limit(self):
        text = "x" * (APPROACH_SUMMARY_LIMIT + 500)
        assert len(summarize_approach(text)) == APPROACH_SUMMARY_LIMIT

    def test_short_text_unchanged(self):
        assert summarize_approach("Agile, two-week sprints") == "Agile, two-week sprints"

    def test_empty(self):
        assert summarize_approach("") is None


@pytest.mark.unit
def test_extract_fields_combines_every_extractor():
    body = (
        "Hello,\n"
        "Price: $42,000\n"
        "Timeline: 8 weeks\n"
        "Experience: 10 years\n"
        "Team size: 5\n"
    )

    fields = extract_fields(body)

    assert fields.proposed_price == 42000.0
    assert fields.timeline == "8 weeks"
    assert fields.experience == "10 years"
    assert fields.team_size == 5
    assert fields.approach == body


@pytest.mark.unit
def test_extract_fields_on_unstructured_reply():
    fields = extract_fields("Thanks, we will get back to you.")

    assert fields.proposed_price is None
    assert fields.timeline is None
    assert fields.experience is None
    assert fields.team_size is None
    assert fields.approach == "Thanks, we will get back to you."
