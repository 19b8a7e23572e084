"""Tests for seed table and portfolio CSV ingestion."""

import pytest

from pingpong.services.errors import ValidationError
from pingpong.utils.csv_import import parse_portfolio_csv, parse_seed_csv, strip_rank_prefix


class TestSeedCsv:
    def test_with_header(self):
        seeds = parse_seed_csv("rank,name\n1,Vikram B\n2,Amy R\n")
        assert [(s.rank, s.name) for s in seeds] == [(1, "Vikram B"), (2, "Amy R")]

    def test_without_header_and_extra_columns(self):
        seeds = parse_seed_csv("1, Vikram B ,1,2\n\n2,Amy R\n")
        assert [(s.rank, s.name) for s in seeds] == [(1, "Vikram B"), (2, "Amy R")]

    def test_bom_stripped(self):
        seeds = parse_seed_csv("\ufeffrank,name\n1,Vikram B\n")
        assert seeds[0].name == "Vikram B"

    def test_bad_rank(self):
        with pytest.raises(ValidationError):
            parse_seed_csv("rank,name\n1,Vikram B\nx,Amy R\n")

    def test_missing_name(self):
        with pytest.raises(ValidationError):
            parse_seed_csv("1,Vikram B\n2,\n")


class TestPortfolioCsv:
    def test_exported_file(self):
        raw = (
            "\ufeffAnalyst,Selections,Tiebreaker,Winner\n"
            'Dana K,"1\tVikram B;11\tDavid L;5\tAmy R;40\tJo P;70\tKim T","5\tAmy R","1\tVikram B"\n'
        )
        [row] = parse_portfolio_csv(raw)
        assert row.ok
        assert row.line_number == 2
        assert row.analyst_name == "Dana K"
        assert row.selections == ["Vikram B", "David L", "Amy R", "Jo P", "Kim T"]
        assert row.tiebreaker == "Amy R"
        assert row.predicted_winner == "Vikram B"

    def test_bad_rows_reported_per_line(self):
        raw = (
            "Analyst,Selections,Tiebreaker,Winner\n"
            'Dana K,"A;B;C;D;E",C,A\n'
            'Short,"A;B",C,A\n'
            "Broken,A\n"
            'Dana K,"A;B;C;D;E",C,A\n'
        )
        rows = parse_portfolio_csv(raw)
        assert [r.ok for r in rows] == [True, False, False, False]
        assert "5 selections" in rows[1].error
        assert "columns" in rows[2].error
        assert "Duplicate" in rows[3].error
        assert [r.line_number for r in rows] == [2, 3, 4, 5]

    def test_custom_selection_count(self):
        [row] = parse_portfolio_csv('Analyst,Picks,TB,Winner\nLee,"A;B",A,B\n', selection_count=2)
        assert row.ok and row.line_number == 2

    def test_first_row_is_header_whatever_its_labels(self):
        raw = (
            "Who,Picks,Tiebreak,Champion\n"
            'Dana K,"A;B;C;D;E",C,A\n'
        )
        rows = parse_portfolio_csv(raw)
        assert [r.analyst_name for r in rows] == ["Dana K"]
        assert rows[0].ok and rows[0].line_number == 2

    def test_header_only(self):
        assert parse_portfolio_csv("\ufeffAnalyst,Selections,Tiebreaker,Winner\n") == []


def test_strip_rank_prefix():
    assert strip_rank_prefix("11\tDavid L") == "David L"
    assert strip_rank_prefix("David L") == "David L"
    assert strip_rank_prefix("") == ""
