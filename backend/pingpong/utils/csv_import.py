"""
CSV ingestion for the seed table and the portfolio picks.

Seed table (header row optional):
  rank,name[,display_seed,quadrant]     extra columns are ignored; display seed
                                        and quadrant are derived by the generator

Portfolio file (exported from the picks form, may start with a UTF-8 BOM; the
first row is always the header, whatever its labels):
  Analyst,Selections,Tiebreaker,Winner
  Dana K,"1\tVikram B;11\tDavid L;...","5\tAmy R","1\tVikram B"

Every player reference may carry a "<rank>\t" prefix, which is stripped.
"""

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from pingpong.services.bracket_generator import SeedEntry
from pingpong.services.bracket_rules import PORTFOLIO_SELECTION_COUNT
from pingpong.services.errors import ValidationError

logger = logging.getLogger(__name__)

_RANK_PREFIX = re.compile(r"^\s*\d+\t")


def _rows(raw_text: str) -> List[List[str]]:
    text = raw_text.lstrip("\ufeff")
    return [row for row in csv.reader(io.StringIO(text)) if any(cell.strip() for cell in row)]


def strip_rank_prefix(value: str) -> str:
    """'11\\tDavid L' -> 'David L'."""
    return _RANK_PREFIX.sub("", value or "").strip()


# ---------------------------------------------------------------------------
# Seed table
# ---------------------------------------------------------------------------


def parse_seed_csv(raw_text: str) -> List[SeedEntry]:
    """Parse rank,name rows. Raises ValidationError naming the offending line."""
    rows = _rows(raw_text)
    if rows and not rows[0][0].strip().isdigit():
        rows = rows[1:]  # header

    seeds: List[SeedEntry] = []
    for line_number, row in enumerate(rows, start=1):
        rank_text = row[0].strip()
        if not rank_text.isdigit():
            raise ValidationError(f"Seed row {line_number}: rank {rank_text!r} is not a number")
        name = row[1].strip() if len(row) > 1 else ""
        if not name:
            raise ValidationError(f"Seed row {line_number}: missing player name")
        seeds.append(SeedEntry(rank=int(rank_text), name=name))

    logger.debug("Parsed %d seed rows", len(seeds))
    return seeds


# ---------------------------------------------------------------------------
# Portfolios
# ---------------------------------------------------------------------------


@dataclass
class ParsedPortfolioRow:
    line_number: int
    analyst_name: str = ""
    selections: List[str] = field(default_factory=list)
    tiebreaker: Optional[str] = None
    predicted_winner: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def parse_portfolio_csv(raw_text: str, selection_count: int = PORTFOLIO_SELECTION_COUNT) -> List[ParsedPortfolioRow]:
    """
    Parse portfolio rows. Malformed rows come back with `error` set instead of
    aborting the whole file.
    """
    rows = _rows(raw_text)[1:]  # header row is always present

    parsed: List[ParsedPortfolioRow] = []
    seen = set()
    for line_number, row in enumerate(rows, start=2):
        result = ParsedPortfolioRow(line_number=line_number)
        parsed.append(result)

        if len(row) < 4:
            result.analyst_name = row[0].strip()
            result.error = f"Expected 4 columns, got {len(row)}"
            continue

        result.analyst_name = row[0].strip()
        result.selections = [strip_rank_prefix(s) for s in row[1].split(";") if s.strip()]
        result.tiebreaker = strip_rank_prefix(row[2]) or None
        result.predicted_winner = strip_rank_prefix(row[3]) or None

        if not result.analyst_name:
            result.error = "Missing analyst name"
        elif result.analyst_name in seen:
            result.error = f"Duplicate analyst {result.analyst_name!r}"
        elif len(result.selections) != selection_count:
            result.error = f"Expected {selection_count} selections, got {len(result.selections)}"
        else:
            seen.add(result.analyst_name)

    bad = sum(1 for r in parsed if not r.ok)
    if bad:
        logger.warning("Portfolio import: %d of %d rows rejected", bad, len(parsed))
    return parsed
