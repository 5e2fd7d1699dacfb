"""
Local statement matching.

Reads a bank statement (CSV or PDF with a text layer), pulls (name, amount)
candidates out of its lines and matches each one against the subscriptions
of a tranche, without calling the remote analysis function.
"""

import re
from collections import Counter
from typing import List, Optional

from obligations.models.matching import LocalMatchStatus, StatementCandidate, StatementMatchReport
from obligations.services import matcher, mongodb
from obligations.utils.errors import InvalidInputError, NotFoundError
from obligations.utils.file_processor import FileProcessor
from obligations.utils.logger import log_message
from obligations.utils.parser_helper import ParserHelper

_DATE_RE = re.compile(r"\b\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}\b")
_AMOUNT_RE = re.compile(
    r"(?<![\w.,])-?\d{1,3}(?:[ \u00a0.']\d{3})+(?:,\d{1,2})?(?:\s?(?:€|EUR))?"
    r"|(?<![\w.,])-?\d+(?:[.,]\d{1,2})?(?:\s?(?:€|EUR))?",
    re.IGNORECASE,
)
_HAS_LETTER_RE = re.compile(r"[^\W\d_]")


def parse_candidate(line: str) -> Optional[StatementCandidate]:
    """
    Split a statement line into a beneficiary name and an amount.

    Dates are ignored; the right-most amount on the line is taken and the
    words that contain letters form the name. Lines without both are skipped.

    Examples:
        "15/03/2024 VIR SEPA Jean Dupont 1 000,00 €" -> ("VIR SEPA Jean Dupont", 1000.0)
    """
    text = _DATE_RE.sub(" ", line)
    amounts = [m for m in _AMOUNT_RE.finditer(text) if m.group().strip()]
    if not amounts:
        return None

    last = amounts[-1]
    amount = ParserHelper.parse_amount(last.group())
    if amount is None:
        return None

    remainder = text[: last.start()] + " " + text[last.end():]
    words = [w for w in remainder.split() if _HAS_LETTER_RE.search(w)]
    name = ParserHelper.clean_text(" ".join(words))
    if not name:
        return None
    return StatementCandidate(name=name, amount=abs(amount), line=line)


def extract_statement_lines(file_name: str, data: bytes) -> List[str]:
    name = (file_name or "").lower()
    if name.endswith(".csv"):
        return FileProcessor.extract_csv_text(data)
    if FileProcessor.is_pdf(name):
        return FileProcessor.extract_pdf_text(data)
    raise InvalidInputError("Statement must be a CSV or PDF file")


async def match_statement(tranche_id: str, file_name: str, data: bytes) -> StatementMatchReport:
    """
    Match every candidate line of a statement against a tranche.

    Args:
        tranche_id: Tranche whose subscriptions are the known payees
        file_name: Statement file name (its extension selects the reader)
        data: Statement content

    Returns:
        StatementMatchReport: One result per candidate and a count per status
    """
    tranche = await mongodb.get_tranche(tranche_id)
    if not tranche:
        raise NotFoundError(f"Tranche {tranche_id} not found")

    lines = extract_statement_lines(file_name, data)
    subscriptions = await mongodb.get_tranche_subscriptions(tranche_id)

    results = []
    for line in lines:
        candidate = parse_candidate(line)
        if candidate is None:
            continue
        results.append(matcher.match_candidate(candidate.name, candidate.amount, subscriptions))

    counts = Counter(r.status for r in results)
    summary = {status.value: counts.get(status, 0) for status in LocalMatchStatus}

    log_message(
        "info",
        f"Statement {file_name} for tranche {tranche_id}: {len(lines)} line(s), "
        f"{len(results)} candidate(s), summary={summary}",
    )
    return StatementMatchReport(
        file_name=file_name, lines_read=len(lines), results=results, summary=summary
    )
