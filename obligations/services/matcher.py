"""
Investor/Amount Matcher

Fuzzy matching of a (name, amount) pair read from a statement or proof
against the known subscriptions of a tranche.
"""

from typing import Any, Dict, Iterable, Optional

from obligations.models.matching import LocalMatchResult, LocalMatchStatus
from obligations.utils.parser_helper import ParserHelper

AMOUNT_TOLERANCE = 0.01
EXACT_SCORE = 1.0
SUBSTRING_SCORE = 0.8
OK_THRESHOLD = 0.8
MISMATCH_THRESHOLD = 0.6


def name_similarity(name1: Optional[str], name2: Optional[str]) -> float:
    """
    Score how alike two names are, between 0 and 1.

    Identical normalized names score 1.0, one contained in the other 0.8,
    otherwise the share of common words over the longer name's word count.
    """
    n1 = ParserHelper.normalize_name(name1)
    n2 = ParserHelper.normalize_name(name2)
    if not n1 or not n2:
        return 0.0
    if n1 == n2:
        return EXACT_SCORE
    if n1 in n2 or n2 in n1:
        return SUBSTRING_SCORE

    words1 = set(n1.split())
    words2 = set(n2.split())
    common = words1 & words2
    return len(common) / max(len(words1), len(words2))


def amounts_match(amount1: Optional[float], amount2: Optional[float]) -> bool:
    if amount1 is None or amount2 is None:
        return False
    return abs(amount1 - amount2) < AMOUNT_TOLERANCE


def classify(score: float, amount_ok: bool) -> LocalMatchStatus:
    if score > OK_THRESHOLD and amount_ok:
        return LocalMatchStatus.OK
    if score > MISMATCH_THRESHOLD:
        return LocalMatchStatus.MISMATCH
    return LocalMatchStatus.NO_MATCH


def match_candidate(
    name: str, amount: Optional[float], subscriptions: Iterable[Dict[str, Any]]
) -> LocalMatchResult:
    """
    Find the subscription whose investor best matches a candidate.

    Args:
        name: Free-text beneficiary name
        amount: Amount read next to the name, if any
        subscriptions: Subscription dicts with '_id', 'investor_id',
            'investor_name' and 'coupon_net'

    Returns:
        LocalMatchResult: The first highest-scoring subscription. Other
        subscriptions reaching the same score are listed in
        tied_subscription_ids.
    """
    best: Optional[Dict[str, Any]] = None
    best_score = 0.0
    tied = []

    for sub in subscriptions:
        score = name_similarity(name, sub.get("investor_name"))
        if score > best_score:
            best, best_score, tied = sub, score, []
        elif best is not None and score == best_score:
            tied.append(sub["_id"])

    result = LocalMatchResult(candidate_name=name, candidate_amount=amount)
    if best is None:
        return result

    expected = best.get("coupon_net")
    amount_ok = amounts_match(amount, expected)
    result.status = classify(best_score, amount_ok)
    result.score = best_score
    result.amount_matches = amount_ok
    result.subscription_id = best["_id"]
    result.investor_id = best.get("investor_id")
    result.investor_name = best.get("investor_name")
    result.expected_amount = expected
    result.tied_subscription_ids = tied
    return result
