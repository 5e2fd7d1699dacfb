"""Tests for the investor/amount matcher."""

import pytest

from obligations.models.matching import LocalMatchStatus
from obligations.services.matcher import amounts_match, classify, match_candidate, name_similarity


@pytest.fixture
def subscriptions():
    return [
        {"_id": "sub-1", "investor_id": "inv-1", "investor_name": "Jean Dupont", "coupon_net": 250.0},
        {"_id": "sub-2", "investor_id": "inv-2", "investor_name": "Société Martin SARL", "coupon_net": 500.0},
        {"_id": "sub-3", "investor_id": "inv-3", "investor_name": "Claire Bernard", "coupon_net": 125.5},
    ]


class TestNameSimilarity:
    def test_identical_names(self):
        assert name_similarity("Jean Dupont", "Jean Dupont") == 1.0

    def test_identical_after_normalization(self):
        assert name_similarity("JEAN  DUPONT", "jean dupont") == 1.0
        assert name_similarity("Société Générale", "societe generale") == 1.0

    def test_substring(self):
        assert name_similarity("Martin", "Société Martin SARL") == 0.8

    def test_token_overlap(self):
        # 1 common word out of max(2, 2)
        assert name_similarity("Jean Martin", "Jean Dupont") == 0.5

    def test_disjoint_tokens(self):
        assert name_similarity("Alice Durand", "Bob Petit") == 0.0

    def test_empty(self):
        assert name_similarity("", "Jean Dupont") == 0.0
        assert name_similarity(None, None) == 0.0


class TestAmounts:
    def test_within_a_cent(self):
        assert amounts_match(250.0, 250.009)
        assert amounts_match(100.0, 100.0)

    def test_cent_apart_does_not_match(self):
        assert not amounts_match(250.0, 250.02)

    def test_missing_amount(self):
        assert not amounts_match(None, 250.0)


class TestClassify:
    def test_thresholds(self):
        assert classify(1.0, True) == LocalMatchStatus.OK
        assert classify(1.0, False) == LocalMatchStatus.MISMATCH
        assert classify(0.8, True) == LocalMatchStatus.MISMATCH
        assert classify(0.6, True) == LocalMatchStatus.NO_MATCH
        assert classify(0.61, False) == LocalMatchStatus.MISMATCH


class TestMatchCandidate:
    def test_exact_name_and_amount(self, subscriptions):
        result = match_candidate("Jean Dupont", 250.0, subscriptions)
        assert result.status == LocalMatchStatus.OK
        assert result.subscription_id == "sub-1"
        assert result.investor_id == "inv-1"
        assert result.amount_matches is True
        assert result.expected_amount == 250.0

    def test_right_name_wrong_amount(self, subscriptions):
        result = match_candidate("Jean Dupont", 260.0, subscriptions)
        assert result.status == LocalMatchStatus.MISMATCH
        assert result.amount_matches is False

    def test_substring_name_is_only_mismatch(self, subscriptions):
        # 0.8 is not strictly above the ok threshold
        result = match_candidate("Martin", 500.0, subscriptions)
        assert result.subscription_id == "sub-2"
        assert result.score == 0.8
        assert result.status == LocalMatchStatus.MISMATCH

    def test_unknown_name(self, subscriptions):
        result = match_candidate("Entreprise Inconnue", 250.0, subscriptions)
        assert result.status == LocalMatchStatus.NO_MATCH
        assert result.subscription_id is None

    def test_no_subscriptions(self):
        result = match_candidate("Jean Dupont", 250.0, [])
        assert result.status == LocalMatchStatus.NO_MATCH

    def test_ties_keep_first_and_report_others(self):
        subs = [
            {"_id": "a", "investor_name": "Jean Dupont", "coupon_net": 100.0},
            {"_id": "b", "investor_name": "Jean Dupont", "coupon_net": 200.0},
        ]
        result = match_candidate("Jean Dupont", 200.0, subs)
        assert result.subscription_id == "a"
        assert result.tied_subscription_ids == ["b"]
        assert result.status == LocalMatchStatus.MISMATCH

    def test_better_score_clears_earlier_ties(self):
        subs = [
            {"_id": "a", "investor_name": "Jean Martin", "coupon_net": 100.0},
            {"_id": "b", "investor_name": "Jean Durand", "coupon_net": 100.0},
            {"_id": "c", "investor_name": "Jean Dupont", "coupon_net": 100.0},
        ]
        result = match_candidate("Jean Dupont", 100.0, subs)
        assert result.subscription_id == "c"
        assert result.tied_subscription_ids == []
