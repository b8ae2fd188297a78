"""Tests for VendorMatcher and the vendor grouping helper."""

import pytest

from taxfiler.matching.matchers.vendor import (
    VendorMatcher,
    are_likely_same_vendor,
    transaction_vendor_fields,
)

pytestmark = pytest.mark.unit


class TestVendorScore:
    def test_exact_after_normalization(self, make_transaction, make_document, matching_config):
        score = VendorMatcher().calculate_vendor_score(
            make_transaction(counterparty="ACME GmbH"),
            make_document(vendor="acme gmbh."),
            matching_config,
        )
        assert score == 1.0

    def test_transaction_name_contains_vendor(
        self, make_transaction, make_document, matching_config
    ):
        score = VendorMatcher().calculate_vendor_score(
            make_transaction(counterparty="REWE Markt GmbH Berlin"),
            make_document(vendor="REWE Markt GmbH"),
            matching_config,
        )
        assert score == 0.8

    def test_vendor_contains_transaction_name(
        self, make_transaction, make_document, matching_config
    ):
        score = VendorMatcher().calculate_vendor_score(
            make_transaction(counterparty="REWE"),
            make_document(vendor="REWE Markt GmbH"),
            matching_config,
        )
        assert score == 0.7

    def test_fuzzy_match_above_threshold(self, make_transaction, make_document, matching_config):
        # one edit over nine characters
        score = VendorMatcher().calculate_vendor_score(
            make_transaction(counterparty="Amazn EU"),
            make_document(vendor="Amazon EU"),
            matching_config,
        )
        assert score == pytest.approx(1 - 1 / 9)

    def test_fuzzy_match_below_threshold(self, make_transaction, make_document, matching_config):
        score = VendorMatcher().calculate_vendor_score(
            make_transaction(counterparty="Deutsche Bahn"),
            make_document(vendor="Lufthansa"),
            matching_config,
        )
        assert score == 0.0

    def test_sender_receiver_field_used(self, make_transaction, make_document, matching_config):
        """The best score over all name fields wins."""
        transaction = make_transaction(counterparty="PAYPAL EUROPE", sender_receiver="Hetzner Online")

        score = VendorMatcher().calculate_vendor_score(
            transaction, make_document(vendor="Hetzner Online"), matching_config
        )

        assert score == 1.0

    def test_missing_vendor(self, make_transaction, make_document, matching_config):
        score = VendorMatcher().calculate_vendor_score(
            make_transaction(), make_document(vendor=None), matching_config
        )
        assert score == 0.0

    def test_diacritics_ignored(self, make_transaction, make_document, matching_config):
        score = VendorMatcher().calculate_vendor_score(
            make_transaction(counterparty="Baeckerei Mueller"),
            make_document(vendor="Bäckerei Müller"),
            matching_config,
        )
        # "baeckerei mueller" vs "backerei muller": two insertions
        assert score == pytest.approx(1 - 2 / 17)


class TestVendorHelpers:
    def test_transaction_vendor_fields_skip_blank(self, make_transaction):
        transaction = make_transaction(counterparty="  ", sender_receiver="Shop")
        assert transaction_vendor_fields(transaction) == ["Shop"]

    @pytest.mark.parametrize(
        "first,second,expected",
        [
            ("ACME GmbH", "acme gmbh", True),
            ("ACME", "ACME GmbH", True),
            ("Telekom", "Telecom", True),
            ("Telekom", "Vodafone", False),
            (None, "Vodafone", False),
        ],
    )
    def test_are_likely_same_vendor(self, first, second, expected):
        assert are_likely_same_vendor(first, second) is expected
