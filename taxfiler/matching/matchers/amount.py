"""Amount matcher.

Compares the transaction amount with the canonical document amount, after
applying any early-payment discount, as a relative difference:

    |transaction - document| / max(|transaction|, |document|)

Signs are ignored: an outgoing payment of -98.00 matches an invoice of 98.00.
The relative form makes the score invariant under scaling both amounts.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import TYPE_CHECKING

from ..domain.value_objects import MultipleAmountValidationResult
from .base import IScoreMatcher, tiered_score, to_decimal
from .skonto import calculate_discounted_amount, has_valid_skonto

if TYPE_CHECKING:
    from ..config import MatchingConfiguration
    from ..domain.models import FinancialTransaction, TaxDocument

_ZERO = Decimal("0")

# Validation bands for summed document amounts
_WARNING_THRESHOLD = 0.05
_SIGNIFICANT_THRESHOLD = 0.10


def best_document_amount(document: "TaxDocument | None") -> Decimal | None:
    """Pick the canonical amount of a document.

    Priority: total, then sub_total + tax_amount (both present), then
    sub_total, then tax_amount. Zero is treated as missing.
    """
    if document is None:
        return None

    total = _nonzero(getattr(document, "total", None))
    if total is not None:
        return total

    sub_total = _nonzero(getattr(document, "sub_total", None))
    tax_amount = _nonzero(getattr(document, "tax_amount", None))
    if sub_total is not None and tax_amount is not None:
        return sub_total + tax_amount
    if sub_total is not None:
        return sub_total
    return tax_amount


def skonto_adjusted_amount(document: "TaxDocument | None") -> tuple[Decimal | None, bool]:
    """Return the document amount after Skonto and whether a discount was applied.

    Falls back to the undiscounted amount when the discount would make the
    amount zero, negative or larger than before.
    """
    amount = best_document_amount(document)
    if amount is None:
        return None, False

    percentage = to_decimal(getattr(document, "skonto", None))
    if not has_valid_skonto(percentage):
        return amount, False

    discounted = calculate_discounted_amount(amount, percentage)
    if discounted <= _ZERO or discounted > amount:
        return amount, False
    return discounted, True


def relative_difference(transaction_amount: Decimal, document_amount: Decimal) -> float | None:
    """Relative difference of two magnitudes, or None if both are zero."""
    a = abs(transaction_amount)
    b = abs(document_amount)
    reference = max(a, b)
    if reference == _ZERO:
        return None
    return float(abs(a - b) / reference)


def amount_score_for(
    transaction_amount: Decimal, document_amount: Decimal, config: "MatchingConfiguration"
) -> float:
    """Score two amounts against the configured tolerance ladder."""
    difference = relative_difference(transaction_amount, document_amount)
    if difference is None:
        return 1.0
    tolerances = config.amount
    return tiered_score(
        difference,
        tolerances.exact_tolerance,
        tolerances.high_tolerance,
        tolerances.medium_tolerance,
    )


class AmountMatcher(IScoreMatcher):
    """Score amount agreement for single documents and document sets.

    Scoring (relative difference, default tolerances):
    - <= 1 % -> 1.0
    - <= 5 % -> 0.8
    - <= 10 % -> 0.5
    - <= 30 % -> linear decay from 0.2 to 0.0
    - beyond -> 0.0
    """

    factor = "amount"

    def score(self, transaction, document, config) -> float:
        return self.calculate_amount_score(transaction, document, config)

    def calculate_amount_score(
        self,
        transaction: "FinancialTransaction | None",
        document: "TaxDocument | None",
        config: "MatchingConfiguration | None",
    ) -> float:
        if transaction is None or document is None or config is None:
            return 0.0

        transaction_amount = to_decimal(getattr(transaction, "gross_amount", None))
        if transaction_amount is None:
            return 0.0

        document_amount, _ = skonto_adjusted_amount(document)
        if document_amount is None:
            return 0.0

        return amount_score_for(transaction_amount, document_amount, config)

    def calculate_multiple_amount_score(
        self,
        transaction: "FinancialTransaction | None",
        documents: "Iterable[TaxDocument] | None",
        config: "MatchingConfiguration | None",
    ) -> float:
        """Score the summed Skonto-adjusted amount of ``documents``."""
        if transaction is None or documents is None or config is None:
            return 0.0

        transaction_amount = to_decimal(getattr(transaction, "gross_amount", None))
        if transaction_amount is None:
            return 0.0

        total = _ZERO
        usable = 0
        for document in documents:
            amount, _ = skonto_adjusted_amount(document)
            if amount is None:
                continue
            total += abs(amount)
            usable += 1

        if usable == 0:
            return 0.0
        return amount_score_for(transaction_amount, total, config)

    def validate_multiple_amounts(
        self,
        transaction_amount: Decimal,
        documents: "Sequence[TaxDocument] | None",
    ) -> MultipleAmountValidationResult:
        """Explain how far the documents' summed amount is from the transaction.

        Independent of the weighted score. Differences up to 5 % pass
        silently, 5 to 10 % pass with a warning, anything above 10 % is
        invalid and flagged as overage or underage.
        """
        target = abs(to_decimal(transaction_amount) or _ZERO)

        if documents is None:
            return MultipleAmountValidationResult(
                is_valid=False,
                transaction_amount=target,
                warnings=["No documents provided for validation"],
            )
        if len(documents) == 0:
            return MultipleAmountValidationResult(
                is_valid=False,
                transaction_amount=target,
                warnings=["Document list is empty"],
            )

        total = _ZERO
        valid_count = 0
        skonto_count = 0
        for document in documents:
            amount, skonto_applied = skonto_adjusted_amount(document)
            if amount is None:
                continue
            total += abs(amount)
            valid_count += 1
            if skonto_applied:
                skonto_count += 1

        if valid_count == 0:
            return MultipleAmountValidationResult(
                is_valid=False,
                transaction_amount=target,
                warnings=["No documents have valid amounts for comparison"],
            )

        warnings: list[str] = []
        recommendations: list[str] = []
        difference = total - target

        if target == _ZERO:
            return MultipleAmountValidationResult(
                is_valid=False,
                transaction_amount=target,
                total_document_amount=total,
                valid_document_count=valid_count,
                skonto_applied_count=skonto_count,
                amount_difference=difference,
                warnings=["Transaction amount is zero; document amounts cannot be validated"],
            )

        percentage = float(abs(difference) / target)
        overage = difference > _ZERO
        is_valid = True
        significant_overage = False
        significant_underage = False

        if percentage > _SIGNIFICANT_THRESHOLD:
            is_valid = False
            if overage:
                significant_overage = True
                warnings.append(
                    f"Document total {total:.2f} significantly exceeds transaction amount "
                    f"{target:.2f} ({percentage:.1%})"
                )
                recommendations.append(
                    "Check whether some documents belong to different transactions"
                )
                recommendations.append("Verify the extracted document amounts for errors")
                recommendations.append("Consider partial payments or credit notes")
            else:
                significant_underage = True
                warnings.append(
                    f"Document total {total:.2f} is significantly less than transaction amount "
                    f"{target:.2f} ({percentage:.1%})"
                )
                recommendations.append("Additional documents may be missing for this transaction")
                recommendations.append("Check for fees, tips or shipping costs not on the documents")
        elif percentage > _WARNING_THRESHOLD:
            if overage:
                warnings.append(
                    f"Document total {total:.2f} slightly exceeds transaction amount "
                    f"{target:.2f} ({percentage:.1%})"
                )
                recommendations.append("Verify whether a discount or rounding explains the overage")
            else:
                warnings.append(
                    f"Document total {total:.2f} is slightly less than transaction amount "
                    f"{target:.2f} ({percentage:.1%})"
                )
                recommendations.append("Check for small fees or charges not on the documents")

        if skonto_count:
            recommendations.append(
                f"Skonto discount applied to {skonto_count} document(s); "
                "confirm the payment was made within the discount period"
            )

        return MultipleAmountValidationResult(
            is_valid=is_valid,
            transaction_amount=target,
            total_document_amount=total,
            valid_document_count=valid_count,
            skonto_applied_count=skonto_count,
            amount_difference=difference,
            percentage_difference=percentage,
            has_significant_overage=significant_overage,
            has_significant_underage=significant_underage,
            warnings=warnings,
            recommendations=recommendations,
        )


def _nonzero(value) -> Decimal | None:
    amount = to_decimal(value)
    if amount is None or amount == _ZERO:
        return None
    return amount
