"""Document matching service.

Combines the four factor matchers into a weighted composite score, ranks
candidate documents for a transaction and attaches the best ones.

Per transaction the run moves through
``UNMATCHED -> CANDIDATES_RANKED -> ASSIGNED | SKIPPED_BELOW_THRESHOLD | SKIPPED_NO_CANDIDATES``.

Scoring is pure and runs concurrently in worker threads on detached copies
of the entities. Attaching runs serially on the event loop, one transaction
at a time, so a cancelled batch never leaves a half-attached transaction.
"""

import asyncio
import itertools
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from ....exceptions import DatabaseError
from ....utils.logging import LogPerformance, get_logger
from ...config import MatchingConfiguration
from ...domain.enums import (
    AssignmentOutcome,
    CombinationStrategy,
    MatchConfidenceLevel,
    TransactionMatchState,
)
from ...domain.value_objects import (
    AutoAssignResult,
    DocumentFacts,
    DocumentMatch,
    MultipleAmountValidationResult,
    MultipleAssignmentResult,
    MultipleDocumentMatch,
    MultipleScoreBreakdown,
    ScoreBreakdown,
    TransactionFacts,
)
from ...matchers.amount import AmountMatcher, skonto_adjusted_amount
from ...matchers.base import clamp_score, to_decimal
from ...matchers.date_matcher import DateMatcher
from ...matchers.reference import (
    ReferenceMatcher,
    extract_voucher_numbers,
    transaction_reference_text,
)
from ...matchers.vendor import VendorMatcher

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from ...domain.models import FinancialTransaction, TaxDocument
    from ..ports import AttachmentStore, DocumentRepository, TransactionRepository

logger = get_logger(__name__)

NO_COMBINATION_WARNING = "No suitable document combinations found for automatic assignment"

# Combination search limits per strategy
_AMOUNT_COMBINATIONS_PER_SIZE = 50
_HYBRID_COMBINATIONS_PER_SIZE = 20
_HYBRID_MAX_SIZE = 4
_HYBRID_CANDIDATE_REFERENCE = 0.3
_HYBRID_MIN_FACTOR = 0.4
_REFERENCE_BOOST = 1.2
_HYBRID_BOOST = 1.1


class DocumentMatchingService:
    """Rank tax documents for bank transactions and auto-attach the best ones.

    Args:
        config: Matching configuration; validated on construction
        document_repository: Source of candidate documents
        transaction_repository: Source of transactions to process
        attachment_store: Creates the transaction/document links
        amount_matcher / date_matcher / vendor_matcher / reference_matcher:
            Factor matchers, the stateless defaults when omitted
        actor: Name recorded as ``attached_by`` on automatic attachments

    Raises:
        ConfigurationError: If ``config`` fails validation

    Example:
        >>> service = DocumentMatchingService(config, documents, transactions, attachments)
        >>> ranked = service.rank_matches(transaction, candidates)
        >>> result = await service.auto_assign()
        >>> print(result.assigned_count, result.skipped_count)
    """

    def __init__(
        self,
        config: MatchingConfiguration | None = None,
        document_repository: "DocumentRepository | None" = None,
        transaction_repository: "TransactionRepository | None" = None,
        attachment_store: "AttachmentStore | None" = None,
        *,
        amount_matcher: AmountMatcher | None = None,
        date_matcher: DateMatcher | None = None,
        vendor_matcher: VendorMatcher | None = None,
        reference_matcher: ReferenceMatcher | None = None,
        actor: str = "auto-assign",
    ) -> None:
        self.config = (config or MatchingConfiguration()).validate_or_raise()
        self.documents = document_repository
        self.transactions = transaction_repository
        self.attachments = attachment_store

        self.amount_matcher = amount_matcher or AmountMatcher()
        self.date_matcher = date_matcher or DateMatcher()
        self.vendor_matcher = vendor_matcher or VendorMatcher()
        self.reference_matcher = reference_matcher or ReferenceMatcher()
        self.actor = actor

    @classmethod
    def from_session(
        cls, session: "Session", config: MatchingConfiguration | None = None, **kwargs: Any
    ) -> "DocumentMatchingService":
        """Wire the service to the SQLAlchemy repositories on one session."""
        from ....storage.repositories import (
            SQLAlchemyAttachmentStore,
            SQLAlchemyDocumentRepository,
            SQLAlchemyTransactionRepository,
        )

        return cls(
            config,
            SQLAlchemyDocumentRepository(session),
            SQLAlchemyTransactionRepository(session),
            SQLAlchemyAttachmentStore(session),
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def _resolve_config(self, config: MatchingConfiguration | None) -> MatchingConfiguration:
        if config is None or config is self.config:
            return self.config
        return config.validate_or_raise()

    @staticmethod
    def _combine(
        amount: float,
        date: float,
        vendor: float,
        reference: float,
        config: MatchingConfiguration,
    ) -> tuple[float, bool]:
        """Weighted sum, bonus multiplier on strong agreement, clamped to [0, 1]."""
        composite = (
            amount * config.amount_weight
            + date * config.date_weight
            + vendor * config.vendor_weight
            + reference * config.reference_weight
        )
        bonus = max(amount, date, vendor, reference) >= config.bonus_threshold
        if bonus:
            composite *= config.bonus_multiplier
        return clamp_score(composite), bonus

    def score_document(
        self,
        transaction: "FinancialTransaction",
        document: "TaxDocument",
        config: MatchingConfiguration | None = None,
    ) -> DocumentMatch:
        """Score one (transaction, document) pair."""
        cfg = config or self.config
        amount = self.amount_matcher.calculate_amount_score(transaction, document, cfg)
        date = self.date_matcher.calculate_date_score(transaction, document, cfg)
        vendor = self.vendor_matcher.calculate_vendor_score(transaction, document, cfg)
        reference = self.reference_matcher.calculate_reference_score(transaction, document)

        composite, bonus = self._combine(amount, date, vendor, reference, cfg)
        return DocumentMatch(
            document=document,
            score=ScoreBreakdown(
                amount_score=amount,
                date_score=date,
                vendor_score=vendor,
                reference_score=reference,
                composite_score=composite,
                bonus_applied=bonus,
            ),
        )

    def rank_matches(
        self,
        transaction: "FinancialTransaction | None",
        candidate_documents: "Iterable[TaxDocument] | None",
        config: MatchingConfiguration | None = None,
    ) -> list[DocumentMatch]:
        """Score and order candidate documents for a transaction.

        Candidates below ``minimum_match_score`` are dropped. Ordering is by
        composite score, then amount score, then date score, all descending;
        remaining ties keep the candidates' input order.

        Returns:
            Ranked matches, best first. Empty when nothing qualifies.
        """
        if transaction is None or candidate_documents is None:
            return []
        cfg = self._resolve_config(config)

        matches = []
        for document in candidate_documents:
            if document is None:
                continue
            match = self.score_document(transaction, document, cfg)
            if match.score.composite_score >= cfg.minimum_match_score:
                matches.append(match)

        matches.sort(
            key=lambda m: (-m.score.composite_score, -m.score.amount_score, -m.score.date_score)
        )
        return matches

    @staticmethod
    def confidence_level(score: float) -> MatchConfidenceLevel:
        return MatchConfidenceLevel.from_score(score)

    def validate_amounts(
        self, transaction_amount: Decimal, documents: "Sequence[TaxDocument] | None"
    ) -> MultipleAmountValidationResult:
        """Explain how the summed document amounts compare with a transaction amount."""
        return self.amount_matcher.validate_multiple_amounts(transaction_amount, documents)

    async def _rank_detached(
        self,
        transaction: "FinancialTransaction",
        documents: Sequence["TaxDocument"],
        config: MatchingConfiguration,
    ) -> list[DocumentMatch]:
        """Rank in a worker thread on detached copies, then map back to the entities."""
        facts = [DocumentFacts.from_entity(doc) for doc in documents]
        by_identity = {id(f): doc for f, doc in zip(facts, documents)}
        ranked = await asyncio.to_thread(
            self.rank_matches, TransactionFacts.from_entity(transaction), facts, config
        )
        return [DocumentMatch(document=by_identity[id(m.document)], score=m.score) for m in ranked]

    # ------------------------------------------------------------------
    # Repository-backed ranking
    # ------------------------------------------------------------------

    def _require(self, dependency: Any, name: str) -> Any:
        if dependency is None:
            raise RuntimeError(f"DocumentMatchingService was created without a {name}")
        return dependency

    async def document_matches(
        self,
        transaction: "FinancialTransaction | None",
        unconnected_only: bool = True,
        config: MatchingConfiguration | None = None,
    ) -> list[DocumentMatch]:
        """Rank the stored documents for one transaction."""
        if transaction is None:
            return []
        repository = self._require(self.documents, "document repository")
        cfg = self._resolve_config(config)
        documents = list(await repository.get_documents(unconnected_only=unconnected_only))
        return await self._rank_detached(transaction, documents, cfg)

    async def batch_document_matches(
        self,
        transactions: "Iterable[FinancialTransaction] | None",
        config: MatchingConfiguration | None = None,
    ) -> dict[int, list[DocumentMatch]]:
        """Rank unconnected documents for many transactions concurrently."""
        if transactions is None:
            return {}
        repository = self._require(self.documents, "document repository")
        cfg = self._resolve_config(config)

        pending = [t for t in transactions if t is not None]
        documents = list(await repository.get_unconnected_documents())
        rankings = await asyncio.gather(
            *(self._rank_detached(t, documents, cfg) for t in pending)
        )
        return {t.id: ranking for t, ranking in zip(pending, rankings)}

    # ------------------------------------------------------------------
    # Single-document auto-assignment
    # ------------------------------------------------------------------

    async def auto_assign(
        self,
        transactions: "Iterable[FinancialTransaction] | None" = None,
        config: MatchingConfiguration | None = None,
        *,
        year: int | None = None,
        month: int | None = None,
    ) -> AutoAssignResult:
        """Attach the best-ranked document to every transaction without attachments.

        Transactions that already carry an attachment are not processed. A
        document claimed by one transaction is not offered to later ones in
        the same batch. A transaction whose best candidate scores below
        ``auto_assignment_threshold`` is skipped, which is not an error.
        Storage failures for one transaction are recorded in ``issues`` and
        the batch continues. Cancellation takes effect between transactions.

        Args:
            transactions: Transactions to process; the repository's unmatched
                transactions for ``year``/``month`` when None
            config: Overrides the service configuration for this run

        Returns:
            Counts of processed, assigned and skipped transactions plus issues
        """
        cfg = self._resolve_config(config)
        store = self._require(self.attachments, "attachment store")
        documents_repo = self._require(self.documents, "document repository")

        if transactions is None:
            transactions_repo = self._require(self.transactions, "transaction repository")
            transactions = await transactions_repo.get_unmatched_transactions(year, month)

        pending = [t for t in transactions if t is not None and not _has_attachments(t)]
        if not pending:
            logger.info("auto_assign_nothing_to_process")
            return AutoAssignResult()

        documents = list(await documents_repo.get_unconnected_documents())

        assigned = 0
        issues: list[str] = []
        states: dict[int, TransactionMatchState] = {}
        claimed: set[int] = set()

        with LogPerformance("auto_assign", logger, transaction_count=len(pending)):
            rankings = await asyncio.gather(
                *(self._rank_detached(t, documents, cfg) for t in pending)
            )

            try:
                for transaction, ranking in zip(pending, rankings):
                    await asyncio.sleep(0)
                    state = await self._assign_best(transaction, ranking, cfg, store, claimed, issues)
                    states[transaction.id] = state
                    if state is TransactionMatchState.ASSIGNED:
                        assigned += 1
            except asyncio.CancelledError:
                logger.warning(
                    "auto_assign_cancelled",
                    processed=len(states),
                    assigned=assigned,
                    remaining=len(pending) - len(states),
                )
                raise

        result = AutoAssignResult(
            total_processed=len(pending),
            assigned_count=assigned,
            skipped_count=len(pending) - assigned,
            issues=issues,
            states=states,
        )
        logger.info(
            "auto_assign_summary",
            processed=result.total_processed,
            assigned=result.assigned_count,
            skipped=result.skipped_count,
            issue_count=len(issues),
        )
        return result

    async def _assign_best(
        self,
        transaction: "FinancialTransaction",
        ranking: list[DocumentMatch],
        config: MatchingConfiguration,
        store: "AttachmentStore",
        claimed: set[int],
        issues: list[str],
    ) -> TransactionMatchState:
        candidates = [m for m in ranking if m.document.id not in claimed]
        if not candidates:
            logger.debug("auto_assign_no_candidates", transaction_id=transaction.id)
            return TransactionMatchState.SKIPPED_NO_CANDIDATES

        best = candidates[0]
        if best.composite_score < config.auto_assignment_threshold:
            logger.debug(
                "auto_assign_below_threshold",
                transaction_id=transaction.id,
                best_score=round(best.composite_score, 4),
                threshold=config.auto_assignment_threshold,
            )
            return TransactionMatchState.SKIPPED_BELOW_THRESHOLD

        try:
            result = await store.attach(
                transaction.id, best.document.id, is_automatic=True, attached_by=self.actor
            )
        except DatabaseError as e:
            logger.error(
                "auto_assign_attach_failed",
                transaction_id=transaction.id,
                document_id=best.document.id,
                error=str(e),
            )
            issues.append(f"Transaction {transaction.id}: {e.message}")
            return TransactionMatchState.CANDIDATES_RANKED

        if not result.succeeded:
            issues.append(
                f"Transaction {transaction.id}: "
                + (result.message or f"attachment {result.status.value}")
            )
            return TransactionMatchState.CANDIDATES_RANKED

        claimed.add(best.document.id)
        issues.extend(f"Transaction {transaction.id}: {w}" for w in result.warnings)
        logger.info(
            "auto_assign_document_attached",
            transaction_id=transaction.id,
            document_id=best.document.id,
            score=round(best.composite_score, 4),
            confidence=best.confidence_level.value,
        )
        return TransactionMatchState.ASSIGNED

    async def auto_assign_period(self, year: int, month: int | None = None) -> AutoAssignResult:
        """Auto-assign all unmatched transactions booked in a period."""
        return await self.auto_assign(year=year, month=month)

    # ------------------------------------------------------------------
    # Multi-document matching
    # ------------------------------------------------------------------

    def score_combination(
        self,
        transaction: "FinancialTransaction",
        documents: Sequence["TaxDocument"],
        config: MatchingConfiguration,
        strategy: CombinationStrategy,
        boost: float = 1.0,
    ) -> MultipleDocumentMatch:
        """Score a document set: summed amount, averaged date and vendor, multi-reference."""
        amount = self.amount_matcher.calculate_multiple_amount_score(transaction, documents, config)
        date = sum(
            self.date_matcher.calculate_date_score(transaction, d, config) for d in documents
        ) / len(documents)
        vendor = sum(
            self.vendor_matcher.calculate_vendor_score(transaction, d, config) for d in documents
        ) / len(documents)
        reference = self.reference_matcher.calculate_multiple_reference_score(
            transaction, documents, config
        )

        composite, _ = self._combine(amount, date, vendor, reference, config)
        composite = min(composite * boost, 1.0)

        total = Decimal("0")
        for document in documents:
            doc_amount, _ = skonto_adjusted_amount(document)
            if doc_amount is not None:
                total += abs(doc_amount)

        return MultipleDocumentMatch(
            documents=tuple(documents),
            score=MultipleScoreBreakdown(
                amount_score=amount,
                date_score=date,
                vendor_score=vendor,
                reference_score=reference,
                composite_score=composite,
                document_count=len(documents),
            ),
            strategy=strategy,
            total_amount=total,
        )

    def find_multiple_document_matches(
        self,
        transaction: "FinancialTransaction | None",
        documents: "Iterable[TaxDocument] | None",
        config: MatchingConfiguration | None = None,
    ) -> list[MultipleDocumentMatch]:
        """Search document combinations that together explain one transaction.

        Three generators feed the ranking:

        1. Reference: documents whose invoice number matches one of the
           vouchers quoted in the note (needs two or more hits), boosted x1.2
        2. Amount: every combination of a capped, pre-ranked candidate list
           is summed; per size the sums closest to the transaction amount
           are scored
        3. Hybrid: combinations of documents with some reference agreement
           that also score at least 0.4 on amount and reference, boosted x1.1

        Results are de-duplicated by document set, filtered by
        ``minimum_match_score`` and cut to ``max_combination_results``.
        """
        if transaction is None or documents is None:
            return []
        cfg = self._resolve_config(config)
        candidates = [d for d in documents if d is not None]
        if len(candidates) < 2:
            return []

        vouchers = extract_voucher_numbers(transaction_reference_text(transaction))

        found: list[MultipleDocumentMatch] = []
        if len(vouchers) > 1:
            found.extend(self._reference_combinations(transaction, candidates, vouchers, cfg))
        found.extend(self._amount_combinations(transaction, candidates, cfg))
        if vouchers:
            found.extend(self._hybrid_combinations(transaction, candidates, cfg))

        best_by_set: dict[frozenset[int], MultipleDocumentMatch] = {}
        for match in found:
            key = frozenset(_identity(d) for d in match.documents)
            current = best_by_set.get(key)
            if current is None or match.composite_score > current.composite_score:
                best_by_set[key] = match

        ranked = [m for m in best_by_set.values() if m.composite_score >= cfg.minimum_match_score]
        ranked.sort(key=lambda m: (-m.composite_score, -m.score.amount_score))
        return ranked[: cfg.max_combination_results]

    def _reference_combinations(
        self,
        transaction: "FinancialTransaction",
        documents: list["TaxDocument"],
        vouchers: list[str],
        config: MatchingConfiguration,
    ) -> list[MultipleDocumentMatch]:
        normalized_vouchers = [v.strip().upper() for v in vouchers]
        matching = []
        for document in documents:
            invoice = (getattr(document, "invoice_number", None) or "").strip().upper()
            if not invoice:
                continue
            if any(invoice == v or v in invoice or invoice in v for v in normalized_vouchers):
                matching.append(document)

        if len(matching) < 2:
            return []
        return [
            self.score_combination(
                transaction, matching, config, CombinationStrategy.REFERENCE, _REFERENCE_BOOST
            )
        ]

    def _amount_combinations(
        self,
        transaction: "FinancialTransaction",
        documents: list["TaxDocument"],
        config: MatchingConfiguration,
    ) -> list[MultipleDocumentMatch]:
        target = abs(to_decimal(getattr(transaction, "gross_amount", None)) or Decimal("0"))
        if target == 0:
            return []

        # A part larger than the decay window can never sum to a scoring total
        ceiling = target * Decimal(str(1 + 3 * config.amount.medium_tolerance))
        usable = []
        amounts: dict[int, Decimal] = {}
        for document in documents:
            amount, _ = skonto_adjusted_amount(document)
            if amount is not None and abs(amount) <= ceiling:
                usable.append(document)
                amounts[id(document)] = abs(amount)

        # Keep the documents that agree best on the other factors
        usable.sort(key=lambda d: -self._non_amount_score(transaction, d, config))
        pool = usable[: config.max_combination_candidates]

        matches = []
        for size in range(2, min(config.max_combination_size, len(pool)) + 1):
            # Every combination of the pool is summed; the closest sums are scored
            in_window = []
            for combination in itertools.combinations(pool, size):
                total = sum((amounts[id(d)] for d in combination), Decimal("0"))
                if total <= ceiling:
                    in_window.append((abs(total - target), combination))
            in_window.sort(key=lambda item: item[0])

            for _, combination in in_window[:_AMOUNT_COMBINATIONS_PER_SIZE]:
                amount_score = self.amount_matcher.calculate_multiple_amount_score(
                    transaction, combination, config
                )
                if amount_score >= config.minimum_match_score:
                    matches.append(
                        self.score_combination(
                            transaction, combination, config, CombinationStrategy.AMOUNT
                        )
                    )
        return matches

    def _hybrid_combinations(
        self,
        transaction: "FinancialTransaction",
        documents: list["TaxDocument"],
        config: MatchingConfiguration,
    ) -> list[MultipleDocumentMatch]:
        candidates = [
            d
            for d in documents
            if getattr(d, "invoice_number", None)
            and self.reference_matcher.calculate_reference_score(transaction, d)
            >= _HYBRID_CANDIDATE_REFERENCE
        ][: config.max_combination_candidates]

        matches = []
        for size in range(2, min(_HYBRID_MAX_SIZE, len(candidates)) + 1):
            for combination in itertools.islice(
                itertools.combinations(candidates, size), _HYBRID_COMBINATIONS_PER_SIZE
            ):
                amount_score = self.amount_matcher.calculate_multiple_amount_score(
                    transaction, combination, config
                )
                reference_score = self.reference_matcher.calculate_multiple_reference_score(
                    transaction, combination, config
                )
                if amount_score >= _HYBRID_MIN_FACTOR and reference_score >= _HYBRID_MIN_FACTOR:
                    matches.append(
                        self.score_combination(
                            transaction,
                            combination,
                            config,
                            CombinationStrategy.HYBRID,
                            _HYBRID_BOOST,
                        )
                    )
        return matches

    def _non_amount_score(
        self,
        transaction: "FinancialTransaction",
        document: "TaxDocument",
        config: MatchingConfiguration,
    ) -> float:
        return (
            self.date_matcher.calculate_date_score(transaction, document, config)
            * config.date_weight
            + self.vendor_matcher.calculate_vendor_score(transaction, document, config)
            * config.vendor_weight
            + self.reference_matcher.calculate_reference_score(transaction, document)
            * config.reference_weight
        )

    async def auto_assign_multiple(
        self,
        transaction: "FinancialTransaction | int",
        config: MatchingConfiguration | None = None,
    ) -> MultipleAssignmentResult:
        """Attach the best document combination to a transaction.

        The winning documents are attached in one ``attach_many`` call that
        is shielded from cancellation, so either the whole set is stored or
        none of it.

        Args:
            transaction: The transaction entity or its id

        Returns:
            Outcome, number of attached documents, their total amount and
            any amount-validation or attachment warnings
        """
        cfg = self._resolve_config(config)
        store = self._require(self.attachments, "attachment store")
        documents_repo = self._require(self.documents, "document repository")

        if isinstance(transaction, int):
            transactions_repo = self._require(self.transactions, "transaction repository")
            transaction_id = transaction
            transaction = await transactions_repo.get_transaction(transaction_id)
            if transaction is None:
                logger.warning("auto_assign_multiple_transaction_not_found", transaction_id=transaction_id)
                return MultipleAssignmentResult(
                    transaction_id=transaction_id,
                    outcome=AssignmentOutcome.TRANSACTION_NOT_FOUND,
                    warnings=[f"Transaction {transaction_id} not found"],
                )

        transaction_id = transaction.id
        existing = await store.list_attachments(transaction_id)
        if existing:
            logger.info(
                "auto_assign_multiple_already_attached",
                transaction_id=transaction_id,
                attachment_count=len(existing),
            )
            return MultipleAssignmentResult(
                transaction_id=transaction_id,
                outcome=AssignmentOutcome.ALREADY_ATTACHED,
                warnings=[
                    f"Transaction {transaction_id} already has {len(existing)} document(s) attached"
                ],
            )

        documents = list(await documents_repo.get_unconnected_documents())
        facts = [DocumentFacts.from_entity(doc) for doc in documents]
        by_identity = {id(f): doc for f, doc in zip(facts, documents)}
        detached = await asyncio.to_thread(
            self.find_multiple_document_matches, TransactionFacts.from_entity(transaction), facts, cfg
        )
        best = detached[0] if detached else None

        if best is None or best.composite_score < cfg.auto_assignment_threshold:
            logger.info(
                "auto_assign_multiple_no_suitable_combination",
                transaction_id=transaction_id,
                best_score=round(best.composite_score, 4) if best else 0.0,
            )
            return MultipleAssignmentResult(
                transaction_id=transaction_id,
                outcome=(
                    AssignmentOutcome.SKIPPED_NO_CANDIDATES
                    if best is None
                    else AssignmentOutcome.SKIPPED_BELOW_THRESHOLD
                ),
                warnings=[NO_COMBINATION_WARNING],
            )

        chosen = tuple(by_identity[id(d)] for d in best.documents)
        best = MultipleDocumentMatch(
            documents=chosen, score=best.score, strategy=best.strategy, total_amount=best.total_amount
        )

        validation = self.validate_amounts(transaction.gross_amount, chosen)
        warnings = list(validation.warnings)

        results = await asyncio.shield(
            store.attach_many(
                transaction_id,
                [doc.id for doc in chosen],
                is_automatic=True,
                attached_by=self.actor,
            )
        )

        attached_ids = []
        for result in results:
            if result.succeeded:
                attached_ids.append(result.document_id)
                warnings.extend(result.warnings)
            else:
                warnings.append(result.message or f"Document {result.document_id}: {result.status.value}")

        if len(attached_ids) < len(results):
            logger.warning(
                "auto_assign_multiple_partial",
                transaction_id=transaction_id,
                requested=len(results),
                attached=len(attached_ids),
            )

        logger.info(
            "auto_assign_multiple_completed",
            transaction_id=transaction_id,
            document_ids=attached_ids,
            total_amount=str(best.total_amount),
            score=round(best.composite_score, 4),
            strategy=best.strategy.value,
            warning_count=len(warnings),
        )
        return MultipleAssignmentResult(
            transaction_id=transaction_id,
            outcome=AssignmentOutcome.ASSIGNED if attached_ids else AssignmentOutcome.FAILED,
            documents_attached=len(attached_ids),
            total_amount=best.total_amount,
            warnings=warnings,
            attached_document_ids=attached_ids,
            best_match=best,
        )


def _has_attachments(transaction: Any) -> bool:
    return bool(getattr(transaction, "attachments", None))


def _identity(document: Any) -> Any:
    document_id = getattr(document, "id", None)
    return document_id if document_id is not None else id(document)
