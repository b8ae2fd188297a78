"""Matching configuration.

Weights, tolerances and thresholds used by every matcher. The object is
immutable: build it once (optionally from the environment), validate it,
then pass it explicitly into each scoring call.

Environment Variables:
- TAXFILER_MATCHING_AMOUNT_WEIGHT: Weight of the amount factor (default: 0.40)
- TAXFILER_MATCHING_DATE_WEIGHT: Weight of the date factor (default: 0.25)
- TAXFILER_MATCHING_VENDOR_WEIGHT: Weight of the vendor factor (default: 0.25)
- TAXFILER_MATCHING_REFERENCE_WEIGHT: Weight of the reference factor (default: 0.10)
- TAXFILER_MATCHING_MINIMUM_MATCH_SCORE: Ranking cut-off (default: 0.3)
- TAXFILER_MATCHING_AUTO_ASSIGNMENT_THRESHOLD: Auto-attach cut-off (default: 0.5)
- TAXFILER_MATCHING_AMOUNT__HIGH_TOLERANCE: Nested settings use "__" (default: 0.05)
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from taxfiler.exceptions import ConfigurationError
from taxfiler.utils.logging import get_logger

logger = get_logger(__name__)


class AmountMatchingConfig(BaseModel):
    """Relative-difference tolerances for amount scoring."""

    model_config = ConfigDict(frozen=True)

    exact_tolerance: float = Field(default=0.01, description="Relative difference scoring 1.0")
    high_tolerance: float = Field(default=0.05, description="Relative difference scoring 0.8")
    medium_tolerance: float = Field(default=0.10, description="Relative difference scoring 0.5")


class DateMatchingConfig(BaseModel):
    """Day-distance thresholds for date scoring."""

    model_config = ConfigDict(frozen=True)

    exact_days: int = Field(default=0, description="Day distance scoring 1.0")
    high_days: int = Field(default=7, description="Day distance scoring 0.8")
    medium_days: int = Field(default=30, description="Day distance scoring 0.5")


class VendorMatchingConfig(BaseModel):
    """Fuzzy matching settings for vendor names."""

    model_config = ConfigDict(frozen=True)

    fuzzy_threshold: float = Field(
        default=0.8, description="Minimum Levenshtein similarity accepted as a vendor match"
    )


class MatchingConfiguration(BaseSettings):
    """Configuration of the document matching engine.

    Out-of-range values are not rejected at construction time. Call
    :meth:`validate_configuration` to get the list of violations, or
    :meth:`validate_or_raise` to turn them into a ``ConfigurationError``.

    Example:
        >>> config = MatchingConfiguration()
        >>> config.amount_weight
        0.4
        >>> config.with_overrides(minimum_match_score=0.5).minimum_match_score
        0.5
    """

    model_config = SettingsConfigDict(
        env_prefix="TAXFILER_MATCHING_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Factor weights
    amount_weight: float = Field(default=0.40, description="Weight of the amount score")
    date_weight: float = Field(default=0.25, description="Weight of the date score")
    vendor_weight: float = Field(default=0.25, description="Weight of the vendor score")
    reference_weight: float = Field(default=0.10, description="Weight of the reference score")
    weight_sum_min: float = Field(default=0.8, description="Lowest acceptable sum of weights")
    weight_sum_max: float = Field(default=1.2, description="Highest acceptable sum of weights")

    # Thresholds
    minimum_match_score: float = Field(
        default=0.3, description="Candidates below this composite score are discarded"
    )
    auto_assignment_threshold: float = Field(
        default=0.5, description="Composite score required to attach automatically"
    )
    bonus_threshold: float = Field(
        default=0.9, description="Any factor at or above this triggers the bonus multiplier"
    )
    bonus_multiplier: float = Field(
        default=1.1, description="Multiplier applied to the composite score on strong agreement"
    )

    # Multi-document matching
    multiple_reference_bonus: float = Field(
        default=0.2, description="Bonus added when every extracted voucher finds a document"
    )
    voucher_match_threshold: float = Field(
        default=0.7, description="Reference score at which a voucher counts as matched"
    )
    max_combination_candidates: int = Field(
        default=12, description="Documents considered when building amount combinations"
    )
    max_combination_size: int = Field(
        default=5, description="Largest number of documents in one combination"
    )
    max_combination_results: int = Field(
        default=10, description="Combinations returned by the combination search"
    )

    amount: AmountMatchingConfig = Field(default_factory=AmountMatchingConfig)
    date: DateMatchingConfig = Field(default_factory=DateMatchingConfig)
    vendor: VendorMatchingConfig = Field(default_factory=VendorMatchingConfig)

    @property
    def total_weight(self) -> float:
        return self.amount_weight + self.date_weight + self.vendor_weight + self.reference_weight

    def with_overrides(self, **changes: Any) -> "MatchingConfiguration":
        """Return a copy with the given top-level fields replaced."""
        return self.model_copy(update=changes)

    def validate_configuration(self) -> list[str]:
        """Check ranges and ordering of every setting.

        Returns:
            Human-readable violation messages, empty when the configuration is usable.
        """
        errors: list[str] = []

        for name in ("amount_weight", "date_weight", "vendor_weight", "reference_weight"):
            if getattr(self, name) < 0:
                errors.append(f"{name} must be non-negative")

        total = self.total_weight
        if total < self.weight_sum_min or total > self.weight_sum_max:
            errors.append(
                f"Total weight sum {total:.2f} must be between "
                f"{self.weight_sum_min:.2f} and {self.weight_sum_max:.2f}"
            )

        for name in (
            "minimum_match_score",
            "auto_assignment_threshold",
            "bonus_threshold",
            "voucher_match_threshold",
        ):
            if not 0.0 <= getattr(self, name) <= 1.0:
                errors.append(f"{name} must be between 0.0 and 1.0")

        if self.bonus_multiplier <= 0:
            errors.append("bonus_multiplier must be positive")
        if self.multiple_reference_bonus < 0:
            errors.append("multiple_reference_bonus must be non-negative")
        if self.max_combination_candidates < 2:
            errors.append("max_combination_candidates must be at least 2")
        if self.max_combination_size < 2:
            errors.append("max_combination_size must be at least 2")
        if self.max_combination_results < 1:
            errors.append("max_combination_results must be at least 1")

        amount = self.amount
        if amount.exact_tolerance <= 0:
            errors.append("exact_tolerance must be positive")
        if amount.exact_tolerance > amount.high_tolerance:
            errors.append("exact_tolerance should not exceed high_tolerance")
        if amount.high_tolerance > amount.medium_tolerance:
            errors.append("high_tolerance should not exceed medium_tolerance")

        date_cfg = self.date
        if date_cfg.exact_days < 0:
            errors.append("exact_days must be non-negative")
        if date_cfg.exact_days > date_cfg.high_days:
            errors.append("exact_days should not exceed high_days")
        if date_cfg.high_days > date_cfg.medium_days:
            errors.append("high_days should not exceed medium_days")

        if not 0.0 <= self.vendor.fuzzy_threshold <= 1.0:
            errors.append("fuzzy_threshold must be between 0.0 and 1.0")

        return errors

    @property
    def is_valid(self) -> bool:
        return not self.validate_configuration()

    def validate_or_raise(self) -> "MatchingConfiguration":
        """Raise ConfigurationError listing every violation, else return self."""
        errors = self.validate_configuration()
        if errors:
            logger.warning("matching_config_invalid", violations=errors)
            raise ConfigurationError(
                "Invalid matching configuration: " + "; ".join(errors),
                violations=errors,
            )
        return self


def get_matching_config() -> MatchingConfiguration:
    """Build the configuration from defaults, ``.env`` and environment variables."""
    return MatchingConfiguration()
