"""
Core Data Models for Biashara Ledger

These models define the strict schemas for all data flowing through the
capture pipeline. They are designed to:
1. Enforce type safety at runtime
2. Double as the contract with the language model (same fields, same bounds)
3. Be serializable for storage and logging
4. Support the audit trail

DESIGN DECISION: Nothing loosely typed crosses the Extraction Engine.
The model's JSON is validated into TransactionExtraction or
ReceiptExtraction before anything downstream sees it.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money."""
    INCOME = "income"
    EXPENSE = "expense"


class SchemaKind(str, Enum):
    """Which extraction schema a call targets."""
    TRANSACTION = "transaction"
    RECEIPT = "receipt"


class TransactionSource(str, Enum):
    """How the transaction was captured."""
    MANUAL = "manual"
    VOICE = "voice"
    TEXT = "text"
    PHOTO = "photo"


class GateDecision(str, Enum):
    """
    Confidence gate outcome.

    REJECTED is a normal result, not an error: the caller falls back
    to manual entry.
    """
    ACCEPTED = "accepted"
    NEEDS_REVIEW = "needs_review"
    REJECTED = "rejected"


class OutcomeStatus(str, Enum):
    """Status of one capture attempt after the whole pipeline ran."""
    ACCEPTED = "accepted"
    NEEDS_REVIEW = "needs_review"
    REJECTED = "rejected"
    FAILED = "failed"


DEFAULT_CATEGORIES: dict[TransactionType, list[str]] = {
    TransactionType.INCOME: [
        "Sales", "Services", "Consulting", "Rental", "Investment", "Other Income",
    ],
    TransactionType.EXPENSE: [
        "Inventory", "Transport", "Office Supplies", "Marketing", "Utilities",
        "Food & Beverages", "Equipment", "Other Expenses",
    ],
}

FALLBACK_CATEGORY: dict[TransactionType, str] = {
    TransactionType.INCOME: "Other Income",
    TransactionType.EXPENSE: "Other Expenses",
}


# =============================================================================
# EXTRACTION SCHEMAS - the contract with the language model
# =============================================================================

class TransactionItem(BaseModel):
    """A line item mentioned in a spoken or typed transaction."""
    model_config = ConfigDict(str_strip_whitespace=True, allow_inf_nan=False)

    name: str = Field(..., min_length=1, max_length=200)
    quantity: float = Field(..., gt=0)
    price: float = Field(..., ge=0)


class ReceiptItem(BaseModel):
    """A line item printed on a receipt."""
    model_config = ConfigDict(str_strip_whitespace=True, allow_inf_nan=False)

    name: str = Field(..., min_length=1, max_length=200)
    quantity: float = Field(default=1, ge=1)
    price: float = Field(..., ge=0)


class TransactionExtraction(BaseModel):
    """
    Transaction details extracted from a voice or text description.

    CRITICAL: This is PROPOSED data. The confidence gate decides
    whether it can be used without human confirmation.
    """
    model_config = ConfigDict(str_strip_whitespace=True, allow_inf_nan=False)

    type: TransactionType = Field(
        ...,
        description="Whether this is money coming in (income) or going out (expense)"
    )
    amount: float = Field(
        ...,
        ge=0,
        description="The monetary amount of the transaction"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="A clear description of the transaction"
    )
    category: Optional[str] = Field(
        default=None,
        description="The category this transaction belongs to (e.g., Sales, Transport, Food)"
    )
    vendor: Optional[str] = Field(
        default=None,
        description="The person, business, or entity involved in the transaction"
    )
    customer: Optional[str] = Field(
        default=None,
        description="The customer name if this is a sale"
    )
    items: Optional[list[TransactionItem]] = Field(
        default=None,
        description="Individual items if mentioned in the transaction"
    )
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Confidence level of the extraction (0-1)"
    )
    notes: Optional[str] = Field(
        default=None,
        description="Any additional notes or context"
    )


class ReceiptExtraction(BaseModel):
    """Receipt details extracted from OCR text."""
    model_config = ConfigDict(str_strip_whitespace=True, allow_inf_nan=False)

    vendor: str = Field(
        ...,
        description="The business or vendor name from the receipt"
    )
    date: Optional[str] = Field(
        default=None,
        description="The date of the transaction (YYYY-MM-DD format)"
    )
    total: float = Field(
        ...,
        ge=0,
        description="The total amount on the receipt"
    )
    items: list[ReceiptItem] = Field(
        default_factory=list,
        description="Individual items from the receipt"
    )
    category: str = Field(
        ...,
        description="Suggested category for this type of purchase"
    )
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Confidence level of the OCR extraction"
    )
    currency: Optional[str] = Field(
        default=None,
        description="Currency if detected"
    )


ExtractionData = Union[TransactionExtraction, ReceiptExtraction]

SCHEMA_MODELS: dict[SchemaKind, type[BaseModel]] = {
    SchemaKind.TRANSACTION: TransactionExtraction,
    SchemaKind.RECEIPT: ReceiptExtraction,
}


class ExtractionResult(BaseModel):
    """
    A validated extraction together with where it came from.

    `locale` is the caller's literal tag (kept for display);
    `instruction_locale` is the prompt language actually used.
    """

    extraction_id: UUID = Field(default_factory=uuid4)
    extracted_at: datetime = Field(default_factory=datetime.utcnow)
    schema_kind: SchemaKind
    locale: str
    instruction_locale: str
    data: ExtractionData
    model_name: str = ""
    source_text: Optional[str] = Field(
        default=None,
        description="Text the extraction was made from, for debugging"
    )

    @property
    def confidence(self) -> float:
        return self.data.confidence


# =============================================================================
# CANONICAL TRANSACTION
# =============================================================================

class Category(BaseModel):
    """A transaction category as stored for a user (or a default one)."""

    name: str = Field(..., min_length=1)
    type: str = Field(..., pattern="^(income|expense|both)$")

    def applies_to(self, transaction_type: TransactionType) -> bool:
        return self.type in (transaction_type.value, "both")


class SourceContext(BaseModel):
    """
    Everything the normalizer needs besides the extraction.

    Supplying `captured_at` explicitly keeps normalization deterministic.
    """
    model_config = ConfigDict(frozen=True)

    captured_at: datetime
    source: TransactionSource = TransactionSource.TEXT
    receipt_url: Optional[str] = None
    categories: tuple[Category, ...] = ()
    suggested_category: Optional[str] = None


class CanonicalTransaction(BaseModel):
    """
    The single record shape handed to persistence and display.

    Constructed once, never mutated afterwards.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, allow_inf_nan=False)

    type: TransactionType
    amount: float = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=500)
    category: str = Field(..., min_length=1)
    vendor: Optional[str] = None
    customer: Optional[str] = None
    date: date
    items: Optional[tuple[TransactionItem, ...]] = None
    receipt_url: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    currency: Optional[str] = None
    source: TransactionSource = TransactionSource.MANUAL
    extraction_id: Optional[UUID] = None

    @field_validator('items', mode='before')
    @classmethod
    def items_as_tuple(cls, v):
        """Items are stored as a tuple so the record stays immutable."""
        if v is None:
            return v
        if len(v) == 0:
            return None
        return tuple(v)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """Semantic checks on an extraction that already passed the schema."""

    extraction_id: UUID
    validated_at: datetime = Field(default_factory=datetime.utcnow)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# PIPELINE OUTCOME
# =============================================================================

class CaptureOutcome(BaseModel):
    """
    What one capture attempt produced.

    A failed or rejected attempt never carries a transaction.
    """

    outcome_id: UUID = Field(default_factory=uuid4)
    correlation_id: Optional[UUID] = None
    status: OutcomeStatus
    decision: Optional[GateDecision] = None
    extraction: Optional[ExtractionResult] = None
    transaction: Optional[CanonicalTransaction] = None
    context: Optional[SourceContext] = None
    validation: Optional[ValidationResult] = None
    failure_category: Optional[str] = None
    message: str = ""
    source_index: Optional[int] = None
    saved: bool = False
    transaction_id: Optional[str] = None

    @property
    def requires_confirmation(self) -> bool:
        return self.status == OutcomeStatus.NEEDS_REVIEW

    @property
    def manual_entry_available(self) -> bool:
        return True
