"""Sequential document numbering for invoices and lorry receipts."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

from lorrybook.core.db import MongoModel
from lorrybook.utils import now


class DocumentType(StrEnum):
    """Business documents that carry a sequential number."""

    INVOICE = "invoice"
    CONSIGNMENT = "consignment"  # Lorry receipt


class NumberingConfig(MongoModel):
    """Numbering state for one document type.

    Indexed on type - unique. current_number is the next value to hand out.
    """

    type: DocumentType
    starting_number: int = Field(..., ge=1)
    current_number: int = Field(..., ge=1)
    prefix: str = ""
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)

    @model_validator(mode="after")
    def check_current_not_below_start(self) -> "NumberingConfig":
        if self.current_number < self.starting_number:
            raise ValueError("current_number cannot be below starting_number")
        return self


class NumberingValidationResult(BaseModel):
    """Outcome of checking a manually entered document number."""

    valid: bool
    message: str | None = None


# (starting_number, prefix) used when no configuration has been stored yet
DEFAULT_NUMBERING: dict[DocumentType, tuple[int, str]] = {
    DocumentType.INVOICE: (1001, "INV"),
    DocumentType.CONSIGNMENT: (5001, "LR"),
}

# Where issued numbers live: (collection, number field)
DOCUMENT_NUMBER_FIELDS: dict[DocumentType, tuple[str, str]] = {
    DocumentType.INVOICE: ("invoices", "invoice_number"),
    DocumentType.CONSIGNMENT: ("lorry_receipts", "lr_number"),
}


def default_config(document_type: DocumentType) -> NumberingConfig:
    """Build the bootstrap configuration for a document type."""
    starting_number, prefix = DEFAULT_NUMBERING[document_type]
    return NumberingConfig(
        type=document_type,
        starting_number=starting_number,
        current_number=starting_number,
        prefix=prefix,
    )


def format_document_number(prefix: str, number: int) -> str:
    """Concatenate prefix and number; no padding."""
    if prefix:
        return f"{prefix}{number}"
    return str(number)
