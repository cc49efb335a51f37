"""Pydantic request/response schemas for the FastAPI endpoints."""

from enum import StrEnum

from pydantic import BaseModel, Field


class LanguageHint(StrEnum):
    """Preferred label language for field extraction."""

    AUTO = "auto"
    THA = "tha"
    ENG = "eng"


class ParseRequest(BaseModel):
    """Request schema for structuring one OCR transcription."""

    text: str
    lang: LanguageHint = LanguageHint.AUTO


class BatchParseRequest(BaseModel):
    """Request schema for structuring several transcriptions."""

    documents: list[ParseRequest] = Field(min_length=1)


class MoneyFieldResponse(BaseModel):
    """A money field with its raw token and parsed value."""

    raw: str | None = None
    value: float | None = None
    text: str | None = None
    derived: bool = False


class FieldsResponse(BaseModel):
    """Extracted fields of a document."""

    doc_type: str
    doc_no: str | None = None
    date: str | None = None
    due_date: str | None = None
    seller: str | None = None
    buyer: str | None = None
    subtotal: MoneyFieldResponse | None = None
    vat: MoneyFieldResponse | None = None
    discount: MoneyFieldResponse | None = None
    total: MoneyFieldResponse | None = None
    email: str | None = None
    phone: str | None = None
    name: str | None = None
    title: str | None = None
    subject: str | None = None
    recipient: str | None = None
    sender: str | None = None
    agency: str | None = None
    ref_no: str | None = None
    reference: str | None = None
    attachments: list[str] = Field(default_factory=list)
    signer_name: str | None = None
    signer_position: str | None = None


class LineItemResponse(BaseModel):
    """Response schema for one item table row."""

    description: str
    qty: float | None = None
    unit_price: float | None = None
    amount: float | None = None


class SectionResponse(BaseModel):
    """Response schema for a document section."""

    heading: str
    content: list[str]


class ValidationResponse(BaseModel):
    """Response schema for the totals reconciliation report."""

    warnings: list[str]
    fixes: list[str]
    confidence: float
    computed: dict[str, float | None]


class ParseResponse(BaseModel):
    """Response schema for a structuring request."""

    success: bool
    document_id: str
    doc_type: str
    text: str
    fields: FieldsResponse
    sections: list[SectionResponse]
    line_items: list[LineItemResponse]
    validation: ValidationResponse | None = None
    summary: str
    processing_time_ms: float


class BatchItemResponse(BaseModel):
    """Response schema for a single item in a batch request."""

    index: int
    result: ParseResponse | None = None
    error: str | None = None


class BatchParseResponse(BaseModel):
    """Response schema for batch structuring of multiple documents."""

    success: bool
    total_documents: int
    successful: int
    failed: int
    results: list[BatchItemResponse]


class DocumentTypeInfo(BaseModel):
    """Information about a recognized document type."""

    name: str
    commercial: bool
    supported_fields: list[str]


class DocumentTypesResponse(BaseModel):
    """Response schema listing recognized document types."""

    document_types: list[DocumentTypeInfo]


class RefineRequest(BaseModel):
    """Request schema for text revision."""

    text: str


class RefineResponse(BaseModel):
    """Response schema for text revision."""

    success: bool
    source: str
    clean_text: str
    sections: list[SectionResponse]
    name: str | None = None
    title: str | None = None


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    reviser_configured: bool
