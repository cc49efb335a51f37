"""FastAPI application for the document structuring API.

Provides REST endpoints for structuring OCR text, batch processing,
document type listing, optional text revision and health checks.
"""

import time
import uuid
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from docstruct import __version__
from docstruct.extraction.classifier import COMMERCIAL_TYPES, DocumentType
from docstruct.parser import DocumentParser, summarize
from docstruct.refine import Reviser, refine
from docstruct.utils.config import load_config
from docstruct.utils.logger import get_logger

from .schemas import (
    BatchItemResponse,
    BatchParseRequest,
    BatchParseResponse,
    DocumentTypeInfo,
    DocumentTypesResponse,
    HealthResponse,
    ParseRequest,
    ParseResponse,
    RefineRequest,
    RefineResponse,
    SectionResponse,
)

logger = get_logger(__name__)

app = FastAPI(
    title="Document Structuring API",
    description="Turn Thai/English OCR text into typed fields, sections and line items",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_COMMERCIAL_FIELDS = [
    "doc_no",
    "date",
    "due_date",
    "seller",
    "buyer",
    "subtotal",
    "vat",
    "discount",
    "total",
    "email",
    "phone",
    "line_items",
]
_SUPPORTED_FIELDS: dict[DocumentType, list[str]] = {
    DocumentType.THAI_MEMO: [
        "agency",
        "ref_no",
        "date",
        "subject",
        "recipient",
        "reference",
        "attachments",
        "signer_name",
        "signer_position",
    ],
    DocumentType.BUSINESS_LETTER: [
        "date",
        "subject",
        "recipient",
        "sender",
        "email",
        "phone",
    ],
    DocumentType.RESUME: ["name", "title", "email", "phone"],
    DocumentType.GENERIC: ["date", "email", "phone"],
}


def get_parser() -> DocumentParser:
    """Build the parser from the current configuration."""
    return DocumentParser(load_config())


def get_reviser() -> Reviser | None:
    """Return the configured reviser. None ships with the engine."""
    return None


def _parse(parser: DocumentParser, request: ParseRequest) -> ParseResponse:
    start_time = time.time()
    result = parser.parse(request.text, request.lang.value)
    data = result.to_dict()
    return ParseResponse.model_validate(
        {
            "success": True,
            "document_id": str(uuid.uuid4()),
            "doc_type": result.fields.doc_type.value,
            "text": data["text"],
            "fields": data["fields"],
            "sections": data["sections"],
            "line_items": data["line_items"],
            "validation": data["validation"],
            "summary": summarize(result),
            "processing_time_ms": (time.time() - start_time) * 1000,
        }
    )


@app.get("/health", response_model=HealthResponse)
async def health_check(
    reviser: Annotated[Reviser | None, Depends(get_reviser)],
) -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        reviser_configured=reviser is not None,
    )


@app.post("/parse", response_model=ParseResponse)
async def parse_text(
    request: ParseRequest,
    parser: Annotated[DocumentParser, Depends(get_parser)],
) -> ParseResponse:
    """Structure one OCR transcription.

    Args:
        request: The text and its language hint.
        parser: Configured document parser.

    Returns:
        Fields, sections, line items and the validation report.
    """
    try:
        return _parse(parser, request)
    except Exception as exc:
        logger.error("Parsing failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@app.post("/parse/batch", response_model=BatchParseResponse)
async def parse_batch(
    request: BatchParseRequest,
    parser: Annotated[DocumentParser, Depends(get_parser)],
) -> BatchParseResponse:
    """Structure several transcriptions.

    Args:
        request: The documents to structure.
        parser: Configured document parser.

    Returns:
        Batch results with per-document outcomes.
    """
    results: list[BatchItemResponse] = []
    successful = 0

    for index, document in enumerate(request.documents):
        try:
            results.append(BatchItemResponse(index=index, result=_parse(parser, document)))
            successful += 1
        except Exception as exc:
            logger.error("Batch document %d failed: %s", index, exc)
            results.append(BatchItemResponse(index=index, error=str(exc)))

    return BatchParseResponse(
        success=successful > 0,
        total_documents=len(request.documents),
        successful=successful,
        failed=len(request.documents) - successful,
        results=results,
    )


@app.get("/document-types", response_model=DocumentTypesResponse)
async def list_document_types() -> DocumentTypesResponse:
    """List recognized document types and the fields extracted for each."""
    return DocumentTypesResponse(
        document_types=[
            DocumentTypeInfo(
                name=doc_type.value,
                commercial=doc_type in COMMERCIAL_TYPES,
                supported_fields=(
                    _COMMERCIAL_FIELDS
                    if doc_type in COMMERCIAL_TYPES
                    else _SUPPORTED_FIELDS[doc_type]
                ),
            )
            for doc_type in DocumentType
        ]
    )


@app.post("/refine", response_model=RefineResponse)
async def refine_text(
    request: RefineRequest,
    parser: Annotated[DocumentParser, Depends(get_parser)],
    reviser: Annotated[Reviser | None, Depends(get_reviser)],
) -> RefineResponse:
    """Revise OCR text with the configured reviser or the heuristic fallback."""
    if not request.text.strip():
        raise HTTPException(status_code=400, detail="text must not be empty")
    document = refine(request.text, reviser=reviser, parser=parser)
    return RefineResponse(
        success=True,
        source=document.source,
        clean_text=document.clean_text,
        sections=[
            SectionResponse(heading=s.heading, content=s.content)
            for s in document.sections
        ],
        name=document.name,
        title=document.title,
    )
