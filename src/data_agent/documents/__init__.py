"""Generated documents: detection, extraction and persistence."""

from data_agent.documents.detection import (
    DocumentParts,
    DocumentStart,
    contains_document,
    detect_document_start,
    extract_document,
    extract_document_parts,
    starts_with_marker,
)
from data_agent.documents.ids import DOCUMENT_ID_LENGTH, generate_document_id
from data_agent.documents.models import (
    Base,
    DocumentInfo,
    DocumentRecord,
    SharedDocumentModel,
)
from data_agent.documents.store import DocumentStore, DocumentStoreError

__all__ = [
    "DOCUMENT_ID_LENGTH",
    "Base",
    "DocumentInfo",
    "DocumentParts",
    "DocumentRecord",
    "DocumentStart",
    "DocumentStore",
    "DocumentStoreError",
    "SharedDocumentModel",
    "contains_document",
    "detect_document_start",
    "extract_document",
    "extract_document_parts",
    "generate_document_id",
    "starts_with_marker",
]
