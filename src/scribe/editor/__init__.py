"""Editor-side document model."""

from .document_model import DocumentMetadata, DocumentState

__all__ = ["DocumentMetadata", "DocumentState"]
