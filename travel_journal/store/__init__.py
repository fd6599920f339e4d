from .document_store import Collection, DocumentStore

__all__ = ["Collection", "DocumentStore"]
