"""Public interface definitions for all external collaborators.

Every external service the ingestion core touches is accessed exclusively
through the abstract base classes defined in this package.  Concrete adapters
implement these interfaces and are injected at runtime, so swapping the
storage backend or the embedding vendor changes one constructor call, and
tests can inject fakes without network access.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementations (in ingestflow/providers/)
    ─────────────────────────────────────────────────────────────────────
    IEmbeddingProvider         →  OpenAIEmbeddingProvider
    ITranscriptionProvider     →  WhisperAPIProvider
    IBlobStore                 →  LocalBlobStore, SupabaseBlobStore
    IDocumentStore             →  SQLiteDocumentStore
    IStepStore                 →  SQLiteStepStore, MemoryStepStore
"""

from ingestflow.interfaces.blob_store import IBlobStore
from ingestflow.interfaces.document_store import IDocumentStore
from ingestflow.interfaces.embedding_provider import IEmbeddingProvider
from ingestflow.interfaces.step_store import IStepStore
from ingestflow.interfaces.transcription_provider import (
    ITranscriptionProvider,
    TranscriptionResult,
)

__all__ = [
    "IBlobStore",
    "IDocumentStore",
    "IEmbeddingProvider",
    "IStepStore",
    "ITranscriptionProvider",
    "TranscriptionResult",
]
