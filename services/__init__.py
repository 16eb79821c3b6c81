"""
Service layer around the arbiter core.

- Configuration (dataclasses, environment overrides, JSON files)
- Clients for the text-generation and embedding services
- Vector store backends (in-process and Qdrant) with per-collection schemas
- Semantic memory and bearer-token authentication
"""

from .config import ServiceConfig
from .storage import VectorStore, LocalVectorStore, QdrantVectorStore, StoreResult
from .clients import GenerationClient, EmbeddingClient
from .memory import SemanticMemory

__all__ = [
    'ServiceConfig',
    'VectorStore',
    'LocalVectorStore',
    'QdrantVectorStore',
    'StoreResult',
    'GenerationClient',
    'EmbeddingClient',
    'SemanticMemory',
]
