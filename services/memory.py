"""
Semantic Memory — Prompts stored by embedding, recalled by similarity.

Backs the /api/ai/ask and /api/ai/save endpoints and supplies optional
context lines for the arbiter's move prompt.
"""

import logging
from typing import List, Optional

from arbiter.deadline import Deadline
from arbiter.errors import SchemaError, ServiceError
from services.clients import EmbeddingClient, GenerationClient
from services.schemas import MemoryDocument
from services.storage import VectorStore

logger = logging.getLogger(__name__)


class SemanticMemory:

    def __init__(self, embedder: EmbeddingClient, store: VectorStore,
                 collection: str, top_k: int = 5,
                 store_timeout: Optional[float] = None):
        self.embedder = embedder
        self.store = store
        self.collection = collection
        self.top_k = top_k
        self.store_timeout = store_timeout

    async def recall(self, text: str,
                     timeout: Optional[float] = None) -> List[MemoryDocument]:
        """The top-k stored prompts most similar to ``text``."""
        deadline = Deadline(timeout)
        vector = await self.embedder.aembed(text, timeout=deadline.timeout())
        hits = await self.store.asearch(self.collection, vector, self.top_k,
                                        timeout=deadline.timeout(self.store_timeout))
        docs = []
        for payload, _score in hits:
            try:
                docs.append(MemoryDocument.from_dict(payload))
            except SchemaError as e:
                logger.warning(f"Skipping malformed memory document: {e}")
        return docs

    async def context(self, text: str,
                      timeout: Optional[float] = None) -> List[str]:
        return [doc.prompt for doc in await self.recall(text, timeout)]

    async def save(self, prompt: str,
                   timeout: Optional[float] = None) -> MemoryDocument:
        deadline = Deadline(timeout)
        vector = await self.embedder.aembed(prompt, timeout=deadline.timeout())
        doc = MemoryDocument(prompt=prompt)
        await self.store.aupsert(self.collection, doc.id, doc.to_dict(), vector,
                                 timeout=deadline.timeout(self.store_timeout))
        return doc

    async def ask(self, prompt: str, generator: GenerationClient,
                  timeout: Optional[float] = None) -> str:
        """Answer ``prompt`` with similar past prompts prepended as context."""
        deadline = Deadline(timeout)
        try:
            context = await self.context(prompt, timeout=deadline.timeout())
        except ServiceError as e:
            logger.warning(f"Memory search failed, asking without context: {e}")
            context = []
        final_prompt = "\n".join(context + [prompt])
        return await generator.acomplete(final_prompt, timeout=deadline.timeout())
