"""
Rulebook ingestion pipeline.

Chunks extracted rulebook text, fans chunks out for embedding, manages the
Qdrant embeddings collection and aggregates pipeline status.
"""

__version__ = "0.1.0"
