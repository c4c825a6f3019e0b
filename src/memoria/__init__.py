"""
Memoria - durable, queryable memory for AI agents.

Package structure:
- core: Config, errors, logging, common types
- memory: The four stores and the MemoryEngine facade
- index: Approximate nearest-neighbour index (HNSW)
- embedding: Text embedding providers
- tools: Engine operations exposed as tools
"""

__version__ = "0.1.0"
