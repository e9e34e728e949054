"""Career knowledge base: resume graph building, enrichment, and tailored resume synthesis.

The package keeps a single operator's career history in three overlapping stores:
- Relational tables (SQLAlchemy) for the structured entities
- A property-graph overlay (node/edge tables) keyed to the same entity IDs
- A semantic vector index (ChromaDB + OpenAI embeddings) for similarity search
"""

__version__ = "0.3.0"
