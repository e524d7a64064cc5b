# =============================================================================
# Grimoire Oracle - Source Package
# =============================================================================
# This package contains all modules for the rules RAG pipeline:
#   - config.py      : Configuration loading and merging
#   - errors.py      : Pipeline error types
#   - loader.py      : Read the markdown vault into raw documents
#   - chunking.py    : Split documents and merge undersized chunks
#   - enrichment.py  : Derive titles from source paths and prepend them
#   - embedding.py   : Generate embeddings using OpenAI
#   - indexing.py    : Content-hash chunks and upsert them into Qdrant
#   - retrieval.py   : Search the vector store
#   - response.py    : Answer questions from retrieved chunks
#   - run_tracker.py : Track runs in ./runs folder
