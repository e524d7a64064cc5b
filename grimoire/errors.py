# =============================================================================
# Pipeline Errors
# =============================================================================
# Every stage raises one of these so main.py can report which stage failed.


class GrimoireError(Exception):
    """Base class for all pipeline errors."""


class LoadError(GrimoireError):
    """The vault directory is missing or a document cannot be read."""


class EmptyResultError(GrimoireError):
    """Chunk preparation produced nothing to index."""


class WriteError(GrimoireError):
    """Embedding or vector store write failed."""


class SearchError(GrimoireError):
    """Embedding the question or querying the vector store failed."""


class ResponseError(GrimoireError):
    """The chat model call failed."""
