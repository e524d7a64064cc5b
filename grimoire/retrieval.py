# =============================================================================
# Retrieval Module
# =============================================================================
# This module searches the Qdrant vector store for the rules chunks that are
# closest to a question.

from grimoire.embedding import create_embedder, get_embedding
from grimoire.errors import GrimoireError, SearchError
from grimoire.indexing import create_qdrant_client


DEFAULT_TOP_K = 5


def search_qdrant(query_embedding, client, collection_name, limit):
    """
    Search the Qdrant collection with a query embedding.

    Returns:
        list: Scored points, best match first
    """
    results = client.query_points(
        collection_name=collection_name,
        query=query_embedding,
        limit=limit,
        with_payload=True,
    )

    return results.points


def format_hit(hit):
    """Turn a scored Qdrant point into a plain result dictionary."""
    payload = hit.payload or {}
    return {
        'title': payload.get('title', 'Unknown'),
        'source': payload.get('source', 'N/A'),
        'content': payload.get('content', ''),
        'score': hit.score,
        'content_hash': payload.get('content_hash'),
        'point_id': hit.id,
    }


def search(question, config, logger=None):
    """
    Find the chunks most relevant to a question.

    Args:
        question: The user's question
        config: Configuration dictionary
        logger: Optional logger for tracking progress

    Returns:
        list: Result dictionaries with title, source, content, score,
              content_hash and point_id, highest score first

    Raises:
        GrimoireError: If the collection has not been built yet
        SearchError: If embedding the question or the query fails
    """
    collection_name = config['indexing']['collection_name']
    top_k = config.get('retrieval', {}).get('top_k', DEFAULT_TOP_K)
    model = config['embedding']['model']

    message = f"Searching for: '{question}'"
    if logger:
        logger.info(message)
    else:
        print(f"\n{'=' * 70}")
        print(f"Question: '{question}'")
        print('=' * 70)

    embedder = create_embedder(config)
    try:
        query_embedding = get_embedding(question, embedder, model)
    except Exception as e:
        raise SearchError(f"Embedding the question failed: {e}") from e

    client = None
    try:
        client = create_qdrant_client(config)
        if not client.collection_exists(collection_name):
            raise GrimoireError(
                f"Collection '{collection_name}' does not exist. Run 'python main.py ingest' first."
            )
        hits = search_qdrant(query_embedding, client, collection_name, top_k)
    except GrimoireError:
        raise
    except Exception as e:
        raise SearchError(f"Querying collection '{collection_name}' failed: {e}") from e
    finally:
        if client is not None:
            client.close()

    results = [format_hit(hit) for hit in hits]

    if logger:
        logger.info(f"Found {len(results)} results")
    else:
        print(f"\nTop {len(results)} results:")
        for i, result in enumerate(results, 1):
            print(f"\n{i}. {result['title']} (score: {result['score']:.4f})")
            print(f"   Source: {result['source']}")
            print(f"   Content:\n   {result['content'][:200]}...")

    return results
