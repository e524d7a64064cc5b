# =============================================================================
# Embedding Module
# =============================================================================
# This module generates vector embeddings for text using OpenAI's API.
# Embeddings are numerical representations that capture the meaning of text.

from openai import OpenAI

from grimoire.config import get_secrets


DEFAULT_BATCH_SIZE = 100


def create_embedder(config):
    """
    Create an OpenAI client for generating embeddings.

    Args:
        config: Configuration dictionary (not currently used, but kept for consistency)

    Returns:
        OpenAI: An initialized OpenAI client

    Raises:
        ValueError: If no OpenAI API key is configured
    """
    secrets = get_secrets()
    api_key = secrets.get('openai_api_key')

    if not api_key:
        raise ValueError(
            "OpenAI API key not found. Add it to configs/secrets.yaml "
            "or set OPENAI_API_KEY."
        )

    return OpenAI(api_key=api_key)


def get_embedding(text, embedder, model):
    """
    Generate an embedding vector for a single piece of text (e.g. a question).

    Returns:
        list: A list of floats representing the embedding vector
    """
    response = embedder.embeddings.create(
        input=text,
        model=model
    )
    return response.data[0].embedding


def get_embeddings(texts, embedder, model):
    """
    Generate embeddings for several texts in one API call.

    The API may return items out of order, so they are sorted by index.
    """
    response = embedder.embeddings.create(
        input=texts,
        model=model
    )
    return [item.embedding for item in sorted(response.data, key=lambda item: item.index)]


def embed_chunks(chunks, config, logger=None):
    """
    Generate embeddings for a list of chunks.

    Adds an 'embedding' field to each chunk. Batches are sent one after
    another so the chunk order is never disturbed.

    Args:
        chunks: List of chunk dictionaries (each must have a 'content' field)
        config: Configuration dictionary with embedding settings
        logger: Optional logger for tracking progress

    Returns:
        list: The same chunks, with an 'embedding' field added to each
    """
    model = config['embedding']['model']
    batch_size = config['embedding'].get('batch_size', DEFAULT_BATCH_SIZE)

    embedder = create_embedder(config)

    total = len(chunks)

    message = f"Generating embeddings for {total} chunks using {model}..."
    if logger:
        logger.info(message)
    else:
        print(message)

    for start in range(0, total, batch_size):
        batch = chunks[start:start + batch_size]
        vectors = get_embeddings([chunk['content'] for chunk in batch], embedder, model)

        for chunk, vector in zip(batch, vectors):
            chunk['embedding'] = vector

        message = f"  Embedded {start + len(batch)}/{total} chunks"
        if logger:
            logger.info(message)
        else:
            print(message)

    return chunks
