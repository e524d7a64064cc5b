# =============================================================================
# Indexing Module
# =============================================================================
# This module writes the prepared chunks into the Qdrant vector store.
#
# Every chunk is keyed by a SHA-256 hash of its final content and source.
# Re-running the ingestion only embeds and uploads chunks whose hash is not
# stored yet, so an unchanged vault never produces duplicate points.

import hashlib
import uuid

from qdrant_client import QdrantClient, models

from grimoire.chunking import get_all_chunks, get_root_marker
from grimoire.config import resolve_path
from grimoire.embedding import embed_chunks
from grimoire.enrichment import VAULT_MARKER, extract_title_from_path
from grimoire.errors import EmptyResultError, GrimoireError, WriteError


SCROLL_BATCH_SIZE = 256


def compute_content_hash(content, source):
    """
    Compute the stable hash that identifies a chunk in the store.

    Args:
        content: The final (enriched) chunk text
        source: The chunk's source path

    Returns:
        str: 64-character hex SHA-256 digest
    """
    digest = hashlib.sha256()
    digest.update(content.encode('utf-8'))
    digest.update(b'\x00')
    digest.update(source.encode('utf-8'))
    return digest.hexdigest()


def content_hash_to_point_id(content_hash):
    """
    Turn a content hash into a Qdrant point ID.

    Qdrant only accepts integers or UUIDs, so the first 128 bits of the
    digest are formatted as a UUID.
    """
    return str(uuid.UUID(hex=content_hash[:32]))


def attach_content_hashes(chunks, logger=None):
    """
    Add a 'content_hash' to each chunk's metadata.

    Chunks with identical content and source would map to the same point,
    so only the first of them is kept.

    Args:
        chunks: List of enriched chunk dictionaries
        logger: Optional logger for tracking progress

    Returns:
        list: New chunk dictionaries, in the original order
    """
    hashed = []
    seen = set()

    for chunk in chunks:
        content_hash = compute_content_hash(chunk['content'], chunk['metadata']['source'])
        if content_hash in seen:
            continue
        seen.add(content_hash)

        hashed.append({
            **chunk,
            'metadata': {**chunk['metadata'], 'content_hash': content_hash},
        })

    duplicates = len(chunks) - len(hashed)
    if duplicates:
        message = f"Dropped {duplicates} duplicate chunks"
        if logger:
            logger.warning(message)
        else:
            print(f"Warning: {message}")

    return hashed


def create_qdrant_client(config):
    """
    Create a Qdrant client.

    Connects to a server when 'indexing.url' is set, otherwise opens the
    local on-disk storage folder.
    """
    url = config['indexing'].get('url')
    if url:
        return QdrantClient(url=url)

    storage_path = resolve_path(config['paths']['qdrant_storage'])
    storage_path.mkdir(parents=True, exist_ok=True)

    return QdrantClient(path=str(storage_path))


def get_existing_hashes(client, collection_name):
    """
    Read the content hashes of all points already in the collection.

    Returns:
        dict: content_hash -> point ID
    """
    existing = {}
    offset = None

    while True:
        points, next_offset = client.scroll(
            collection_name=collection_name,
            limit=SCROLL_BATCH_SIZE,
            with_payload=['content_hash'],
            with_vectors=False,
            offset=offset,
        )

        for point in points:
            content_hash = (point.payload or {}).get('content_hash')
            if content_hash:
                existing[content_hash] = point.id

        if next_offset is None:
            break

        offset = next_offset

    return existing


def create_collection(client, collection_name, vector_size):
    """Create a cosine-distance collection for vectors of the given size."""
    client.create_collection(
        collection_name=collection_name,
        vectors_config=models.VectorParams(
            size=vector_size,
            distance=models.Distance.COSINE,
        ),
    )


def build_point(chunk, root_marker=VAULT_MARKER):
    """
    Convert an embedded chunk into a Qdrant point.

    The payload keeps the text, its source, its hash and the display title
    used by the search command.
    """
    metadata = chunk['metadata']
    content_hash = metadata['content_hash']

    return models.PointStruct(
        id=content_hash_to_point_id(content_hash),
        vector=chunk['embedding'],
        payload={
            'content': chunk['content'],
            'source': metadata['source'],
            'content_hash': content_hash,
            'title': extract_title_from_path(metadata['source'], root_marker),
        },
    )


def upload_chunks(client, collection_name, chunks_with_embeddings, logger=None,
                  root_marker=VAULT_MARKER):
    """
    Upsert embedded chunks into the collection.

    Returns:
        int: Number of points uploaded
    """
    points = [build_point(chunk, root_marker) for chunk in chunks_with_embeddings]

    client.upload_points(
        collection_name=collection_name,
        points=points,
        wait=True,
    )

    message = f"Uploaded {len(points)} chunks to collection '{collection_name}'"
    if logger:
        logger.info(message)
    else:
        print(message)

    return len(points)


def remove_points(client, collection_name, point_ids, logger=None):
    """Delete points by ID, e.g. chunks whose text no longer exists in the vault."""
    client.delete(
        collection_name=collection_name,
        points_selector=models.PointIdsList(points=list(point_ids)),
        wait=True,
    )

    message = f"Removed {len(point_ids)} stale chunks from '{collection_name}'"
    if logger:
        logger.info(message)
    else:
        print(message)


def index_all(config, logger=None, delete=False):
    """
    Run the full ingestion pipeline: load -> chunk -> enrich -> embed -> upload.

    Nothing in the store is touched until there is at least one chunk to
    write, so an empty or broken vault can never wipe a populated index.

    Args:
        config: Configuration dictionary
        logger: Optional logger for tracking progress
        delete: Rebuild the collection; the old one is dropped only after embedding succeeds

    Returns:
        dict: Summary of the indexing operation containing:
            - chunks: All prepared chunks (new ones carry an 'embedding')
            - collection_name: Name of the Qdrant collection
            - count: Number of chunks in the vault
            - new_count: Number of chunks embedded and uploaded in this run
            - removed_count: Number of stale points deleted

    Raises:
        EmptyResultError: If the vault produced no chunks
        WriteError: If embedding or a store operation fails
    """
    collection_name = config['indexing']['collection_name']
    prune_stale = config['indexing'].get('prune_stale', True)

    message = "Step 1: Loading, chunking and enriching the vault..."
    if logger:
        logger.info(message)
    else:
        print(message)

    chunks = attach_content_hashes(get_all_chunks(config, logger), logger)

    if not chunks:
        message = "No chunks to index - aborting before touching the vector store."
        if logger:
            logger.error(message)
        else:
            print(f"Error: {message}")
        raise EmptyResultError(message)

    message = "Step 2: Checking existing collection..."
    if logger:
        logger.info(message)
    else:
        print(message)

    client = None
    try:
        client = create_qdrant_client(config)

        exists = client.collection_exists(collection_name)
        existing = get_existing_hashes(client, collection_name) if exists and not delete else {}

        current_hashes = {chunk['metadata']['content_hash'] for chunk in chunks}
        new_chunks = [c for c in chunks if c['metadata']['content_hash'] not in existing]
        stale_ids = []
        if prune_stale:
            stale_ids = [pid for h, pid in existing.items() if h not in current_hashes]

        message = (
            f"{len(existing)} chunks stored, {len(new_chunks)} new, "
            f"{len(stale_ids)} stale"
        )
        if logger:
            logger.info(message)
        else:
            print(message)

        if new_chunks:
            message = f"Step 3: Embedding and uploading {len(new_chunks)} new chunks..."
            if logger:
                logger.info(message)
            else:
                print(message)

            # The old collection is only dropped once every vector is ready
            try:
                embed_chunks(new_chunks, config, logger)
            except Exception as e:
                raise WriteError(f"Embedding failed: {e}") from e

            if delete and exists:
                client.delete_collection(collection_name)
                exists = False
                message = f"Deleted collection '{collection_name}'"
                if logger:
                    logger.info(message)
                else:
                    print(message)

            if not exists:
                create_collection(client, collection_name, len(new_chunks[0]['embedding']))

            upload_chunks(client, collection_name, new_chunks, logger, get_root_marker(config))
        else:
            message = "All chunks are already indexed. Nothing to upload."
            if logger:
                logger.info(message)
            else:
                print(message)

        if stale_ids:
            remove_points(client, collection_name, stale_ids, logger)

    except GrimoireError:
        raise
    except Exception as e:
        raise WriteError(f"Vector store operation on '{collection_name}' failed: {e}") from e
    finally:
        if client is not None:
            client.close()

    message = (
        f"Indexing complete: {len(chunks)} total chunks "
        f"({len(new_chunks)} new, {len(stale_ids)} removed)"
    )
    if logger:
        logger.info(message)
    else:
        print(message)

    return {
        'chunks': chunks,
        'collection_name': collection_name,
        'count': len(chunks),
        'new_count': len(new_chunks),
        'removed_count': len(stale_ids),
    }
