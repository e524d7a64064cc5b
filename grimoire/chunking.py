# =============================================================================
# Chunking Module
# =============================================================================
# This module splits the rules documents into chunks and merges undersized
# chunks into their neighbours. Each chunk becomes a separate entry in the
# vector database for search.
#
# A chunk is a plain dictionary:
#   {'content': 'Thieves have the following skills...',
#    'metadata': {'source': 'vault/Classes/02. Thief.md'}}

from langchain_text_splitters import Language, RecursiveCharacterTextSplitter

from grimoire.config import get_chunking_params, resolve_path
from grimoire.enrichment import enrich_chunks
from grimoire.loader import load_documents


MERGE_SEPARATOR = '\n\n'


def create_splitter(chunk_size, chunk_overlap):
    """
    Create a markdown-aware splitter.

    It breaks on headings first, then code fences and horizontal rules,
    then blank lines, lines, words and finally single characters.
    """
    return RecursiveCharacterTextSplitter.from_language(
        Language.MARKDOWN,
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
    )


def split_documents(documents, chunk_size, chunk_overlap):
    """
    Split raw documents into bounded-size chunks.

    Args:
        documents: List of {'content', 'source'} dictionaries
        chunk_size: Maximum characters per chunk
        chunk_overlap: Characters of trailing context repeated in the next chunk

    Returns:
        list: Chunk dictionaries in document order, then text order.
              Empty documents produce no chunks.
    """
    splitter = create_splitter(chunk_size, chunk_overlap)

    chunks = []
    for document in documents:
        for text in splitter.split_text(document['content']):
            chunks.append({
                'content': text,
                'metadata': {'source': document['source']},
            })

    return chunks


def combine_chunks(first, second):
    """Join two chunks of the same document, keeping the first one's metadata."""
    return {
        'content': first['content'] + MERGE_SEPARATOR + second['content'],
        'metadata': dict(first['metadata']),
    }


def merge_small_chunks(chunks, min_chunk_size):
    """
    Merge chunks shorter than min_chunk_size into the following chunk of the
    same document.

    A lone heading with no body makes a poor search result, so it is folded
    forward into the text it introduces. The merged result is checked again,
    which lets a run of several tiny chunks collapse into one. Chunks are
    never merged across documents; an undersized chunk with no later chunk
    from its document is kept as it is.

    Args:
        chunks: Ordered list of chunk dictionaries
        min_chunk_size: Chunks with fewer characters than this get merged

    Returns:
        list: The merged chunks, in the original order

    Example (min_chunk_size=100):
        lengths [40, 40, 200] from one source -> [284]
        lengths [40] from A, [200] from B    -> [40, 200]
    """
    merged = []
    pending = None

    for current in chunks:
        if pending is not None:
            if pending['metadata']['source'] == current['metadata']['source']:
                combined = combine_chunks(pending, current)
                if len(combined['content']) < min_chunk_size:
                    pending = combined
                else:
                    merged.append(combined)
                    pending = None
                continue

            # Different document: the pending chunk has no one left to merge with
            merged.append(pending)
            pending = None

        if len(current['content']) < min_chunk_size:
            pending = current
        else:
            merged.append(current)

    if pending is not None:
        merged.append(pending)

    return merged


def get_root_marker(config):
    """The vault folder name plus a slash, e.g. "vault/", used to trim source paths."""
    return resolve_path(config['paths']['vault']).name + '/'


def get_all_chunks(config, logger=None):
    """
    Load the vault and turn it into enriched, ready-to-embed chunks.

    This function:
    1. Loads every markdown document from the vault
    2. Splits each document into bounded-size chunks
    3. Merges undersized chunks with their neighbours
    4. Prepends the title derived from each chunk's source path

    Args:
        config: Configuration dictionary with paths and chunking settings
        logger: Optional logger for tracking progress

    Returns:
        list: Enriched chunk dictionaries (empty if the vault has no content)
    """
    chunk_size, chunk_overlap, min_chunk_size = get_chunking_params(config)

    documents = load_documents(config, logger)

    chunks = split_documents(documents, chunk_size, chunk_overlap)
    message = (
        f"Split {len(documents)} documents into {len(chunks)} chunks "
        f"(size={chunk_size}, overlap={chunk_overlap})"
    )
    if logger:
        logger.info(message)
    else:
        print(message)

    merged = merge_small_chunks(chunks, min_chunk_size)
    message = f"Merged {len(chunks)} -> {len(merged)} chunks (min size={min_chunk_size})"
    if logger:
        logger.info(message)
    else:
        print(message)

    return enrich_chunks(merged, get_root_marker(config), logger)
