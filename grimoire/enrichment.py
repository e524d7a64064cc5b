# =============================================================================
# Enrichment Module
# =============================================================================
# Derives a short title from each chunk's source path and prepends it to the
# chunk text, so a question like "Tell me about the Thief class" embeds close
# to chunks that start with "[Thief Class]".

import re


VAULT_MARKER = 'vault/'
CLASS_CATEGORY = 'Classes'
GENERIC_CLASS_TITLE = 'Character Classes'
NOISE_SEGMENTS = {'rules'}
BREADCRUMB_SEPARATOR = ' > '
UNKNOWN_SOURCE = 'unknown'

# "02. Thief", "3a- Morale"
ORDER_PREFIX = re.compile(r'^\d+[a-z]?[.\-]\s*')
MARKDOWN_EXTENSION = re.compile(r'\.md$')


def strip_order_prefix(segment):
    """
    Remove a manual ordering prefix from a path segment.

    Example:
        strip_order_prefix("02a. Foo") -> "Foo"
    """
    return ORDER_PREFIX.sub('', segment)


def extract_title_from_path(source_path, root_marker=VAULT_MARKER):
    """
    Build a retrieval-friendly title from a document's source path.

    Class files become "<Name> Class"; everything else becomes a breadcrumb
    of the folders and file name, without ordering numbers or the "rules"
    folder.

    Args:
        source_path: Path of the source file, e.g. "vault/Classes/02. Thief.md"
        root_marker: Everything up to and including its last occurrence is dropped

    Returns:
        str: The title, e.g. "Thief Class" or "Combat > Initiative"

    Examples:
        extract_title_from_path("vault/Classes/02. Thief.md") -> "Thief Class"
        extract_title_from_path("vault/rules/Combat/Initiative.md") -> "Combat > Initiative"
    """
    path = str(source_path).replace('\\', '/')

    marker_index = path.rfind(root_marker) if root_marker else -1
    if marker_index != -1:
        path = path[marker_index + len(root_marker):]

    path = MARKDOWN_EXTENSION.sub('', path)

    segments = [strip_order_prefix(s) for s in path.split('/') if s]
    segments = [s for s in segments if s]

    if CLASS_CATEGORY in segments and len(segments) >= 2:
        class_name = segments[-1]
        if class_name != GENERIC_CLASS_TITLE:
            return f"{class_name} Class"

    return BREADCRUMB_SEPARATOR.join(s for s in segments if s not in NOISE_SEGMENTS)


def enrich_chunk(chunk, title):
    """
    Return a copy of the chunk with "[title]" on the first line of its content.

    Example:
        enrich_chunk({'content': 'Roll 1d6', 'metadata': {...}}, 'Thief Class')
        -> {'content': '[Thief Class]\\nRoll 1d6', 'metadata': {...}}
    """
    return {**chunk, 'content': f"[{title}]\n{chunk['content']}"}


def enrich_chunks(chunks, root_marker=VAULT_MARKER, logger=None):
    """
    Prepend the source-derived title to every chunk.

    Args:
        chunks: List of chunk dictionaries with metadata['source']
        root_marker: Passed through to extract_title_from_path
        logger: Optional logger for tracking progress

    Returns:
        list: New enriched chunk dictionaries, same order
    """
    enriched = []

    for chunk in chunks:
        source = chunk.get('metadata', {}).get('source')
        if not isinstance(source, str):
            source = UNKNOWN_SOURCE

        title = extract_title_from_path(source, root_marker)
        enriched.append(enrich_chunk(chunk, title))

    message = f"Enriched {len(enriched)} chunks with titles"
    if logger:
        logger.info(message)
    else:
        print(message)

    return enriched
