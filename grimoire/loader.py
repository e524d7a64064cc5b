# =============================================================================
# Document Loader
# =============================================================================
# Reads every markdown file under the vault directory into a raw document
# dictionary: {'content': <file text>, 'source': <file path>}.

import re

from grimoire.config import resolve_path
from grimoire.errors import LoadError


def remove_wiki_links(text):
    """
    Replace Obsidian wiki-links with readable text.

      - [[link|alias]] becomes "alias"
      - [[link]] becomes "link"

    Example:
        "See [[Saving Throws|saves]] and [[Spell Books]]"
        becomes "See saves and Spell Books"
    """
    text = re.sub(r'\[\[([^\]|]+)\|([^\]]+)\]\]', r'\2', text)
    text = re.sub(r'\[\[([^\]]+)\]\]', r'\1', text)
    return text


def load_document(file_path, root, strip_wiki_links=False):
    """
    Read a single markdown file into a raw document.

    The source is stored relative to 'root' (the vault's parent folder), e.g.
    "vault/Classes/02. Thief.md", so hashes do not depend on where the
    project is checked out.

    Args:
        file_path: Path to the markdown file
        root: Directory the source path is made relative to
        strip_wiki_links: Convert [[wiki links]] to plain text

    Returns:
        dict: {'content': str, 'source': str}

    Raises:
        LoadError: If the file cannot be read or decoded
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise LoadError(f"Could not read {file_path}: {e}") from e

    if strip_wiki_links:
        content = remove_wiki_links(content)

    return {
        'content': content,
        'source': file_path.relative_to(root).as_posix(),
    }


def load_documents(config, logger=None):
    """
    Load all markdown documents from the configured vault directory.

    Files are returned in sorted path order so every run sees the corpus
    in the same order.

    Args:
        config: Configuration dictionary with paths and loader settings
        logger: Optional logger for tracking progress

    Returns:
        list: Raw document dictionaries (may be empty)

    Raises:
        LoadError: If the vault directory is missing or unreadable
    """
    vault_path = resolve_path(config['paths']['vault'])
    loader_config = config.get('loader') or {}
    pattern = loader_config.get('pattern', '**/*.md')
    strip_wiki_links = loader_config.get('strip_wiki_links', False)

    if not vault_path.exists():
        raise LoadError(f"Vault directory not found: {vault_path}")
    if not vault_path.is_dir():
        raise LoadError(f"Vault path is not a directory: {vault_path}")

    try:
        files = sorted(p for p in vault_path.glob(pattern) if p.is_file())
    except OSError as e:
        raise LoadError(f"Could not list {vault_path}: {e}") from e

    documents = [
        load_document(file_path, vault_path.parent, strip_wiki_links)
        for file_path in files
    ]

    message = f"Loaded {len(documents)} documents from {vault_path}"
    if logger:
        logger.info(message)
    else:
        print(message)

    return documents
