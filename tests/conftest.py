import pytest

import grimoire.indexing
import grimoire.retrieval


THIEF_TEXT = """# Thief

Thieves are adventurers who live by their skills of deception and stealth.

## Skills

Thieves can climb sheer surfaces, find or remove treasure traps, hear noise,
hide in shadows, move silently, open locks and pick pockets. Each skill is
rolled on a percentile die against the chance listed for the thief's level.
"""

INITIATIVE_TEXT = """# Initiative

At the start of each round, each side rolls 1d6. The side with the highest
roll acts first. Ties mean that both sides act simultaneously, and the
referee may reroll to break the tie if simultaneous action is impossible.
"""

CLASSES_TEXT = """# Character Classes

Every character belongs to a class that describes their adventuring role,
their abilities and how they advance in experience levels.
"""


def write_vault(root, files):
    for relative, text in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding='utf-8')
    return root


@pytest.fixture
def vault(tmp_path):
    return write_vault(tmp_path / 'vault', {
        'Classes/02. Thief.md': THIEF_TEXT,
        'Classes/Character Classes.md': CLASSES_TEXT,
        'rules/Combat/01. Initiative.md': INITIATIVE_TEXT,
    })


@pytest.fixture
def config(tmp_path, vault):
    return {
        'paths': {
            'vault': str(vault),
            'qdrant_storage': str(tmp_path / 'qdrant'),
        },
        'loader': {'pattern': '**/*.md', 'strip_wiki_links': False},
        'chunking': {'chunk_size': 1000, 'chunk_overlap': 100, 'min_chunk_size': 100},
        'embedding': {'model': 'fake-embedding', 'batch_size': 2},
        'indexing': {'collection_name': 'test_rules', 'url': None, 'prune_stale': True},
        'retrieval': {'top_k': 3},
        'response': {'model': 'fake-chat', 'temperature': 0.1, 'max_tokens': 100},
    }


def fake_vector(text):
    return [float(len(text) % 7 + 1), 1.0, float(text.count(' ') % 5 + 1), 0.5]


class FakeEmbedder:
    """Stands in for embed_chunks and records every chunk it embeds."""

    def __init__(self):
        self.calls = []

    def __call__(self, chunks, config, logger=None):
        self.calls.append([chunk['content'] for chunk in chunks])
        for chunk in chunks:
            chunk['embedding'] = fake_vector(chunk['content'])
        return chunks

    @property
    def embedded_count(self):
        return sum(len(call) for call in self.calls)


@pytest.fixture
def fake_embedder(monkeypatch):
    embedder = FakeEmbedder()
    monkeypatch.setattr(grimoire.indexing, 'embed_chunks', embedder)
    return embedder


@pytest.fixture
def fake_query_embedding(monkeypatch):
    monkeypatch.setattr(grimoire.retrieval, 'create_embedder', lambda config: object())
    monkeypatch.setattr(
        grimoire.retrieval,
        'get_embedding',
        lambda text, embedder, model: [1.0, 1.0, 1.0, 0.5],
    )
