# tests/test_run_tracker.py
"""Tests for run folders and the run logger."""

import json

import yaml

import grimoire.run_tracker
from grimoire.run_tracker import (
    create_run,
    get_logger,
    save_chunks,
    save_config,
    save_embeddings,
    save_response,
    save_results,
)


def test_create_run_makes_timestamped_folder(tmp_path, monkeypatch):
    monkeypatch.setattr(grimoire.run_tracker, 'get_project_root', lambda: tmp_path)

    run_dir = create_run({}, 'ingest')

    assert run_dir.parent == tmp_path / 'runs'
    assert run_dir.name.endswith('_ingest')
    assert (run_dir / 'results').is_dir()


def test_save_config_round_trips(tmp_path):
    save_config(tmp_path, {'chunking': {'chunk_size': 1000}})

    with open(tmp_path / 'config.yaml', encoding='utf-8') as f:
        assert yaml.safe_load(f) == {'chunking': {'chunk_size': 1000}}


def test_save_chunks_omits_vectors(tmp_path):
    chunks = [
        {'content': '[Thief Class]\nBackstab', 'metadata': {'source': 'vault/a.md', 'content_hash': 'abc'},
         'embedding': [0.1, 0.2, 0.3]},
        {'content': '[Combat]\nRoll', 'metadata': {'source': 'vault/b.md', 'content_hash': 'def'}},
    ]

    save_chunks(tmp_path, chunks)

    with open(tmp_path / 'chunks.json', encoding='utf-8') as f:
        saved = json.load(f)
    assert 'embedding' not in saved[0]
    assert saved[0]['embedding_size'] == 3
    assert saved[1]['metadata']['content_hash'] == 'def'
    assert 'embedding' in chunks[0]


def test_save_embeddings_only_embedded_chunks(tmp_path):
    chunks = [
        {'content': 'a', 'metadata': {'source': 'vault/a.md', 'content_hash': 'abc'}, 'embedding': [1.0]},
        {'content': 'b', 'metadata': {'source': 'vault/b.md', 'content_hash': 'def'}},
    ]

    save_embeddings(tmp_path, chunks)

    with open(tmp_path / 'embeddings.json', encoding='utf-8') as f:
        assert json.load(f) == [{'content_hash': 'abc', 'source': 'vault/a.md', 'embedding': [1.0]}]


def test_save_results_and_response(tmp_path):
    results = [{'title': 'Thief Class', 'source': 'vault/a.md', 'content_hash': 'abc', 'score': 0.9}]

    results_path = save_results(tmp_path, 'What can a thief do?', results, query_number=1)
    response_path = save_response(tmp_path, 'What can a thief do?', 'Backstab.', retrieved_chunks=results)

    with open(results_path, encoding='utf-8') as f:
        assert json.load(f)['num_results'] == 1
    with open(response_path, encoding='utf-8') as f:
        saved = json.load(f)
    assert saved['response'] == 'Backstab.'
    assert saved['context_chunks'] == [{'content_hash': 'abc', 'title': 'Thief Class', 'source': 'vault/a.md'}]


def test_logger_writes_run_log_once(tmp_path):
    get_logger(tmp_path, name='grimoire-test')
    logger = get_logger(tmp_path, name='grimoire-test')
    logger.info("Merged 10 -> 7 chunks")

    for handler in logger.handlers:
        handler.flush()

    log_text = (tmp_path / 'run.log').read_text(encoding='utf-8')
    assert log_text.count("Merged 10 -> 7 chunks") == 1
    assert " - INFO - " in log_text

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
