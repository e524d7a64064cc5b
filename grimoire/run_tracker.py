# =============================================================================
# Run Tracker Module
# =============================================================================
# Saves the config, log, chunks and answers of a tracked run to a
# timestamped folder in ./runs, so ingestion and search results can be
# inspected and compared later.

import json
import logging
import yaml
from datetime import datetime
from pathlib import Path

from grimoire.config import get_project_root


def create_run(config, run_name=None):
    """
    Create a new run folder with a timestamp, e.g. runs/20260128_143022_ingest/

    Args:
        config: The configuration dictionary used for this run
        run_name: Optional custom name to append to the folder name

    Returns:
        Path: The path to the newly created run folder
    """
    runs_dir = get_project_root() / 'runs'
    runs_dir.mkdir(exist_ok=True)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    folder_name = f"{timestamp}_{run_name}" if run_name else timestamp

    run_dir = runs_dir / folder_name
    run_dir.mkdir(exist_ok=True)
    (run_dir / 'results').mkdir(exist_ok=True)

    print(f"Created run folder: {run_dir}")

    return run_dir


def save_config(run_dir, config):
    """Save the configuration used for this run as config.yaml."""
    config_path = Path(run_dir) / 'config.yaml'

    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def save_chunks(run_dir, chunks):
    """
    Save the prepared chunks for this run to chunks.json.

    Embedding vectors are replaced by their size to keep the file readable.
    """
    chunks_path = Path(run_dir) / 'chunks.json'

    chunks_to_save = []
    for chunk in chunks:
        chunk_copy = {key: value for key, value in chunk.items() if key != 'embedding'}
        if 'embedding' in chunk:
            chunk_copy['embedding_size'] = len(chunk['embedding'])
        chunks_to_save.append(chunk_copy)

    with open(chunks_path, 'w', encoding='utf-8') as f:
        json.dump(chunks_to_save, f, indent=2, ensure_ascii=False)

    print(f"Saved {len(chunks)} chunks to: {chunks_path}")


def save_embeddings(run_dir, chunks):
    """
    Save the embedding vectors created in this run to embeddings.json.

    Only chunks embedded in this run carry a vector. Warning: this file can
    be large!
    """
    embeddings_path = Path(run_dir) / 'embeddings.json'

    embeddings_to_save = [
        {
            'content_hash': chunk['metadata'].get('content_hash'),
            'source': chunk['metadata'].get('source'),
            'embedding': chunk['embedding'],
        }
        for chunk in chunks
        if 'embedding' in chunk
    ]

    with open(embeddings_path, 'w', encoding='utf-8') as f:
        json.dump(embeddings_to_save, f)

    print(f"Saved {len(embeddings_to_save)} embeddings to: {embeddings_path}")


def save_results(run_dir, query, results, query_number=None):
    """
    Save search results for a query to runs/TIMESTAMP/results/query_001.json
    """
    results_dir = Path(run_dir) / 'results'
    results_dir.mkdir(exist_ok=True)

    if query_number is not None:
        filename = f"query_{query_number:03d}.json"
    else:
        filename = f"query_{datetime.now().strftime('%H%M%S')}.json"

    results_path = results_dir / filename

    data = {
        'query': query,
        'timestamp': datetime.now().isoformat(),
        'num_results': len(results),
        'results': results,
    }

    with open(results_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False, default=str)

    return results_path


def save_response(run_dir, question, response, retrieved_chunks=None, metadata=None):
    """
    Save the oracle's answer along with the question and the sources used.

    Args:
        run_dir: Path to the run folder
        question: The user's question
        response: The LLM's response text
        retrieved_chunks: Optional list of chunks used for context
        metadata: Optional dict with additional metadata (model, temperature, etc.)
    """
    response_path = Path(run_dir) / 'response.json'

    data = {
        'question': question,
        'response': response,
        'timestamp': datetime.now().isoformat(),
    }

    if metadata:
        data['metadata'] = metadata

    if retrieved_chunks:
        data['context_chunks'] = [
            {
                'content_hash': c.get('content_hash'),
                'title': c.get('title'),
                'source': c.get('source'),
            }
            for c in retrieved_chunks
        ]

    with open(response_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    return response_path


def get_logger(run_dir, name='grimoire'):
    """
    Create a logger that writes to both console and run.log in the run folder.

    Args:
        run_dir: Path to the run folder
        name: Name for the logger

    Returns:
        logging.Logger: A configured logger instance
    """
    log_path = Path(run_dir) / 'run.log'

    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    # Calling this twice must not duplicate every line
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    file_handler = logging.FileHandler(log_path, encoding='utf-8')
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    logger.info(f"Logging to: {log_path}")

    return logger
