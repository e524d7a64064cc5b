# =============================================================================
# Grimoire Oracle - Main CLI Entry Point
# =============================================================================
# Command-line interface for the rules RAG system.
#
# Usage:
#   python main.py ingest                   # Chunk the vault and upload to Qdrant
#   python main.py search "your question"   # Show the most relevant rules chunks
#   python main.py ask "your question"      # Answer a question from the rules
#   python main.py chunks                   # Write the prepared chunks to a file
#
# All commands support:
#   --config FILE    Load a custom config file

import argparse
import sys

import yaml

from grimoire.chunking import get_all_chunks
from grimoire.config import load_config, print_config
from grimoire.errors import GrimoireError
from grimoire.indexing import attach_content_hashes, index_all
from grimoire.response import generate_response
from grimoire.retrieval import search
from grimoire.run_tracker import (
    create_run,
    get_logger,
    save_chunks,
    save_config,
    save_embeddings,
    save_response,
    save_results,
)


CONFIG_ERRORS = (FileNotFoundError, yaml.YAMLError, ValueError)


# =============================================================================
# Helpers
# =============================================================================

def build_overrides(args):
    """Collect CLI flags that override config values."""
    overrides = {}
    if getattr(args, 'top_k', None) is not None:
        overrides['retrieval'] = {'top_k': args.top_k}
    return overrides


def setup(args, run_name):
    """
    Load the config and, with --track, create a run folder and logger.

    Returns:
        tuple: (config, run_dir, logger); run_dir and logger are None untracked
    """
    config = load_config(args.config, build_overrides(args))

    if args.verbose:
        print("\nConfiguration:")
        print_config(config)
        print()

    if not args.track:
        return config, None, None

    run_dir = create_run(config, run_name)
    logger = get_logger(run_dir)
    save_config(run_dir, config)
    return config, run_dir, logger


def report_failure(stage, error, logger=None):
    message = f"{stage} failed: {type(error).__name__}: {error}"
    if logger:
        logger.error(message)
    else:
        print(f"\nError: {message}", file=sys.stderr)


# =============================================================================
# Command Handlers
# =============================================================================

def cmd_ingest(args):
    """
    Handle the 'ingest' command.

    Loads the vault, chunks and enriches it, then embeds and uploads every
    chunk that is not in Qdrant yet.
    """
    print("=" * 70)
    print("Grimoire Oracle - Ingestion")
    print("=" * 70)

    try:
        config, run_dir, logger = setup(args, "ingest")
    except CONFIG_ERRORS as e:
        report_failure("Config", e)
        return 1

    try:
        result = index_all(config, logger, delete=args.delete)
    except (GrimoireError, ValueError) as e:
        report_failure("Ingestion", e, logger)
        return 1

    if run_dir:
        save_chunks(run_dir, result['chunks'])
        if args.save_embeddings:
            save_embeddings(run_dir, result['chunks'])

    total = result['count']
    new = result['new_count']
    if new > 0:
        print(f"\nDone! Indexed {new} new chunks (total: {total} chunks).")
    else:
        print(f"\nDone! All {total} chunks already indexed.")

    return 0


def cmd_search(args):
    """
    Handle the 'search' command.

    Prints the rules chunks most similar to the question.
    """
    print("=" * 70)
    print("Grimoire Oracle - Search")
    print("=" * 70)

    try:
        config, run_dir, logger = setup(args, "search")
    except CONFIG_ERRORS as e:
        report_failure("Config", e)
        return 1

    try:
        results = search(args.question, config, logger)
    except (GrimoireError, ValueError) as e:
        report_failure("Search", e, logger)
        return 1

    if run_dir:
        save_results(run_dir, args.question, results, query_number=1)

    print(f"\nFound {len(results)} results.")

    return 0


def cmd_ask(args):
    """
    Handle the 'ask' command.

    Retrieves the relevant rules and asks the oracle to answer from them.
    """
    print("=" * 70)
    print("Grimoire Oracle - Ask")
    print("=" * 70)

    try:
        config, run_dir, logger = setup(args, "ask")
    except CONFIG_ERRORS as e:
        report_failure("Config", e)
        return 1

    try:
        results = search(args.question, config, logger)
    except (GrimoireError, ValueError) as e:
        report_failure("Search", e, logger)
        return 1

    try:
        answer = generate_response(args.question, results, config, logger)
    except (GrimoireError, ValueError) as e:
        report_failure("Response", e, logger)
        return 1

    if run_dir:
        save_results(run_dir, args.question, results, query_number=1)
        save_response(
            run_dir,
            args.question,
            answer,
            retrieved_chunks=results,
            metadata=config.get('response'),
        )

    print(f"\n{'=' * 70}")
    print("Answer:")
    print('=' * 70)
    print(answer)

    return 0


def cmd_chunks(args):
    """
    Handle the 'chunks' command.

    Writes the prepared chunks to a text file for inspection. Nothing is
    embedded and the vector store is not opened.
    """
    try:
        config = load_config(args.config)
    except CONFIG_ERRORS as e:
        report_failure("Config", e)
        return 1

    try:
        chunks = attach_content_hashes(get_all_chunks(config))
    except (GrimoireError, ValueError) as e:
        report_failure("Chunking", e)
        return 1

    with open(args.output, 'w', encoding='utf-8') as f:
        for chunk in chunks:
            f.write(f"hash: {chunk['metadata']['content_hash']}\n")
            f.write(f"source: {chunk['metadata']['source']}\n")
            f.write(f"Content:\n{chunk['content']}\n")
            f.write("-" * 50 + "\n\n")

    print(f"Wrote {len(chunks)} chunks to {args.output}")

    return 0


# =============================================================================
# Main Entry Point
# =============================================================================

def add_common_arguments(parser, track=True):
    parser.add_argument(
        '--config', '-c',
        help='Path to custom config YAML file'
    )
    if track:
        parser.add_argument(
            '--track', '-t',
            action='store_true',
            help='Create a run folder to track this operation'
        )
        parser.add_argument(
            '--verbose', '-v',
            action='store_true',
            help='Print detailed configuration'
        )


def build_parser():
    parser = argparse.ArgumentParser(
        description='Grimoire Oracle - Ask questions about your TTRPG rules',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py ingest                             # Index the vault
  python main.py ingest --delete                    # Rebuild the index from scratch
  python main.py search "How does initiative work?" # Show relevant rules
  python main.py ask "What can a Thief do?"         # Get an answer
  python main.py chunks --output chunks.txt         # Inspect the chunks
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # -------------------------------------------------------------------------
    # Ingest command
    # -------------------------------------------------------------------------
    ingest_parser = subparsers.add_parser(
        'ingest',
        help='Chunk the vault, create embeddings and upload them to Qdrant'
    )
    add_common_arguments(ingest_parser)
    ingest_parser.add_argument(
        '--delete', '-d',
        action='store_true',
        help='Drop the collection before indexing (only once chunks are ready)'
    )
    ingest_parser.add_argument(
        '--save-embeddings',
        action='store_true',
        help='Save embedding vectors to run folder (large file!)'
    )

    # -------------------------------------------------------------------------
    # Search and ask commands
    # -------------------------------------------------------------------------
    for name, help_text in (
        ('search', 'Search for relevant rules chunks'),
        ('ask', 'Answer a question using the rules'),
    ):
        query_parser = subparsers.add_parser(name, help=help_text)
        query_parser.add_argument('question', help='The question to ask')
        add_common_arguments(query_parser)
        query_parser.add_argument(
            '--top-k', '-k',
            type=int,
            help='Number of chunks to retrieve'
        )

    # -------------------------------------------------------------------------
    # Chunks command
    # -------------------------------------------------------------------------
    chunks_parser = subparsers.add_parser(
        'chunks',
        help='Write the prepared chunks to a text file'
    )
    add_common_arguments(chunks_parser, track=False)
    chunks_parser.add_argument(
        '--output', '-o',
        default='allChunks.txt',
        help='Output file (default: allChunks.txt)'
    )

    return parser


def main(argv=None):
    """
    Main entry point - parse arguments and run the appropriate command.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if getattr(args, 'top_k', None) is not None and args.top_k < 1:
        parser.error("--top-k must be a positive integer")

    commands = {
        'ingest': cmd_ingest,
        'search': cmd_search,
        'ask': cmd_ask,
        'chunks': cmd_chunks,
    }

    if args.command not in commands:
        parser.print_help()
        return 1

    return commands[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
