# =============================================================================
# Response Generation Module
# =============================================================================
# This module asks the LLM to answer a rules question using only the chunks
# returned by the retrieval step.

from enum import Enum

from openai import OpenAI

from grimoire.config import get_secrets
from grimoire.errors import ResponseError


NOT_FOUND_ANSWER = "I couldn't find that information in the rules."

SYSTEM_PROMPT = f"""You are the Grimoire Oracle, a wizard knowledgeable in TTRPG rules like Old School Essentials (BX D&D).
Answer questions using ONLY the rules excerpts provided by the user.
IMPORTANT: If the excerpts do not contain the answer, say "{NOT_FOUND_ANSWER}"
Do NOT make up or invent any rules, numbers, or game mechanics."""


class Role(str, Enum):
    """Chat message roles accepted by the completion API."""

    SYSTEM = 'system'
    USER = 'user'
    ASSISTANT = 'assistant'


def create_llm_client(config):
    """
    Create an OpenAI client for LLM calls.

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


def format_context(chunks):
    """
    Format retrieved chunks into a context string for the LLM.

    Stored chunk text already starts with its "[Title]" line, so the chunks
    are only separated from each other.
    """
    if not chunks:
        return "No rules excerpts were found."

    return "\n\n---\n\n".join(chunk.get('content', '') for chunk in chunks)


def build_user_prompt(question, context):
    return f"""RULES EXCERPTS:
{context}

---

QUESTION: {question}

ANSWER:"""


def build_messages(question, chunks):
    """Build the chat messages for a question and its retrieved chunks."""
    context = format_context(chunks)
    return [
        {'role': Role.SYSTEM.value, 'content': SYSTEM_PROMPT},
        {'role': Role.USER.value, 'content': build_user_prompt(question, context)},
    ]


def generate_response(question, retrieved_chunks, config, logger=None):
    """
    Generate an answer to a rules question from the retrieved chunks.

    Args:
        question: The user's question
        retrieved_chunks: List of chunk dictionaries from retrieval
        config: Configuration dictionary with response settings
        logger: Optional logger for tracking progress

    Returns:
        str: The LLM's answer

    Raises:
        ResponseError: If the chat completion call fails
    """
    model = config.get('response', {}).get('model', 'gpt-4o-mini')
    temperature = config.get('response', {}).get('temperature', 0.1)
    max_tokens = config.get('response', {}).get('max_tokens', 500)

    message = f"Generating response using {model} (temp={temperature})..."
    if logger:
        logger.info(message)
    else:
        print(message)

    client = create_llm_client(config)

    try:
        response = client.chat.completions.create(
            model=model,
            messages=build_messages(question, retrieved_chunks),
            temperature=temperature,
            max_completion_tokens=max_tokens,
        )
    except Exception as e:
        error_msg = f"Error generating response: {e}"
        if logger:
            logger.error(error_msg)
        else:
            print(f"Error: {error_msg}")
        raise ResponseError(error_msg) from e

    return (response.choices[0].message.content or '').strip()
