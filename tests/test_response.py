# tests/test_response.py
"""Tests for building the oracle prompt and calling the chat model."""

from unittest.mock import MagicMock

import pytest

import grimoire.response
from grimoire.errors import ResponseError
from grimoire.response import (
    NOT_FOUND_ANSWER,
    Role,
    build_messages,
    format_context,
    generate_response,
)


CHUNKS = [
    {'title': 'Thief Class', 'content': '[Thief Class]\nThieves can backstab.'},
    {'title': 'Combat > Initiative', 'content': '[Combat > Initiative]\nRoll 1d6.'},
]


def test_format_context_joins_chunks():
    context = format_context(CHUNKS)

    assert context == "[Thief Class]\nThieves can backstab.\n\n---\n\n[Combat > Initiative]\nRoll 1d6."


def test_format_context_without_chunks():
    assert format_context([]) == "No rules excerpts were found."


def test_build_messages_roles_and_content():
    messages = build_messages('Can thieves backstab?', CHUNKS)

    assert [m['role'] for m in messages] == [Role.SYSTEM.value, Role.USER.value]
    assert NOT_FOUND_ANSWER in messages[0]['content']
    assert 'QUESTION: Can thieves backstab?' in messages[1]['content']
    assert '[Thief Class]' in messages[1]['content']


def test_generate_response_uses_config(config, monkeypatch):
    client = MagicMock()
    client.chat.completions.create.return_value.choices = [
        MagicMock(message=MagicMock(content='  Yes, thieves can backstab.  '))
    ]
    monkeypatch.setattr(grimoire.response, 'create_llm_client', lambda config: client)

    answer = generate_response('Can thieves backstab?', CHUNKS, config)

    assert answer == 'Yes, thieves can backstab.'
    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs['model'] == 'fake-chat'
    assert kwargs['max_completion_tokens'] == 100
    assert kwargs['messages'] == build_messages('Can thieves backstab?', CHUNKS)


def test_generate_response_wraps_errors(config, monkeypatch):
    client = MagicMock()
    client.chat.completions.create.side_effect = RuntimeError("service unavailable")
    monkeypatch.setattr(grimoire.response, 'create_llm_client', lambda config: client)

    with pytest.raises(ResponseError) as excinfo:
        generate_response('Anything?', CHUNKS, config)

    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_missing_api_key_raises(config, monkeypatch):
    monkeypatch.setattr(grimoire.response, 'get_secrets', lambda: {})

    with pytest.raises(ValueError):
        grimoire.response.create_llm_client(config)
