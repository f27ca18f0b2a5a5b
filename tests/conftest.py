"""Shared test fixtures."""

import os

import pytest

ENV_KEYS = (
    "GEMINI_API_KEY",
    "OPENAI_API_KEY",
    "AZURE_OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "RECALLBIN_API_TOKEN",
    "RECALLBIN_USER_ID",
    "RECALLBIN_CONFIG_DIR",
)


@pytest.fixture(autouse=True)
def clean_env():
    """Keep .env values loaded by one test from leaking into the next."""
    saved = {key: os.environ.pop(key) for key in ENV_KEYS if key in os.environ}
    yield
    for key in ENV_KEYS:
        os.environ.pop(key, None)
    os.environ.update(saved)
