"""
StudyScribe AI Module
Streams text generation from a local Ollama server.

Ollama is the only backend: it runs as a standalone service, so the Python
side needs nothing beyond requests for the REST calls.
"""

from .ollama_client import (
    GenerationRequest,
    GenerationStream,
    HealthStatus,
    OllamaClient,
    OllamaModel,
)

__all__ = [
    'GenerationRequest',
    'GenerationStream',
    'HealthStatus',
    'OllamaClient',
    'OllamaModel',
]
