"""
AI generation jobs for StudyScribe.

    AIJobService                   - entry point: submit jobs, get acknowledgements
    ChunkedGenerationOrchestrator  - map-reduce over long documents
    QuizGenerationLoop             - quiz generation with validation retries
    StreamEvent                    - progress/terminal events sent to the observer
"""

from .events import EventSink, OperationType, StreamEvent
from .orchestrator import ChunkedGenerationOrchestrator, ChunkedJob, run_single_pass
from .quiz_generator import (
    QuizGenerationLoop,
    QuizGenerationOptions,
    QuizQuestion,
    RetryableJob,
    parse_quiz_questions,
    validate_quiz_question,
)
from .result_parsers import KeyTerm, parse_key_points, parse_key_terms
from .result_types import GenerationOutcome
from .service import AIJobService, DocumentStore, JobAcknowledgement

__all__ = [
    'AIJobService',
    'ChunkedGenerationOrchestrator',
    'ChunkedJob',
    'DocumentStore',
    'EventSink',
    'GenerationOutcome',
    'JobAcknowledgement',
    'KeyTerm',
    'OperationType',
    'QuizGenerationLoop',
    'QuizGenerationOptions',
    'QuizQuestion',
    'RetryableJob',
    'StreamEvent',
    'parse_key_points',
    'parse_key_terms',
    'parse_quiz_questions',
    'run_single_pass',
    'validate_quiz_question',
]
