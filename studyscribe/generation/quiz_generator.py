"""
Quiz Generation with Content Validation Retry

Quiz output is only useful if it is well-formed, so every attempt is checked
in two stages before anything is stored:

1. Structural: the raw text must contain a JSON array (code fences and
   surrounding chatter are tolerated)
2. Semantic: each question is validated on its own against its type's rules;
   failing questions are dropped, the rest are kept

An attempt that yields no surviving questions is retried with a prompt that
explains what went wrong. This retry budget is separate from the transport
retries inside OllamaClient: a transport failure ends the job at once.
"""

from dataclasses import dataclass

from studyscribe.ai.ollama_client import GenerationRequest
from studyscribe.config import (
    DEFAULT_QUIZ_DIFFICULTY,
    DEFAULT_QUIZ_QUESTION_COUNT,
    DEFAULT_QUIZ_QUESTION_TYPES,
    MCQ_MIN_OPTIONS,
    QUIZ_MAX_RETRIES,
)
from studyscribe.errors import ContentValidationError, RetriesExhaustedError
from studyscribe.logging_config import Timer, debug_log, error, info, warning

from .events import EventSink, OperationType, StreamEvent, safe_emit
from .prompts import build_quiz_prompt, build_quiz_retry_prompt
from .result_parsers import extract_json_array
from .result_types import GenerationOutcome
from .streaming import stream_generation

VALID_QUESTION_TYPES = ("multiple-choice", "true-false", "short-answer")
VALID_DIFFICULTIES = ("easy", "medium", "hard")
TRUE_FALSE_OPTIONS = ["True", "False"]


@dataclass(frozen=True)
class QuizGenerationOptions:
    """
    Quiz configuration chosen by the user.

    Attributes:
        question_count: Number of questions to ask the model for
        question_types: Comma-separated mix, e.g. "multiple-choice, true-false"
        difficulty: "easy", "medium", "hard" or "mixed"
    """
    question_count: int = DEFAULT_QUIZ_QUESTION_COUNT
    question_types: str = DEFAULT_QUIZ_QUESTION_TYPES
    difficulty: str = DEFAULT_QUIZ_DIFFICULTY

    def __post_init__(self):
        if self.question_count < 1:
            raise ValueError(f"question_count must be at least 1, got {self.question_count}")


@dataclass(frozen=True)
class QuizQuestion:
    """A question that passed validation."""
    question: str
    type: str
    options: list[str] | None
    correct_answer: str
    explanation: str | None
    difficulty: str

    def to_dict(self) -> dict:
        return {
            "question": self.question,
            "type": self.type,
            "options": list(self.options) if self.options is not None else None,
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
            "difficulty": self.difficulty,
        }


@dataclass
class RetryableJob:
    """
    Prompt state carried between validation attempts.

    Attributes:
        prompt: Prompt for the next attempt
        attempt: Attempts made so far
        last_failure_reason: Why the previous attempt was rejected
    """
    prompt: str
    attempt: int = 0
    last_failure_reason: str | None = None

    def record_failure(self, reason: str, next_prompt: str) -> None:
        self.last_failure_reason = reason
        self.prompt = next_prompt


def parse_quiz_questions(raw_text: str) -> list | None:
    """
    Extract the candidate question list from raw model output.

    Returns:
        Parsed list (items not yet validated), or None if no JSON array was found
    """
    candidates = extract_json_array(raw_text)
    if candidates is None:
        warning("[QUIZ] No parseable JSON array in model output")
        return None
    debug_log(f"[QUIZ] Parsed {len(candidates)} candidate questions")
    return candidates


def _rejection_reason(candidate) -> str | None:
    """Return why a candidate question is invalid, or None if it is valid."""
    if not isinstance(candidate, dict):
        return "question is not an object"

    question = candidate.get("question")
    if not isinstance(question, str) or not question.strip():
        return "question text is missing"

    q_type = candidate.get("type")
    if q_type not in VALID_QUESTION_TYPES:
        return f"invalid question type: {q_type!r}"

    answer = candidate.get("correct_answer")
    if not isinstance(answer, str) or not answer.strip():
        return "correct_answer is missing"

    if candidate.get("difficulty") not in VALID_DIFFICULTIES:
        return f"invalid difficulty: {candidate.get('difficulty')!r}"

    if q_type == "multiple-choice":
        options = candidate.get("options")
        if not isinstance(options, list) or len(options) < MCQ_MIN_OPTIONS:
            return f"multiple-choice questions need at least {MCQ_MIN_OPTIONS} options"
        if not all(isinstance(opt, str) for opt in options):
            return "multiple-choice options must all be strings"
        if answer not in options:
            return "multiple-choice correct_answer must be one of the options"

    elif q_type == "true-false":
        if answer.strip().capitalize() not in TRUE_FALSE_OPTIONS:
            return 'true-false correct_answer must be "True" or "False"'

    return None


def validate_quiz_question(candidate) -> QuizQuestion | None:
    """
    Validate and normalize one candidate question.

    Rules:
        - question, correct_answer: non-empty strings
        - type: multiple-choice, true-false or short-answer
        - difficulty: easy, medium or hard
        - multiple-choice: at least MCQ_MIN_OPTIONS string options containing the answer
        - true-false: answer in any casing, normalized to "True"/"False"
        - short-answer: options are discarded

    Returns:
        QuizQuestion, or None if the candidate is invalid
    """
    reason = _rejection_reason(candidate)
    if reason is not None:
        warning(f"[QUIZ] Dropping question: {reason}")
        return None

    q_type = candidate["type"]
    answer = candidate["correct_answer"]
    options = None

    if q_type == "multiple-choice":
        options = list(candidate["options"])
    elif q_type == "true-false":
        answer = answer.strip().capitalize()
        options = list(TRUE_FALSE_OPTIONS)

    explanation = candidate.get("explanation")
    return QuizQuestion(
        question=candidate["question"],
        type=q_type,
        options=options,
        correct_answer=answer,
        explanation=explanation if isinstance(explanation, str) else None,
        difficulty=candidate["difficulty"],
    )


def validate_quiz_output(raw_text: str) -> list[QuizQuestion]:
    """
    Run both validation stages over one attempt's output.

    Raises:
        ContentValidationError: If no array was found or no question survived
    """
    candidates = parse_quiz_questions(raw_text)
    if candidates is None:
        raise ContentValidationError("The response was not a valid JSON array of questions")
    if not candidates:
        raise ContentValidationError("The JSON array contained no questions")

    questions = []
    first_reason = None
    for candidate in candidates:
        validated = validate_quiz_question(candidate)
        if validated is not None:
            questions.append(validated)
        elif first_reason is None:
            first_reason = _rejection_reason(candidate)

    if not questions:
        raise ContentValidationError(
            f"None of the {len(candidates)} questions passed validation ({first_reason})"
        )

    debug_log(f"[QUIZ] {len(questions)}/{len(candidates)} questions passed validation")
    return questions


class QuizGenerationLoop:
    """
    Generates a quiz, retrying on invalid content.

    Makes at most max_retries + 1 generation calls. Each call streams its
    increments to the observer like any other job.
    """

    def __init__(self, client, max_retries: int = QUIZ_MAX_RETRIES):
        if max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {max_retries}")
        self.client = client
        self.max_retries = max_retries

    def run(
        self,
        document_id: int,
        text: str,
        options: QuizGenerationOptions,
        model: str,
        endpoint: str,
        emit: EventSink,
        persist,
    ) -> GenerationOutcome:
        """
        Generate, validate, persist, then emit the terminal event.

        Args:
            document_id: Document the quiz is generated from
            text: Document text (truncated to the prompt budget per attempt)
            options: Quiz configuration
            model: Ollama model name
            endpoint: Ollama server URL
            emit: Job observer
            persist: Called once with the validated questions; returns the quiz id

        Returns:
            GenerationOutcome with result_id set on success
        """
        outcome = GenerationOutcome(chunk_count=1)
        job = RetryableJob(prompt=build_quiz_prompt(text, options))

        info(f"[QUIZ] Generating {options.question_count} questions for document {document_id}")

        try:
            with Timer("Quiz generation", auto_log=False) as timer:
                questions = self._generate_valid_questions(
                    job, document_id, text, options, model, endpoint, emit
                )
            outcome.attempts = job.attempt
            outcome.timing["generate"] = timer.duration_ms
            outcome.result_id = persist(questions)
        except Exception as e:
            outcome.attempts = job.attempt
            message = str(e) or "Unknown error during quiz generation"
            error(f"[QUIZ] Quiz generation failed for document {document_id}: {message}")
            if job.last_failure_reason is not None:
                debug_log(f"[QUIZ] Last rejected attempt: {job.last_failure_reason}")
            outcome.fail(message)
            safe_emit(
                emit,
                StreamEvent(document_id, OperationType.QUIZ, chunk="", done=True, error=message),
                "QUIZ",
            )
            return outcome

        outcome.text = f"{len(questions)} questions"
        safe_emit(
            emit,
            StreamEvent(
                document_id,
                OperationType.QUIZ,
                chunk="",
                done=True,
                result_id=outcome.result_id,
            ),
            "QUIZ",
        )
        info(
            f"[QUIZ] Saved quiz {outcome.result_id} with {len(questions)} questions "
            f"after {job.attempt} attempt(s)"
        )
        return outcome

    def _generate_valid_questions(
        self,
        job: RetryableJob,
        document_id: int,
        text: str,
        options: QuizGenerationOptions,
        model: str,
        endpoint: str,
        emit: EventSink,
    ) -> list[QuizQuestion]:
        """Attempt until validation passes or the budget runs out."""
        while True:
            job.attempt += 1
            request = GenerationRequest(model=model, prompt=job.prompt, endpoint=endpoint)
            raw_text = stream_generation(
                self.client, request, emit, document_id, OperationType.QUIZ, component="QUIZ"
            )

            try:
                return validate_quiz_output(raw_text)
            except ContentValidationError as e:
                warning(
                    f"[QUIZ] Attempt {job.attempt}/{self.max_retries + 1} rejected: {e.reason}"
                )
                if job.attempt > self.max_retries:
                    job.last_failure_reason = e.reason
                    raise RetriesExhaustedError(job.attempt, job.last_failure_reason) from e
                job.record_failure(e.reason, build_quiz_retry_prompt(text, options, e.reason))
