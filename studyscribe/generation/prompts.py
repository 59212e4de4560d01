"""
Prompt templates for document operations.

Each template contains a single `{text}` placeholder that receives the
document text (or, for combine prompts, the labeled per-chunk results).
Quiz templates additionally take the quiz configuration.
"""

import re

from studyscribe.config import RAW_TEXT_MAX_LENGTH
from studyscribe.logging_config import debug_log, warning

TEXT_PLACEHOLDER = "{text}"
QUIZ_PLACEHOLDER_RE = re.compile(r"\{(text|questionCount|questionTypes|difficulty|failureReason)\}")

# ---------------------------------------------------------------------------
# Summary prompts (style variants)
# ---------------------------------------------------------------------------

SUMMARIZE_BRIEF_PROMPT = "Summarize the following document in 2-3 concise paragraphs:\n\n{text}"

SUMMARIZE_DETAILED_PROMPT = (
    "Provide a detailed summary of the following document in 5-7 paragraphs, "
    "covering all major topics and key arguments:\n\n{text}"
)

SUMMARIZE_ACADEMIC_PROMPT = (
    "Write an academic abstract for the following document. Use formal language, "
    "state the purpose, methodology (if applicable), key findings, and conclusions:\n\n{text}"
)

SUMMARY_PROMPTS = {
    "brief": SUMMARIZE_BRIEF_PROMPT,
    "detailed": SUMMARIZE_DETAILED_PROMPT,
    "academic": SUMMARIZE_ACADEMIC_PROMPT,
}

# ---------------------------------------------------------------------------
# Extraction prompts
# ---------------------------------------------------------------------------

KEY_POINTS_PROMPT = (
    "Extract 5-10 key points from the following document. "
    "Return each point on a new line starting with a dash (-):\n\n{text}"
)

KEY_TERMS_PROMPT = (
    "Extract 5-15 key terms and their definitions from the following document. "
    'Return ONLY a JSON array where each element has a "term" and "definition" field. '
    'Example format: [{"term": "Example", "definition": "A brief definition"}]\n\n{text}'
)

# ---------------------------------------------------------------------------
# Combine prompts (reduce phase of chunked jobs)
# ---------------------------------------------------------------------------

COMBINE_SUMMARIES_PROMPT = (
    "The following are summaries of consecutive sections of a document. Combine them "
    "into a single cohesive summary, removing redundancy and maintaining logical flow:\n\n{text}"
)

COMBINE_KEY_POINTS_PROMPT = (
    "The following are key points extracted from consecutive sections of a document. "
    "Merge them into a deduplicated, ranked list of 5-10 key points. Remove duplicates and "
    "near-duplicates, keeping the most important and specific points. Return each point on "
    "a new line starting with a dash (-):\n\n{text}"
)

COMBINE_KEY_TERMS_PROMPT = (
    "The following are key terms extracted from consecutive sections of a document. Merge "
    "them into a deduplicated list of 5-15 key terms with definitions. Remove duplicate "
    "terms, merge definitions where appropriate. Return ONLY a JSON array where each "
    'element has a "term" and "definition" field:\n\n{text}'
)

# ---------------------------------------------------------------------------
# Quiz prompts
# ---------------------------------------------------------------------------

QUIZ_GENERATION_PROMPT = """Create a quiz of {questionCount} questions from the document below.

Question types to use: {questionTypes}
Difficulty: {difficulty}

Return ONLY a JSON array. Each element must be an object with these fields:
- "question": the question text
- "type": one of "multiple-choice", "true-false", "short-answer"
- "options": for multiple-choice, an array of exactly 4 answer strings; for true-false, ["True", "False"]; for short-answer, null
- "correct_answer": for multiple-choice, one of the options verbatim; for true-false, "True" or "False"; for short-answer, a brief answer
- "explanation": one sentence explaining the answer
- "difficulty": one of "easy", "medium", "hard"

DOCUMENT:
{text}"""

QUIZ_RETRY_PROMPT = """Your previous answer could not be used: {failureReason}

Create a quiz of {questionCount} questions from the document below.

Question types to use: {questionTypes}
Difficulty: {difficulty}

Respond with a JSON array and nothing else: no prose before or after it, no markdown.
Each element must be an object with the fields "question", "type", "options", "correct_answer", "explanation" and "difficulty".
- "type" must be one of "multiple-choice", "true-false", "short-answer"
- multiple-choice questions need at least 4 options and "correct_answer" must match one option exactly
- true-false questions must answer "True" or "False"
- short-answer questions use null for "options"
- "difficulty" must be one of "easy", "medium", "hard"

DOCUMENT:
{text}"""


def fill_text(template: str, text: str) -> str:
    """Replace the first {text} placeholder in a template."""
    return template.replace(TEXT_PLACEHOLDER, text, 1)


def get_summary_prompt(style: str) -> str:
    """Return the summary template for a style; unknown styles fall back to brief."""
    return SUMMARY_PROMPTS.get(style, SUMMARIZE_BRIEF_PROMPT)


def _quiz_values(options, failure_reason: str | None = None) -> dict[str, str]:
    values = {
        "questionCount": str(options.question_count),
        "questionTypes": options.question_types,
        "difficulty": options.difficulty,
    }
    if failure_reason is not None:
        values["failureReason"] = failure_reason
    return values


def _render_quiz_template(template: str, values: dict[str, str]) -> str:
    """Fill every placeholder in one pass; inserted values are never re-scanned."""
    return QUIZ_PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def _build_with_text_budget(template: str, values: dict[str, str], document_text: str) -> str:
    """
    Fill {text} with as much of the document as the prompt budget allows.

    The budget is RAW_TEXT_MAX_LENGTH minus everything in the rendered prompt
    except the document itself.
    """
    overhead = len(_render_quiz_template(template, {**values, "text": ""}))
    text_budget = RAW_TEXT_MAX_LENGTH - overhead
    if text_budget <= 0:
        warning("[QUIZ] Text budget is non-positive; prompt template is too long")

    truncated = document_text[:max(0, text_budget)]
    if len(truncated) < len(document_text):
        debug_log(
            f"[QUIZ] Truncated document text from {len(document_text)} to "
            f"{len(truncated)} chars (budget: {text_budget})"
        )
    return _render_quiz_template(template, {**values, "text": truncated})


def build_quiz_prompt(document_text: str, options) -> str:
    """
    Construct the first-attempt quiz prompt.

    Args:
        document_text: Raw document text
        options: QuizGenerationOptions

    Returns:
        Prompt no longer than RAW_TEXT_MAX_LENGTH (unless the template alone is)
    """
    prompt = _build_with_text_budget(QUIZ_GENERATION_PROMPT, _quiz_values(options), document_text)
    debug_log(f"[QUIZ] Built quiz prompt ({len(prompt)} chars)")
    return prompt


def build_quiz_retry_prompt(document_text: str, options, failure_reason: str) -> str:
    """
    Construct a follow-up quiz prompt that explains why the last answer was rejected.

    The failure reason may quote model output, so it is inserted verbatim and
    never treated as a template.

    Args:
        document_text: Raw document text (the original source, not the last output)
        options: QuizGenerationOptions of the job
        failure_reason: Why the previous attempt failed validation
    """
    values = _quiz_values(options, failure_reason)
    prompt = _build_with_text_budget(QUIZ_RETRY_PROMPT, values, document_text)
    debug_log(f"[QUIZ] Built retry prompt ({len(prompt)} chars), reason: {failure_reason}")
    return prompt
