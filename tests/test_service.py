"""
Tests for AIJobService.

Jobs run under SequentialStrategy, so every event has been emitted by the
time a submission method returns.
"""

import json
import logging
from unittest.mock import MagicMock

import pytest

from studyscribe.config import CHUNK_SIZE
from studyscribe.generation import (
    AIJobService,
    JobAcknowledgement,
    KeyTerm,
    OperationType,
    QuizGenerationOptions,
)
from studyscribe.parallel import SequentialStrategy
from studyscribe.settings import OLLAMA_MODEL_KEY, OLLAMA_URL_KEY, SettingsManager


class FakeStore:
    """DocumentStore stand-in."""

    def __init__(self, texts):
        self.texts = texts
        self.summaries = {}
        self.key_points = {}
        self.key_terms = {}
        self.quizzes = []

    def get_document_text(self, document_id):
        return self.texts.get(document_id)

    def save_summary(self, document_id, summary):
        self.summaries[document_id] = summary

    def save_key_points(self, document_id, key_points):
        self.key_points[document_id] = key_points

    def save_key_terms(self, document_id, key_terms):
        self.key_terms[document_id] = key_terms

    def create_quiz(self, document_id, questions, options):
        self.quizzes.append((document_id, questions, options))
        return 100 + len(self.quizzes)


@pytest.fixture
def settings(tmp_path):
    manager = SettingsManager(tmp_path / "settings.yaml")
    manager.set(OLLAMA_MODEL_KEY, "phi3")
    manager.set(OLLAMA_URL_KEY, "http://gpu-box:11434")
    return manager


def make_service(client, store, settings, recorder):
    return AIJobService(store, settings, recorder, client=client, strategy=SequentialStrategy())


SHORT_TEXT = "Photosynthesis converts light into chemical energy."
LONG_TEXT = "a" * 7000


class TestInputValidation:

    @pytest.mark.parametrize("text", [None, "", "   \n  "])
    def test_no_content_rejected_without_network_call(self, scripted_client, recorder, settings, text):
        client = scripted_client([["unused"]])
        service = make_service(client, FakeStore({1: text}), settings, recorder)

        for ack in (
            service.summarize(1),
            service.extract_key_points(1),
            service.extract_key_terms(1),
            service.generate_quiz(1),
        ):
            assert ack == JobAcknowledgement(
                success=False,
                error_code="NO_CONTENT",
                error_message="Document 1 has no extracted text",
            )

        assert client.call_count == 0
        assert recorder.events == []

    def test_no_content_logged_with_service_prefix(self, scripted_client, recorder, settings, caplog):
        service = make_service(scripted_client([]), FakeStore({3: ""}), settings, recorder)

        with caplog.at_level(logging.INFO, logger="StudyScribe"):
            service.summarize(3)

        messages = [r.getMessage() for r in caplog.records if r.name == "StudyScribe"]
        assert messages == ["[AI JOBS] Document 3 has no extracted text"]

    def test_acknowledgement_to_dict(self):
        assert JobAcknowledgement.accepted().to_dict() == {"success": True}
        assert JobAcknowledgement.no_content(4).to_dict() == {
            "success": False,
            "error": {"code": "NO_CONTENT", "message": "Document 4 has no extracted text"},
        }


class TestSummaries:

    def test_short_document_single_call(self, scripted_client, recorder, settings):
        client = scripted_client([["A ", "summary."]])
        store = FakeStore({1: SHORT_TEXT})

        ack = make_service(client, store, settings, recorder).summarize(1, style="detailed")

        assert ack.success
        assert client.call_count == 1
        request = client.requests[0]
        assert request.model == "phi3"
        assert request.endpoint == "http://gpu-box:11434"
        assert "detailed summary" in request.prompt
        assert request.prompt.endswith(SHORT_TEXT)
        assert store.summaries == {1: "A summary."}
        assert recorder.events[-1].done and recorder.events[-1].error is None

    def test_long_document_uses_map_reduce(self, scripted_client, recorder, settings):
        client = scripted_client([["s1"], ["s2"], ["combined"]])
        store = FakeStore({1: LONG_TEXT})

        make_service(client, store, settings, recorder).summarize(1)

        assert client.call_count == 3
        assert "--- Chunk 1 ---\ns1" in client.requests[2].prompt
        assert store.summaries == {1: "combined"}
        assert {e.total_chunks for e in recorder.increments} == {2}

    def test_threshold_is_single_pass(self, scripted_client, recorder, settings):
        client = scripted_client([["ok"]])
        make_service(client, FakeStore({1: "b" * CHUNK_SIZE}), settings, recorder).summarize(1)

        assert client.call_count == 1

    def test_generation_failure_is_not_persisted(self, scripted_client, recorder, settings):
        client = scripted_client([ConnectionError("fetch failed")])
        store = FakeStore({1: SHORT_TEXT})

        ack = make_service(client, store, settings, recorder).summarize(1)

        assert ack.success
        assert store.summaries == {}
        assert [e.error for e in recorder.terminal_events] == ["fetch failed"]


class TestKeyPointsAndTerms:

    def test_key_points_saved_as_list(self, scripted_client, recorder, settings):
        client = scripted_client([["- First\n", "- Second\n"]])
        store = FakeStore({2: SHORT_TEXT})

        make_service(client, store, settings, recorder).extract_key_points(2)

        assert store.key_points == {2: ["First", "Second"]}
        assert recorder.events[0].operation_type == OperationType.KEY_POINTS

    def test_key_terms_saved(self, scripted_client, recorder, settings):
        terms = [{"term": "ATP", "definition": "Energy currency"}]
        client = scripted_client([[json.dumps(terms)]])
        store = FakeStore({2: SHORT_TEXT})

        make_service(client, store, settings, recorder).extract_key_terms(2)

        assert store.key_terms == {2: [KeyTerm("ATP", "Energy currency")]}

    def test_unparseable_key_terms_fail_job(self, scripted_client, recorder, settings):
        client = scripted_client([["Sorry, no terms here."]])
        store = FakeStore({2: SHORT_TEXT})

        make_service(client, store, settings, recorder).extract_key_terms(2)

        assert store.key_terms == {}
        terminal = recorder.terminal_events
        assert len(terminal) == 1 and terminal[0].error

    def test_long_key_terms_use_combine_prompt(self, scripted_client, recorder, settings):
        terms = json.dumps([{"term": "T", "definition": "D"}])
        client = scripted_client([[terms]])
        store = FakeStore({2: LONG_TEXT})

        make_service(client, store, settings, recorder).extract_key_terms(2)

        assert client.call_count == 3
        assert "Merge them into a deduplicated list" in client.requests[2].prompt
        assert store.key_terms == {2: [KeyTerm("T", "D")]}


class TestQuiz:

    VALID = [{
        "question": "Is light required for photosynthesis?",
        "type": "true-false",
        "options": ["True", "False"],
        "correct_answer": "TRUE",
        "explanation": "Light drives the reaction.",
        "difficulty": "easy",
    }]

    def test_quiz_created_and_id_in_terminal_event(self, scripted_client, recorder, settings):
        client = scripted_client([[json.dumps(self.VALID)]])
        store = FakeStore({3: SHORT_TEXT})
        options = QuizGenerationOptions(question_count=1, question_types="true-false", difficulty="easy")

        ack = make_service(client, store, settings, recorder).generate_quiz(3, options)

        assert ack.success
        assert len(store.quizzes) == 1
        document_id, questions, saved_options = store.quizzes[0]
        assert document_id == 3 and saved_options is options
        assert questions[0].correct_answer == "True"
        assert recorder.events[-1].result_id == 101

    def test_quiz_long_document_is_single_call(self, scripted_client, recorder, settings):
        client = scripted_client([[json.dumps(self.VALID)]])
        store = FakeStore({3: "c" * 20000})

        make_service(client, store, settings, recorder).generate_quiz(3)

        assert client.call_count == 1
        assert all(e.chunk_index is None for e in recorder.events)

    def test_quiz_retries_then_fails(self, scripted_client, recorder, settings):
        client = scripted_client([["no quiz today"]])
        store = FakeStore({3: SHORT_TEXT})

        make_service(client, store, settings, recorder).generate_quiz(3)

        assert client.call_count == 3
        assert store.quizzes == []
        assert "retries exhausted" in recorder.events[-1].error


class TestServerQueries:

    def test_health_and_models_use_configured_endpoint(self, recorder, settings):
        client = MagicMock()
        service = make_service(client, FakeStore({}), settings, recorder)

        service.check_health()
        service.list_models()

        client.check_health.assert_called_once_with("http://gpu-box:11434")
        client.list_models.assert_called_once_with("http://gpu-box:11434")

    def test_shutdown_stops_strategy(self, scripted_client, recorder, settings):
        strategy = MagicMock()
        service = AIJobService(FakeStore({}), settings, recorder,
                               client=scripted_client([]), strategy=strategy)

        service.shutdown()

        strategy.shutdown.assert_called_once_with(wait=True)
