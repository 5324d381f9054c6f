"""Tests for questionnaire API endpoints."""

import pytest
from httpx import AsyncClient

from tests.helpers import FakeLlm


def entry(question_id: str, question: str, answer) -> dict:
    return {"questionId": question_id, "question": question, "answer": answer}


MOOD = entry("mood", "How is your day going so far?", "Pretty good, can't complain.")


class TestQuestionnaireStart:
    """Tests for GET /api/questionnaire/start."""

    @pytest.mark.asyncio
    async def test_start_returns_mood_question(self, client: AsyncClient):
        response = await client.get("/api/questionnaire/start")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "mood"
        assert data["kind"] == "radio"
        assert data["prompt"] == "How is your day going so far?"
        assert len(data["options"]) == 8


class TestQuestionnaireNext:
    """Tests for POST /api/questionnaire/next."""

    @pytest.mark.asyncio
    async def test_mood_answer(self, client: AsyncClient, fake_llm: FakeLlm):
        response = await client.post("/api/questionnaire/next", json={"conversationHistory": [MOOD]})

        assert response.status_code == 200
        data = response.json()
        assert data["ready"] is False
        assert data["needsClarification"] is False
        assert data["confidence"] == 12
        assert data["nextQuestion"]["id"] == "content_type"
        # Catalog answers are resolved without the generative provider
        assert fake_llm.completion_calls == []

    @pytest.mark.asyncio
    async def test_anonymous_access_allowed(self, client: AsyncClient):
        response = await client.post("/api/questionnaire/next", json={"conversationHistory": []})

        assert response.status_code == 200
        assert response.json()["nextQuestion"]["id"] == "mood"

    @pytest.mark.asyncio
    async def test_free_text_answer_is_interpreted(self, client: AsyncClient, fake_llm: FakeLlm):
        fake_llm.queue({"categories": {"company": "Just me", "watch_time": "1-2 hours", "unknown": "x"}})
        history = [MOOD, {"question": "Tell me about your evening", "answer": "Chilling alone for a couple of hours"}]

        response = await client.post("/api/questionnaire/next", json={"conversationHistory": history})

        assert response.status_code == 200
        data = response.json()
        assert data["confidence"] == 36
        assert data["nextQuestion"]["id"] == "content_type"
        assert len(fake_llm.completion_calls) == 1
        assert "Chilling alone" in fake_llm.completion_calls[0][1]

    @pytest.mark.asyncio
    async def test_malformed_interpretation(self, client: AsyncClient, fake_llm: FakeLlm):
        fake_llm.queue({"answer": "not the expected shape"})
        history = [{"question": "Anything else?", "answer": "I like long slow films"}]

        response = await client.post("/api/questionnaire/next", json={"conversationHistory": history})

        assert response.status_code == 500
        assert response.json()["code"] == "malformed_response"

    @pytest.mark.asyncio
    async def test_ready_returns_preferences(self, client: AsyncClient):
        history = [
            MOOD,
            entry("content_type", "Are you in the mood for a movie or a series?", "Series only"),
            entry("watch_time", "How much time do you have to watch?", "A whole evening, binge mode"),
            entry("company", "Who are you watching with?", "With my partner"),
            entry("genres", "Which genres sound good right now? Pick at least two.", ["Crime", "Mystery"]),
            entry("watch_style", "How do you want to watch?", "Fully focused, no distractions"),
            entry("language", "How do you feel about language and subtitles?", "I love foreign-language content"),
            entry("underrated", "Interested in hidden gems and underrated titles?", "Yes, surprise me with hidden gems"),
        ]

        response = await client.post("/api/questionnaire/next", json={"conversationHistory": history})

        assert response.status_code == 200
        data = response.json()
        assert data["ready"] is True
        assert data["confidence"] >= 90
        assert data["nextQuestion"] is None
        prefs = data["preferences"]
        assert prefs["contentType"] == "Series only"
        assert prefs["genres"] == ["Crime", "Mystery"]
        assert prefs["company"] == "With my partner"

    @pytest.mark.asyncio
    async def test_questions_matched_by_prompt(self, client: AsyncClient):
        history = [{"question": "How is your day going so far?", "answer": "Great, everything is going well!"}]

        response = await client.post("/api/questionnaire/next", json={"conversationHistory": history})

        assert response.json()["confidence"] == 12

    @pytest.mark.asyncio
    async def test_vague_answer_needs_clarification(self, client: AsyncClient):
        history = [entry("mood", "How is your day going so far?", "idk")]

        response = await client.post("/api/questionnaire/next", json={"conversationHistory": history})

        data = response.json()
        assert data["needsClarification"] is True
        assert data["message"]
        assert data["nextQuestion"]["id"] == "mood_simple"

    @pytest.mark.asyncio
    async def test_history_too_long(self, client: AsyncClient):
        response = await client.post("/api/questionnaire/next", json={"conversationHistory": [MOOD] * 31})

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Invalid input data"
        assert data["details"]

    @pytest.mark.asyncio
    async def test_malformed_payload(self, client: AsyncClient):
        response = await client.post("/api/questionnaire/next", json={"conversationHistory": [{"answer": "x"}]})

        assert response.status_code == 400
        assert any("question" in d["field"] for d in response.json()["details"])
