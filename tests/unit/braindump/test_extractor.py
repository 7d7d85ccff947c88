"""Tests for veloce/braindump/extractor.py

Covers LLM response parsing, the rule-based fallback heuristics and
the choice between the two.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from veloce.braindump import extractor


SAMPLE_DUMP = "I need to call mom, pay rent asap and finish the report by Friday"


# ─────────────────────────────────────────────────────────────────────────────
# Response Parsing Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestParseResponse:
    """Tests for LLM response parsing."""

    def test_parses_plain_json(self):
        assert extractor.parse_response('{"tasks": []}') == {"tasks": []}

    def test_strips_markdown_fences(self):
        text = '```json\n{"tasks": [{"title": "Call mom"}]}\n```'

        assert extractor.parse_response(text)["tasks"][0]["title"] == "Call mom"

    def test_ignores_surrounding_prose(self):
        text = 'Here you go:\n{"tasks": []}\nHope that helps!'

        assert extractor.parse_response(text) == {"tasks": []}

    def test_raises_without_json(self):
        with pytest.raises(ValueError):
            extractor.parse_response("I couldn't find any tasks.")


class TestNormalize:
    """Tests for mapping extracted tasks onto our fields."""

    def test_maps_camel_case_fields(self):
        task = extractor.normalize_task({
            "title": "Call mom",
            "estimatedMinutes": 15,
            "priority": "HIGH",
            "category": "social",
            "relatedPerson": "Mom",
            "dueContext": "tomorrow",
            "suggestion": "null",
        })

        assert task == {
            "title": "Call mom",
            "estimated_minutes": 15,
            "priority": "high",
            "category": "social",
            "suggestion": None,
            "related_person": "Mom",
            "due_context": "tomorrow",
        }

    def test_unknown_priority_and_category_default(self):
        task = extractor.normalize_task({"title": "Thing", "priority": "critical", "category": "chores"})

        assert task["priority"] == "medium"
        assert task["category"] == "other"

    def test_bad_minutes_become_none(self):
        assert extractor.normalize_task({"title": "Thing", "estimatedMinutes": "a while"})["estimated_minutes"] is None

    def test_drops_untitled_tasks(self):
        assert extractor.normalize_task({"title": "  "}) is None

    def test_result_caps_tasks(self):
        data = {"tasks": [{"title": f"Task {i}"} for i in range(5)], "detected_themes": "work"}

        result = extractor.normalize_result(data, max_tasks=3)

        assert len(result["tasks"]) == 3
        assert result["detected_themes"] == []

    def test_result_requires_task_list(self):
        with pytest.raises(ValueError):
            extractor.normalize_result({"tasks": "none"}, max_tasks=3)


# ─────────────────────────────────────────────────────────────────────────────
# Rule-Based Extraction Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestRuleHeuristics:
    """Tests for the individual keyword heuristics."""

    def test_strip_lead_in(self):
        assert extractor.strip_lead_in("I need to call mom") == ("call mom", True)
        assert extractor.strip_lead_in("- buy milk") == ("buy milk", False)

    def test_actionable(self):
        assert extractor.is_actionable("buy milk") is True
        assert extractor.is_actionable("remember to breathe") is True
        assert extractor.is_actionable("the weather is nice") is False

    def test_split_keeps_non_action_and_together(self):
        assert extractor.split_fragments("buy salt and pepper") == ["buy salt and pepper"]

    def test_split_on_action_and(self):
        assert extractor.split_fragments("call mom and pay rent") == ["call mom", "pay rent"]

    def test_split_sentences(self):
        assert extractor.split_fragments("Email Sam. Book flights!\nRead chapter 3") == [
            "Email Sam", "Book flights", "Read chapter 3",
        ]

    @pytest.mark.parametrize(
        "fragment,priority",
        [("pay rent asap", "high"), ("maybe learn guitar", "low"), ("buy milk", "medium")],
    )
    def test_priority(self, fragment, priority):
        assert extractor.detect_priority(fragment) == priority

    @pytest.mark.parametrize(
        "fragment,category",
        [
            ("finish the report", "work"),
            ("book the dentist", "health"),
            ("pay the bills", "finance"),
            ("call mom", "social"),
            ("study for the exam", "learning"),
            ("do the laundry", "personal"),
            ("fix the thing", "other"),
        ],
    )
    def test_category(self, fragment, category):
        assert extractor.detect_category(fragment) == category

    def test_due_context(self):
        assert extractor.detect_due_context("submit it by friday") == "Friday"
        assert extractor.detect_due_context("call back tomorrow") == "tomorrow"
        assert extractor.detect_due_context("sometime next week") == "next week"
        assert extractor.detect_due_context("buy milk") is None

    def test_person(self):
        assert extractor.detect_person("email Sarah the slides") == "Sarah"
        assert extractor.detect_person("visit grandma") == "Grandma"
        assert extractor.detect_person("buy milk") is None

    def test_estimate_uses_task_type_and_buffer(self):
        # communicate = 30 minutes, plus 40% buffer
        assert extractor.estimate_minutes("call mom") == 42
        assert extractor.estimate_minutes("water the plants") == 28


class TestExtractSimple:
    """Tests for the full rule-based extractor."""

    def test_extracts_sample_dump(self):
        result = extractor.extract_simple(SAMPLE_DUMP)

        tasks = result["data"]["tasks"]
        assert [t["title"] for t in tasks] == ["Call mom", "Pay rent asap", "Finish the report by Friday"]

        call, rent, report = tasks
        assert call["category"] == "social"
        assert call["related_person"] == "Mom"
        assert call["estimated_minutes"] == 42
        assert rent["priority"] == "high"
        assert rent["category"] == "finance"
        assert report["category"] == "work"
        assert report["due_context"] == "Friday"
        assert report["estimated_minutes"] == 126
        assert report["suggestion"] is not None

    def test_observation_points_at_smallest_task(self):
        result = extractor.extract_simple(SAMPLE_DUMP)

        assert "Pay rent asap" in result["data"]["gentle_observation"]
        assert result["data"]["detected_themes"] == ["social", "finance", "work"]

    def test_detects_overwhelm(self):
        result = extractor.extract_simple("I'm so overwhelmed. Need to clean the house")

        assert result["data"]["overall_mood"] == "overwhelmed"
        assert len(result["data"]["tasks"]) == 1

    def test_nothing_actionable(self):
        result = extractor.extract_simple("The sky was pretty today")

        assert result["success"] is True
        assert result["data"]["tasks"] == []


# ─────────────────────────────────────────────────────────────────────────────
# LLM / Fallback Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestExtractTasks:
    """Tests for choosing between LLM and rules."""

    def test_rejects_empty_text(self):
        assert extractor.extract_tasks("   ", use_llm=False)["success"] is False

    def test_rules_only(self):
        result = extractor.extract_tasks(SAMPLE_DUMP, use_llm=False)

        assert result["data"]["source"] == "rules"

    def test_uses_llm_when_it_works(self):
        llm_result = {
            "success": True,
            "data": {"tasks": [], "overall_mood": "calm", "gentle_observation": None, "detected_themes": []},
        }
        with patch("veloce.braindump.extractor.extract_with_llm", return_value=llm_result):
            result = extractor.extract_tasks(SAMPLE_DUMP, use_llm=True)

        assert result["data"]["source"] == "llm"
        assert result["data"]["overall_mood"] == "calm"

    def test_falls_back_to_rules(self):
        with patch(
            "veloce.braindump.extractor.extract_with_llm",
            return_value={"success": False, "error": "ANTHROPIC_API_KEY not set"},
        ):
            result = extractor.extract_tasks(SAMPLE_DUMP, use_llm=True)

        assert result["success"] is True
        assert result["data"]["source"] == "rules"
        assert len(result["data"]["tasks"]) == 3

    def test_no_fallback_returns_llm_error(self):
        with patch(
            "veloce.braindump.extractor.extract_with_llm",
            return_value={"success": False, "error": "ANTHROPIC_API_KEY not set"},
        ):
            result = extractor.extract_tasks(SAMPLE_DUMP, use_llm=True, fallback=False)

        assert result["success"] is False


class TestExtractWithLLM:
    """Tests for the LLM call itself, with the client mocked."""

    def test_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        result = extractor.extract_with_llm(SAMPLE_DUMP)

        assert result["success"] is False
        assert "ANTHROPIC_API_KEY" in result["error"]

    def test_parses_client_response(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
        payload = {"tasks": [{"title": "Call mom", "priority": "high"}], "overall_mood": "busy"}
        message = MagicMock()
        message.content = [MagicMock(text=json.dumps(payload))]

        with patch("anthropic.Anthropic") as client_class:
            client_class.return_value.messages.create.return_value = message
            result = extractor.extract_with_llm(SAMPLE_DUMP)

        assert result["success"] is True
        assert result["data"]["tasks"][0]["title"] == "Call mom"
        assert result["data"]["overall_mood"] == "busy"

    def test_unparseable_response(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
        message = MagicMock()
        message.content = [MagicMock(text="Sorry, I can't help with that.")]

        with patch("anthropic.Anthropic") as client_class:
            client_class.return_value.messages.create.return_value = message
            result = extractor.extract_with_llm(SAMPLE_DUMP)

        assert result["success"] is False
        assert "Could not understand" in result["error"]

    @pytest.mark.parametrize(
        "content",
        [[], None, [MagicMock(spec=["type", "id", "input"], type="tool_use")]],
        ids=["empty", "missing", "non_text_block"],
    )
    def test_reply_without_text(self, monkeypatch, content):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
        message = MagicMock()
        message.content = content

        with patch("anthropic.Anthropic") as client_class:
            client_class.return_value.messages.create.return_value = message
            result = extractor.extract_with_llm(SAMPLE_DUMP)

        assert result["success"] is False
        assert "no text" in result["error"]

    def test_empty_reply_falls_back_to_rules(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key")
        message = MagicMock()
        message.content = []

        with patch("anthropic.Anthropic") as client_class:
            client_class.return_value.messages.create.return_value = message
            result = extractor.extract_tasks(SAMPLE_DUMP, use_llm=True)

        assert result["success"] is True
        assert result["data"]["source"] == "rules"

    def test_joins_text_blocks(self):
        message = MagicMock()
        message.content = [
            MagicMock(text='{"tasks": '),
            MagicMock(spec=["type"], type="tool_use"),
            MagicMock(text="[]}"),
        ]

        assert extractor.response_text(message) == '{"tasks": []}'


def test_loads_prompt_file():
    prompt = extractor.load_extraction_prompt()

    assert "tasks" in prompt
