import pytest

import priority

ORIGINAL_GENERATE = priority._generate_text


@pytest.mark.parametrize("reply, expected", [
    ("low", "low"),
    ("High", "high"),
    ("CRITICAL ", "critical"),
    ("\n medium\n", "medium"),
])
def test_reply_is_normalized(gemini, reply, expected):
    gemini.reply = reply
    assert priority.classify_priority("Server down, data exposed", "Customer data breach") == expected


@pytest.mark.parametrize("reply", ["urgent", "critical!", "", "The priority is high"])
def test_unexpected_reply_defaults_to_medium(gemini, reply):
    gemini.reply = reply
    assert priority.classify_priority("t", "d") == "medium"


def test_failure_defaults_to_medium(gemini):
    gemini.error = TimeoutError("deadline exceeded")
    assert priority.classify_priority("t", "d") == "medium"


def test_missing_api_key_defaults_to_medium(monkeypatch):
    monkeypatch.setattr(priority, "_generate_text", ORIGINAL_GENERATE)
    monkeypatch.setattr(priority, "GEMINI_API_KEY", "")
    assert priority.classify_priority("t", "d") == "medium"


def test_prompt_carries_title_and_description(gemini):
    priority.classify_priority("Broken door", "The lobby door will not lock")
    prompt = gemini.prompts[-1]
    assert "Title: Broken door" in prompt
    assert "Description: The lobby door will not lock" in prompt
    assert "low, medium, high, critical" in prompt


def test_normalize_priority():
    assert priority.normalize_priority(None) is None
    assert priority.normalize_priority(" Low") == "low"
    assert priority.normalize_priority("severe") is None
