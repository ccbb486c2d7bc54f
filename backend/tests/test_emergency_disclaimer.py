from backend.app.safety.disclaimer import DISCLAIMERS, get_disclaimer
from backend.app.safety.emergency import (
    EMERGENCY_RESPONSES,
    check_emergency,
    get_emergency_response,
    requires_consultation,
)


def test_no_emergency_for_empty_or_plain_text():
    for text in (None, "", "What is a balanced breakfast?"):
        res = check_emergency(text)
        assert res.is_emergency is False
        assert res.severity == "low"
        assert res.matched_keywords == []


def test_single_match_is_medium():
    res = check_emergency("I want to kill myself")
    assert res.is_emergency is True
    assert res.severity == "medium"
    assert res.matched_keywords == ["kill myself"]


def test_two_matches_is_high():
    res = check_emergency("Chest pain and I can't breathe")
    assert res.is_emergency is True
    assert res.severity == "high"
    assert set(res.matched_keywords) == {"chest pain", "can't breathe"}


def test_hindi_keywords_detected():
    assert check_emergency("मुझे दिल का दौरा पड़ रहा है").is_emergency is True


def test_requires_consultation():
    assert requires_consultation("What dosage of metformin is safe?") is True
    assert requires_consultation("How much water should I drink?") is False
    assert requires_consultation(None) is False


def test_emergency_response_falls_back_to_english():
    assert get_emergency_response("hi") == EMERGENCY_RESPONSES["hi"]
    assert get_emergency_response("fr") == EMERGENCY_RESPONSES["en"]
    assert get_emergency_response(None) == EMERGENCY_RESPONSES["en"]
    assert "988" in get_emergency_response("en")


def test_disclaimer_priority_emergency_over_medical():
    d = get_disclaimer("chest pain symptom after treatment")
    assert d.category == "emergency"
    assert d.requires_professional is True
    assert d.text == DISCLAIMERS["en"]["emergency"]


def test_disclaimer_medical_over_mental():
    d = get_disclaimer("Is anxiety a symptom of thyroid disease?")
    assert d.category == "medical"
    assert d.requires_professional is True


def test_disclaimer_mental_does_not_require_professional_flag():
    d = get_disclaimer("I feel a lot of stress at work")
    assert d.category == "mental"
    assert d.requires_professional is False


def test_disclaimer_general_and_language_fallback():
    d = get_disclaimer("Tell me about yoga", language="de")
    assert d.category == "general"
    assert d.language == "en"
    assert d.text == DISCLAIMERS["en"]["general"]

    hi = get_disclaimer("Tell me about yoga", language="hi")
    assert hi.text == DISCLAIMERS["hi"]["general"]
