from backend.app.policies.validator import validate_response


def test_validator_flags_dosage_and_guarantee_claims():
    ok, errs = validate_response("Take 4 pills twice a day. This is a guaranteed cure.", "I have a headache")
    assert ok is False
    assert isinstance(errs, list)
    assert len(errs) == 2


def test_validator_flags_emergency_query_without_emergency_pointer():
    ok, errs = validate_response("Try to rest and drink water.", "I think I took an overdose")
    assert ok is False
    assert errs == ["Emergency not properly addressed"]


def test_validator_accepts_emergency_answer_with_hotline():
    ok, errs = validate_response("Please call 112 right away.", "I think I took an overdose")
    assert ok is True, f"Unexpected errors: {errs}"


def test_validator_accepts_plain_answer():
    ok, errs = validate_response("Sleep 7-9 hours and stay hydrated.", "How can I sleep better?")
    assert ok is True
    assert errs == []
