from backend.app.orchestration.metadata import normalize_meta


def test_normalize_meta_defaults_and_types():
    md = normalize_meta({})
    # Defaults
    assert md["path"] == "generated"
    assert md["provider"] is None
    assert md["blocked"] is False
    assert md["flagged"] is False
    assert md["reasons"] == []
    assert md["moderation_action"] == "ALLOW"
    assert md["moderation_severity"] == 0
    assert md["has_disclaimer"] is False
    assert md["is_emergency"] is False
    assert md["emergency_severity"] == "low"
    assert md["disclaimer_category"] == "general"
    assert md["validation_issues"] == []
    assert md["language"] == "en"


def test_normalize_meta_coercions():
    md = normalize_meta({
        "moderation_severity": "7",
        "path": "blocked",
        "blocked": 1,
        "reasons": "Spam patterns detected",
        "validation_issues": None,
    })
    assert md["moderation_severity"] == 7
    assert md["path"] == "blocked"
    assert md["blocked"] is True
    assert md["reasons"] == ["Spam patterns detected"]
    assert md["validation_issues"] == []


def test_normalize_meta_bad_severity_falls_back_to_zero():
    assert normalize_meta({"moderation_severity": "high"})["moderation_severity"] == 0
    assert normalize_meta(None)["path"] == "generated"
