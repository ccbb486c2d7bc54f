from typing import Any, Dict


def normalize_meta(meta: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize turn metadata across the generated and blocked paths.

    - Ensures missing keys exist with safe defaults.
    - Coerces types of common fields.
    """
    out: Dict[str, Any] = dict(meta or {})
    out.setdefault("path", "generated")
    out.setdefault("provider", None)
    out.setdefault("blocked", False)
    out.setdefault("flagged", False)
    out.setdefault("reasons", [])
    out.setdefault("moderation_action", "ALLOW")
    out.setdefault("has_disclaimer", False)
    out.setdefault("is_emergency", False)
    out.setdefault("emergency_severity", "low")
    out.setdefault("disclaimer_category", "general")
    out.setdefault("requires_professional", False)
    out.setdefault("validation_issues", [])
    out.setdefault("language", "en")
    try:
        out["moderation_severity"] = int(out.get("moderation_severity", 0) or 0)
    except (TypeError, ValueError):
        out["moderation_severity"] = 0
    for key in ("blocked", "flagged", "has_disclaimer", "is_emergency", "requires_professional"):
        out[key] = bool(out.get(key))
    for key in ("reasons", "validation_issues"):
        if not isinstance(out.get(key), list):
            out[key] = [out[key]] if out.get(key) else []
    return out
