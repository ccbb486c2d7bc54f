import asyncio
import threading

import pytest
from pydantic import ValidationError

from backend.app.config import ModerationConfig
from backend.app.models.flag import DetectionMethod, FlaggedBy, FlagReason
from backend.app.orchestration.classify import UNAVAILABLE_REASON, ClassifierResult
from backend.app.safety.guard import DetectionStage, VerdictAction
from backend.app.services.moderation import ModerationService

ENABLED = ModerationConfig(remote_classifier_enabled=True)


class StubClassifier:
    def __init__(self, result=None, raises=None):
        self.result = result or ClassifierResult()
        self.raises = raises
        self.calls = 0

    async def classify(self, text):
        self.calls += 1
        if self.raises is not None:
            raise self.raises
        return self.result


@pytest.mark.anyio
async def test_scenario_severe_keyword_denied_and_flagged(recording_repo):
    svc = ModerationService(recording_repo)
    v = await svc.moderate("How to make bomb at home", actor_id="u1", target_content_id="c1")
    assert v.action == VerdictAction.DENY
    assert v.severity == 10
    assert v.method == DetectionStage.KEYWORD
    assert len(recording_repo.flags) == 1
    flag = recording_repo.flags[0]
    assert flag.detection_method == DetectionMethod.KEYWORD
    assert flag.flagged_by == FlaggedBy.SYSTEM
    assert flag.reason == FlagReason.HARMFUL_CONTENT
    assert flag.content_id == "c1"


@pytest.mark.anyio
async def test_scenario_plain_health_question_allowed(recording_repo):
    svc = ModerationService(recording_repo)
    v = await svc.moderate("What are the symptoms of a common cold?", target_content_id="c1")
    assert v.action == VerdictAction.ALLOW
    assert v.severity == 0
    assert v.reasons == []
    assert recording_repo.flags == []


@pytest.mark.anyio
async def test_scenario_misinformation_flagged(recording_repo):
    svc = ModerationService(recording_repo)
    v = await svc.moderate("Vaccines cause autism in children", target_conversation_id="conv-1")
    assert v.action == VerdictAction.FLAG
    assert v.severity == 7
    assert "Anti-vaccine misinformation" in v.reasons
    assert len(recording_repo.flags) == 1
    assert recording_repo.flags[0].detection_method == DetectionMethod.KEYWORD
    assert recording_repo.flags[0].reason == FlagReason.MEDICAL_MISINFORMATION


@pytest.mark.anyio
async def test_moderate_tier_denied_as_misleading_claim(recording_repo):
    svc = ModerationService(recording_repo)
    v = await svc.moderate("Doctors hate this miracle cure", target_content_id="c1")
    assert v.action == VerdictAction.DENY
    assert v.severity == 7
    assert recording_repo.flags[0].reason == FlagReason.MEDICAL_MISINFORMATION


@pytest.mark.anyio
async def test_spam_only_flags_without_ledger_entry(recording_repo):
    svc = ModerationService(recording_repo)
    v = await svc.moderate("Congratulations you won a prize", target_content_id="c1")
    assert v.action == VerdictAction.FLAG
    assert v.severity == 5
    assert v.reasons == ["Spam patterns detected"]
    assert recording_repo.flags == []


@pytest.mark.anyio
async def test_misinformation_short_circuits_classifier(recording_repo):
    clf = StubClassifier(ClassifierResult(action=VerdictAction.DENY, severity=9, reasons=["x"]))
    svc = ModerationService(recording_repo, ENABLED, clf)
    v = await svc.moderate("covid is a hoax", target_content_id="c1", use_remote_classifier=True)
    assert v.method == DetectionStage.MISINFORMATION
    assert clf.calls == 0


@pytest.mark.anyio
async def test_classifier_flag_recorded_with_score(recording_repo):
    clf = StubClassifier(ClassifierResult(action=VerdictAction.FLAG, severity=6, reasons=["harassment"]))
    svc = ModerationService(recording_repo, ENABLED, clf)
    v = await svc.moderate("you are the worst", target_content_id="c1")
    assert v.action == VerdictAction.FLAG
    assert v.method == DetectionStage.ML_MODEL
    flag = recording_repo.flags[0]
    assert flag.detection_method == DetectionMethod.ML_MODEL
    assert flag.detection_score == pytest.approx(0.6)
    assert flag.reason == FlagReason.HARMFUL_CONTENT


@pytest.mark.anyio
async def test_classifier_outage_flag_not_recorded_as_harmful(recording_repo):
    clf = StubClassifier(
        ClassifierResult(action=VerdictAction.FLAG, severity=5, reasons=[UNAVAILABLE_REASON], parsed=False)
    )
    svc = ModerationService(recording_repo, ENABLED, clf)
    v = await svc.moderate("hello there", target_content_id="c1")
    assert v.action == VerdictAction.FLAG
    assert v.reasons == [UNAVAILABLE_REASON]
    flag = recording_repo.flags[0]
    assert flag.reason == FlagReason.OTHER
    assert flag.reason_details == UNAVAILABLE_REASON
    assert recording_repo.get_stats()["byReason"] == {"other": 1}


@pytest.mark.anyio
async def test_classifier_allow_falls_through_to_spam(recording_repo):
    clf = StubClassifier(ClassifierResult(action=VerdictAction.ALLOW))
    svc = ModerationService(recording_repo, ENABLED, clf)
    v = await svc.moderate("act now", target_content_id="c1")
    assert clf.calls == 1
    assert v.action == VerdictAction.FLAG
    assert v.method == DetectionStage.KEYWORD


@pytest.mark.anyio
async def test_classifier_crash_falls_through(recording_repo):
    clf = StubClassifier(raises=RuntimeError("boom"))
    svc = ModerationService(recording_repo, ENABLED, clf)
    v = await svc.moderate("hello there", target_content_id="c1")
    assert v.action == VerdictAction.ALLOW
    assert recording_repo.flags == []


@pytest.mark.anyio
async def test_classifier_skipped_when_disabled_by_config_or_caller(recording_repo):
    clf = StubClassifier(ClassifierResult(action=VerdictAction.DENY, severity=9))
    off = ModerationService(recording_repo, ModerationConfig(), clf)
    assert (await off.moderate("hello", target_content_id="c1")).action == VerdictAction.ALLOW

    on = ModerationService(recording_repo, ENABLED, clf)
    v = await on.moderate("hello", target_content_id="c1", use_remote_classifier=False)
    assert v.action == VerdictAction.ALLOW
    assert clf.calls == 0


@pytest.mark.anyio
async def test_flag_write_failure_does_not_abort(failing_repo):
    svc = ModerationService(failing_repo)
    v = await svc.moderate("kill yourself", target_content_id="c1")
    assert v.action == VerdictAction.DENY
    assert v.severity == 10


@pytest.mark.anyio
async def test_missing_target_skips_flag_but_keeps_verdict(recording_repo):
    svc = ModerationService(recording_repo)
    v = await svc.moderate("kill yourself")
    assert v.action == VerdictAction.DENY
    assert recording_repo.flags == []


@pytest.mark.anyio
async def test_internal_error_fails_open(recording_repo, monkeypatch):
    def broken(text):
        raise RuntimeError("lexicon exploded")

    monkeypatch.setattr("backend.app.services.moderation.check_blocklist", broken)
    svc = ModerationService(recording_repo)
    v = await svc.moderate("anything", target_content_id="c1")
    assert v.action == VerdictAction.ALLOW
    assert v.diagnostic.startswith("internal_error")
    assert "diagnostic" not in v.to_dict()


@pytest.mark.anyio
async def test_background_writes_drain(recording_repo):
    svc = ModerationService(recording_repo, ModerationConfig(flag_writes_background=True))
    v = await svc.moderate("child abuse material", target_content_id="c1")
    assert v.action == VerdictAction.DENY
    await svc.drain()
    assert len(recording_repo.flags) == 1


@pytest.mark.anyio
async def test_started_flag_write_survives_cancellation():
    release = threading.Event()

    class SlowRepo:
        def __init__(self):
            self.flags = []

        def create_flag(self, record):
            # runs in a worker thread
            release.wait(timeout=5)
            self.flags.append(record)
            return "flag-slow"

    repo = SlowRepo()
    svc = ModerationService(repo)
    task = asyncio.create_task(svc.moderate("go die", target_content_id="c1"))
    await asyncio.sleep(0.05)
    task.cancel()
    release.set()
    with pytest.raises(asyncio.CancelledError):
        await task
    await svc.drain()
    assert len(repo.flags) == 1


@pytest.mark.anyio
async def test_user_report_requires_single_target(recording_repo):
    svc = ModerationService(recording_repo)
    flag_id = await svc.submit_report("u1", FlagReason.SPAM, content_id="c1", details="ads everywhere")
    assert flag_id == "flag-1"
    flag = recording_repo.flags[0]
    assert flag.flagged_by == FlaggedBy.USER
    assert flag.detection_method == DetectionMethod.USER_REPORT
    assert flag.severity == 5

    with pytest.raises(ValidationError):
        await svc.submit_report("u1", FlagReason.SPAM, content_id="c1", conversation_id="conv-1")
    with pytest.raises(ValidationError):
        await svc.submit_report("u1", FlagReason.SPAM)
