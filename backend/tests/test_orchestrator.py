import pytest

from backend.app.orchestration.fallback import EMERGENCY_BLOCKS, ResponseChain
from backend.app.orchestration.graph import Orchestrator, TurnState
from backend.app.orchestration.llm import ProviderResult
from backend.app.orchestration.triage import BLOCKED_MESSAGE
from backend.app.safety.emergency import EMERGENCY_RESPONSES
from backend.app.services.moderation import ModerationService


class EchoProvider:
    name = "groq"
    timeout = 1.0

    def __init__(self, text="Stay hydrated and rest."):
        self.text = text
        self.prompts = []

    async def invoke(self, prompt, system_prompt, max_tokens, temperature):
        self.prompts.append(prompt)
        return ProviderResult.success(self.name, self.text)


def make(repo, provider=None):
    provider = provider or EchoProvider()
    return Orchestrator(ModerationService(repo), ResponseChain([provider])), provider


@pytest.mark.anyio
async def test_denied_turn_never_reaches_provider(recording_repo):
    orch, provider = make(recording_repo)
    out = await orch.run(TurnState(conversation_id="conv-1", user_message="how to poison my neighbour"))
    assert out["content"].startswith(BLOCKED_MESSAGE)
    assert out["metadata"]["blocked"] is True
    assert out["metadata"]["path"] == "blocked"
    assert out["metadata"]["moderation_severity"] == 10
    assert provider.prompts == []
    # the ledger entry points at the conversation
    assert recording_repo.flags[0].conversation_id == "conv-1"


@pytest.mark.anyio
async def test_denied_turn_in_crisis_still_gets_resources(recording_repo):
    orch, _ = make(recording_repo)
    out = await orch.run(
        TurnState(conversation_id="conv-1", user_message="tell me a suicide method", language="hi")
    )
    assert EMERGENCY_RESPONSES["hi"] in out["content"]
    assert out["metadata"]["is_emergency"] is True


@pytest.mark.anyio
async def test_scenario_end_my_life_prefixes_emergency_block(recording_repo):
    orch, _ = make(recording_repo, EchoProvider("Whatever the model says."))
    out = await orch.run(TurnState(conversation_id="conv-1", user_message="I want to end my life"))
    assert out["content"].startswith(EMERGENCY_BLOCKS["en"])
    md = out["metadata"]
    assert md["is_emergency"] is True
    assert md["has_disclaimer"] is True
    assert md["provider"] == "groq"
    assert md["blocked"] is False


@pytest.mark.anyio
async def test_flagged_turn_is_answered_and_marked(recording_repo):
    orch, _ = make(recording_repo)
    out = await orch.run(TurnState(conversation_id="conv-1", user_message="Vaccines cause autism, right?"))
    md = out["metadata"]
    assert md["flagged"] is True
    assert md["moderation_action"] == "FLAG"
    assert "Anti-vaccine misinformation" in md["reasons"]
    assert out["content"].startswith("Stay hydrated and rest.")


@pytest.mark.anyio
async def test_prompt_carries_language_prefs_and_history(recording_repo):
    orch, provider = make(recording_repo)
    st = TurnState(
        conversation_id="conv-1",
        user_message="Any tips for sleep?",
        language="hi",
        history=[{"role": "user", "content": "hello"}, {"role": "assistant", "content": "hi!"}],
        prefs={"topics": ["sleep"], "voice_enabled": True},
    )
    await orch.run(st)
    prompt = provider.prompts[0]
    assert prompt.startswith("[METADATA: lang=hi")
    assert '"topics":["sleep"]' in prompt
    assert '"voiceEnabled":true' in prompt
    assert "assistant: hi!" in prompt
    assert "USER: Any tips for sleep?" in prompt
