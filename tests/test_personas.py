"""Tests for spec_debate/personas.py."""

import pytest

from spec_debate.models import Persona
from spec_debate.personas import PERSONA_DESCRIPTIONS, PERSONA_LABELS, critique_prompt, system_prompt


@pytest.mark.parametrize("persona", list(Persona))
def test_every_persona_has_prompt_label_and_description(persona):
    assert system_prompt(persona)
    assert PERSONA_LABELS[persona]
    assert PERSONA_DESCRIPTIONS[persona]


def test_system_prompts_are_distinct():
    prompts = {system_prompt(p) for p in Persona}
    assert len(prompts) == len(Persona)


def test_critique_prompt_embeds_spec_and_persona():
    spec = '# Rate limits\n\nConfig: {"burst": 10}'
    prompt = critique_prompt(spec, Persona.PERFORMANCE)
    assert spec in prompt
    assert "as a performance expert" in prompt
    assert '"verdict": "approve" | "needs-changes" | "reject"' in prompt
    assert prompt.endswith("Return ONLY valid JSON, no markdown or explanation.")
