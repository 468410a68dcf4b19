"""
Prompt Builder — canned system prompts per agent persona.

Pure functions, no I/O. Unknown persona types use the Custom prompt; a
configured focus-topics string is appended as a trailing line.
"""

from typing import Any, Dict, Optional, Union

from superclaw.agent.personas import AgentPersona, PersonaConfig

SYSTEM_PROMPTS: Dict[str, str] = {
    "Content Writer": (
        "You are a professional content writer agent. Create engaging, well-structured "
        "content based on user requests. Focus on clarity, SEO best practices, and "
        "compelling storytelling."
    ),
    "SEO Specialist": (
        "You are an SEO specialist agent. Help with keyword research, on-page optimization, "
        "backlink strategies, and improving search rankings. Provide data-driven recommendations."
    ),
    "Marketing": (
        "You are a marketing expert agent. Create compelling ad copy, email sequences, landing "
        "page content, and marketing strategies. Focus on conversion and brand alignment."
    ),
    "Customer Support": (
        "You are a customer support agent. Respond to inquiries helpfully, answer FAQ questions, "
        "and route tickets when needed. Be polite, patient, and accurate."
    ),
    "Data Analyst": (
        "You are a data analyst agent. Help query data, generate reports, and create "
        "visualizations. Provide insights and actionable recommendations based on data."
    ),
    "Custom": (
        "You are a custom AI agent. Follow the user's specific instructions and configuration. "
        "Adapt to their needs."
    ),
}


def build_system_prompt(
    agent_type: Optional[str],
    config: Union[PersonaConfig, Dict[str, Any], None] = None,
) -> str:
    """
    Build the system prompt for an agent type.

    `config` may be a PersonaConfig or the raw dashboard dict
    (`{"focusTopics": "..."}`).
    """
    base_prompt = SYSTEM_PROMPTS.get(agent_type or "", SYSTEM_PROMPTS["Custom"])

    if not isinstance(config, PersonaConfig):
        config = PersonaConfig.from_dict(config)

    if config.focus_topics:
        return f"{base_prompt}\n\nFocus topics: {config.focus_topics}"
    return base_prompt


def build_persona_prompt(persona: AgentPersona) -> str:
    return build_system_prompt(persona.type_name, persona.config)
