"""
Agent personas — typed view over the `Agent.skills` JSON blob.

The dashboard stores skills as {"type": "<persona name>", "config": {...}}.
Routing only needs the persona category and a small, typed config, so the
blob is parsed into one of six persona classes:

    ContentWriter | SeoSpecialist | Marketing | CustomerSupport | DataAnalyst | Custom

Unknown type names become `Custom` but keep the stored label, which the
agent selector still matches on.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional, Type


@dataclass(frozen=True)
class PersonaConfig:
    """Per-agent configuration. Unrecognized keys are kept in `extra`."""
    focus_topics: Optional[str] = None
    tone: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PersonaConfig":
        if not data:
            return cls()
        data = dict(data)
        focus = data.pop("focusTopics", None) or data.pop("focus_topics", None)
        data.pop("focus_topics", None)
        tone = data.pop("tone", None)
        if isinstance(focus, (list, tuple)):
            focus = ", ".join(str(t) for t in focus)
        return cls(
            focus_topics=str(focus) if focus else None,
            tone=str(tone) if tone else None,
            extra=data,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        if self.focus_topics:
            data["focusTopics"] = self.focus_topics
        if self.tone:
            data["tone"] = self.tone
        return data


@dataclass(frozen=True)
class AgentPersona:
    """Base persona. Subclasses set TYPE_NAME."""
    TYPE_NAME: ClassVar[str] = "Custom"

    config: PersonaConfig = field(default_factory=PersonaConfig)
    label: str = ""  # Type name as stored; may differ from TYPE_NAME for Custom

    @property
    def type_name(self) -> str:
        return self.label or self.TYPE_NAME

    def to_skills(self) -> Dict[str, Any]:
        return {"type": self.type_name, "config": self.config.to_dict()}


@dataclass(frozen=True)
class ContentWriter(AgentPersona):
    TYPE_NAME: ClassVar[str] = "Content Writer"


@dataclass(frozen=True)
class SeoSpecialist(AgentPersona):
    TYPE_NAME: ClassVar[str] = "SEO Specialist"


@dataclass(frozen=True)
class Marketing(AgentPersona):
    TYPE_NAME: ClassVar[str] = "Marketing"


@dataclass(frozen=True)
class CustomerSupport(AgentPersona):
    TYPE_NAME: ClassVar[str] = "Customer Support"


@dataclass(frozen=True)
class DataAnalyst(AgentPersona):
    TYPE_NAME: ClassVar[str] = "Data Analyst"


@dataclass(frozen=True)
class Custom(AgentPersona):
    TYPE_NAME: ClassVar[str] = "Custom"


PERSONA_TYPES: Dict[str, Type[AgentPersona]] = {
    cls.TYPE_NAME: cls
    for cls in (ContentWriter, SeoSpecialist, Marketing, CustomerSupport, DataAnalyst, Custom)
}


def persona_class_for(type_name: Optional[str]) -> Type[AgentPersona]:
    return PERSONA_TYPES.get(type_name or "", Custom)


def make_persona(type_name: str, config: Optional[Dict[str, Any]] = None) -> AgentPersona:
    cls = persona_class_for(type_name)
    return cls(config=PersonaConfig.from_dict(config), label=type_name or cls.TYPE_NAME)


def persona_from_skills(skills: Optional[Dict[str, Any]]) -> AgentPersona:
    """Parse a stored skills blob. Missing or malformed blobs give a Custom persona."""
    if not isinstance(skills, dict):
        return Custom()
    type_name = skills.get("type")
    config = skills.get("config")
    if not isinstance(type_name, str):
        type_name = ""
    if not isinstance(config, dict):
        config = None
    return make_persona(type_name, config)
