"""Configuration dataclasses for the discovery compounding orchestrator.

Each config is a plain ``dataclass`` with a ``validate()`` method that raises
``ValueError`` on invalid combinations.  Configs are **frozen** so a running
orchestrator can share them between services without risking silent
mutation.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from typing import Any


# ===================================================================== #
#  Orchestrator Configuration                                            #
# ===================================================================== #

@dataclass(frozen=True)
class OrchestratorConfig:
    """Parameters governing the cycle scheduler.

    Attributes
    ----------
    cycle_interval:
        Seconds between periodic cycles.
    max_specialists:
        Upper bound on specialists dispatched per topic.
    queue_capacity:
        Active-window size of the topic queue.
    max_new_topics_per_cycle:
        Cap on suggestions converted into topics by one replenish step.
    directed_topic_max_length:
        Longest accepted directed-topic text.
    activity_log_size:
        Events kept for the activity feed.  Once exceeded, the store is
        trimmed to the newest half.
    call_timeout:
        Deadline in seconds applied to every reasoning call the
        orchestrator makes, whatever capability backs it.
    """

    cycle_interval: float = 30.0
    max_specialists: int = 2
    queue_capacity: int = 20
    max_new_topics_per_cycle: int = 2
    directed_topic_max_length: int = 500
    activity_log_size: int = 1000
    call_timeout: float = 30.0

    def validate(self) -> None:
        """Raise ``ValueError`` if any field is out of valid range."""
        if self.cycle_interval <= 0:
            raise ValueError(f"cycle_interval must be > 0, got {self.cycle_interval}")
        if self.max_specialists < 1:
            raise ValueError(f"max_specialists must be >= 1, got {self.max_specialists}")
        if self.queue_capacity < 1:
            raise ValueError(f"queue_capacity must be >= 1, got {self.queue_capacity}")
        if self.max_new_topics_per_cycle < 0:
            raise ValueError(
                f"max_new_topics_per_cycle must be >= 0, got {self.max_new_topics_per_cycle}"
            )
        if self.directed_topic_max_length < 1:
            raise ValueError(
                f"directed_topic_max_length must be >= 1, got {self.directed_topic_max_length}"
            )
        if self.activity_log_size < 2:
            raise ValueError(f"activity_log_size must be >= 2, got {self.activity_log_size}")
        if self.call_timeout <= 0:
            raise ValueError(f"call_timeout must be > 0, got {self.call_timeout}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OrchestratorConfig:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg


# ===================================================================== #
#  Validation Configuration                                              #
# ===================================================================== #

@dataclass(frozen=True)
class ValidationConfig:
    """Thresholds for the novelty validator.

    Attributes
    ----------
    novelty_threshold:
        Minimum clamped score for acceptance.  Enforced locally in addition
        to the external verdict.
    default_score:
        Score used when the response omits one.
    failure_score:
        Score given to discoveries rejected because validation itself failed.
    knowledge_window:
        Findings kept per tag as comparison context.
    min_candidate_sources:
        Synthesized sources a result needs to become a discovery.
    """

    novelty_threshold: float = 7.0
    default_score: float = 5.0
    failure_score: float = 3.0
    knowledge_window: int = 10
    min_candidate_sources: int = 2

    def validate(self) -> None:
        """Raise ``ValueError`` if any field is out of valid range."""
        for name in ("novelty_threshold", "default_score", "failure_score"):
            value = getattr(self, name)
            if not 1.0 <= value <= 10.0:
                raise ValueError(f"{name} must be in [1, 10], got {value}")
        if self.failure_score >= self.novelty_threshold:
            raise ValueError("failure_score must be below novelty_threshold")
        if self.knowledge_window < 1:
            raise ValueError(f"knowledge_window must be >= 1, got {self.knowledge_window}")
        if self.min_candidate_sources < 1:
            raise ValueError(
                f"min_candidate_sources must be >= 1, got {self.min_candidate_sources}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidationConfig:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg


# ===================================================================== #
#  Connection Configuration                                              #
# ===================================================================== #

@dataclass(frozen=True)
class ConnectionConfig:
    """Thresholds and pool sizes for the connection engine.

    Attributes
    ----------
    connection_threshold:
        Minimum strength for a chain opportunity to be kept.
    strong_threshold:
        Strength at which both discoveries are annotated with the link.
    suggestion_priority:
        Minimum priority for a research suggestion to be returned.
    existing_pool:
        Most recent validated discoveries compared against each new one.
    top_k:
        Discoveries handed to suggestion generation.
    """

    connection_threshold: int = 6
    strong_threshold: int = 8
    suggestion_priority: int = 7
    existing_pool: int = 20
    top_k: int = 5

    def validate(self) -> None:
        """Raise ``ValueError`` if any field is out of valid range."""
        if not 1 <= self.connection_threshold <= 10:
            raise ValueError(
                f"connection_threshold must be in [1, 10], got {self.connection_threshold}"
            )
        if not self.connection_threshold <= self.strong_threshold <= 10:
            raise ValueError(
                f"strong_threshold must be in [connection_threshold, 10], "
                f"got {self.strong_threshold}"
            )
        if not 1 <= self.suggestion_priority <= 10:
            raise ValueError(
                f"suggestion_priority must be in [1, 10], got {self.suggestion_priority}"
            )
        if self.existing_pool < 1:
            raise ValueError(f"existing_pool must be >= 1, got {self.existing_pool}")
        if self.top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {self.top_k}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConnectionConfig:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg


# ===================================================================== #
#  Reasoning Configuration                                               #
# ===================================================================== #

_VALID_PROVIDERS = frozenset({"anthropic", "openai", "mock"})


@dataclass(frozen=True)
class ReasoningConfig:
    """Describes which chat model backs the reasoning capability.

    Attributes
    ----------
    provider:
        ``"anthropic"``, ``"openai"`` or ``"mock"``.
    model:
        Model identifier passed to the provider's chat model class.
    temperature:
        Sampling temperature.
    max_tokens:
        Maximum tokens per response.
    timeout:
        Per-call deadline in seconds.
    """

    provider: str = "anthropic"
    model: str = "claude-sonnet-4-5"
    temperature: float = 0.7
    max_tokens: int = 2048
    timeout: float = 30.0

    def validate(self) -> None:
        """Raise ``ValueError`` if any field is out of valid range."""
        if self.provider not in _VALID_PROVIDERS:
            raise ValueError(
                f"provider must be one of {sorted(_VALID_PROVIDERS)}, got {self.provider!r}"
            )
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(f"temperature must be in [0, 2], got {self.temperature}")
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {self.max_tokens}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReasoningConfig:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg


# ===================================================================== #
#  JSON loading                                                          #
# ===================================================================== #

SECTIONS: dict[str, type] = {
    "orchestrator": OrchestratorConfig,
    "validation": ValidationConfig,
    "connections": ConnectionConfig,
    "reasoning": ReasoningConfig,
}


def load_config_from_json(json_str: str) -> dict[str, Any]:
    """Build validated config objects from a JSON document.

    Known sections (the keys of ``SECTIONS``) become config instances and
    are validated by ``from_dict``; other keys pass through untouched so callers
    can carry their own settings in the same file.

    Raises
    ------
    ValueError
        If the document is not an object, a known section is not an object,
        or a section fails validation.
    """
    document = json.loads(json_str)
    if not isinstance(document, dict):
        raise ValueError("Config document must be a JSON object")
    sections: dict[str, Any] = {}
    for name, body in document.items():
        config_cls = SECTIONS.get(name)
        if config_cls is None:
            sections[name] = body
            continue
        if not isinstance(body, dict):
            raise ValueError(f"Config section {name!r} must be an object")
        sections[name] = config_cls.from_dict(body)
    return sections
