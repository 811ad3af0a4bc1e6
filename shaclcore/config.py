"""Engine configuration.

Configuration is a plain dataclass handed to the engine; nothing is read
from the environment or from files.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .types import RecursionPolicy


@dataclass(frozen=True)
class ValidationConfig:
    """Knobs for :class:`shaclcore.engine.ValidationEngine`.

    recursion_policy
        What happens when a (shape, focus node) pair is re-entered through a
        chain of shape references (sh:node, sh:and, sh:not, ...).
    max_depth
        Maximum nesting of shape references; ``None`` means unbounded.
        Exceeding it is handled like a cycle.
    follow_subclasses
        Whether sh:class also accepts instances of rdfs:subClassOf /
        owl:equivalentClass classes.
    """
    recursion_policy: RecursionPolicy = RecursionPolicy.CONFORM
    max_depth: int | None = None
    follow_subclasses: bool = True

    def __post_init__(self) -> None:
        if self.max_depth is not None and self.max_depth < 1:
            raise ValueError(f"max_depth must be positive, got {self.max_depth}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "recursion_policy": self.recursion_policy.value,
            "max_depth": self.max_depth,
            "follow_subclasses": self.follow_subclasses,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidationConfig:
        return cls(
            recursion_policy=RecursionPolicy(data.get("recursion_policy", "conform")),
            max_depth=data.get("max_depth"),
            follow_subclasses=data.get("follow_subclasses", True),
        )


DEFAULT_CONFIG = ValidationConfig()
