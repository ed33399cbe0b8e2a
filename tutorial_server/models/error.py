"""Error tracking data models."""

from datetime import datetime
from enum import Enum
from typing import Any, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ErrorCategory(str, Enum):
    """Closed set of error classifications."""

    SERVER = "SERVER_ERROR"
    REQUEST = "REQUEST_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    RESPONSE = "RESPONSE_ERROR"
    CONFIGURATION = "CONFIGURATION_ERROR"

    @classmethod
    def parse(cls, value: Any) -> Optional["ErrorCategory"]:
        """
        Resolve a category from its wire value, enum name or short name.

        Accepts ErrorCategory.REQUEST, "REQUEST_ERROR", "REQUEST",
        "Request" and "request". Returns None for anything else.
        """
        if isinstance(value, ErrorCategory):
            return value
        if not isinstance(value, str):
            return None
        key = value.strip().upper()
        if key.endswith("_ERROR"):
            key = key[: -len("_ERROR")]
        return cls.__members__.get(key)

    @property
    def label(self) -> str:
        return self.name.capitalize()


# Keys accepted in guidance override mappings, including the wire (camelCase) names
_GUIDANCE_KEY_ALIASES = {
    "troubleshooting": "troubleshooting",
    "troubleshootingGuidance": "troubleshooting",
    "troubleshooting_guidance": "troubleshooting",
    "troubleshootingText": "troubleshooting",
    "debugging_steps": "debugging_steps",
    "debuggingSteps": "debugging_steps",
    "learning_tips": "learning_tips",
    "learningTips": "learning_tips",
    "related_concepts": "related_concepts",
    "relatedConcepts": "related_concepts",
}


class GuidanceBundle(BaseModel):
    """Troubleshooting and learning material attached to an error."""

    model_config = ConfigDict(frozen=True)

    troubleshooting: str = ""
    debugging_steps: List[str] = Field(default_factory=list)
    learning_tips: List[str] = Field(default_factory=list)
    related_concepts: List[str] = Field(default_factory=list)

    @classmethod
    def coerce(cls, value: Union["GuidanceBundle", Mapping[str, Any], None]) -> "GuidanceBundle":
        """
        Build a bundle from a mapping of overrides.

        Unknown keys are ignored; scalar sequence values are wrapped in a list.
        """
        if isinstance(value, GuidanceBundle):
            return value
        if not isinstance(value, Mapping):
            return cls()

        fields: dict = {}
        for key, item in value.items():
            field = _GUIDANCE_KEY_ALIASES.get(key)
            if field is None or item is None:
                continue
            if field == "troubleshooting":
                fields[field] = str(item)
            elif isinstance(item, str):
                fields[field] = [item]
            else:
                fields[field] = [str(entry) for entry in item]
        return cls(**fields)

    def merge(self, other: Union["GuidanceBundle", Mapping[str, Any], None]) -> "GuidanceBundle":
        """
        Merge overrides on top of this bundle.

        Sequences are appended in order and never truncated. The
        troubleshooting text is replaced only by a non-empty override.
        """
        override = GuidanceBundle.coerce(other)
        return GuidanceBundle(
            troubleshooting=override.troubleshooting or self.troubleshooting,
            debugging_steps=[*self.debugging_steps, *override.debugging_steps],
            learning_tips=[*self.learning_tips, *override.learning_tips],
            related_concepts=[*self.related_concepts, *override.related_concepts],
        )

    def is_empty(self) -> bool:
        return not (
            self.troubleshooting
            or self.debugging_steps
            or self.learning_tips
            or self.related_concepts
        )


class Classification(BaseModel):
    """Result of classifying a raw failure."""

    model_config = ConfigDict(frozen=True)

    category: ErrorCategory
    recoverable: bool


class ErrorRecord(BaseModel):
    """Validated error value enriched with guidance."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["enriched"] = "enriched"
    message: str
    category: ErrorCategory
    status_code: int = Field(ge=100, le=599)
    timestamp: datetime
    recoverable: bool
    guidance: GuidanceBundle = Field(default_factory=GuidanceBundle)
    error_name: str = "ErrorRecord"
    code: Optional[str] = None
    stack: List[str] = Field(default_factory=list)

    def with_recoverable(self, recoverable: bool) -> "ErrorRecord":
        """Return a copy with an explicitly overridden recoverable flag."""
        return self.model_copy(update={"recoverable": recoverable})


class DiagnosticError(Exception):
    """Exception carrying an ErrorRecord out of a request handler."""

    def __init__(self, record: ErrorRecord):
        super().__init__(record.message)
        self.record = record
