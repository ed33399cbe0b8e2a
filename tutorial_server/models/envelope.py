"""Error response envelope models."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .error import ErrorCategory


class _WireModel(BaseModel):
    """Frozen model serialised with camelCase aliases."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class EducationalBlock(_WireModel):
    troubleshooting: str
    debugging_steps: List[str] = Field(default_factory=list, alias="debuggingSteps")
    learning_tips: List[str] = Field(default_factory=list, alias="learningTips")
    related_concepts: List[str] = Field(default_factory=list, alias="relatedConcepts")


class DebugBlock(_WireModel):
    error_name: str = Field(alias="errorName")
    error_code: Optional[str] = Field(default=None, alias="errorCode")
    stack_trace: List[str] = Field(default_factory=list, alias="stackTrace", max_length=10)
    recoverable: bool


class RecoveryBlock(_WireModel):
    recoverable: bool = True
    suggestions: List[str]


class HttpMetadata(_WireModel):
    status_code: int = Field(alias="statusCode")
    status_text: str = Field(alias="statusText")
    headers: Dict[str, str]


class ResponseEnvelope(_WireModel):
    """JSON-transmittable description of a request-scoped failure."""

    error: bool = True
    status: int = Field(ge=100, le=599)
    type: ErrorCategory
    message: str
    timestamp: str
    recoverable: bool
    educational: Optional[EducationalBlock] = None
    debug: Optional[DebugBlock] = None
    recovery: Optional[RecoveryBlock] = None
    http: HttpMetadata

    def to_wire(self) -> dict:
        """Serialise by alias, omitting absent optional blocks."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
