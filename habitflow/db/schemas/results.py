"""Request and response envelopes for the generation orchestrator."""
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel


class GenerationRequest(BaseModel):
    """Create/update request, optionally asking for generated content."""

    data: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None
    auto_generate: bool = False
    batch_size: Optional[int] = None
    user_prompt: Optional[str] = None
    owner_id: str


class OperationResult(BaseModel):
    """Uniform result envelope; exceptions never cross the orchestrator."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    generated_count: Optional[int] = None

    @classmethod
    def ok(cls, data: Any = None, generated_count: Optional[int] = None) -> "OperationResult":
        return cls(success=True, data=data, generated_count=generated_count)

    @classmethod
    def fail(cls, error: str, data: Any = None, generated_count: Optional[int] = None) -> "OperationResult":
        return cls(success=False, error=error, data=data, generated_count=generated_count)
