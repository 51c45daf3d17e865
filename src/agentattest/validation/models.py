"""Validation request and status records."""

from pydantic import BaseModel, Field

from agentattest.constants import MAX_SCORE, ZERO_TAG


class ValidationRequest(BaseModel):
    """Immutable binding of a request hash to an agent and a validator."""

    request_hash: bytes
    validator: str
    agent_id: int = Field(..., ge=0)
    request_uri: str = Field(default="")
    created_at: int = Field(default=0, ge=0)


class ValidationStatus(BaseModel):
    """Latest response to a request; ``last_update == 0`` means no response yet."""

    validator: str
    agent_id: int = Field(..., ge=0)
    response: int = Field(default=0, ge=0, le=MAX_SCORE)
    tag: bytes = Field(default=ZERO_TAG)
    last_update: int = Field(default=0, ge=0)
    response_uri: str = Field(default="")
    response_hash: bytes = Field(default=bytes(32))

    @property
    def responded(self) -> bool:
        return self.last_update != 0


class ValidationSummary(BaseModel):
    """Count and floor-average of responded validations."""

    count: int = Field(default=0, ge=0)
    average_response: int = Field(default=0, ge=0)
