"""
Data models for execution environments.
"""

from typing import Dict, List

from pydantic import BaseModel, Field, validator, ConfigDict


class TestEnvironment(BaseModel):
    """A named target the runner executes against."""

    __test__ = False

    model_config = ConfigDict(extra="forbid")

    id: str = Field("", description="Unique environment identifier")
    name: str = Field(..., description="Human readable environment name")
    base_url: str = Field(..., description="Base URL of the system under test")
    timeout_ms: int = Field(5000, ge=0, description="Request timeout in milliseconds")
    retry_count: int = Field(0, ge=0, description="Retries the runner may attempt")
    headers: Dict[str, str] = Field(default_factory=dict, description="Default request headers")
    variables: Dict[str, str] = Field(default_factory=dict, description="Extra runner variables")
    tags: List[str] = Field(default_factory=list, description="Free-form labels")
    is_default: bool = Field(False, description="Preferred when selecting a current environment")

    @validator("id")
    def validate_id(cls, v):
        return v.strip()

    @validator("name")
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Environment name cannot be empty")
        return v.strip()

    @validator("base_url")
    def validate_base_url(cls, v):
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Base URL must be an http(s) URL: {v}")
        return v.rstrip("/")


DEFAULT_ENVIRONMENTS = (
    TestEnvironment(
        id="dev",
        name="Development",
        base_url="http://localhost:8080",
        timeout_ms=5000,
        retry_count=1,
        headers={"Content-Type": "application/json"},
        is_default=True,
    ),
    TestEnvironment(
        id="test",
        name="Test",
        base_url="https://test-api.example.com",
        timeout_ms=10000,
        retry_count=2,
        headers={"Content-Type": "application/json"},
    ),
    TestEnvironment(
        id="prod",
        name="Production",
        base_url="https://api.example.com",
        timeout_ms=15000,
        retry_count=3,
        headers={"Content-Type": "application/json"},
    ),
)
