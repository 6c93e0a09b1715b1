"""Stage status events reported by the CI server."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator


class StageStatusEvent(BaseModel):
    """A stage of a pipeline run changed state.

    Counters are kept as strings, the way the server reports them.
    """

    pipeline_name: str = Field(..., description="Pipeline name")
    pipeline_counter: str = Field(..., description="Pipeline run counter")
    stage_name: str = Field(..., description="Stage name")
    stage_counter: str = Field(..., description="Stage run counter")
    state: str = Field(..., description="Stage state (Building, Passed, Failed, Cancelled)")
    result: Optional[str] = Field(None, description="Stage result (Passed, Failed, Unknown)")
    triggered_by: Optional[str] = Field(None, description="Who approved or triggered the stage")

    @field_validator("pipeline_name", "pipeline_counter", "stage_name", "stage_counter", "state", mode="before")
    @classmethod
    def require_text(cls, v: Any) -> str:
        """Accept numbers for counters; reject empty values."""
        if v is None:
            raise ValueError("Field is required")
        text = str(v).strip()
        if not text:
            raise ValueError("Field cannot be empty or whitespace-only")
        return text

    @field_validator("result", "triggered_by", mode="before")
    @classmethod
    def optional_text(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @property
    def locator(self) -> str:
        """`pipeline/counter/stage/counter`, the server's identifier for a stage run."""
        return f"{self.pipeline_name}/{self.pipeline_counter}/{self.stage_name}/{self.stage_counter}"

    def details_url(self, server_base_url: str) -> str:
        return f"{server_base_url.rstrip('/')}/go/pipelines/{self.locator}"

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "StageStatusEvent":
        """Parse a stage-status notification body.

        Expected shape::

            {"pipeline": {"name": ..., "counter": ...,
                          "stage": {"name": ..., "counter": ..., "state": ...,
                                    "result": ..., "approved-by": ...}}}

        Raises:
            ValueError: If the payload does not have that shape
        """
        if not isinstance(payload, dict):
            raise ValueError("Stage status payload must be a JSON object")

        pipeline = payload.get("pipeline")
        if not isinstance(pipeline, dict):
            raise ValueError("Stage status payload is missing 'pipeline'")

        stage = pipeline.get("stage")
        if not isinstance(stage, dict):
            raise ValueError("Stage status payload is missing 'pipeline.stage'")

        try:
            return cls(
                pipeline_name=pipeline.get("name"),
                pipeline_counter=pipeline.get("counter"),
                stage_name=stage.get("name"),
                stage_counter=stage.get("counter"),
                state=stage.get("state"),
                result=stage.get("result"),
                triggered_by=stage.get("approved-by"),
            )
        except ValidationError as e:
            fields = ", ".join(".".join(str(loc) for loc in error["loc"]) for error in e.errors())
            raise ValueError(f"Invalid stage status payload ({fields}): {e}") from e
