"""Records returned by the downstream course service."""

from pydantic import BaseModel, ConfigDict, Field


class Course(BaseModel):
    """A course as served by ``GET <course_service_url>/1``.

    Only ``coursename`` is read. It is required: a record without it fails
    to deserialize instead of producing an empty name.
    """

    model_config = ConfigDict(extra="ignore")

    coursename: str = Field(..., description="Display name of the course")
