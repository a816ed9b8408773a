"""
API Request/Response Models
"""
import base64
import binascii
from typing import List, Optional

from pydantic import BaseModel, Field

from oncovector.core.analysis import ImageInput, PatientQuery
from oncovector.core.registry import Gender
from oncovector.utils import ValidationError


class ImagePayload(BaseModel):
    """Diagnostic image, base64 encoded."""
    data_base64: str
    mime_type: str = "image/jpeg"
    filename: Optional[str] = None

    def to_image(self) -> ImageInput:
        try:
            data = base64.b64decode(self.data_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            name = f" {self.filename}" if self.filename else ""
            raise ValidationError(f"Image{name} is not valid base64", field="images") from e
        return ImageInput(data=data, mime_type=self.mime_type, filename=self.filename)


class AnalyzeRequest(BaseModel):
    """Clinical intake form."""
    age: Optional[int] = Field(default=None, description="Patient age in years")
    gender: str = "Female"
    symptoms: str = ""
    history: str = ""
    anatomy_hint: Optional[str] = None
    images: List[ImagePayload] = Field(default_factory=list)

    def to_query(self) -> PatientQuery:
        try:
            gender = Gender.parse(self.gender)
        except ValueError as e:
            raise ValidationError(str(e), field="gender") from e
        return PatientQuery(
            age=self.age,
            gender=gender,
            symptoms=self.symptoms,
            history=self.history,
            anatomy_hint=self.anatomy_hint,
            images=tuple(img.to_image() for img in self.images),
        )


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str
    uptime_seconds: float
    registry_size: int
    registry_source: str
    mode: str


class ProgressResponse(BaseModel):
    state: str
    running: bool
    stage: str
    label: str
    percent: int
    log: List[str]


class RegistryNodeResponse(BaseModel):
    node_name: str
    status: str
    latency_ms: int


class RegistryHealthResponse(BaseModel):
    online: int
    total: int
    nodes: List[RegistryNodeResponse]


class CancelResponse(BaseModel):
    cancelled: bool
