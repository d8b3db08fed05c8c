"""
Pydantic request/response models for the Color Diagnosis API.
"""
import math
import re
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# --- Color measurements ---

class RGB(BaseModel):
    r: float
    g: float
    b: float


class HSL(BaseModel):
    h: float
    s: float
    l: float


class LAB(BaseModel):
    l: float
    a: float
    b: float


class ColorSample(BaseModel):
    rgb: Optional[RGB] = None
    hsl: Optional[HSL] = None
    lab: Optional[LAB] = None

    @model_validator(mode="after")
    def needs_rgb_or_lab(self) -> "ColorSample":
        if self.rgb is None and self.lab is None:
            raise ValueError("Color sample needs an rgb or lab value")
        return self


class BackgroundColor(BaseModel):
    rgb: RGB


class FaceProportions(BaseModel):
    foreheadRatio: float
    jawRatio: float
    heightRatio: float


class Contrast(BaseModel):
    skinHair: Optional[float] = None
    skinEye: Optional[float] = None
    skinLip: Optional[float] = None
    skinNeck: Optional[float] = None


class FaceAnalysis(BaseModel):
    skinColor: ColorSample
    hairColor: ColorSample
    eyeColor: Optional[ColorSample] = None
    eyebrowColor: Optional[ColorSample] = None
    lipColor: Optional[ColorSample] = None
    neckColor: Optional[ColorSample] = None
    backgroundColor: Optional[BackgroundColor] = None
    faceProportions: FaceProportions
    contrast: Optional[Contrast] = None
    segmentationUsed: bool = False


class BodyProportions(BaseModel):
    shoulderHipRatio: float
    shoulderWidth: Optional[float] = None
    hipWidth: Optional[float] = None
    torsoLength: Optional[float] = None


class BodyAnalysis(BaseModel):
    bodyProportions: Optional[BodyProportions] = None


# --- Diagnosis requests ---

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _coerce_age(value: Any) -> Any:
    """Read age the lenient way the landing form sends it.

    Blank, zero and non-numeric values mean "not given"; strings keep their
    leading integer ("27 years" is 27) and floats are truncated.
    """
    if not value:
        return None
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        return (int(match.group(1)) or None) if match else None
    return value


class DataDiagnoseRequest(BaseModel):
    faceAnalysis: FaceAnalysis
    bodyAnalysis: Optional[BodyAnalysis] = None
    age: Optional[int] = None
    gender: Optional[str] = Field(default=None, max_length=32)
    timezone: Optional[str] = Field(default=None, max_length=64)
    lang: Optional[str] = Field(default=None, max_length=16)

    @field_validator("age", mode="before")
    @classmethod
    def lenient_age(cls, value: Any) -> Any:
        return _coerce_age(value)


class ImageDiagnoseRequest(BaseModel):
    image: str = Field(min_length=1)
    mimeType: Optional[str] = None
    bodyImage: Optional[str] = None
    bodyMimeType: Optional[str] = None
    age: Optional[int] = None

    @field_validator("age", mode="before")
    @classmethod
    def lenient_age(cls, value: Any) -> Any:
        return _coerce_age(value)


class MediaPart(BaseModel):
    """A binary attachment sent alongside the prompt."""
    data: bytes
    mime_type: str


# --- Responses ---

# Fields copied verbatim from the model's diagnosis into the API response
DIAGNOSIS_FIELDS = (
    "personalColor",
    "seasonGroup",
    "personalColorDetail",
    "personalColorCharacteristics",
    "faceShape",
    "faceShapeDetail",
    "bodyType",
    "bodyTypeDetail",
    "bestColors",
    "avoidColors",
    "stylingTip",
)

NULLABLE_FIELDS = ("bodyType", "bodyTypeDetail")


class DiagnoseResponse(BaseModel):
    success: bool = True
    diagnosis: dict[str, Any]
    isDemo: bool = True


class ErrorResponse(BaseModel):
    success: bool = False
    message: str


class StatusResponse(BaseModel):
    success: bool = True
    available: bool
    model: str
    mode: Optional[str] = None


class StatsResponse(BaseModel):
    success: bool = True
    total: int
    byColor: dict[str, int]
    byFaceShape: dict[str, int]
    byRegion: dict[str, int]


# --- Persistence ---

class UsageRecord(BaseModel):
    """Anonymized snapshot of one successful diagnosis."""
    sessionId: str
    timestamp: datetime
    age: Optional[int] = None
    gender: Optional[str] = None
    timezone: Optional[str] = None
    region: str
    lang: Optional[str] = None
    colors: Optional[dict[str, Any]] = None
    faceProportions: Optional[dict[str, Any]] = None
    bodyProportions: Optional[dict[str, Any]] = None
    contrast: Optional[dict[str, Any]] = None
    diagnosis: dict[str, Any]
    segmentationUsed: bool = False
