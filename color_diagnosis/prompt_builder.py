"""
Builds the exact payload sent to Gemini for each diagnosis variant.

Field order is fixed so identical input always yields a byte-identical prompt.
Measurements that were never taken are left out rather than sent as null.
"""
import base64
import binascii
import io
import re
from typing import Optional

from PIL import Image, UnidentifiedImageError

from .errors import InvalidInput
from .models import ColorSample, DataDiagnoseRequest, MediaPart
from .prompts import (
    DATA_CLOSING_DIRECTIVE,
    DATA_DIAGNOSIS_PROMPT,
    DEFAULT_LANGUAGE_DIRECTIVE,
    IMAGE_CLOSING_DIRECTIVE,
    IMAGE_DIAGNOSIS_PROMPT,
    LANGUAGE_DIRECTIVES,
    NO_BODY_DATA_DIRECTIVE,
)

DEFAULT_IMAGE_MIME = "image/jpeg"

_DATA_URL = re.compile(r'^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.*)$', re.DOTALL)


def format_number(value: float) -> str:
    """Render 18.0 as '18' and 72.5 as '72.5'."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def format_color(color: ColorSample) -> str:
    """LAB notation when available, RGB otherwise."""
    if color.lab is not None:
        lab = color.lab
        return f"LAB({format_number(lab.l)}, {format_number(lab.a)}, {format_number(lab.b)})"
    rgb = color.rgb
    return f"RGB({format_number(rgb.r)}, {format_number(rgb.g)}, {format_number(rgb.b)})"


def language_directive(lang: Optional[str]) -> str:
    if not lang:
        return DEFAULT_LANGUAGE_DIRECTIVE
    return LANGUAGE_DIRECTIVES.get(lang.lower()[:2], DEFAULT_LANGUAGE_DIRECTIVE)


def build_data_prompt(request: DataDiagnoseRequest) -> str:
    """Render the data-based prompt from client-side measurements."""
    face = request.faceAnalysis
    lines = ["", "", "## Client Measurement Data (all colors in CIELAB)"]

    colors = [
        ("Skin Color", face.skinColor),
        ("Hair Color", face.hairColor),
        ("Eye Color", face.eyeColor),
        ("Eyebrow Color", face.eyebrowColor),
        ("Lip Color", face.lipColor),
        ("Neck Color", face.neckColor),
    ]
    for label, color in colors:
        if color is not None:
            lines.append(f"{label}: {format_color(color)}")
    if face.backgroundColor is not None:
        bg = face.backgroundColor.rgb
        lines.append(
            f"Background: RGB({format_number(bg.r)}, {format_number(bg.g)}, {format_number(bg.b)})"
        )

    proportions = face.faceProportions
    lines += [
        "",
        "Face Proportions (normalized to cheekbone width = 1.0):",
        f"- Forehead ratio: {format_number(proportions.foreheadRatio)}",
        f"- Jaw ratio: {format_number(proportions.jawRatio)}",
        f"- Height ratio: {format_number(proportions.heightRatio)}",
    ]

    if face.contrast is not None:
        contrasts = [
            ("Skin ↔ Hair", face.contrast.skinHair),
            ("Skin ↔ Eye", face.contrast.skinEye),
            ("Skin ↔ Lip", face.contrast.skinLip),
            ("Skin ↔ Neck", face.contrast.skinNeck),
        ]
        present = [(label, v) for label, v in contrasts if v is not None]
        if present:
            lines += ["", "Contrast (Euclidean RGB distance):"]
            lines += [f"- {label}: {format_number(v)}" for label, v in present]

    body = request.bodyAnalysis.bodyProportions if request.bodyAnalysis else None
    if body is not None:
        lines += [
            "",
            "Body Proportions:",
            f"- Shoulder/Hip ratio: {format_number(body.shoulderHipRatio)}",
        ]
    else:
        lines += ["", NO_BODY_DATA_DIRECTIVE]

    if request.age:
        lines.append(f"Customer age: {request.age}")
    if request.gender:
        lines.append(f"Customer gender: {request.gender}")

    lines += ["", language_directive(request.lang), DATA_CLOSING_DIRECTIVE]
    return DATA_DIAGNOSIS_PROMPT + "\n".join(lines)


def decode_image(encoded: str, mime_type: Optional[str] = None, label: str = "Image") -> MediaPart:
    """Decode a base64 (or data URL) image and check that it opens as an image.

    Raises:
        InvalidInput: when the payload is not a readable image
    """
    encoded = encoded.strip()
    match = _DATA_URL.match(encoded)
    if match:
        mime_type = mime_type or match.group("mime")
        encoded = match.group("data")

    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidInput(f"{label} is not valid base64.")

    try:
        with Image.open(io.BytesIO(data)) as image:
            image.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError):
        raise InvalidInput(f"{label} could not be read.")

    return MediaPart(data=data, mime_type=mime_type or DEFAULT_IMAGE_MIME)


def build_image_prompt(
    face: MediaPart,
    body: Optional[MediaPart] = None,
    age: Optional[int] = None,
) -> tuple[str, list[MediaPart]]:
    """Render the photo-based prompt and its attachments (face first)."""
    lines = [""]
    if body is None:
        lines.append(NO_BODY_DATA_DIRECTIVE)
    if age:
        lines.append(f"Customer age: {age}")
    lines += ["", IMAGE_CLOSING_DIRECTIVE]

    media = [face] if body is None else [face, body]
    return IMAGE_DIAGNOSIS_PROMPT + "\n".join(lines), media
