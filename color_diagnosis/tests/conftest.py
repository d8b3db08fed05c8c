import base64
import io

import pytest
from PIL import Image


def sample_color(l, a, b, rgb=(200, 170, 150)):
    return {
        "rgb": {"r": rgb[0], "g": rgb[1], "b": rgb[2]},
        "hsl": {"h": 24, "s": 35, "l": 68},
        "lab": {"l": l, "a": a, "b": b},
    }


@pytest.fixture
def face_analysis():
    return {
        "skinColor": sample_color(72.5, 8.2, 18.3),
        "hairColor": sample_color(12.3, 1.5, -0.8, rgb=(30, 25, 22)),
        "eyeColor": sample_color(15.2, 3.1, 2.0, rgb=(40, 30, 25)),
        "eyebrowColor": sample_color(18.5, 2.3, 3.1, rgb=(45, 35, 30)),
        "lipColor": sample_color(45.2, 22.1, 8.5, rgb=(180, 90, 90)),
        "neckColor": sample_color(70.1, 7.8, 16.2),
        "backgroundColor": {"rgb": {"r": 240, "g": 240, "b": 235}},
        "faceProportions": {"foreheadRatio": 0.88, "jawRatio": 0.79, "heightRatio": 1.38},
        "contrast": {"skinHair": 268, "skinEye": 262, "skinLip": 95.4, "skinNeck": 6.1},
        "segmentationUsed": True,
    }


@pytest.fixture
def data_payload(face_analysis):
    return {
        "faceAnalysis": face_analysis,
        "bodyAnalysis": {"bodyProportions": {"shoulderHipRatio": 0.91}},
        "age": 29,
        "gender": "female",
        "timezone": "Asia/Seoul",
        "lang": "ko-KR",
    }


@pytest.fixture
def model_reply():
    return {
        "personalColor": "Spring Light",
        "seasonGroup": "Spring",
        "personalColorDetail": "◼︎ 측정값 (Lab)\n- 피부: 72.5 / 8.2 / 18.3",
        "personalColorCharacteristics": {"hue": "Warm", "value": "High", "chroma": "Medium", "contrast": "Low"},
        "faceShape": "Oval",
        "faceShapeDetail": "Balanced proportions.",
        "bodyType": "Wave",
        "bodyTypeDetail": "Shoulder-to-hip ratio of 0.91.",
        "bestColors": ["Peach", "Coral"],
        "avoidColors": ["Black"],
        "stylingTip": "Soft warm tones.",
    }


def encode_png(size=(4, 4), color=(200, 170, 150)) -> str:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def png_b64():
    return encode_png()
