"""
Optional MongoDB persistence for anonymized usage records.

Writes are best effort: they run after the response is sent and any failure
is logged, never returned to the caller.
"""
import re
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorClient

from .errors import PersistenceFailure
from .models import DIAGNOSIS_FIELDS, DataDiagnoseRequest, ImageDiagnoseRequest, UsageRecord
from .structured_logging import StructuredLogger

logger = StructuredLogger(__name__)

# Checked in order; first match wins
REGION_PATTERNS = [
    (re.compile(r'^Asia/(Seoul|Tokyo)'), "East Asia"),
    (re.compile(r'^Asia/(Shanghai|Hong_Kong|Taipei|Chongqing|Macau)'), "East Asia"),
    (re.compile(r'^Asia/(Bangkok|Ho_Chi_Minh|Jakarta|Singapore|Manila|Kuala_Lumpur)'), "Southeast Asia"),
    (re.compile(r'^Asia/'), "Asia"),
    (re.compile(r'^Europe/'), "Europe"),
    (re.compile(r'^America/'), "Americas"),
    (re.compile(r'^Africa/'), "Africa"),
    (re.compile(r'^(Australia|Pacific)/'), "Oceania"),
]

_BASE36 = string.digits + string.ascii_lowercase

COLOR_KEYS = [
    ("skin", "skinColor"),
    ("hair", "hairColor"),
    ("eyebrow", "eyebrowColor"),
    ("eye", "eyeColor"),
    ("lip", "lipColor"),
    ("neck", "neckColor"),
]


def timezone_to_region(tz: Optional[str]) -> str:
    """Map an IANA timezone name to a coarse region."""
    if not tz:
        return "unknown"
    for pattern, region in REGION_PATTERNS:
        if pattern.match(tz):
            return region
    return "Other"


def generate_session_id(now: Optional[datetime] = None) -> str:
    """DEMO-<yyyymmddHHMMSSmmm>-<6 random base36 chars>."""
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime("%Y%m%d%H%M%S") + f"{now.microsecond // 1000:03d}"
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"DEMO-{stamp}-{suffix}"


def stored_diagnosis(diagnosis: dict) -> dict:
    """The diagnosis fields kept in a usage record."""
    stored = {
        key: diagnosis.get(key)
        for key in DIAGNOSIS_FIELDS
        if key != "personalColorCharacteristics"
    }
    stored["bodyType"] = diagnosis.get("bodyType") or None
    stored["bodyTypeDetail"] = diagnosis.get("bodyTypeDetail") or None
    return stored


def build_usage_record(request: DataDiagnoseRequest, diagnosis: dict) -> UsageRecord:
    """Flatten a data-mode request and its diagnosis into a usage record."""
    face = request.faceAnalysis
    colors: dict[str, Any] = {}
    for key, attr in COLOR_KEYS:
        sample = getattr(face, attr)
        if sample is not None:
            colors[key] = sample.model_dump()
    if face.backgroundColor is not None:
        colors["background"] = face.backgroundColor.model_dump()

    body = request.bodyAnalysis.bodyProportions if request.bodyAnalysis else None
    return UsageRecord(
        sessionId=generate_session_id(),
        timestamp=datetime.now(timezone.utc),
        age=request.age,
        gender=request.gender or None,
        timezone=request.timezone or None,
        region=timezone_to_region(request.timezone),
        lang=request.lang or None,
        colors=colors,
        faceProportions=face.faceProportions.model_dump(),
        bodyProportions=body.model_dump(exclude_none=True) if body else None,
        contrast=face.contrast.model_dump(exclude_none=True) if face.contrast else None,
        diagnosis=stored_diagnosis(diagnosis),
        segmentationUsed=face.segmentationUsed,
    )


def build_image_usage_record(request: ImageDiagnoseRequest, diagnosis: dict) -> UsageRecord:
    """Image-mode record: demographics and diagnosis only, never the photo."""
    return UsageRecord(
        sessionId=generate_session_id(),
        timestamp=datetime.now(timezone.utc),
        age=request.age,
        region=timezone_to_region(None),
        diagnosis=stored_diagnosis(diagnosis),
    )


def _counts(groups: list[dict]) -> dict[str, int]:
    # Diagnosis values are stored verbatim, so a group key may be a list or object
    return {
        (str(g["_id"]) if g["_id"] not in (None, "") else "unknown"): g["count"]
        for g in groups
    }


class UsageStore:
    """Append-only collection of usage records with grouped counts."""

    def __init__(self, url: str, db_name: str, collection: str):
        self.client = AsyncIOMotorClient(url)
        self.collection = self.client[db_name][collection]

    async def save(self, record: UsageRecord) -> None:
        try:
            await self.collection.insert_one(record.model_dump())
        except Exception as e:
            raise PersistenceFailure(str(e)) from e

    async def _group_by(self, field: str) -> dict[str, int]:
        pipeline = [
            {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
        ]
        groups = await self.collection.aggregate(pipeline).to_list(length=None)
        return _counts(groups)

    async def stats(self) -> dict:
        """Total records plus counts by season, face shape and region."""
        return {
            "total": await self.collection.count_documents({}),
            "byColor": await self._group_by("diagnosis.personalColor"),
            "byFaceShape": await self._group_by("diagnosis.faceShape"),
            "byRegion": await self._group_by("region"),
        }

    def close(self):
        self.client.close()


async def persist_usage(store: Optional[UsageStore], record: UsageRecord) -> None:
    """Background task body: save and log, swallowing failures."""
    if store is None:
        return
    try:
        await store.save(record)
        logger.info("Usage record saved", session_id=record.sessionId)
    except PersistenceFailure as e:
        logger.error("Usage record save failed", session_id=record.sessionId, error=str(e))
