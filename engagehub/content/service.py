"""Content service - denormalized prediction summary on content documents."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from bson import ObjectId
from pymongo.collection import Collection

from engagehub.core.database import CONTENTS_COLLECTION, get_pymongo_db


class ContentPredictionSink(Protocol):
    def record_last_prediction(self, content_id: str, result: Dict[str, Any]) -> None: ...


def build_prediction_summary(result: Dict[str, Any], generated_at: Optional[datetime] = None) -> dict:
    """Summary stored under contents.last_prediction."""
    return {
        "score": result.get("score"),
        "best_hours_utc": result.get("best_hours_utc") or [],
        "hashtags": result.get("hashtags") or [],
        "generated_at": generated_at or datetime.utcnow(),
        "raw": result,
    }


class ContentService:
    """Writes the latest prediction onto the referenced content document."""

    def __init__(self, collection: Optional[Collection] = None):
        self._collection = collection if collection is not None else get_pymongo_db()[CONTENTS_COLLECTION]

    def record_last_prediction(self, content_id: str, result: Dict[str, Any]) -> None:
        key = ObjectId(content_id) if ObjectId.is_valid(content_id) else content_id
        self._collection.update_one(
            {"_id": key},
            {"$set": {"last_prediction": build_prediction_summary(result)}},
        )
