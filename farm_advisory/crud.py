import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from farm_advisory import schemas
from farm_advisory.errors import InvalidInput, NotFound
from farm_advisory.kv_store import KeyValueStore
from farm_advisory.utils import (
    clamp,
    compute_progress,
    iso_timestamp,
    parse_date,
    to_aware_utc,
)

logger = logging.getLogger(__name__)

# ---------- keys ----------

def crop_key(user_id: str, crop_id: str) -> str:
    return f"crop:{user_id}:{crop_id}"

def index_key(user_id: str) -> str:
    return f"farmer_crops:{user_id}"

# ---------- tiny, single-purpose helpers ----------

def _load_index(store: KeyValueStore, user_id: str) -> List[str]:
    return list(store.get(index_key(user_id)) or [])

def _derive_progress(
    planted: Any,
    harvest: Any,
    supplied: Optional[float],
    now: datetime,
) -> float:
    p, h = parse_date(planted), parse_date(harvest)
    if p is not None and h is not None:
        return compute_progress(p, h, now)
    return clamp(supplied or 0, 0, 100)

def _check_window(record: Dict[str, Any]) -> None:
    p = parse_date(record.get("plantedDate"))
    h = parse_date(record.get("expectedHarvest"))
    if p is not None and h is not None and h < p:
        raise InvalidInput("expectedHarvest must not be before plantedDate")

def _next_updated_at(previous: Optional[str], now: datetime) -> str:
    # never step backwards if the clock did
    if previous is not None:
        prev_ts = to_aware_utc(previous)
        if prev_ts > now:
            return iso_timestamp(prev_ts)
    return iso_timestamp(now)

# ---------- repository operations ----------

def create_crop(
    store: KeyValueStore,
    user_id: str,
    payload: schemas.CropCreate,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Store a new crop for `user_id` and append its id to the user's index.
    Missing lifecycle fields get defaults; progress is derived from the dates
    when both are known.
    """
    now = to_aware_utc(now)

    crop = schemas.Crop(
        id=str(uuid.uuid4()),
        name=payload.name,
        variety=payload.variety,
        planted_date=payload.planted_date,
        expected_harvest=payload.expected_harvest,
        area=payload.area,
        location=payload.location,
        status=payload.status or schemas.CropStatus.planted,
        health_status=payload.health_status or schemas.HealthStatus.good,
        progress=_derive_progress(payload.planted_date, payload.expected_harvest, payload.progress, now),
        last_watered=payload.last_watered or now.date(),
        notes=payload.notes or "",
        image_url=payload.image_url,
        created_at=iso_timestamp(now),
    )
    record = crop.to_record()

    # index first: a dangling index id is skipped on read, an unindexed record is lost
    store.set(index_key(user_id), _load_index(store, user_id) + [crop.id])
    store.set(crop_key(user_id, crop.id), record)
    logger.info("created crop %s for user %s", crop.id, user_id)
    return record


def list_crops(store: KeyValueStore, user_id: str) -> List[Dict[str, Any]]:
    """Resolve the user's index in order, skipping ids whose record is gone."""
    crops = []
    for crop_id in _load_index(store, user_id):
        record = store.get(crop_key(user_id, crop_id))
        if record is None:
            logger.warning("crop index for user %s references missing crop %s", user_id, crop_id)
            continue
        crops.append(record)
    return crops


def update_crop(
    store: KeyValueStore,
    user_id: str,
    crop_id: str,
    payload: schemas.CropUpdate,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Shallow-merge the fields set in `payload` over the stored record and stamp
    updatedAt. Raises NotFound if the user has no crop with this id.
    """
    now = to_aware_utc(now)
    existing = store.get(crop_key(user_id, crop_id))
    if existing is None:
        raise NotFound("Crop not found")

    changes = payload.changes()
    merged = {**existing, **changes}
    # optional fields explicitly set to null are dropped, not stored as null
    for k, v in changes.items():
        if v is None:
            merged.pop(k, None)

    _check_window(merged)
    if "plantedDate" in changes or "expectedHarvest" in changes:
        merged["progress"] = _derive_progress(
            merged.get("plantedDate"), merged.get("expectedHarvest"), merged.get("progress"), now
        )
    merged["updatedAt"] = _next_updated_at(existing.get("updatedAt"), now)

    store.set(crop_key(user_id, crop_id), merged)
    logger.info("updated crop %s for user %s (%s)", crop_id, user_id, ", ".join(sorted(changes)) or "no fields")
    return merged


def delete_crop(store: KeyValueStore, user_id: str, crop_id: str) -> None:
    """Remove the record and every index entry for it; missing ids are fine."""
    store.delete(crop_key(user_id, crop_id))

    index = _load_index(store, user_id)
    remaining = [cid for cid in index if cid != crop_id]
    if len(remaining) != len(index):
        store.set(index_key(user_id), remaining)
    logger.info("deleted crop %s for user %s", crop_id, user_id)
