import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from farm_advisory import crud, schemas
from farm_advisory.advisory_service import AdvisoryService
from farm_advisory.auth import AuthUser, IdentityProvider
from farm_advisory.config import configure_logging, settings
from farm_advisory.db import Base, engine
from farm_advisory.deps import (
    Clock,
    bearer_token,
    get_advisory_service,
    get_clock,
    get_identity_provider,
    get_store,
    optional_user,
    require_user,
)
from farm_advisory.errors import FarmAdvisoryError
from farm_advisory.kv_store import KeyValueStore
from farm_advisory.utils import iso_timestamp

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging(settings.log_level)
    # Create tables at startup
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="Farm Advisory API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(RequestValidationError)
async def _bad_request(_: Request, exc: RequestValidationError):
    # Surface the first problem only, e.g. "plantedDate: Field required"
    errors = exc.errors()
    detail = "Invalid request body"
    if errors:
        err = errors[0]
        # integer parts are list indexes or JSON decode positions
        loc = [p for p in err.get("loc", ()) if isinstance(p, str) and p not in ("body", "path", "query")]
        msg = err.get("msg", "invalid value").removeprefix("Value error, ")
        detail = f"{'.'.join(loc)}: {msg}" if loc else msg
    return JSONResponse(status_code=400, content={"detail": detail})


def _fail(exc: Exception, action: str) -> HTTPException:
    """Expected errors keep their message; anything else is logged and hidden."""
    if isinstance(exc, FarmAdvisoryError) and exc.status_code < 500:
        return HTTPException(status_code=exc.status_code, detail=exc.message)
    logger.exception("unexpected error while %s", action)
    return HTTPException(status_code=500, detail=f"Internal server error while {action}")


router = APIRouter(prefix=settings.api_prefix)


@router.get("/health")
def health():
    return {"status": "healthy", "timestamp": iso_timestamp()}


@router.get("/crop-types")
def crop_types():
    return {"cropTypes": schemas.CROP_TYPES}

# ---------- accounts ----------

@router.post("/signup")
def signup(
    payload: schemas.SignupRequest,
    idp: IdentityProvider = Depends(get_identity_provider),
    store: KeyValueStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
):
    metadata = {"name": payload.name, "farmSize": payload.farm_size, "location": payload.location}
    try:
        user = idp.create_user(payload.email, payload.password, metadata)
        store.set(f"farmer_profile:{user.id}", {**metadata, "registeredAt": iso_timestamp(clock())})
        return {"user": user.model_dump()}
    except Exception as e:
        raise _fail(e, "signing up")


@router.post("/login")
def login(payload: schemas.LoginRequest, idp: IdentityProvider = Depends(get_identity_provider)):
    try:
        return idp.sign_in(payload.email, payload.password).model_dump()
    except Exception as e:
        raise _fail(e, "logging in")


@router.post("/logout")
def logout(
    user: AuthUser = Depends(require_user),
    token: str = Depends(bearer_token),
    idp: IdentityProvider = Depends(get_identity_provider),
):
    try:
        idp.sign_out(token)
        return {"success": True, "message": "Signed out"}
    except Exception as e:
        raise _fail(e, "signing out")


@router.get("/profile")
def profile(user: AuthUser = Depends(require_user), store: KeyValueStore = Depends(get_store)):
    try:
        stored = store.get(f"farmer_profile:{user.id}")
        return {"profile": stored or user.user_metadata, "email": user.email}
    except Exception as e:
        raise _fail(e, "fetching profile")

# ---------- crops ----------

@router.post("/crops")
def add_crop(
    payload: schemas.CropCreate,
    user: AuthUser = Depends(require_user),
    store: KeyValueStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
):
    try:
        return {"crop": crud.create_crop(store, user.id, payload, now=clock())}
    except Exception as e:
        raise _fail(e, "adding crop")


@router.get("/crops")
def get_crops(user: Optional[AuthUser] = Depends(optional_user), store: KeyValueStore = Depends(get_store)):
    if user is None:
        # anonymous browsing sees an empty collection, never a 401
        return {"crops": []}
    try:
        return {"crops": crud.list_crops(store, user.id)}
    except Exception as e:
        raise _fail(e, "fetching crops")


@router.put("/crops/{crop_id}")
def update_crop(
    crop_id: str,
    payload: schemas.CropUpdate,
    user: AuthUser = Depends(require_user),
    store: KeyValueStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
):
    try:
        return {"crop": crud.update_crop(store, user.id, crop_id, payload, now=clock())}
    except Exception as e:
        raise _fail(e, "updating crop")


@router.delete("/crops/{crop_id}")
def delete_crop(crop_id: str, user: AuthUser = Depends(require_user), store: KeyValueStore = Depends(get_store)):
    try:
        crud.delete_crop(store, user.id, crop_id)
        return {"success": True, "message": "Crop deleted successfully"}
    except Exception as e:
        raise _fail(e, "deleting crop")

# ---------- advisory ----------

@router.post("/recommendations")
def recommendations(
    payload: schemas.RecommendationRequest,
    user: AuthUser = Depends(require_user),
    svc: AdvisoryService = Depends(get_advisory_service),
):
    try:
        return {"recommendations": svc.recommend(user.id, payload)}
    except Exception as e:
        raise _fail(e, "generating recommendations")


@router.post("/consultation")
def consultation(
    payload: schemas.ConsultationRequest,
    user: AuthUser = Depends(require_user),
    svc: AdvisoryService = Depends(get_advisory_service),
):
    try:
        return {"consultation": svc.submit_consultation(user.id, payload)}
    except Exception as e:
        raise _fail(e, "submitting consultation")


app.include_router(router)


if __name__ == "__main__":
    import os
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
