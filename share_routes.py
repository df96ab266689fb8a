# share_routes.py

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import models
import schemas
from auth import get_optional_user
from database import get_db
from quotes import default_catalog
from share_service import (
    InvalidQuote,
    ShareLinkService,
    StorageError,
    format_expiry,
    display_timezone,
)

load_dotenv()

logger = logging.getLogger(__name__)

SHARE_BASE_URL = os.getenv("SHARE_BASE_URL", "").rstrip("/")
SHARE_REQUIRE_LOGIN = os.getenv("SHARE_REQUIRE_LOGIN", "false").lower() == "true"

router = APIRouter(tags=["Sharing"])

share_service = ShareLinkService(default_catalog)


def get_share_service() -> ShareLinkService:
    return share_service


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _share_url(request: Request, token: str) -> str:
    if SHARE_BASE_URL:
        return f"{SHARE_BASE_URL}/share/{token}"
    return str(request.url_for("view_share", token=token))


def parse_quote_id(value) -> Optional[int]:
    """Integer quote id from a request value, or None when it cannot be one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def sharer_display_name(owner: Optional[models.User]) -> str:
    if owner is None:
        return "Shared by a friend"
    return f"Shared by a friend ({owner.display_name})"


# ─── CREATE SHARE ─────────────────────────────────────

@router.post("/api/create_share", response_model=schemas.CreateShareResponse)
def create_share(
    request: Request,
    req: Optional[schemas.CreateShareRequest] = None,
    db: Session = Depends(get_db),
    current_user: Optional[models.User] = Depends(get_optional_user),
    service: ShareLinkService = Depends(get_share_service),
):
    if SHARE_REQUIRE_LOGIN and current_user is None:
        return _error(401, "Please log in first")

    quote_id = parse_quote_id(req.quote_id if req else None)
    if quote_id is None:
        return _error(422, "Invalid quote")

    owner_id = current_user.id if current_user else None
    try:
        created = service.create_share(db, quote_id, owner_id=owner_id)
    except InvalidQuote:
        return _error(422, "Invalid quote")
    except StorageError:
        logger.exception("create_share failed")
        return _error(500, "Could not create share link, please try again")

    return schemas.CreateShareResponse(
        token=created.token,
        url=_share_url(request, created.token),
        expires_at=format_expiry(created.expires_at),
    )


# ─── VIEW SHARE ───────────────────────────────────────

@router.get("/share/{token}", response_model=schemas.SharePageOut, name="view_share")
def view_share(
    token: str,
    db: Session = Depends(get_db),
    service: ShareLinkService = Depends(get_share_service),
):
    catalog = service.catalog
    try:
        view = service.resolve_share(db, token)
    except StorageError:
        # never an error page for a share link
        logger.exception("resolve_share failed, showing a random quote")
        view = None

    if view is None or (not view.expired and view.quote_id not in catalog):
        quote_id = catalog.random_id()
        return schemas.SharePageOut(quote_id=quote_id, quote=catalog[quote_id], shared=False, expired=False)

    if view.expired:
        quote_id = catalog.random_id()
        return schemas.SharePageOut(
            quote_id=quote_id,
            quote=catalog[quote_id],
            shared=True,
            expired=True,
            expired_on=view.expires_at.astimezone(display_timezone()).strftime("%Y-%m-%d"),
        )

    owner = db.get(models.User, view.owner_id) if view.owner_id else None
    return schemas.SharePageOut(
        quote_id=view.quote_id,
        quote=catalog[view.quote_id],
        shared=True,
        expired=False,
        sharer=sharer_display_name(owner),
    )
