"""
share_service.py — Share-link lifecycle for quotes.

Creates share records with a unique token and a fixed 30 day lifetime,
resolves tokens back to quotes and counts every resolve.

Token uniqueness is enforced by the unique index on shared_quotes.token.
The pre-check below only avoids a wasted INSERT; the SAVEPOINT + IntegrityError
path is what keeps two concurrent writers from ending up with the same token.
"""
import logging
import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import models
from quotes import QuoteCatalog

load_dotenv()

logger = logging.getLogger(__name__)

SHARE_TTL = timedelta(days=30)
TOKEN_BYTES = 16
MAX_TOKEN_ATTEMPTS = 5
SHARE_DISPLAY_TIMEZONE = os.getenv("SHARE_DISPLAY_TIMEZONE", "UTC")


# ─── Errors ───────────────────────────────────────────────────────────────────

class ShareError(Exception):
    pass


class InvalidQuote(ShareError):
    def __init__(self, quote_id):
        super().__init__(f"Quote {quote_id!r} does not exist")
        self.quote_id = quote_id


class StorageError(ShareError):
    pass


# ─── Results ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ShareCreated:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class ShareView:
    """
    What a resolved token is allowed to show. For an expired link quote_id and
    owner_id are None: the caller picks fallback content and shows no sharer.
    """
    token: str
    quote_id: Optional[int]
    owner_id: Optional[str]
    expired: bool
    expires_at: datetime
    access_count: int


# ─── Helpers ──────────────────────────────────────────────────────────────────

def generate_token() -> str:
    """16 random bytes, base64url without padding (22 chars)."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is written as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_expired(expires_at: datetime, now: datetime) -> bool:
    return now > as_utc(expires_at)


def display_timezone(name: str = SHARE_DISPLAY_TIMEZONE) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def format_expiry(expires_at: datetime, tz: Optional[tzinfo] = None) -> str:
    """Wire format for expiry timestamps: YYYY-MM-DD HH:MM in the display timezone."""
    return as_utc(expires_at).astimezone(tz or display_timezone()).strftime("%Y-%m-%d %H:%M")


def _token_in_use(db: Session, token: str) -> bool:
    return db.query(models.SharedQuote.id).filter(models.SharedQuote.token == token).first() is not None


# ─── Service ──────────────────────────────────────────────────────────────────

class ShareLinkService:

    def __init__(
        self,
        catalog: QuoteCatalog,
        clock: Optional[Callable[[], datetime]] = None,
        token_factory: Optional[Callable[[], str]] = None,
        max_attempts: int = MAX_TOKEN_ATTEMPTS,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.catalog = catalog
        self.clock = clock or utcnow
        self.token_factory = token_factory or generate_token
        self.max_attempts = max_attempts

    def create_share(self, db: Session, quote_id: int, owner_id: Optional[str] = None) -> ShareCreated:
        """
        Persist a new share record for quote_id and return its token and expiry.

        Raises InvalidQuote before touching the database when quote_id is not in
        the catalog, and StorageError when the record could not be written.
        Either the record is committed or nothing is written.
        """
        if quote_id not in self.catalog:
            raise InvalidQuote(quote_id)

        now = as_utc(self.clock())
        expires_at = now + SHARE_TTL

        try:
            for attempt in range(1, self.max_attempts + 1):
                token = self.token_factory()
                if _token_in_use(db, token):
                    logger.warning(f"Share token collision on pre-check (attempt {attempt}/{self.max_attempts})")
                    continue

                record = models.SharedQuote(
                    quote_id=quote_id,
                    owner_id=owner_id,
                    token=token,
                    expires_at=expires_at,
                    access_count=0,
                )
                try:
                    with db.begin_nested():
                        db.add(record)
                except IntegrityError as exc:
                    # The savepoint is gone; only a token clash is worth another try
                    if not _token_in_use(db, token):
                        raise StorageError("Share record rejected by the database") from exc
                    logger.warning(f"Share token collision on insert (attempt {attempt}/{self.max_attempts})")
                    continue

                db.commit()
                logger.info(f"Share created for quote {quote_id} (owner={owner_id or 'anonymous'})")
                return ShareCreated(token=token, expires_at=expires_at)
        except StorageError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(f"Share creation failed: {exc}")
            raise StorageError("Could not write share record") from exc

        db.rollback()
        logger.error(f"No free share token after {self.max_attempts} attempts")
        raise StorageError(f"Could not allocate a unique share token after {self.max_attempts} attempts")

    def resolve_share(self, db: Session, token: str) -> Optional[ShareView]:
        """
        Look a token up and count the access. Returns None for unknown tokens.

        The counter goes up for expired links as well: it counts resolves,
        not successful views.
        """
        token = (token or "").strip()
        if not token:
            return None

        try:
            result = db.execute(
                update(models.SharedQuote)
                .where(models.SharedQuote.token == token)
                .values(access_count=models.SharedQuote.access_count + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                db.rollback()
                logger.info("Share token not found")
                return None
            db.commit()

            record = db.query(models.SharedQuote).filter(models.SharedQuote.token == token).one()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(f"Share lookup failed: {exc}")
            raise StorageError("Could not resolve share token") from exc

        expires_at = as_utc(record.expires_at)
        expired = is_expired(expires_at, as_utc(self.clock()))
        logger.info(f"Share resolved (expired={expired}, access_count={record.access_count})")

        if expired:
            return ShareView(
                token=record.token,
                quote_id=None,
                owner_id=None,
                expired=True,
                expires_at=expires_at,
                access_count=record.access_count,
            )
        return ShareView(
            token=record.token,
            quote_id=record.quote_id,
            owner_id=record.owner_id,
            expired=False,
            expires_at=expires_at,
            access_count=record.access_count,
        )
