from contextlib import asynccontextmanager
import logging
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

from database import get_db, init_db
import models, schemas
from security import hash_password, verify_password, validate_password_strength
from auth import create_access_token, get_current_user
from quotes import default_catalog
from share_routes import router as share_router

AUTO_CREATE_DB_SCHEMA = os.getenv("AUTO_CREATE_DB_SCHEMA", "true").lower() == "true"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    if AUTO_CREATE_DB_SCHEMA:
        init_db()
        logger.info("Database schema verified")
    yield


app = FastAPI(
    title="Quote Share API",
    description="Random quotes, user accounts and time-limited share links",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(share_router)


# ─── Global exception handler ─────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "Something went wrong, please try again"}
    )


def _user_out(user: models.User) -> schemas.UserOut:
    return schemas.UserOut(id=user.id, email=user.email, nickname=user.nickname)


def _check_password(password: str, confirmation: Optional[str]):
    ok, message = validate_password_strength(password)
    if not ok:
        raise HTTPException(status_code=422, detail=message)
    if confirmation is not None and confirmation != password:
        raise HTTPException(status_code=422, detail="Password confirmation does not match")


# ─── Health ───────────────────────────────────────────────────────────────────

@app.get("/health", tags=["System"])
def health():
    return {"status": "ok", "service": "quote-share", "version": "1.0.0"}


# ─── Quotes ───────────────────────────────────────────────────────────────────

@app.get("/quotes", response_model=list[schemas.QuoteOut], tags=["Quotes"])
def list_quotes():
    return [schemas.QuoteOut(quote_id=i, quote=default_catalog[i]) for i in default_catalog.ids()]


@app.get("/quotes/random", response_model=schemas.QuoteOut, tags=["Quotes"])
def random_quote(quote_id: Optional[int] = None):
    """A specific quote when quote_id is valid, otherwise a random one."""
    if quote_id not in default_catalog:
        quote_id = default_catalog.random_id()
    return schemas.QuoteOut(quote_id=quote_id, quote=default_catalog[quote_id])


@app.get("/quotes/{quote_id}", response_model=schemas.QuoteOut, tags=["Quotes"])
def get_quote(quote_id: int):
    if quote_id not in default_catalog:
        raise HTTPException(status_code=404, detail="Quote not found")
    return schemas.QuoteOut(quote_id=quote_id, quote=default_catalog[quote_id])


# ─── Auth ─────────────────────────────────────────────────────────────────────

@app.post("/signup", response_model=schemas.Token, tags=["Auth"])
def signup(user: schemas.UserCreate, db: Session = Depends(get_db)):
    email = user.email.lower()
    if db.query(models.User).filter(models.User.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")
    _check_password(user.password, user.password_confirmation)

    db_user = models.User(
        email=email,
        password_hash=hash_password(user.password),
        nickname=(user.nickname or "").strip() or None,
    )
    db.add(db_user)
    db.commit()
    logger.info(f"User registered: {db_user.id}")

    token = create_access_token({"sub": db_user.id, "email": db_user.email})
    return {"access_token": token, "token_type": "bearer", "user": _user_out(db_user)}


@app.post("/login", response_model=schemas.Token, tags=["Auth"])
def login(user: schemas.UserLogin, db: Session = Depends(get_db)):
    email = (user.email or "").strip().lower()
    db_user = db.query(models.User).filter(models.User.email == email).first()

    if not db_user or not verify_password(user.password, db_user.password_hash):
        logger.info("Login failed")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_access_token({"sub": db_user.id, "email": db_user.email})
    logger.info(f"User logged in: {db_user.id}")
    return {"access_token": token, "token_type": "bearer", "user": _user_out(db_user)}


# ─── Profile ──────────────────────────────────────────────────────────────────

@app.get("/profile", response_model=schemas.UserOut, tags=["Profile"])
def get_profile(current_user: models.User = Depends(get_current_user)):
    return _user_out(current_user)


@app.patch("/profile", response_model=schemas.UserOut, tags=["Profile"])
def update_profile(update: schemas.UserUpdate, db: Session = Depends(get_db),
                   current_user: models.User = Depends(get_current_user)):
    if update.email is not None:
        email = update.email.lower()
        taken = db.query(models.User).filter(
            models.User.email == email, models.User.id != current_user.id
        ).first()
        if taken:
            raise HTTPException(status_code=400, detail="Email already registered")
        current_user.email = email

    if update.nickname is not None:
        current_user.nickname = update.nickname.strip() or None

    if update.password:
        _check_password(update.password, update.password_confirmation)
        current_user.password_hash = hash_password(update.password)

    db.commit()
    return _user_out(current_user)
