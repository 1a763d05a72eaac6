"""
Challenge Swiper API - swipe, skip, rank

Main API endpoints:
- /session/* - Start a deck, vote, skip (per device, X-Device-Id header)
- /leaderboard - Confidence-weighted ranking of every challenge
- /challenges/submit - Queue a new challenge for review

SECURITY:
- CORS restricted to allowed origins
- Rate limiting on submissions
- Input sanitization and length limits
- Admin authentication for seeding and review endpoints
"""

import os
import re
import logging
import time
from typing import Optional
from datetime import datetime

from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query, Header, Request, Depends
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field, field_validator

from swipe import SwiperManager, get_swiper_manager
from swipe.manager import REMOTE_WRITE_FAILURE

# Load environment variables
load_dotenv()

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("Swiper-API")

# ==================== SECURITY CONFIG ====================

# Allowed CORS origins
ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    os.getenv("FRONTEND_URL", "http://localhost:3000"),
]

# Allow all origins if CORS_ALLOW_ALL is set (for development/testing)
if os.getenv("CORS_ALLOW_ALL", "").lower() == "true":
    ALLOWED_ORIGINS = ["*"]

# Admin API key for protected endpoints
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "swiper-admin-key-change-in-prod")

# Rate limiting config
RATE_LIMIT_REQUESTS = 5  # submissions per minute
rate_limit_store: dict = {}  # Simple in-memory rate limiting

# Input limits
MAX_CHALLENGE_LENGTH = 500
MAX_DEVICE_ID_LENGTH = 100

# ==================== SECURITY HELPERS ====================

def strip_control_chars(text: str) -> str:
    """Drop control characters, keeping newlines and tabs."""
    if not text:
        return ""
    return ''.join(char for char in text if ord(char) >= 32 or char in '\n\t')


def sanitize_input(text: str) -> str:
    """Strip control characters and collapse whitespace."""
    return re.sub(r'\s+', ' ', strip_control_chars(text)).strip()


def check_rate_limit(client_ip: str) -> bool:
    """Simple rate limiting check."""
    now = time.time()
    minute_ago = now - 60

    # Clean old entries
    rate_limit_store[client_ip] = [
        t for t in rate_limit_store.get(client_ip, [])
        if t > minute_ago
    ]

    # Check limit
    if len(rate_limit_store[client_ip]) >= RATE_LIMIT_REQUESTS:
        return False

    # Record request
    rate_limit_store[client_ip].append(now)

    return True


def verify_admin_key(x_admin_key: str = Header(None)) -> bool:
    """Verify admin API key for protected endpoints."""
    if not x_admin_key or x_admin_key != ADMIN_API_KEY:
        raise HTTPException(
            status_code=403,
            detail="Invalid or missing admin API key"
        )
    return True


def require_device_id(x_device_id: str = Header(None)) -> str:
    """The anonymous device identifier every session is keyed by."""
    if not x_device_id or not x_device_id.strip():
        raise HTTPException(status_code=400, detail="Missing X-Device-Id header")
    if len(x_device_id) > MAX_DEVICE_ID_LENGTH:
        raise HTTPException(status_code=400, detail="X-Device-Id too long")
    return x_device_id.strip()


# ==================== LIFESPAN (Startup/Shutdown) ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info("Starting Challenge Swiper API...")
    yield
    logger.info("Shutting down Challenge Swiper API...")


# ==================== FASTAPI APP ====================

app = FastAPI(
    title="Challenge Swiper API",
    description="Swipe-to-vote challenges with a confidence-weighted leaderboard",
    version="1.0.0",
    lifespan=lifespan
)

# CORS - Restricted to allowed origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Device-Id", "X-Admin-Key"],
)


# ==================== REQUEST MODELS (with validation) ====================

class StartSessionRequest(BaseModel):
    seed: Optional[int] = None


class VoteRequest(BaseModel):
    direction: str = Field(..., pattern="^(approve|reject)$")


class SubmitChallengeRequest(BaseModel):
    text: str

    @field_validator('text')
    @classmethod
    def clean_text(cls, v: str) -> str:
        # Blank text is allowed through; the queue ignores it
        cleaned = strip_control_chars(v).strip()
        if len(cleaned) > MAX_CHALLENGE_LENGTH:
            raise ValueError(f"Challenge must be at most {MAX_CHALLENGE_LENGTH} characters")
        return cleaned


class AddChallengeRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=MAX_CHALLENGE_LENGTH)

    @field_validator('text')
    @classmethod
    def validate_text(cls, v: str) -> str:
        sanitized = sanitize_input(v)
        if not sanitized:
            raise ValueError("Challenge text cannot be empty")
        return sanitized


def _raise_for_gesture(message: str, data: Optional[dict]):
    """Map a failed gesture to an HTTP error."""
    if data and data.get("error") == REMOTE_WRITE_FAILURE:
        # The deck already advanced; hand the new state back with the error
        raise HTTPException(status_code=503, detail={"message": message, **data})
    raise HTTPException(status_code=400, detail={"message": message, **(data or {})})


# ==================== HEALTH CHECK ====================

@app.get("/")
def read_root():
    return {
        "status": "online",
        "service": "Challenge Swiper API",
        "version": "1.0.0",
        "features": [
            "Swipe voting",
            "Skip budget",
            "Automatic retirement",
            "Confidence-weighted leaderboard",
            "Challenge submissions"
        ]
    }


@app.get("/health")
def health_check(manager: SwiperManager = Depends(get_swiper_manager)):
    """Basic health check endpoint."""
    try:
        stats = manager.get_stats()
        return {"status": "healthy", "timestamp": datetime.now().isoformat(), "store": stats}
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return {"status": "degraded", "timestamp": datetime.now().isoformat(), "error": str(e)}


# ==================== SESSION ====================

@app.post("/session/start")
def start_session(
    request: Optional[StartSessionRequest] = None,
    device_id: str = Depends(require_device_id),
    manager: SwiperManager = Depends(get_swiper_manager)
):
    """Shuffle a fresh deck of active challenges for this device."""
    seed = request.seed if request else None
    return {"session": manager.start_session(device_id, seed=seed)}


@app.get("/session")
def get_session(
    device_id: str = Depends(require_device_id),
    manager: SwiperManager = Depends(get_swiper_manager)
):
    """Current challenge, skips remaining and progress."""
    state = manager.get_session_state(device_id)
    if state is None:
        raise HTTPException(status_code=404, detail="No session started for this device")
    return {"session": state}


@app.post("/session/vote")
def cast_vote(
    request: VoteRequest,
    device_id: str = Depends(require_device_id),
    manager: SwiperManager = Depends(get_swiper_manager)
):
    """
    Approve or reject the current challenge.

    A device's second vote on the same challenge is accepted but not counted.
    """
    success, message, data = manager.cast_vote(device_id, request.direction)
    if not success:
        _raise_for_gesture(message, data)
    return {"success": True, "message": message, **data}


@app.post("/session/skip")
def skip_challenge(
    device_id: str = Depends(require_device_id),
    manager: SwiperManager = Depends(get_swiper_manager)
):
    """Spend one skip on the current challenge."""
    success, message, data = manager.skip(device_id)
    if not success:
        _raise_for_gesture(message, data)
    return {"success": True, "message": message, **data}


# ==================== LEADERBOARD ====================

@app.get("/leaderboard")
def get_leaderboard(
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    include_retired: Optional[bool] = None,
    manager: SwiperManager = Depends(get_swiper_manager)
):
    """Challenges ranked by approval damped by vote volume."""
    rows = manager.get_leaderboard(limit=limit, include_retired=include_retired)
    return {"count": len(rows), "leaderboard": rows}


# ==================== SUBMISSIONS ====================

@app.post("/challenges/submit")
def submit_challenge(
    request: SubmitChallengeRequest,
    http_request: Request,
    manager: SwiperManager = Depends(get_swiper_manager)
):
    """Queue a challenge for review. Blank submissions are ignored."""
    client_ip = http_request.client.host if http_request.client else "unknown"
    if not check_rate_limit(client_ip):
        raise HTTPException(status_code=429, detail="Rate limit exceeded. Please try again later.")

    queued, message = manager.submit_challenge(request.text)
    return {"success": queued, "message": message}


@app.get("/challenges/pending")
def list_pending(
    limit: int = Query(default=100, ge=1, le=1000),
    admin_verified: bool = Depends(verify_admin_key),
    manager: SwiperManager = Depends(get_swiper_manager)
):
    """Admin: submissions waiting for review."""
    pending = manager.get_pending_submissions(limit)
    return {"count": len(pending), "pending": pending}


@app.post("/admin/challenges")
def add_challenge(
    request: AddChallengeRequest,
    admin_verified: bool = Depends(verify_admin_key),
    manager: SwiperManager = Depends(get_swiper_manager)
):
    """Admin: put a challenge into circulation."""
    challenge = manager.add_challenge(request.text)
    return {"success": True, "challenge": challenge.to_dict()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
