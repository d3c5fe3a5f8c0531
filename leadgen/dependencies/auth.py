import logging
import os
import time
from typing import Optional

import jwt  # PyJWT
import requests
from fastapi import Header, HTTPException, status, Depends
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from leadgen.db.session import get_db
from leadgen.models.user import User, PlanTier

logger = logging.getLogger(__name__)

# Cache for JWKS (Public Keys)
JWKS_CACHE = None
JWKS_CACHE_TIMESTAMP = None
JWKS_CACHE_TTL = 3600  # Cache for 1 hour
JWKS_STALE_LIMIT = 86400  # Serve a stale cache for up to 24 hours if Supabase is down


def get_jwks(supabase_url: str, force_refresh: bool = False):
    """
    Fetch JWKS from Supabase with caching and retry logic.
    Only caches successful fetches - failures are not cached to allow retries.
    """
    global JWKS_CACHE, JWKS_CACHE_TIMESTAMP

    if JWKS_CACHE and JWKS_CACHE_TIMESTAMP and not force_refresh:
        if time.time() - JWKS_CACHE_TIMESTAMP < JWKS_CACHE_TTL:
            return JWKS_CACHE

    max_retries = 3
    jwks_url = f"{supabase_url}/auth/v1/.well-known/jwks.json"

    for attempt in range(max_retries):
        try:
            r = requests.get(jwks_url, timeout=10)
            r.raise_for_status()
            JWKS_CACHE = r.json()
            JWKS_CACHE_TIMESTAMP = time.time()
            logger.info("Fetched JWKS with %d keys", len(JWKS_CACHE.get("keys", [])))
            return JWKS_CACHE
        except requests.exceptions.RequestException as e:
            logger.warning("JWKS fetch failed (attempt %d/%d): %s", attempt + 1, max_retries, e)
            if attempt < max_retries - 1:
                time.sleep(1)

    # Fresh fetch failed, fall back to a stale cache if it is recent enough
    if JWKS_CACHE and JWKS_CACHE_TIMESTAMP:
        cache_age = time.time() - JWKS_CACHE_TIMESTAMP
        if cache_age < JWKS_STALE_LIMIT:
            logger.warning("Using stale JWKS cache (age: %.0fs)", cache_age)
            return JWKS_CACHE
    return None


def _signing_key_from_jwks(kid: Optional[str]):
    supabase_url = os.getenv("SUPABASE_URL")
    if not supabase_url:
        logger.error("SUPABASE_URL is missing for asymmetric token verification")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfiguration: SUPABASE_URL not set"
        )

    jwks = get_jwks(supabase_url)
    if not jwks:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service temporarily unavailable. Please try again in a moment."
        )

    for key_data in jwks.get("keys", []):
        if kid is None or key_data.get("kid") == kid:
            return jwt.PyJWK(key_data).key

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token signature"
    )


def verify_supabase_token(authorization: Optional[str] = Header(None)) -> dict:
    """
    Verifies the Supabase JWT token.
    Supports both HS256 (Shared Secret) and ES256/RS256 (Asymmetric Key).
    Returns the payload dict if valid.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header. Expected 'Bearer <token>'"
        )

    token = authorization[len("Bearer "):].strip()
    if token.lower() in ["", "null", "undefined", "none"] or len(token.split(".")) != 3:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token format"
        )

    try:
        header = jwt.get_unverified_header(token)
    except jwt.DecodeError as e:
        logger.warning("Failed to decode token header: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token header"
        )

    algo = header.get("alg")
    if algo == "HS256":
        key = os.getenv("SUPABASE_JWT_SECRET")
        if not key:
            logger.error("SUPABASE_JWT_SECRET is missing in environment variables")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Server misconfiguration: SUPABASE_JWT_SECRET not set"
            )
    elif algo in ("ES256", "RS256"):
        key = _signing_key_from_jwks(header.get("kid"))
    else:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Unsupported token algorithm: {algo}"
        )

    try:
        # Decode AND verify in one step, the payload is never decoded again
        return jwt.decode(
            token,
            key,
            algorithms=[algo],
            audience="authenticated",
            options={"verify_aud": True}
        )
    except jwt.InvalidTokenError as e:
        logger.warning("%s verification failed: %s", algo, e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token signature"
        )


def get_current_account_id(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> str:
    """
    FastAPI dependency that verifies the Supabase token and returns the account ID.

    Creates the account on first sight (freemium, no credits used) so a user who
    signs up and immediately generates an email is not met with a 404.
    """
    payload = verify_supabase_token(authorization)

    account_id = payload.get("sub")
    email = payload.get("email")
    if not account_id or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing user ID or email claim"
        )

    try:
        if db.query(User.id).filter(User.id == account_id).first():
            return account_id

        db.add(User(
            id=account_id,
            email=email.lower(),
            plan=PlanTier.FREEMIUM.value,
            email_credits=0,
        ))
        db.commit()
        logger.info("Auto-created account %s for %s (lazy sync)", account_id, email)
        return account_id
    except IntegrityError:
        # Another request created the same account between our check and insert
        db.rollback()
        if db.query(User.id).filter(User.id == account_id).first():
            return account_id
        logger.error("Account %s could not be created: email %s already belongs to another account",
                     account_id, email)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists"
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Database error while resolving account %s: %s", account_id, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database temporarily unavailable. Please try again in a moment."
        )
