"""
WolfPack — API Routes
All HTTP endpoint implementations. Mounted under /api by main.py.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from database import get_db
from schemas import (
    UserRegisterSchema, UserLoginSchema, UserPublicSchema, PrivacySettingsSchema,
    LeaderboardEntrySchema, QRCodeSchema,
    ApparelCreateSchema, ApparelSchema, ApparelStatsSchema,
    WorkoutCreateSchema, WorkoutSchema, WorkoutStatsSchema,
    ScanRequestSchema, ScanResultSchema,
    AchievementProgressSchema, ChallengeSchema, UserChallengeSchema, UserChallengeDetailSchema,
    IntegrationConnectSchema, IntegratedAppSchema,
    PreferencesSchema, PreferencesUpdateSchema, RecommendationSchema, MessageSchema,
)
from auth_service import (
    authenticate_user, create_session_token, decode_token, is_revoked, revoke_session,
)
from errors import AuthenticationError, PreferencesNotFound
from store import DomainStore
from config import settings

log = logging.getLogger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)


# ══════════════════════════════════════════════════════════════════════════════
# DEPENDENCIES
# ══════════════════════════════════════════════════════════════════════════════

async def get_store(db: AsyncSession = Depends(get_db)) -> DomainStore:
    return DomainStore(db)


async def session_payload(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Validate the session token (Bearer header first, then cookie)."""
    token = credentials.credentials if credentials else request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        raise AuthenticationError()
    payload = decode_token(token)
    if await is_revoked(db, payload["jti"]):
        raise AuthenticationError("Session has been logged out.")
    return payload


async def current_user(
    payload: dict = Depends(session_payload),
    store: DomainStore = Depends(get_store),
) -> UserPublicSchema:
    """FastAPI dependency: resolve the authenticated user."""
    user = await store.get_user(int(payload["sub"]))
    if user is None:
        raise AuthenticationError()
    return user


def _start_session(response: Response, user_id: int) -> None:
    session = create_session_token(user_id)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session.token,
        max_age=settings.SESSION_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )


# ══════════════════════════════════════════════════════════════════════════════
# AUTH ROUTER
# ══════════════════════════════════════════════════════════════════════════════

auth_router = APIRouter()


@auth_router.post("/register", response_model=UserPublicSchema, status_code=201)
async def register(data: UserRegisterSchema, response: Response, store: DomainStore = Depends(get_store)):
    user = await store.create_user(data)
    _start_session(response, user.id)
    return user


@auth_router.post("/login", response_model=UserPublicSchema)
async def login(data: UserLoginSchema, response: Response, db: AsyncSession = Depends(get_db)):
    user = await authenticate_user(db, data.username, data.password)
    _start_session(response, user.id)
    log.info(f"User {user.username} logged in")
    return UserPublicSchema.model_validate(user)


@auth_router.post("/logout", response_model=MessageSchema)
async def logout(
    response: Response,
    payload: dict = Depends(session_payload),
    db: AsyncSession = Depends(get_db),
):
    await revoke_session(db, payload)
    await db.commit()
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return MessageSchema(message="Logout successful")


# ══════════════════════════════════════════════════════════════════════════════
# USER ROUTER
# ══════════════════════════════════════════════════════════════════════════════

user_router = APIRouter()


@user_router.get("/user", response_model=UserPublicSchema)
async def get_profile(user: UserPublicSchema = Depends(current_user)):
    return user


@user_router.get("/user/qrcode", response_model=QRCodeSchema)
async def get_user_qr_code(
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return QRCodeSchema(qr_code=await store.ensure_user_qr_code(user.id))


@user_router.put("/user/privacy", response_model=UserPublicSchema)
async def update_privacy(
    data: PrivacySettingsSchema,
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.update_privacy(user.id, data)


@user_router.get("/user/challenges", response_model=list[UserChallengeDetailSchema])
async def get_user_challenges(
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.user_challenges(user.id)


@user_router.get("/user/preferences", response_model=PreferencesSchema)
async def get_preferences(
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    prefs = await store.get_preferences(user.id)
    if prefs is None:
        raise PreferencesNotFound()
    return prefs


@user_router.post("/user/preferences", response_model=PreferencesSchema)
async def save_preferences(
    data: PreferencesSchema,
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.save_preferences(user.id, data)


@user_router.patch("/user/preferences", response_model=PreferencesSchema)
async def update_preferences(
    data: PreferencesUpdateSchema,
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.update_preferences(user.id, data)


@user_router.get("/leaderboard", response_model=list[LeaderboardEntrySchema])
async def leaderboard(
    limit: int = Query(settings.DEFAULT_LEADERBOARD_LIMIT, ge=1, le=100),
    store: DomainStore = Depends(get_store),
):
    return await store.get_leaderboard(limit)


# ══════════════════════════════════════════════════════════════════════════════
# WORKOUT ROUTER
# ══════════════════════════════════════════════════════════════════════════════

workout_router = APIRouter()


@workout_router.get("/workouts", response_model=list[WorkoutSchema])
async def list_workouts(
    limit: Optional[int] = Query(None, ge=1),
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.list_workouts(user.id, limit)


@workout_router.get("/workouts/stats", response_model=WorkoutStatsSchema)
async def workout_stats(
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.workout_stats(user.id)


@workout_router.post("/workouts", response_model=WorkoutSchema, status_code=201)
async def create_workout(
    data: WorkoutCreateSchema,
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    """
    Log a workout. Points, level, apparel usage, achievements and joined
    challenges are all updated in the same transaction.
    """
    return await store.record_workout(user.id, data)


# ══════════════════════════════════════════════════════════════════════════════
# APPAREL ROUTER
# ══════════════════════════════════════════════════════════════════════════════

apparel_router = APIRouter()


@apparel_router.get("/apparel", response_model=list[ApparelSchema])
async def list_apparel(
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.list_apparel(user.id)


@apparel_router.post("/apparel", response_model=ApparelSchema, status_code=201)
async def create_apparel(
    data: ApparelCreateSchema,
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.create_apparel(user.id, data.name, data.type)


# Declared before /apparel/{apparel_id} so "insights" is not parsed as an id
@apparel_router.get("/apparel/insights/most-used", response_model=list[ApparelSchema])
async def most_used_apparel(
    limit: int = Query(settings.DEFAULT_INSIGHTS_LIMIT, ge=1, le=100),
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.most_used_apparel(user.id, limit)


@apparel_router.get("/apparel/insights/best-performing", response_model=list[ApparelSchema])
async def best_performing_apparel(
    limit: int = Query(settings.DEFAULT_INSIGHTS_LIMIT, ge=1, le=100),
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.best_performing_apparel(user.id, limit)


@apparel_router.get("/apparel/{apparel_id}", response_model=ApparelSchema)
async def get_apparel(
    apparel_id: int,
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.get_owned_apparel(user.id, apparel_id)


@apparel_router.get("/apparel/{apparel_id}/stats", response_model=ApparelStatsSchema)
async def get_apparel_stats(
    apparel_id: int,
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.apparel_stats(user.id, apparel_id)


@apparel_router.get("/apparel/{apparel_id}/workouts", response_model=list[WorkoutSchema])
async def get_apparel_workouts(
    apparel_id: int,
    limit: Optional[int] = Query(None, ge=1),
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.apparel_workouts(user.id, apparel_id, limit)


@apparel_router.post("/scan", response_model=ScanResultSchema)
async def scan_qr_code(
    data: ScanRequestSchema,
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    """Resolve a scanned QR string to an apparel item or a user profile."""
    return await store.resolve_qr_code(data.qr_code)


# ══════════════════════════════════════════════════════════════════════════════
# ACHIEVEMENTS & CHALLENGES ROUTER
# ══════════════════════════════════════════════════════════════════════════════

progress_router = APIRouter()


@progress_router.get("/achievements", response_model=list[AchievementProgressSchema])
async def list_achievements(
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.achievement_progress(user.id)


@progress_router.get("/challenges", response_model=list[ChallengeSchema])
async def list_challenges(store: DomainStore = Depends(get_store)):
    return await store.list_challenges()


@progress_router.post("/challenges/{challenge_id}/join", response_model=UserChallengeSchema, status_code=201)
async def join_challenge(
    challenge_id: int,
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.join_challenge(user.id, challenge_id)


# ══════════════════════════════════════════════════════════════════════════════
# INTEGRATIONS ROUTER
# ══════════════════════════════════════════════════════════════════════════════

integrations_router = APIRouter()


@integrations_router.get("/integrations", response_model=list[IntegratedAppSchema])
async def list_integrations(
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.list_integrations(user.id)


@integrations_router.post("/integrations/{app_name}", response_model=IntegratedAppSchema, status_code=201)
async def connect_app(
    app_name: str,
    data: IntegrationConnectSchema,
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.connect_app(user.id, app_name, data.access_token, data.refresh_token)


@integrations_router.delete("/integrations/{app_name}", status_code=status.HTTP_204_NO_CONTENT)
async def disconnect_app(
    app_name: str,
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    await store.disconnect_app(user.id, app_name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ══════════════════════════════════════════════════════════════════════════════
# RECOMMENDATIONS ROUTER
# ══════════════════════════════════════════════════════════════════════════════

recommendation_router = APIRouter()


@recommendation_router.get("/workout-recommendations", response_model=list[RecommendationSchema])
async def list_recommendations(
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.list_recommendations(user.id)


@recommendation_router.post("/workout-recommendations/generate", response_model=RecommendationSchema, status_code=201)
async def generate_recommendation(
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    """
    Build a workout from saved preferences and the user's best-performing
    apparel. Without preferences a beginner plan is returned.
    """
    return await store.generate_recommendation(user.id)


@recommendation_router.get("/workout-recommendations/{recommendation_id}", response_model=RecommendationSchema)
async def get_recommendation(
    recommendation_id: int,
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.get_recommendation(user.id, recommendation_id)


@recommendation_router.post(
    "/workout-recommendations/{recommendation_id}/complete", response_model=RecommendationSchema
)
async def complete_recommendation(
    recommendation_id: int,
    user: UserPublicSchema = Depends(current_user),
    store: DomainStore = Depends(get_store),
):
    return await store.complete_recommendation(user.id, recommendation_id)
