"""
WolfPack — Pydantic Schemas
Request bodies, public projections of stored records, and push-channel envelopes.
Keys travel as camelCase on the wire; snake_case names are accepted too.
"""

from pydantic import (
    BaseModel, ConfigDict, Field, EmailStr, StrictBool, AfterValidator, computed_field
)
from pydantic.alias_generators import to_camel
from typing import Annotated, Optional, List, Literal, Union
from datetime import datetime
from enum import Enum

from aggregation import as_utc, challenge_status

# Stored timestamps are UTC; SQLite returns them without tzinfo
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ══════════════════════════════════════════════════════════════════════════════
# AUTH & USERS
# ══════════════════════════════════════════════════════════════════════════════

class UserRegisterSchema(CamelModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=8, max_length=128)
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=128)

class UserLoginSchema(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class PrivacySettingsSchema(CamelModel):
    share_workouts: StrictBool
    share_achievements: StrictBool
    show_in_leaderboard: StrictBool

class UserPublicSchema(CamelModel):
    """Everything about a user that may leave the store. Has no credential field."""
    id: int
    username: str
    email: str
    full_name: str
    level: int
    points: int
    role: str
    qr_code: Optional[str] = None
    profile_picture: Optional[str] = None
    privacy_settings: PrivacySettingsSchema

class LeaderboardEntrySchema(CamelModel):
    id: int
    username: str
    full_name: str
    level: int
    points: int

class QRCodeSchema(CamelModel):
    qr_code: str


# ══════════════════════════════════════════════════════════════════════════════
# APPAREL
# ══════════════════════════════════════════════════════════════════════════════

class ApparelCreateSchema(CamelModel):
    name: str = Field(..., min_length=1, max_length=128)
    type: str = Field(..., min_length=1, max_length=64)

class ApparelSchema(CamelModel):
    id: int
    user_id: int
    name: str
    type: str
    qr_code: str
    date_added: UTCDateTime
    usage_count: int
    last_used: Optional[UTCDateTime] = None
    total_workout_duration: int
    total_calories_burned: int
    average_workout_duration: int
    performance_rating: int = Field(..., ge=0, le=100)

class ApparelStatsSchema(CamelModel):
    total_workouts: int
    total_duration: int
    total_calories: int
    average_duration: int
    last_used: Optional[UTCDateTime] = None
    performance_rating: int


# ══════════════════════════════════════════════════════════════════════════════
# WORKOUTS
# ══════════════════════════════════════════════════════════════════════════════

class WorkoutCreateSchema(CamelModel):
    type: str = Field(..., min_length=1, max_length=64)
    duration: int = Field(..., gt=0, le=24 * 60, description="Minutes")
    calories: int = Field(default=0, ge=0)
    notes: Optional[str] = Field(None, max_length=2000)
    apparel_id: Optional[int] = None

class WorkoutSchema(CamelModel):
    id: int
    user_id: int
    apparel_id: Optional[int] = None
    type: str
    duration: int
    calories: int
    date: UTCDateTime
    progress: int
    notes: Optional[str] = None

class WorkoutStatsSchema(CamelModel):
    total_workouts: int
    total_calories: int
    avg_progress: int


# ══════════════════════════════════════════════════════════════════════════════
# QR SCAN
# ══════════════════════════════════════════════════════════════════════════════

class ScanRequestSchema(CamelModel):
    qr_code: str = Field(..., min_length=1)

class ScanResultSchema(CamelModel):
    type: Literal["apparel", "user"]
    data: Union[ApparelSchema, UserPublicSchema]


# ══════════════════════════════════════════════════════════════════════════════
# ACHIEVEMENTS & CHALLENGES
# ══════════════════════════════════════════════════════════════════════════════

class AchievementSchema(CamelModel):
    id: int
    name: str
    description: str
    criteria: str
    icon: str
    color: str

class UserAchievementSchema(CamelModel):
    id: int
    user_id: int
    achievement_id: int
    progress: int = Field(..., ge=0, le=100)
    completed: bool
    date_earned: Optional[UTCDateTime] = None

class AchievementProgressSchema(CamelModel):
    """Catalog entry joined with the caller's progress (zero when never started)."""
    achievement: AchievementSchema
    progress: int = 0
    completed: bool = False
    date_earned: Optional[UTCDateTime] = None

class ChallengeSchema(CamelModel):
    id: int
    name: str
    description: str
    start_date: UTCDateTime
    end_date: UTCDateTime
    image: Optional[str] = None
    type: str
    criteria: str
    target_workouts: int
    workout_category: Optional[str] = None

    @computed_field
    @property
    def status(self) -> str:
        return challenge_status(self.start_date, self.end_date)

class UserChallengeSchema(CamelModel):
    id: int
    user_id: int
    challenge_id: int
    date_joined: UTCDateTime
    progress: int = Field(..., ge=0, le=100)
    completed: bool

class UserChallengeDetailSchema(UserChallengeSchema):
    challenge: ChallengeSchema


# ══════════════════════════════════════════════════════════════════════════════
# INTEGRATIONS
# ══════════════════════════════════════════════════════════════════════════════

class IntegrationConnectSchema(CamelModel):
    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None

class IntegratedAppSchema(CamelModel):
    """Connection state only; tokens never leave the store."""
    id: int
    app_name: str
    connected: bool
    last_synced: Optional[UTCDateTime] = None


# ══════════════════════════════════════════════════════════════════════════════
# PREFERENCES & RECOMMENDATIONS
# ══════════════════════════════════════════════════════════════════════════════

class FitnessLevel(str, Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class WorkoutType(str, Enum):
    strength = "strength"
    cardio = "cardio"
    flexibility = "flexibility"
    hiit = "hiit"
    endurance = "endurance"
    recovery = "recovery"
    balance = "balance"


class FitnessGoal(str, Enum):
    weight_loss = "weight_loss"
    muscle_gain = "muscle_gain"
    endurance = "endurance"
    flexibility = "flexibility"
    general_fitness = "general_fitness"
    recovery = "recovery"
    strength = "strength"


class PreferencesSchema(CamelModel):
    fitness_level: FitnessLevel
    workout_preference: WorkoutType
    fitness_goal: FitnessGoal
    workout_duration: int = Field(..., ge=5, le=120, description="Minutes")
    workout_frequency: int = Field(..., ge=1, le=7, description="Days per week")
    equipment: Optional[List[str]] = None
    limitations: Optional[List[str]] = None

class PreferencesUpdateSchema(CamelModel):
    fitness_level: Optional[FitnessLevel] = None
    workout_preference: Optional[WorkoutType] = None
    fitness_goal: Optional[FitnessGoal] = None
    workout_duration: Optional[int] = Field(None, ge=5, le=120)
    workout_frequency: Optional[int] = Field(None, ge=1, le=7)
    equipment: Optional[List[str]] = None
    limitations: Optional[List[str]] = None

class RecommendedExerciseSchema(CamelModel):
    name: str
    sets: Optional[int] = None
    reps: Optional[int] = None
    duration: Optional[int] = None       # seconds
    rest_period: Optional[int] = None    # seconds
    instruction: Optional[str] = None

class RecommendationSchema(CamelModel):
    id: int
    user_id: int
    title: str
    description: str
    type: WorkoutType
    duration: int
    calories_burn: int
    difficulty: FitnessLevel
    exercises: List[RecommendedExerciseSchema]
    recommended_apparel: List[int] = []
    is_completed: bool = False
    created_at: Optional[UTCDateTime] = None


# ══════════════════════════════════════════════════════════════════════════════
# PUSH CHANNEL ENVELOPES
# ══════════════════════════════════════════════════════════════════════════════

class WorkoutUpdate(CamelModel):
    user_id: int
    username: str
    type: str
    duration: int
    calories: int
    apparel_name: Optional[str] = None
    apparel_type: Optional[str] = None

class AchievementNotification(CamelModel):
    user_id: int
    username: str
    achievement_name: str
    achievement_description: str

class WorkoutUpdateMessage(CamelModel):
    type: Literal["workout_update"] = "workout_update"
    data: WorkoutUpdate

class AchievementNotificationMessage(CamelModel):
    type: Literal["achievement_notification"] = "achievement_notification"
    data: AchievementNotification

class ConnectionAckMessage(CamelModel):
    type: Literal["connection"] = "connection"
    status: Literal["connected"] = "connected"
    client_id: str


# ══════════════════════════════════════════════════════════════════════════════
# GENERIC
# ══════════════════════════════════════════════════════════════════════════════

class MessageSchema(CamelModel):
    message: str
    detail: Optional[str] = None
