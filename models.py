"""
WolfPack — ORM Models
SQLAlchemy mapped tables backing the domain store.
"""

from sqlalchemy import (
    String, Integer, Boolean, ForeignKey,
    Text, DateTime, JSON, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from database import Base
import datetime


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(256), nullable=False)
    email: Mapped[str] = mapped_column(String(256), nullable=False)
    full_name: Mapped[str] = mapped_column(String(128), nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    role: Mapped[str] = mapped_column(String(32), default="member", nullable=False)
    qr_code: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True, index=True)
    profile_picture: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # Privacy flags
    share_workouts: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    share_achievements: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    show_in_leaderboard: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    apparel: Mapped[list["Apparel"]] = relationship(back_populates="user", cascade="all, delete-orphan")
    workouts: Mapped[list["Workout"]] = relationship(back_populates="user", cascade="all, delete-orphan")
    preferences: Mapped["UserPreferences | None"] = relationship(
        back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    @property
    def privacy_settings(self) -> dict:
        return {
            "share_workouts": self.share_workouts,
            "share_achievements": self.share_achievements,
            "show_in_leaderboard": self.show_in_leaderboard,
        }


class Apparel(Base):
    __tablename__ = "apparel"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    qr_code: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    date_added: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Usage aggregate, mutated only by workout recording
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_used: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_workout_duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)   # minutes
    total_calories_burned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    average_workout_duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False) # minutes
    performance_rating: Mapped[int] = mapped_column(Integer, default=0, nullable=False)       # 0–100

    user: Mapped["User"] = relationship(back_populates="apparel")


class Workout(Base):
    __tablename__ = "workouts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    apparel_id: Mapped[int | None] = mapped_column(ForeignKey("apparel.id"), nullable=True, index=True)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)      # minutes
    calories: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    date: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    progress: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    user: Mapped["User"] = relationship(back_populates="workouts")


class Achievement(Base):
    __tablename__ = "achievements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    description: Mapped[str] = mapped_column(String(256), nullable=False)
    criteria: Mapped[str] = mapped_column(String(256), nullable=False)
    icon: Mapped[str] = mapped_column(String(32), nullable=False)
    color: Mapped[str] = mapped_column(String(32), nullable=False)


class UserAchievement(Base):
    __tablename__ = "user_achievements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    achievement_id: Mapped[int] = mapped_column(ForeignKey("achievements.id"), nullable=False)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    date_earned: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )


class Challenge(Base):
    __tablename__ = "challenges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    start_date: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    image: Mapped[str | None] = mapped_column(String(512), nullable=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)   # solo / featured / team
    criteria: Mapped[str] = mapped_column(String(256), nullable=False)

    # Structured form of the criteria text
    target_workouts: Mapped[int] = mapped_column(Integer, nullable=False)
    workout_category: Mapped[str | None] = mapped_column(String(32), nullable=True)


class UserChallenge(Base):
    __tablename__ = "user_challenges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    challenge_id: Mapped[int] = mapped_column(ForeignKey("challenges.id"), nullable=False)
    date_joined: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", name="uq_user_challenge"),
    )


class IntegratedApp(Base):
    __tablename__ = "integrated_apps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    app_name: Mapped[str] = mapped_column(String(64), nullable=False)
    connected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    access_token: Mapped[str | None] = mapped_column(String(512), nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(String(512), nullable=True)
    last_synced: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "app_name", name="uq_user_app"),
    )


class UserPreferences(Base):
    __tablename__ = "user_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, nullable=False)
    fitness_level: Mapped[str] = mapped_column(String(32), nullable=False)
    workout_preference: Mapped[str] = mapped_column(String(32), nullable=False)
    fitness_goal: Mapped[str] = mapped_column(String(32), nullable=False)
    workout_duration: Mapped[int] = mapped_column(Integer, nullable=False)    # minutes
    workout_frequency: Mapped[int] = mapped_column(Integer, nullable=False)   # days per week
    equipment: Mapped[list | None] = mapped_column(JSON, nullable=True)
    limitations: Mapped[list | None] = mapped_column(JSON, nullable=True)

    user: Mapped["User"] = relationship(back_populates="preferences")


class WorkoutRecommendation(Base):
    __tablename__ = "workout_recommendations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    calories_burn: Mapped[int] = mapped_column(Integer, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(32), nullable=False)
    exercises: Mapped[list] = mapped_column(JSON, nullable=False)
    recommended_apparel: Mapped[list] = mapped_column(JSON, nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class RevokedSession(Base):
    __tablename__ = "revoked_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    expires_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
