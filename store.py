"""
WolfPack — Domain Store
The only component that mutates persisted records. Every write runs under a
process-wide lock and commits before releasing it, so two mutations of the same
user or garment never interleave. Reads hand out pydantic projections, never
live ORM rows.
"""

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from typing import AsyncIterator, Optional

from pydantic import ValidationError
from sqlalchemy import select, func, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import aggregation as agg
from auth_service import hash_password_async
from errors import (
    DuplicateUsername, UserNotFound, ApparelNotFound, ForbiddenApparelAccess,
    AchievementNotFound, ChallengeNotFound, ChallengeNotJoined,
    PreferencesNotFound, RecommendationNotFound, ForbiddenRecommendationAccess,
    QRCodeNotRecognized, ValidationFailed, format_field_errors,
)
from models import (
    User, Apparel, Workout, Achievement, UserAchievement, Challenge,
    UserChallenge, IntegratedApp, UserPreferences, WorkoutRecommendation,
)
from qr_codes import user_qr_code, apparel_qr_code
from recommendation_engine import recommendation_engine
from schemas import (
    UserRegisterSchema, UserPublicSchema, PrivacySettingsSchema, LeaderboardEntrySchema,
    ApparelSchema, ApparelStatsSchema, WorkoutCreateSchema, WorkoutSchema, WorkoutStatsSchema,
    ScanResultSchema, AchievementSchema, UserAchievementSchema, AchievementProgressSchema,
    ChallengeSchema, UserChallengeSchema, UserChallengeDetailSchema, IntegratedAppSchema,
    PreferencesSchema, PreferencesUpdateSchema, RecommendationSchema,
)

log = logging.getLogger(__name__)

RECOMMENDED_APPAREL_COUNT = 3


_write_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock]" = weakref.WeakKeyDictionary()


def _write_lock() -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    lock = _write_locks.get(loop)
    if lock is None:
        lock = _write_locks[loop] = asyncio.Lock()
    return lock


class DomainStore:

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _writing(self) -> AsyncIterator[None]:
        """Serialize writers and commit (or roll back) as one unit."""
        async with _write_lock():
            try:
                yield
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

    # ══════════════════════════════════════════════════════════════════════════
    # USERS
    # ══════════════════════════════════════════════════════════════════════════

    async def _user_row(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFound(f"User {user_id} not found")
        return user

    async def _username_taken(self, username: str) -> bool:
        result = await self.db.execute(select(User.id).where(User.username == username))
        return result.scalar_one_or_none() is not None

    async def get_user(self, user_id: int) -> Optional[UserPublicSchema]:
        user = await self.db.get(User, user_id)
        return UserPublicSchema.model_validate(user) if user else None

    async def create_user(self, data: UserRegisterSchema) -> UserPublicSchema:
        if await self._username_taken(data.username):
            raise DuplicateUsername()

        # Hash before touching the store so a hashing failure leaves nothing behind
        hashed = await hash_password_async(data.password)

        async with self._writing():
            if await self._username_taken(data.username):
                raise DuplicateUsername()
            user = User(
                username=data.username,
                hashed_password=hashed,
                email=str(data.email),
                full_name=data.full_name,
                level=1,
                points=0,
                role="member",
                share_workouts=True,
                share_achievements=True,
                show_in_leaderboard=True,
            )
            self.db.add(user)
            try:
                await self.db.flush()
            except IntegrityError:
                raise DuplicateUsername()
            user.qr_code = user_qr_code(user.id)
            await self.db.flush()

        log.info(f"Registered user {user.username} (id={user.id})")
        return UserPublicSchema.model_validate(user)

    async def ensure_user_qr_code(self, user_id: int) -> str:
        """Fetch the user's QR identifier, generating one on first request."""
        async with self._writing():
            user = await self._user_row(user_id)
            if not user.qr_code:
                user.qr_code = user_qr_code(user.id)
                await self.db.flush()
            return user.qr_code

    async def update_privacy(self, user_id: int, privacy: PrivacySettingsSchema) -> UserPublicSchema:
        async with self._writing():
            user = await self._user_row(user_id)
            user.share_workouts = privacy.share_workouts
            user.share_achievements = privacy.share_achievements
            user.show_in_leaderboard = privacy.show_in_leaderboard
            await self.db.flush()
        return UserPublicSchema.model_validate(user)

    def _award_points(self, user: User, points: int) -> None:
        user.points = max(0, user.points + points)
        user.level = agg.level_for_points(user.points)

    async def get_leaderboard(self, limit: int) -> list[LeaderboardEntrySchema]:
        result = await self.db.execute(
            select(User)
            .where(User.show_in_leaderboard.is_(True))
            .order_by(User.id)
        )
        ranked = agg.rank_descending(result.scalars().all(), key=lambda u: u.points, limit=limit)
        return [LeaderboardEntrySchema.model_validate(u) for u in ranked]

    # ══════════════════════════════════════════════════════════════════════════
    # APPAREL
    # ══════════════════════════════════════════════════════════════════════════

    async def create_apparel(self, owner_id: int, name: str, type: str) -> ApparelSchema:
        async with self._writing():
            await self._user_row(owner_id)
            apparel = Apparel(
                user_id=owner_id,
                name=name,
                type=type,
                qr_code=apparel_qr_code(owner_id),
                date_added=agg.utcnow(),
                usage_count=0,
                last_used=None,
                total_workout_duration=0,
                total_calories_burned=0,
                average_workout_duration=0,
                performance_rating=0,
            )
            self.db.add(apparel)
            await self.db.flush()
        log.info(f"User {owner_id} registered apparel '{name}' (id={apparel.id})")
        return ApparelSchema.model_validate(apparel)

    async def get_apparel(self, apparel_id: int) -> Optional[ApparelSchema]:
        apparel = await self.db.get(Apparel, apparel_id)
        return ApparelSchema.model_validate(apparel) if apparel else None

    async def _owned_apparel_row(self, owner_id: int, apparel_id: int) -> Apparel:
        apparel = await self.db.get(Apparel, apparel_id)
        if apparel is None:
            raise ApparelNotFound(f"Apparel {apparel_id} not found")
        if apparel.user_id != owner_id:
            raise ForbiddenApparelAccess()
        return apparel

    async def get_owned_apparel(self, owner_id: int, apparel_id: int) -> ApparelSchema:
        return ApparelSchema.model_validate(await self._owned_apparel_row(owner_id, apparel_id))

    async def list_apparel(self, owner_id: int) -> list[ApparelSchema]:
        result = await self.db.execute(
            select(Apparel).where(Apparel.user_id == owner_id).order_by(Apparel.id)
        )
        return [ApparelSchema.model_validate(a) for a in result.scalars().all()]

    async def apparel_stats(self, owner_id: int, apparel_id: int) -> ApparelStatsSchema:
        apparel = await self._owned_apparel_row(owner_id, apparel_id)
        return ApparelStatsSchema(
            total_workouts=apparel.usage_count,
            total_duration=apparel.total_workout_duration,
            total_calories=apparel.total_calories_burned,
            average_duration=apparel.average_workout_duration,
            last_used=apparel.last_used,
            performance_rating=apparel.performance_rating,
        )

    async def apparel_workouts(self, owner_id: int, apparel_id: int, limit: Optional[int] = None) -> list[WorkoutSchema]:
        await self._owned_apparel_row(owner_id, apparel_id)
        query = (
            select(Workout)
            .where(Workout.apparel_id == apparel_id)
            .order_by(desc(Workout.date), desc(Workout.id))
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return [WorkoutSchema.model_validate(w) for w in result.scalars().all()]

    async def most_used_apparel(self, owner_id: int, limit: int) -> list[ApparelSchema]:
        owned = await self.list_apparel(owner_id)
        return agg.rank_descending(owned, key=lambda a: a.usage_count, limit=limit)

    async def best_performing_apparel(self, owner_id: int, limit: int) -> list[ApparelSchema]:
        owned = await self.list_apparel(owner_id)
        return agg.rank_descending(owned, key=lambda a: a.performance_rating, limit=limit)

    def _record_apparel_usage(self, apparel: Apparel, duration: int, calories: int, when: datetime) -> None:
        usage = agg.ApparelUsage(
            usage_count=apparel.usage_count,
            total_workout_duration=apparel.total_workout_duration,
            total_calories_burned=apparel.total_calories_burned,
            average_workout_duration=apparel.average_workout_duration,
            performance_rating=apparel.performance_rating,
            last_used=apparel.last_used,
        )
        for field, value in asdict(agg.apply_workout(usage, duration, calories, when)).items():
            setattr(apparel, field, value)

    # ══════════════════════════════════════════════════════════════════════════
    # QR SCAN
    # ══════════════════════════════════════════════════════════════════════════

    async def resolve_qr_code(self, qr_code: str) -> ScanResultSchema:
        apparel = (await self.db.execute(
            select(Apparel).where(Apparel.qr_code == qr_code)
        )).scalar_one_or_none()
        if apparel:
            return ScanResultSchema(type="apparel", data=ApparelSchema.model_validate(apparel))

        user = (await self.db.execute(
            select(User).where(User.qr_code == qr_code)
        )).scalar_one_or_none()
        if user:
            return ScanResultSchema(type="user", data=UserPublicSchema.model_validate(user))

        raise QRCodeNotRecognized()

    # ══════════════════════════════════════════════════════════════════════════
    # WORKOUTS
    # ══════════════════════════════════════════════════════════════════════════

    async def record_workout(self, owner_id: int, data: WorkoutCreateSchema) -> WorkoutSchema:
        """
        The core write transaction. Stores the workout and, in the same unit:
        awards duration/5 points, folds the workout into the garment's usage
        aggregate, and re-evaluates achievements and joined challenges.
        Any failure rolls the whole thing back.
        """
        async with self._writing():
            user = await self._user_row(owner_id)
            apparel = None
            if data.apparel_id is not None:
                apparel = await self._owned_apparel_row(owner_id, data.apparel_id)

            now = agg.utcnow()
            workout = Workout(
                user_id=owner_id,
                apparel_id=data.apparel_id,
                type=data.type,
                duration=data.duration,
                calories=data.calories,
                date=now,
                progress=agg.workout_progress(data.duration),
                notes=data.notes,
            )
            self.db.add(workout)
            await self.db.flush()

            self._award_points(user, agg.points_for_workout(data.duration))
            if apparel is not None:
                self._record_apparel_usage(apparel, data.duration, data.calories, now)

            await self._evaluate_achievements(user)
            await self._evaluate_challenges(user, now)
            await self.db.flush()

        log.info(
            f"User {owner_id} logged {data.type} ({data.duration} min, {data.calories} kcal)"
            + (f" in apparel {data.apparel_id}" if data.apparel_id else "")
        )
        return WorkoutSchema.model_validate(workout)

    async def list_workouts(self, owner_id: int, limit: Optional[int] = None) -> list[WorkoutSchema]:
        query = (
            select(Workout)
            .where(Workout.user_id == owner_id)
            .order_by(desc(Workout.date), desc(Workout.id))
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return [WorkoutSchema.model_validate(w) for w in result.scalars().all()]

    async def workout_stats(self, owner_id: int) -> WorkoutStatsSchema:
        rows = (await self.db.execute(
            select(Workout.calories, Workout.progress).where(Workout.user_id == owner_id)
        )).all()
        totals = agg.workout_totals([r.calories for r in rows], [r.progress for r in rows])
        return WorkoutStatsSchema(**asdict(totals))

    # ══════════════════════════════════════════════════════════════════════════
    # ACHIEVEMENTS
    # ══════════════════════════════════════════════════════════════════════════

    async def list_achievements(self) -> list[AchievementSchema]:
        result = await self.db.execute(select(Achievement).order_by(Achievement.id))
        return [AchievementSchema.model_validate(a) for a in result.scalars().all()]

    async def achievement_progress(self, user_id: int) -> list[AchievementProgressSchema]:
        catalog = (await self.db.execute(select(Achievement).order_by(Achievement.id))).scalars().all()
        records = {
            ua.achievement_id: ua
            for ua in (await self.db.execute(
                select(UserAchievement).where(UserAchievement.user_id == user_id)
            )).scalars().all()
        }
        entries = []
        for achievement in catalog:
            record = records.get(achievement.id)
            entries.append(AchievementProgressSchema(
                achievement=AchievementSchema.model_validate(achievement),
                progress=record.progress if record else 0,
                completed=record.completed if record else False,
                date_earned=record.date_earned if record else None,
            ))
        return entries

    async def _achievement_by_name(self, name: str) -> Optional[Achievement]:
        result = await self.db.execute(select(Achievement).where(Achievement.name == name))
        return result.scalar_one_or_none()

    async def _set_achievement_progress(self, user: User, achievement_id: int, submitted: int) -> UserAchievement:
        record = (await self.db.execute(
            select(UserAchievement).where(
                UserAchievement.user_id == user.id,
                UserAchievement.achievement_id == achievement_id,
            )
        )).scalar_one_or_none()
        if record is None:
            record = UserAchievement(user_id=user.id, achievement_id=achievement_id, progress=0, completed=False)
            self.db.add(record)

        update = agg.advance_progress(agg.ProgressState(record.progress, record.completed), submitted)
        if update.changed:
            record.progress = update.state.progress
            record.completed = update.state.completed
        if update.newly_completed:
            record.date_earned = agg.utcnow()
            self._award_points(user, agg.ACHIEVEMENT_BONUS_POINTS)
            log.info(f"User {user.id} completed achievement {achievement_id}")
        await self.db.flush()
        return record

    async def update_achievement_progress(self, user_id: int, achievement_id: int, progress: int) -> UserAchievementSchema:
        async with self._writing():
            user = await self._user_row(user_id)
            if await self.db.get(Achievement, achievement_id) is None:
                raise AchievementNotFound(f"Achievement {achievement_id} not found")
            record = await self._set_achievement_progress(user, achievement_id, progress)
        return UserAchievementSchema.model_validate(record)

    async def unlock_achievement(self, user_id: int, achievement_id: int) -> UserAchievementSchema:
        return await self.update_achievement_progress(user_id, achievement_id, agg.MAX_PROGRESS)

    async def _evaluate_achievements(self, user: User) -> None:
        count, total_calories = (await self.db.execute(
            select(func.count(Workout.id), func.coalesce(func.sum(Workout.calories), 0))
            .where(Workout.user_id == user.id)
        )).one()

        if agg.consistency_reached(count):
            consistency = await self._achievement_by_name(agg.CONSISTENCY_ACHIEVEMENT)
            if consistency:
                await self._set_achievement_progress(user, consistency.id, agg.MAX_PROGRESS)

        calories = await self._achievement_by_name(agg.CALORIE_ACHIEVEMENT)
        if calories:
            await self._set_achievement_progress(user, calories.id, agg.calorie_progress(int(total_calories)))

    # ══════════════════════════════════════════════════════════════════════════
    # CHALLENGES
    # ══════════════════════════════════════════════════════════════════════════

    async def list_challenges(self) -> list[ChallengeSchema]:
        result = await self.db.execute(select(Challenge).order_by(Challenge.start_date, Challenge.id))
        return [ChallengeSchema.model_validate(c) for c in result.scalars().all()]

    async def user_challenges(self, user_id: int) -> list[UserChallengeDetailSchema]:
        rows = (await self.db.execute(
            select(UserChallenge, Challenge)
            .join(Challenge, Challenge.id == UserChallenge.challenge_id)
            .where(UserChallenge.user_id == user_id)
            .order_by(UserChallenge.id)
        )).all()
        return [
            UserChallengeDetailSchema.model_validate({
                **UserChallengeSchema.model_validate(uc).model_dump(),
                "challenge": ChallengeSchema.model_validate(ch),
            })
            for uc, ch in rows
        ]

    async def _user_challenge_row(self, user_id: int, challenge_id: int) -> Optional[UserChallenge]:
        result = await self.db.execute(
            select(UserChallenge).where(
                UserChallenge.user_id == user_id,
                UserChallenge.challenge_id == challenge_id,
            )
        )
        return result.scalar_one_or_none()

    async def join_challenge(self, user_id: int, challenge_id: int) -> UserChallengeSchema:
        """Idempotent: a second join returns the existing record untouched."""
        async with self._writing():
            await self._user_row(user_id)
            if await self.db.get(Challenge, challenge_id) is None:
                raise ChallengeNotFound(f"Challenge {challenge_id} not found")
            record = await self._user_challenge_row(user_id, challenge_id)
            if record is None:
                record = UserChallenge(
                    user_id=user_id,
                    challenge_id=challenge_id,
                    date_joined=agg.utcnow(),
                    progress=0,
                    completed=False,
                )
                self.db.add(record)
                await self.db.flush()
                log.info(f"User {user_id} joined challenge {challenge_id}")
        return UserChallengeSchema.model_validate(record)

    async def _set_challenge_progress(self, user: User, record: UserChallenge, submitted: int) -> UserChallenge:
        update = agg.advance_progress(agg.ProgressState(record.progress, record.completed), submitted)
        if update.changed:
            record.progress = update.state.progress
            record.completed = update.state.completed
        if update.newly_completed:
            self._award_points(user, agg.CHALLENGE_BONUS_POINTS)
            log.info(f"User {user.id} completed challenge {record.challenge_id}")
        await self.db.flush()
        return record

    async def update_challenge_progress(self, user_id: int, challenge_id: int, progress: int) -> UserChallengeSchema:
        async with self._writing():
            user = await self._user_row(user_id)
            record = await self._user_challenge_row(user_id, challenge_id)
            if record is None:
                raise ChallengeNotJoined()
            record = await self._set_challenge_progress(user, record, progress)
        return UserChallengeSchema.model_validate(record)

    async def _evaluate_challenges(self, user: User, now: datetime) -> None:
        joined = (await self.db.execute(
            select(UserChallenge, Challenge)
            .join(Challenge, Challenge.id == UserChallenge.challenge_id)
            .where(UserChallenge.user_id == user.id, UserChallenge.completed.is_(False))
        )).all()
        if not joined:
            return

        history = (await self.db.execute(
            select(Workout.type, Workout.date).where(Workout.user_id == user.id)
        )).all()

        for record, challenge in joined:
            if agg.challenge_status(challenge.start_date, challenge.end_date, now) != "active":
                continue
            start, end = agg.as_utc(challenge.start_date), agg.as_utc(challenge.end_date)
            matching = sum(
                1 for w in history
                if start <= agg.as_utc(w.date) <= end
                and agg.matches_category(w.type, challenge.workout_category)
            )
            await self._set_challenge_progress(
                user, record, agg.challenge_progress(matching, challenge.target_workouts)
            )

    # ══════════════════════════════════════════════════════════════════════════
    # INTEGRATIONS
    # ══════════════════════════════════════════════════════════════════════════

    async def _integration_row(self, user_id: int, app_name: str) -> Optional[IntegratedApp]:
        result = await self.db.execute(
            select(IntegratedApp).where(
                IntegratedApp.user_id == user_id,
                IntegratedApp.app_name == app_name,
            )
        )
        return result.scalar_one_or_none()

    async def list_integrations(self, user_id: int) -> list[IntegratedAppSchema]:
        result = await self.db.execute(
            select(IntegratedApp).where(IntegratedApp.user_id == user_id).order_by(IntegratedApp.id)
        )
        return [IntegratedAppSchema.model_validate(a) for a in result.scalars().all()]

    async def connect_app(
        self, user_id: int, app_name: str, access_token: str, refresh_token: Optional[str] = None
    ) -> IntegratedAppSchema:
        async with self._writing():
            await self._user_row(user_id)
            app = await self._integration_row(user_id, app_name)
            if app is None:
                app = IntegratedApp(user_id=user_id, app_name=app_name)
                self.db.add(app)
            app.connected = True
            app.access_token = access_token
            app.refresh_token = refresh_token
            app.last_synced = agg.utcnow()
            await self.db.flush()
        return IntegratedAppSchema.model_validate(app)

    async def disconnect_app(self, user_id: int, app_name: str) -> None:
        """Soft-disable: the row stays so a later connect is a plain upsert."""
        async with self._writing():
            app = await self._integration_row(user_id, app_name)
            if app is not None:
                app.connected = False
                app.access_token = None
                app.refresh_token = None
                await self.db.flush()

    # ══════════════════════════════════════════════════════════════════════════
    # PREFERENCES
    # ══════════════════════════════════════════════════════════════════════════

    async def _preferences_row(self, user_id: int) -> Optional[UserPreferences]:
        result = await self.db.execute(select(UserPreferences).where(UserPreferences.user_id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    def _preference_values(prefs: PreferencesSchema) -> dict:
        values = prefs.model_dump()
        for key in ("fitness_level", "workout_preference", "fitness_goal"):
            values[key] = values[key].value
        return values

    async def get_preferences(self, user_id: int) -> Optional[PreferencesSchema]:
        row = await self._preferences_row(user_id)
        return PreferencesSchema.model_validate(row) if row else None

    async def save_preferences(self, user_id: int, prefs: PreferencesSchema) -> PreferencesSchema:
        """Create or wholesale replace."""
        async with self._writing():
            await self._user_row(user_id)
            row = await self._preferences_row(user_id)
            if row is None:
                row = UserPreferences(user_id=user_id)
                self.db.add(row)
            for key, value in self._preference_values(prefs).items():
                setattr(row, key, value)
            await self.db.flush()
        return PreferencesSchema.model_validate(row)

    async def update_preferences(self, user_id: int, patch: PreferencesUpdateSchema) -> PreferencesSchema:
        """Partial merge onto saved preferences."""
        async with self._writing():
            row = await self._preferences_row(user_id)
            if row is None:
                raise PreferencesNotFound()
            try:
                merged = PreferencesSchema.model_validate({
                    **PreferencesSchema.model_validate(row).model_dump(),
                    **patch.model_dump(exclude_unset=True),
                })
            except ValidationError as e:
                raise ValidationFailed("Invalid preference update", details={"errors": format_field_errors(e.errors())})
            for key, value in self._preference_values(merged).items():
                setattr(row, key, value)
            await self.db.flush()
        return PreferencesSchema.model_validate(row)

    # ══════════════════════════════════════════════════════════════════════════
    # RECOMMENDATIONS
    # ══════════════════════════════════════════════════════════════════════════

    async def generate_recommendation(self, user_id: int) -> RecommendationSchema:
        prefs = await self.get_preferences(user_id)
        best = await self.best_performing_apparel(user_id, RECOMMENDED_APPAREL_COUNT)
        plan = recommendation_engine.generate(prefs, [a.id for a in best])

        async with self._writing():
            await self._user_row(user_id)
            row = WorkoutRecommendation(
                user_id=user_id,
                title=plan.title,
                description=plan.description,
                type=plan.type,
                duration=plan.duration,
                calories_burn=plan.calories_burn,
                difficulty=plan.difficulty,
                exercises=[asdict(e) for e in plan.exercises],
                recommended_apparel=plan.recommended_apparel,
                is_completed=False,
                created_at=agg.utcnow(),
            )
            self.db.add(row)
            await self.db.flush()
        log.info(f"Generated {plan.type} recommendation {row.id} for user {user_id}")
        return RecommendationSchema.model_validate(row)

    async def list_recommendations(self, user_id: int) -> list[RecommendationSchema]:
        result = await self.db.execute(
            select(WorkoutRecommendation)
            .where(WorkoutRecommendation.user_id == user_id)
            .order_by(desc(WorkoutRecommendation.id))
        )
        return [RecommendationSchema.model_validate(r) for r in result.scalars().all()]

    async def _owned_recommendation_row(self, user_id: int, recommendation_id: int) -> WorkoutRecommendation:
        row = await self.db.get(WorkoutRecommendation, recommendation_id)
        if row is None:
            raise RecommendationNotFound(f"Recommendation {recommendation_id} not found")
        if row.user_id != user_id:
            raise ForbiddenRecommendationAccess()
        return row

    async def get_recommendation(self, user_id: int, recommendation_id: int) -> RecommendationSchema:
        return RecommendationSchema.model_validate(
            await self._owned_recommendation_row(user_id, recommendation_id)
        )

    async def complete_recommendation(self, user_id: int, recommendation_id: int) -> RecommendationSchema:
        """One-way flag; completing twice is a no-op."""
        async with self._writing():
            row = await self._owned_recommendation_row(user_id, recommendation_id)
            if not row.is_completed:
                row.is_completed = True
                await self.db.flush()
        return RecommendationSchema.model_validate(row)
