"""
WolfPack — Catalog Seeding
Achievement and challenge catalogs are fixed data, inserted once into an empty
database at startup.
"""

import logging
from datetime import timedelta

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from aggregation import utcnow, CONSISTENCY_ACHIEVEMENT, CALORIE_ACHIEVEMENT
from config import settings
from models import Achievement, Challenge, User
from schemas import UserRegisterSchema
from store import DomainStore

log = logging.getLogger(__name__)


ACHIEVEMENTS = [
    {
        "name": CONSISTENCY_ACHIEVEMENT,
        "description": "Complete workouts 5 days in a row",
        "criteria": "5 consecutive days of workouts",
        "icon": "award",
        "color": "amber",
    },
    {
        "name": CALORIE_ACHIEVEMENT,
        "description": "Burn 10,000 calories in a month",
        "criteria": "10000 calories burned",
        "icon": "zap",
        "color": "blue",
    },
    {
        "name": "Pack Leader",
        "description": "Invite 5 friends to join your pack",
        "criteria": "5 friends invited",
        "icon": "users",
        "color": "slate",
    },
]

DEMO_USER = {
    "username": "testuser",
    "password": "password123",
    "email": "testuser@wolf.com",
    "full_name": "Test User",
}


def challenge_catalog() -> list[dict]:
    """Challenge windows are relative to the moment of seeding."""
    now = utcnow()
    strength_start = now + timedelta(days=3)
    window_end = strength_start + timedelta(days=30)
    return [
        {
            "name": "30-Day Strength Builder",
            "description": "Build strength and transform your body with our 30-day progressive "
                           "program designed for all fitness levels.",
            "start_date": strength_start,
            "end_date": window_end,
            "image": "https://images.unsplash.com/photo-1571019613454-1cb2f99b2d8b",
            "type": "solo",
            "criteria": "Complete 30 strength workouts",
            "target_workouts": 30,
            "workout_category": "strength",
        },
        {
            "name": "Alpha Cardio Challenge",
            "description": "Push your limits with high-intensity cardio sessions designed to improve "
                           "endurance and burn maximum calories.",
            "start_date": now,
            "end_date": window_end,
            "image": "https://images.unsplash.com/photo-1574680096145-d05b474e2155",
            "type": "featured",
            "criteria": "Complete 20 cardio workouts",
            "target_workouts": 20,
            "workout_category": "cardio",
        },
        {
            "name": "Pack Relay Competition",
            "description": "Join with your pack to compete in our community-wide relay challenge. "
                           "Earn points together and rise up the leaderboard.",
            "start_date": now,
            "end_date": window_end,
            "image": "https://images.unsplash.com/photo-1515238152791-8216bfdf89a7",
            "type": "team",
            "criteria": "Collectively complete 100 workouts",
            "target_workouts": 100,
            "workout_category": None,
        },
    ]


async def _is_empty(db: AsyncSession, model) -> bool:
    return (await db.execute(select(func.count(model.id)))).scalar_one() == 0


async def seed_catalog(db: AsyncSession) -> None:
    if await _is_empty(db, Achievement):
        db.add_all(Achievement(**a) for a in ACHIEVEMENTS)
        log.info(f"Seeded {len(ACHIEVEMENTS)} achievements")

    if await _is_empty(db, Challenge):
        catalog = challenge_catalog()
        db.add_all(Challenge(**c) for c in catalog)
        log.info(f"Seeded {len(catalog)} challenges")

    await db.commit()


async def seed_demo_user(db: AsyncSession) -> None:
    """Development convenience account, only created on an empty user table."""
    if not await _is_empty(db, User):
        return
    await DomainStore(db).create_user(UserRegisterSchema(**DEMO_USER))
    log.info(f"Created demo user '{DEMO_USER['username']}'")


async def run_seed(db: AsyncSession) -> None:
    await seed_catalog(db)
    if settings.SEED_DEMO_USER:
        await seed_demo_user(db)
