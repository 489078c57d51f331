"""
WolfPack — Recommendation Engine
Deterministic template selection from saved preferences.
Same inputs always give the same plan: no learning, no randomness.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from aggregation import round_half_up

log = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════════
# CONSTANTS
# ══════════════════════════════════════════════════════════════════════════════

# kcal per minute by workout type
CALORIE_MULTIPLIERS = {
    "strength":    7.0,
    "cardio":      10.0,
    "flexibility": 3.0,
    "hiit":        12.0,
    "endurance":   9.0,
    "recovery":    2.5,
    "balance":     3.5,
}
DEFAULT_CALORIE_MULTIPLIER = 6.0

# Sets / reps / work-interval scaling by fitness level
LEVEL_VOLUME = {
    "beginner":     {"sets": 2, "reps": 10, "work_seconds": 30, "rest_seconds": 90},
    "intermediate": {"sets": 3, "reps": 12, "work_seconds": 45, "rest_seconds": 60},
    "advanced":     {"sets": 4, "reps": 15, "work_seconds": 60, "rest_seconds": 45},
}

# (name, kind, body areas it loads, instruction)
# kind "reps" uses sets × reps; "timed" uses a work interval in seconds
EXERCISE_TEMPLATES = {
    "strength": [
        ("Goblet Squat",        "reps",  {"knee", "back"},     "Keep the chest up and sit between the heels."),
        ("Push-Up",             "reps",  {"shoulder", "wrist"}, "Body in one line from head to heel."),
        ("Bent-Over Row",       "reps",  {"back"},             "Hinge at the hips and pull the elbows past the ribs."),
        ("Romanian Deadlift",   "reps",  {"back"},             "Soft knees, push the hips back, neutral spine."),
        ("Overhead Press",      "reps",  {"shoulder"},         "Brace the core and press straight overhead."),
        ("Plank",               "timed", set(),                "Squeeze glutes and keep the hips level."),
    ],
    "cardio": [
        ("Brisk Warm-Up Walk",  "timed", set(),                "Build gradually to a conversational pace."),
        ("Jog Intervals",       "timed", {"knee", "ankle"},    "Alternate steady jogging with easy recovery."),
        ("Jumping Jacks",       "timed", {"knee", "ankle"},    "Land softly on the balls of the feet."),
        ("Stationary Cycling",  "timed", set(),                "Keep cadence high and resistance moderate."),
        ("Cool-Down Walk",      "timed", set(),                "Let the heart rate settle before stopping."),
    ],
    "flexibility": [
        ("Cat-Cow",             "timed", set(),                "Move slowly with the breath."),
        ("Hamstring Stretch",   "timed", set(),                "Hinge from the hips and keep the back long."),
        ("Hip Flexor Stretch",  "timed", {"knee"},             "Tuck the pelvis and lean gently forward."),
        ("Thoracic Rotation",   "timed", {"back"},             "Rotate through the upper back, not the lower."),
        ("Child's Pose",        "timed", {"knee"},             "Sink the hips to the heels and relax the shoulders."),
    ],
    "hiit": [
        ("Burpees",             "timed", {"knee", "wrist", "shoulder"}, "Explode up, land softly, keep moving."),
        ("Mountain Climbers",   "timed", {"wrist", "shoulder"}, "Drive the knees fast with hips low."),
        ("Jump Squats",         "timed", {"knee", "ankle"},    "Sit back, then jump straight up."),
        ("High Knees",          "timed", {"knee", "ankle"},    "Knees to hip height, quick feet."),
        ("Plank Jacks",         "timed", {"wrist", "shoulder"}, "Hold the plank while the feet jump wide and back."),
    ],
    "default": [
        ("Bodyweight Squat",    "reps",  {"knee"},             "Sit back as if into a chair."),
        ("Incline Push-Up",     "reps",  {"wrist", "shoulder"}, "Hands on a bench, lower the chest with control."),
        ("Glute Bridge",        "reps",  set(),                "Drive through the heels and squeeze at the top."),
        ("Bird Dog",            "reps",  set(),                "Reach long through the opposite arm and leg."),
        ("March in Place",      "timed", set(),                "Steady rhythm, swing the arms."),
    ],
}

TYPE_DESCRIPTIONS = {
    "strength":    "Compound lifts to build full-body strength.",
    "cardio":      "Steady aerobic work with intervals to raise endurance.",
    "flexibility": "Mobility and stretching flow to restore range of motion.",
    "hiit":        "Short, hard intervals to maximise calorie burn.",
    "endurance":   "Sustained effort to extend your aerobic base.",
    "recovery":    "Low-intensity movement to help your body bounce back.",
    "balance":     "Controlled movements to build stability and coordination.",
}

BEGINNER_DURATION_MINUTES = 20


# ══════════════════════════════════════════════════════════════════════════════
# DATA STRUCTURES
# ══════════════════════════════════════════════════════════════════════════════

@dataclass
class PlannedExercise:
    name: str
    sets: Optional[int] = None
    reps: Optional[int] = None
    duration: Optional[int] = None       # seconds
    rest_period: Optional[int] = None    # seconds
    instruction: Optional[str] = None


@dataclass
class GeneratedWorkout:
    title: str
    description: str
    type: str
    duration: int
    calories_burn: int
    difficulty: str
    exercises: list[PlannedExercise]
    recommended_apparel: list[int] = field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════════
# GENERATOR
# ══════════════════════════════════════════════════════════════════════════════

def estimate_calories(workout_type: str, duration: int) -> int:
    return round_half_up(duration * CALORIE_MULTIPLIERS.get(workout_type, DEFAULT_CALORIE_MULTIPLIER))


def _make_exercise(template: tuple, level: str) -> PlannedExercise:
    name, kind, _, instruction = template
    volume = LEVEL_VOLUME[level]
    if kind == "reps":
        return PlannedExercise(
            name=name, sets=volume["sets"], reps=volume["reps"],
            rest_period=volume["rest_seconds"], instruction=instruction,
        )
    return PlannedExercise(
        name=name, sets=volume["sets"], duration=volume["work_seconds"],
        rest_period=volume["rest_seconds"], instruction=instruction,
    )


class RecommendationEngine:

    def _select_templates(self, workout_type: str, limitations: Sequence[str]) -> list[tuple]:
        templates = EXERCISE_TEMPLATES.get(workout_type, EXERCISE_TEMPLATES["default"])
        avoid = {l.strip().lower() for l in limitations}
        safe = [t for t in templates if not (t[2] & avoid)]
        # A plan with nothing in it is worse than one the user can adapt
        return safe or templates

    def beginner_plan(self, recommended_apparel: Sequence[int]) -> GeneratedWorkout:
        """Fallback when the user has not saved any preferences yet."""
        return GeneratedWorkout(
            title="Beginner Full-Body Starter",
            description="A gentle full-body session to find your baseline. "
                        "Save your preferences for tailored workouts.",
            type="strength",
            duration=BEGINNER_DURATION_MINUTES,
            calories_burn=estimate_calories("strength", BEGINNER_DURATION_MINUTES),
            difficulty="beginner",
            exercises=[_make_exercise(t, "beginner") for t in EXERCISE_TEMPLATES["default"]],
            recommended_apparel=list(recommended_apparel),
        )

    def generate(self, preferences, recommended_apparel: Sequence[int]) -> GeneratedWorkout:
        """
        Build a workout from saved preferences.

        Args:
            preferences: PreferencesSchema or None.
            recommended_apparel: The user's best-performing apparel ids, best first.
        """
        if preferences is None:
            return self.beginner_plan(recommended_apparel)

        workout_type = preferences.workout_preference.value
        level = preferences.fitness_level.value
        goal = preferences.fitness_goal.value
        duration = preferences.workout_duration

        templates = self._select_templates(workout_type, preferences.limitations or [])
        description = TYPE_DESCRIPTIONS[workout_type]
        description += f" Built for your {goal.replace('_', ' ')} goal, {preferences.workout_frequency}x per week."

        return GeneratedWorkout(
            title=f"{level.title()} {workout_type.upper() if workout_type == 'hiit' else workout_type.title()} Session",
            description=description,
            type=workout_type,
            duration=duration,
            calories_burn=estimate_calories(workout_type, duration),
            difficulty=level,
            exercises=[_make_exercise(t, level) for t in templates],
            recommended_apparel=list(recommended_apparel),
        )


recommendation_engine = RecommendationEngine()
