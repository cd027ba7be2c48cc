from pydantic import BaseModel, ConfigDict, Field


class GrowthStreakState(BaseModel):
    """Derived streak statistics over a growth-rate history.

    Recomputed from the full history each time; never persisted on its own.
    ``current_streak`` is the still-open trailing streak and is not part of
    ``streak_count``.
    """

    model_config = ConfigDict(frozen=True)

    current_streak: int = Field(0, ge=0)
    longest_streak: int = Field(0, ge=0)
    streak_count: int = Field(0, ge=0, description="Number of completed (closed) streaks")
    average_streak_duration: float = Field(0.0, ge=0.0)
