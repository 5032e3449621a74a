"""Common types and enums shared across all models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys (document + oracle wire format)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimeBlock(str, Enum):
    """Coarse scheduling unit used instead of exact times."""

    morning = "morning"
    afternoon = "afternoon"
    evening = "evening"


TIME_BLOCK_ORDER: tuple[TimeBlock, ...] = (TimeBlock.morning, TimeBlock.afternoon, TimeBlock.evening)


class ActivityType(str, Enum):
    """Kind of activity."""

    attraction = "attraction"
    restaurant = "restaurant"
    activity = "activity"
    transport = "transport"
    accommodation = "accommodation"
    other = "other"


class SourceType(str, Enum):
    """Where an activity came from."""

    ai = "ai"
    inspiration = "inspiration"
    confirmation = "confirmation"
    manual = "manual"


class TripStatus(str, Enum):
    """Trip lifecycle status."""

    draft = "draft"
    planning = "planning"
    active = "active"
    completed = "completed"
    archive = "archive"
