from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import Any, Dict, Optional

from vocabventure.models.badge import BadgeCategory, BadgeTier


class CamelModel(BaseModel):
    """调用参数使用 camelCase，Python 侧使用 snake_case"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


class Credentials(CamelModel):
    name: str = Field(min_length=1)
    birthdate: str = Field(min_length=1)


class UserParams(CamelModel):
    user_id: int


class StoryParams(UserParams):
    story_id: int


class SegmentParams(StoryParams):
    segment_id: int = Field(ge=1)


class CompletionStatusParams(StoryParams):
    total_segments: int = Field(ge=0)


class BulkCompletionParams(UserParams):
    total_segments: Optional[int] = Field(default=None, ge=0)


class CompleteStoryParams(StoryParams):
    total_segments: int = Field(ge=1)


class QuizAttemptParams(StoryParams):
    quiz_number: int = Field(ge=1, le=2)
    score: int = Field(ge=0)
    total_questions: int = Field(ge=0)

    @model_validator(mode="after")
    def check_score_within_total(self):
        if self.score > self.total_questions:
            raise ValueError("score 不能大于 totalQuestions")
        return self


class QuizLookupParams(StoryParams):
    quiz_number: int = Field(ge=1, le=2)


class QuizResultsParams(UserParams):
    story_id: Optional[int] = None


class BadgeAwardParams(StoryParams):
    tier: BadgeTier = Field(validation_alias=AliasChoices("tier", "badgeType"))
    category: BadgeCategory = Field(
        default=BadgeCategory.STORY_COMPLETION,
        validation_alias=AliasChoices("category", "badgeCategory"),
    )


class BadgeUpgradeParams(StoryParams):
    new_tier: BadgeTier = Field(validation_alias=AliasChoices("newTier", "newBadgeType"))


class BadgeLookupParams(StoryParams):
    category: BadgeCategory = Field(validation_alias=AliasChoices("category", "badgeCategory"))


class InvokeRequest(BaseModel):
    method: str
    params: Dict[str, Any] = Field(default_factory=dict)


class InvokeResponse(BaseModel):
    result: Any = None
