from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

from app.modules.users.schemas import UserSummary


class ChoiceOption(BaseModel):
    choice: str = Field(..., min_length=1, max_length=8)
    description: str
    is_correct: bool = False


def _check_choices(choices: Optional[List[ChoiceOption]]) -> Optional[List[ChoiceOption]]:
    if choices is None:
        return choices
    if not choices:
        raise ValueError("at least one choice is required")
    labels = [c.choice for c in choices]
    if len(set(labels)) != len(labels):
        raise ValueError("choice labels must be unique")
    if not any(c.is_correct for c in choices):
        raise ValueError("at least one choice must be correct")
    return choices


class ProblemCreateBase(BaseModel):
    description: str = Field(..., min_length=1)
    analysis: Optional[str] = None
    is_public: bool = True


class ProblemUpdateBase(BaseModel):
    id: int
    description: Optional[str] = Field(None, min_length=1)
    analysis: Optional[str] = None
    is_public: Optional[bool] = None


class ChoiceProblemCreate(ProblemCreateBase):
    choices: List[ChoiceOption]

    @field_validator("choices")
    @classmethod
    def validate_choices(cls, v):
        return _check_choices(v)


class ChoiceProblemUpdate(ProblemUpdateBase):
    choices: Optional[List[ChoiceOption]] = None

    @field_validator("choices")
    @classmethod
    def validate_choices(cls, v):
        return _check_choices(v)


class BlankProblemCreate(ProblemCreateBase):
    answer: str = Field(..., min_length=1)


class BlankProblemUpdate(ProblemUpdateBase):
    answer: Optional[str] = Field(None, min_length=1)


class JudgeProblemCreate(ProblemCreateBase):
    is_correct: bool


class JudgeProblemUpdate(ProblemUpdateBase):
    is_correct: Optional[bool] = None


class ChoiceOptionResponse(BaseModel):
    choice: str
    description: str


class ProblemResponse(BaseModel):
    id: int
    problem_type: str
    description: str
    user_id: int
    user_info: Optional[UserSummary] = None
    is_public: bool
    created_at: datetime
    favorite_count: int = 0
    is_favorite: bool = False
    # choice problems only
    choices: Optional[List[ChoiceOptionResponse]] = None
    is_multiple: Optional[bool] = None


class AllProblemResponse(BaseModel):
    total_count: int
    problems: List[ProblemResponse]


class ChoiceAnswerResponse(BaseModel):
    problem_id: int
    answer: List[str]
    analysis: Optional[str] = None


class BlankAnswerResponse(BaseModel):
    problem_id: int
    answer: str
    analysis: Optional[str] = None


class JudgeAnswerResponse(BaseModel):
    problem_id: int
    answer: bool
    analysis: Optional[str] = None
