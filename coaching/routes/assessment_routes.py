import logging
from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator

from coaching.assessments.question_bank import AssessmentTest, ChoiceQuestion, get_test
from coaching.assessments.scoring import (
    Recommendation,
    classify_sections,
    recommended_sessions,
    review_answers,
    score_assessment,
    validate_answers,
)
from coaching.auth.dependencies import get_current_user, get_optional_user
from coaching.core.errors import ValidationError
from coaching.models.user import User
from coaching.routes.common import get_store
from coaching.scheduling.store import ScheduleStore, from_storage

router = APIRouter(tags=['assessments'])

logger = logging.getLogger(__name__)


class QuestionResponse(BaseModel):
    key: str
    kind: str
    text: str
    options: list[str] = []
    tooltip: str | None = None


class SectionResponse(BaseModel):
    id: str
    part: str
    title: str
    questions: list[QuestionResponse]


class AssessmentResponse(BaseModel):
    type: str
    version: int
    question_count: int
    sections: list[SectionResponse]


class ScoreRequest(BaseModel):
    answers: dict[str, str]

    @field_validator('answers')
    @classmethod
    def strip_answers(cls, value: dict[str, str]) -> dict[str, str]:
        return {key.strip(): answer.strip() for key, answer in value.items()}


class AnswerReviewResponse(BaseModel):
    key: str
    section_title: str
    question: str
    answer: str
    answer_text: str | None = None
    is_correct: bool | None = None


class ScoreResponse(BaseModel):
    id: int | None = None
    type: str
    breakdown: dict
    strengths: list[str]
    opportunities: list[str]
    review: list[AnswerReviewResponse]
    saved: bool


class StoredScoreResponse(BaseModel):
    id: int
    type: str
    score_breakdown: dict
    user_answers: dict[str, str]
    created_at: datetime | None = None


def _test_or_404(test_type: str) -> AssessmentTest:
    try:
        return get_test(test_type)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc


def serialize_test(test: AssessmentTest) -> AssessmentResponse:
    sections: dict[str, SectionResponse] = {}
    part_for_section = {section.id: part.name for part in test.parts for section in part.sections}

    for key, section, question in test.iter_questions():
        entry = sections.get(section.id)
        if entry is None:
            entry = sections[section.id] = SectionResponse(
                id=section.id,
                part=part_for_section[section.id],
                title=section.title,
                questions=[],
            )
        if isinstance(question, ChoiceQuestion):
            entry.questions.append(QuestionResponse(
                key=key,
                kind=question.kind,
                text=question.text,
                options=list(question.options),
                tooltip=question.tooltip,
            ))
        else:
            entry.questions.append(QuestionResponse(key=key, kind=question.kind, text=question.text))

    return AssessmentResponse(
        type=test.type,
        version=test.version,
        question_count=test.question_count,
        sections=list(sections.values()),
    )


def serialize_score(score) -> StoredScoreResponse:
    return StoredScoreResponse(
        id=score.id,
        type=score.type,
        score_breakdown=score.score_breakdown,
        user_answers=score.user_answers,
        created_at=from_storage(score.created_at),
    )


@router.get('/scores/me', response_model=list[StoredScoreResponse])
def list_my_scores(
    user: User = Depends(get_current_user),
    store: ScheduleStore = Depends(get_store),
):
    return [serialize_score(score) for score in store.get_scores_for_user(user.id)]


@router.get('/recommendations/me', response_model=list[Recommendation])
def list_my_recommendations(
    user: User = Depends(get_current_user),
    store: ScheduleStore = Depends(get_store),
):
    return list(recommended_sessions(store.get_scores_for_user(user.id)))


@router.get('/{test_type}', response_model=AssessmentResponse)
def get_assessment(test_type: str):
    return serialize_test(_test_or_404(test_type))


@router.post('/{test_type}/score', response_model=ScoreResponse)
def score_submission(
    test_type: str,
    data: ScoreRequest,
    user: User | None = Depends(get_optional_user),
    store: ScheduleStore = Depends(get_store),
):
    test = _test_or_404(test_type)
    answers = validate_answers(test, data.answers)
    breakdown = score_assessment(test.type, answers)
    insights = classify_sections(breakdown, test)
    review = review_answers(test.type, answers)

    saved_id = None
    if user is not None:
        saved = store.create_score(breakdown.to_json(), answers, test.type, user.id)
        saved_id = saved.id
        logger.info('Saved %s assessment %s for user %s', test.type, saved.id, user.id)

    return ScoreResponse(
        id=saved_id,
        type=test.type,
        breakdown=breakdown.to_json(),
        strengths=list(insights.strengths),
        opportunities=list(insights.opportunities),
        review=[AnswerReviewResponse(**asdict(entry)) for entry in review],
        saved=saved_id is not None,
    )
