"""Assessment scoring engine.

Turns a complete answer set into an immutable score breakdown. Rating
answers are ``"1"``..``"5"`` (reverse-scored items become ``6 - v``); choice
answers are option letters scored 1 when they match the key.
"""

from dataclasses import dataclass
from typing import Iterable, Mapping, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from coaching.assessments.question_bank import (
    LITERACY,
    RATING_VALUES,
    STRESS,
    AssessmentTest,
    ChoiceQuestion,
    RatingQuestion,
    Section,
    get_test,
)
from coaching.core.errors import ValidationError

KNOWLEDGE_WEAK_BELOW = 4
HABITS_WEAK_BELOW = 60
STRENGTH_AT_LEAST = 80
OPPORTUNITY_BELOW = 60

# habits are normalized against 4 points per question, so a perfect score exceeds 100
HABITS_POINTS_PER_QUESTION = 4


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    link: str


class _Breakdown(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    overall_score: float
    recommendations: tuple[Recommendation, ...] = ()

    def to_json(self) -> dict:
        return self.model_dump(mode='json', by_alias=True)


class StressBreakdown(_Breakdown):
    sources_score: float
    impacts_score: float
    sub_scores: dict[str, int]


class LiteracyBreakdown(_Breakdown):
    habits_score: float
    knowledge_score: float
    knowledge_scores: dict[str, int]


Breakdown = Union[StressBreakdown, LiteracyBreakdown]


def _session(name: str, service: str | None = None) -> Recommendation:
    link = f'/booking?service={service}' if service else '/booking'
    return Recommendation(name=name, link=link)


KNOWLEDGE_RECOMMENDATIONS = {
    'spending': (_session('Spending Habits Session', 'spending'), _session('Budgeting Session', 'budgeting')),
    'savings': (_session('Interest Rates, Savings, & Loans Session', 'savings'),),
    'investments': (_session('Investing Session', 'investing-basics'),
                    _session('Investing Setup/Review Session', 'investing-setup')),
    'credit': (_session('Credit Cards Session', 'credit'), _session('Credit Card Setup/Review Session', 'credit-setup')),
    'taxes': (_session('Taxes & Accounts Session', 'taxes-accounts'), _session('Filing Your Taxes Session', 'filing-taxes')),
}
HABITS_RECOMMENDATION = _session('Improving Financial Habits Session')


def validate_answers(test: AssessmentTest, answers: Mapping[str, object]) -> dict[str, str]:
    """Check that every question has a well-formed answer and return them cleaned.

    Raises ``ValidationError`` rather than treating a gap as zero.
    """
    cleaned: dict[str, str] = {}
    missing: list[str] = []
    invalid: list[str] = []

    for key, _section, question in test.iter_questions():
        raw = answers.get(key)
        value = '' if raw is None else str(raw).strip()
        if not value:
            missing.append(key)
            continue

        if isinstance(question, RatingQuestion):
            valid = value in RATING_VALUES
        else:
            value = value.lower()
            valid = value in question.option_letters

        if valid:
            cleaned[key] = value
        else:
            invalid.append(key)

    if missing:
        raise ValidationError(
            f'Please answer all questions before submitting ({len(missing)} unanswered).',
            code='incomplete_answers',
        )
    if invalid:
        raise ValidationError(f'Invalid answers for: {", ".join(invalid)}.', code='invalid_answer')

    return cleaned


def rating_points(question: RatingQuestion, value: str) -> int:
    points = int(value)
    return 6 - points if question.reverse else points


def choice_points(question: ChoiceQuestion, value: str) -> int:
    return 1 if value == question.answer else 0


def _section_points(test: AssessmentTest, answers: Mapping[str, str]) -> dict[str, list[int]]:
    points: dict[str, list[int]] = {}
    for key, section, question in test.iter_questions():
        if isinstance(question, RatingQuestion):
            earned = rating_points(question, answers[key])
        else:
            earned = choice_points(question, answers[key])
        points.setdefault(section.id, []).append(earned)
    return points


def _is_rating_section(section: Section) -> bool:
    return all(isinstance(question, RatingQuestion) for question in section.questions)


def dedupe_recommendations(recommendations: Iterable[Recommendation]) -> tuple[Recommendation, ...]:
    seen: set[Recommendation] = set()
    unique: list[Recommendation] = []
    for recommendation in recommendations:
        if recommendation not in seen:
            seen.add(recommendation)
            unique.append(recommendation)
    return tuple(unique)


def score_stress(answers: Mapping[str, object], test: AssessmentTest | None = None) -> StressBreakdown:
    test = test or get_test(STRESS)
    cleaned = validate_answers(test, answers)
    points = _section_points(test, cleaned)

    sub_scores = {section_id: sum(values) for section_id, values in points.items()}
    part_scores = []
    for part in test.parts:
        total = sum(sub_scores[section.id] for section in part.sections)
        count = sum(len(section.questions) for section in part.sections)
        part_scores.append(total / count)

    sources_score, impacts_score = part_scores
    return StressBreakdown(
        overall_score=(sources_score + impacts_score) / 2,
        sources_score=sources_score,
        impacts_score=impacts_score,
        sub_scores=sub_scores,
        recommendations=(),
    )


def literacy_recommendations(habits_score: float, knowledge_scores: Mapping[str, int]) -> tuple[Recommendation, ...]:
    recommendations: list[Recommendation] = []
    for section_id, correct in knowledge_scores.items():
        if correct < KNOWLEDGE_WEAK_BELOW:
            recommendations.extend(KNOWLEDGE_RECOMMENDATIONS.get(section_id, ()))
    if habits_score < HABITS_WEAK_BELOW:
        recommendations.append(HABITS_RECOMMENDATION)
    return dedupe_recommendations(recommendations)


def score_literacy(answers: Mapping[str, object], test: AssessmentTest | None = None) -> LiteracyBreakdown:
    test = test or get_test(LITERACY)
    cleaned = validate_answers(test, answers)
    points = _section_points(test, cleaned)

    habits_total = habits_count = 0
    knowledge_scores: dict[str, int] = {}
    knowledge_count = 0
    for section in test.sections:
        if _is_rating_section(section):
            habits_total += sum(points[section.id])
            habits_count += len(section.questions)
        else:
            knowledge_scores[section.id] = sum(points[section.id])
            knowledge_count += len(section.questions)

    habits_score = habits_total / (habits_count * HABITS_POINTS_PER_QUESTION) * 100
    knowledge_score = sum(knowledge_scores.values()) / knowledge_count * 100

    return LiteracyBreakdown(
        overall_score=(habits_score + knowledge_score) / 2,
        habits_score=habits_score,
        knowledge_score=knowledge_score,
        knowledge_scores=knowledge_scores,
        recommendations=literacy_recommendations(habits_score, knowledge_scores),
    )


def score_assessment(test_type: str, answers: Mapping[str, object]) -> Breakdown:
    test = get_test(test_type)
    if test.type == STRESS:
        return score_stress(answers, test)
    return score_literacy(answers, test)


@dataclass(frozen=True)
class SectionInsights:
    strengths: tuple[str, ...]
    opportunities: tuple[str, ...]


def classify_sections(breakdown: Breakdown, test: AssessmentTest | None = None) -> SectionInsights:
    """Split literacy sections into strengths (>= 80%) and opportunities (< 60%).

    Stress results have no such split: a high stress score is not a strength.
    """
    if not isinstance(breakdown, LiteracyBreakdown):
        return SectionInsights(strengths=(), opportunities=())

    test = test or get_test(LITERACY)
    strengths: list[str] = []
    opportunities: list[str] = []
    for section in test.sections:
        if _is_rating_section(section):
            percent = breakdown.habits_score
        else:
            percent = breakdown.knowledge_scores[section.id] / len(section.questions) * 100

        if percent >= STRENGTH_AT_LEAST:
            strengths.append(section.title)
        elif percent < OPPORTUNITY_BELOW:
            opportunities.append(section.title)

    return SectionInsights(strengths=tuple(strengths), opportunities=tuple(opportunities))


@dataclass(frozen=True)
class AnswerReview:
    key: str
    section_title: str
    question: str
    answer: str
    answer_text: str | None
    is_correct: bool | None


def review_answers(test_type: str, answers: Mapping[str, str]) -> list[AnswerReview]:
    """Pair each stored answer with its question for the results view."""
    test = get_test(test_type)
    review: list[AnswerReview] = []
    for key, section, question in test.iter_questions():
        answer = answers.get(key)
        if not answer:
            continue
        if isinstance(question, ChoiceQuestion):
            review.append(AnswerReview(key, section.title, question.text, answer,
                                       question.option_text(answer), answer == question.answer))
        else:
            review.append(AnswerReview(key, section.title, question.text, answer, f'{answer}/5', None))
    return review


def latest_by_type(scores: Iterable) -> dict:
    """Latest attempt per test type; ``scores`` must be oldest first."""
    return {score.type: score for score in scores}


def recommended_sessions(scores: Iterable) -> tuple[Recommendation, ...]:
    """Merge the recommendations of the latest literacy and stress attempts."""
    latest = latest_by_type(scores)
    merged: list[Recommendation] = []
    for test_type in (LITERACY, STRESS):
        score = latest.get(test_type)
        if score is None:
            continue
        for entry in (score.score_breakdown or {}).get('recommendations', []):
            merged.append(Recommendation(**entry))
    return dedupe_recommendations(merged)
