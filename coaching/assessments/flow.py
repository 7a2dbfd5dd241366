"""State machine for taking an assessment.

``selection -> intro -> taking -> results``; ``exit`` returns to selection and
drops unsubmitted answers. While taking, any section can be visited in any
order, but ``submit`` refuses until every question is answered.
"""

from coaching.assessments.question_bank import AssessmentTest, get_test
from coaching.assessments.scoring import Breakdown, score_assessment
from coaching.core.errors import PreconditionViolation

SELECTION = 'selection'
INTRO = 'intro'
TAKING = 'taking'
RESULTS = 'results'


class AssessmentFlow:

    def __init__(self):
        self.stage = SELECTION
        self.test: AssessmentTest | None = None
        self.current_step = 0
        self.answers: dict[str, str] = {}
        self.result: Breakdown | None = None

    def _require(self, *stages: str) -> None:
        if self.stage not in stages:
            raise PreconditionViolation(
                f'Cannot do that while in the {self.stage!r} stage.',
                code='invalid_transition',
            )

    def _reset(self) -> None:
        self.stage = SELECTION
        self.test = None
        self.current_step = 0
        self.answers = {}
        self.result = None

    @property
    def section_count(self) -> int:
        return len(self.test.sections) if self.test else 0

    @property
    def current_section(self):
        self._require(TAKING)
        return self.test.sections[self.current_step]

    def select(self, test_type: str) -> None:
        self._require(SELECTION)
        self.test = get_test(test_type)
        self.current_step = 0
        self.answers = {}
        self.stage = INTRO

    def begin(self) -> None:
        self._require(INTRO)
        self.stage = TAKING

    def answer(self, key: str, value: str) -> None:
        self._require(TAKING)
        known_keys = {question_key for question_key, _section, _question in self.test.iter_questions()}
        if key not in known_keys:
            raise PreconditionViolation(f'Unknown question {key!r}.', code='unknown_question')
        self.answers[key] = value

    def go_to(self, step: int) -> None:
        self._require(TAKING)
        if not 0 <= step < self.section_count:
            raise PreconditionViolation(f'No section at step {step}.', code='invalid_step')
        self.current_step = step

    def next_section(self) -> None:
        self.go_to(min(self.current_step + 1, self.section_count - 1))

    def previous_section(self) -> None:
        self.go_to(max(self.current_step - 1, 0))

    def unanswered_count(self) -> int:
        if self.test is None:
            return 0
        return sum(1 for key, _section, _question in self.test.iter_questions() if not self.answers.get(key))

    def exit(self) -> None:
        self._require(INTRO, TAKING)
        self._reset()

    def submit(self) -> Breakdown:
        """Score the attempt; raises ``ValidationError`` while answers are missing."""
        self._require(TAKING)
        self.result = score_assessment(self.test.type, self.answers)
        self.stage = RESULTS
        return self.result

    def restart(self) -> None:
        self._require(RESULTS)
        self._reset()
