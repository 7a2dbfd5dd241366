"""Static definitions of the two self-assessments.

Questions are resolved once, here, into explicit ``RatingQuestion`` /
``ChoiceQuestion`` variants; scoring and the API never inspect raw shapes.
"""

from dataclasses import dataclass, field
from typing import Literal, Union

from coaching.core.errors import ValidationError

STRESS = 'stress'
LITERACY = 'literacy'
TEST_TYPES = (STRESS, LITERACY)

RATING_VALUES = ('1', '2', '3', '4', '5')


@dataclass(frozen=True)
class RatingQuestion:
    text: str
    reverse: bool = False
    kind: Literal['rating'] = field(default='rating', init=False)


@dataclass(frozen=True)
class ChoiceQuestion:
    text: str
    options: tuple[str, ...]
    answer: str
    tooltip: str | None = None
    kind: Literal['choice'] = field(default='choice', init=False)

    @property
    def option_letters(self) -> tuple[str, ...]:
        return tuple(chr(ord('a') + index) for index in range(len(self.options)))

    def option_text(self, letter: str) -> str | None:
        try:
            return self.options[self.option_letters.index(letter)]
        except ValueError:
            return None


Question = Union[RatingQuestion, ChoiceQuestion]


@dataclass(frozen=True)
class Section:
    id: str
    title: str
    questions: tuple[Question, ...]


@dataclass(frozen=True)
class Part:
    name: str
    sections: tuple[Section, ...]


@dataclass(frozen=True)
class AssessmentTest:
    type: str
    version: int
    parts: tuple[Part, ...]

    def iter_questions(self):
        """Yield ``(answer_key, section, question)`` in display order."""
        for part_index, part in enumerate(self.parts):
            for section_index, section in enumerate(part.sections):
                for question_index, question in enumerate(section.questions):
                    yield answer_key(part_index, section_index, question_index), section, question

    @property
    def sections(self) -> list[Section]:
        return [section for part in self.parts for section in part.sections]

    @property
    def question_count(self) -> int:
        return sum(len(section.questions) for section in self.sections)


def answer_key(part_index: int, section_index: int, question_index: int) -> str:
    return f'q_{part_index}_{section_index}_{question_index}'


def _ratings(*texts: str) -> tuple[RatingQuestion, ...]:
    return tuple(RatingQuestion(text) for text in texts)


STRESS_SOURCE_SECTIONS = (
    Section('s1a', 'Spending & Budgeting', (
        RatingQuestion('I often lose control when spending money.'),
        RatingQuestion('I wish I could spend less / stick to my budget better.'),
        RatingQuestion('I find it easy to track and organize my bills and other expenses.', reverse=True),
        RatingQuestion('I often worry about making the wrong financial decisions.'),
    )),
    Section('s1b', 'Current Confidence', (
        RatingQuestion("I don't know how to start improving my financial situation."),
        RatingQuestion('I get overwhelmed learning personal finance topics (investing, budgeting, etc.).'),
        RatingQuestion("I feel that any actions I take to better manage my money won't make a difference."),
        RatingQuestion("I feel confident that I'm currently managing my money effectively.", reverse=True),
    )),
    Section('s1c', 'Social Influences', (
        RatingQuestion('I feel pressure to keep up financially with my friends, peers, or colleagues.'),
        RatingQuestion('I feel comfortable/open having conversations about my financial situation.', reverse=True),
        RatingQuestion("I feel that those around me don't/won't support me financially."),
        RatingQuestion('I feel judged by others due to my financial situation.'),
    )),
    Section('s1d', 'Future Security', (
        RatingQuestion('I worry about not being able to handle a big emergency expense.'),
        RatingQuestion('I worry about how inflation will affect my ability to afford things.'),
        RatingQuestion('I feel that even if I lost my job/income, I would be able to manage my finances well.', reverse=True),
        RatingQuestion('I worry about how interest-rate changes will impact my savings and debt.'),
    )),
    Section('s1e', 'Other Stressors', (
        RatingQuestion("I feel like I don't have enough time to focus on financial planning."),
        RatingQuestion('I often worry when thinking about how to pay off current/future debt effectively.'),
        RatingQuestion('I often worry about my current/future investments (stocks, crypto, options, etc.).'),
        RatingQuestion('I feel confident in my ability to save for retirement.', reverse=True),
    )),
)

STRESS_IMPACT_SECTIONS = (
    Section('s2a', 'Affective Reactions', _ratings(
        'My mood is negatively affected due to my financial situation.',
        'I worry a lot about my financial situation.',
        'I get emotionally drained because of my financial situation.',
        'My financial situation makes it so that I am easily irritated.',
        'I become frustrated/angry because of my financial situation.',
    )),
    Section('s2b', 'Interpersonal Effects', _ratings(
        'My financial situation interferes with my daily functioning/routine(s).',
        'I am unable to focus when doing tasks due to my financial situation.',
        'My financial situation frequently interferes with my relationships with others.',
        'I find talking about money with others to be difficult.',
        'I frequently avoid attending events because of my financial situation.',
    )),
    Section('s2c', 'Physiological Responses', _ratings(
        'My heartbeat increases because of my financial situation.',
        'I have stomach aches due to my financial situation.',
        'I sweat more because of my financial situation.',
        'My financial concerns affect my sleep quality.',
        'I feel weak because of my financial situation.',
    )),
)

LITERACY_HABITS_SECTIONS = (
    Section('habits', 'Current Habits', _ratings(
        'I have a budget. I also tend to follow this budget.',
        'I tend to plan my spending. I tend to not be impulsive.',
        'I tend to live within my means.',
        'I have savings, and often grow my savings when I am able.',
        'I do (or plan to) invest, and I do (or plan to) diversify.',
        'I am confident in my ability to manage a financial emergency.',
        'I do (or plan to) always pay off my bills and credit card balance(s) in full.',
        'I do (or plan to) always use my credit card(s) when possible.',
        'I play a role in filing my taxes, and pay no fees to do so.',
        'I tend to keep up with current financial news and trends.',
    )),
)

LITERACY_KNOWLEDGE_SECTIONS = (
    Section('spending', 'Spending & Budgeting', (
        ChoiceQuestion(
            'Imagine you are about to buy a book, intending to use your credit card because it offers 2% cash back. '
            'However, the bookstore offers a 10% discount for paying cash. What should you do?',
            ('Pay with cash for the larger discount', 'Pay with a credit card for convenience',
             "Either, both are good options, so it doesn't matter which one",
             'Neither; Pay with debit for security', 'I am unsure'),
            'a',
        ),
        ChoiceQuestion(
            'Which of the following is not commonly a fixed expense?',
            ('Rent', 'Groceries', 'Subscription services (Netflix, Amazon Prime, etc.)', 'Loan payments', 'I am unsure'),
            'b',
            tooltip='A cost that remains the same each month.',
        ),
        ChoiceQuestion(
            'How much money would you save on coffee alone in a year if you reduced your weekly coffee purchases '
            'from 5 to 1, assuming $5 per coffee? (note: 52 weeks in a year)',
            ('$1040', '$260', '$2500', '$1300', '$5200', 'I am unsure'),
            'a',
        ),
        ChoiceQuestion(
            'Which budgeting category is most typical of a "want" rather than a "need"?',
            ('Vehicle/transportation expenses', 'Groceries', 'Health-related expenses', 'Recreation', 'I am unsure'),
            'd',
        ),
        ChoiceQuestion(
            'When you have leftover money from your paycheck after covering living essentials, '
            'what should almost always be the first move?',
            ('Contributing to your TFSA', 'Contributing to your RRSP, especially when you get an employer match',
             'Paying off any high-interest debt', 'Putting it in a high-interest savings account',
             "Buying the thing you've been saving for", 'I am unsure'),
            'c',
        ),
    )),
    Section('savings', 'Savings, Loans, & Interest Rates', (
        ChoiceQuestion(
            'What does having an interest rate of 0.5% in your savings account mean?',
            ('You get 0.5% of your balance back daily', 'You get 0.5% of your balance back monthly',
             'You get 1% back annually on your balance', 'You get 0.5% back annually on your balance', 'I am unsure'),
            'd',
        ),
        ChoiceQuestion(
            'Which factor(s) affect(s) the amount of interest you pay on a loan?',
            ('Your credit rating', 'The amount you borrow', 'The length of time you agree to pay off the loan',
             'Both options A & B', 'All of the above', 'I am unsure'),
            'e',
        ),
        ChoiceQuestion(
            "Which of the following reasons should people have accounts at 'The Big 6 Banks' "
            '(RBC, TD Bank, Scotiabank, BMO, CIBC, National Bank)?',
            ('They usually have higher savings interest rates', 'They usually have lower loan interest rates',
             'They usually have fewer hidden fees', 'Their credit cards usually have higher cash-back',
             'All of the above', 'None of the above', 'I am unsure'),
            'f',
        ),
        ChoiceQuestion(
            'Imagine you took out a loan in August 2010 with a 5% interest rate, agreeing to pay it off by '
            'August 2015. However, you fully repaid the loan in 2013. What happens to the total interest paid?',
            ('You pay the same amount of interest regardless of how quickly you pay off the loan',
             'You pay less interest because the loan is paid off faster',
             'You pay more interest because the loan term was shortened',
             'Early payments do not affect the total interest paid', 'I am unsure'),
            'b',
        ),
        ChoiceQuestion(
            'If the inflation rate is 5% and the interest rate in your savings account is 3%, what happens to the '
            'buying power of your money in the savings account over a year?',
            ('Your savings will have 2% less buying power', 'Your savings will gain 2% more buying power',
             'Your savings will gain 3% more buying power',
             "Inflation doesn't impact savings; the buying power stays the same", 'I am unsure'),
            'a',
        ),
    )),
    Section('investments', 'Investing', (
        ChoiceQuestion(
            'Which of the following is considered the least risky investment?',
            ('TFSA', 'GIC', 'ETF', 'Mutual fund', 'Cryptocurrencies', 'Stocks', 'I am unsure'),
            'b',
        ),
        ChoiceQuestion(
            'Generally over the long-run, an investment plan involving dollar-cost-averaging can be beneficial '
            'due to that ____________, but may be disadvantageous due to that ____________.',
            ('It can provide reduced risk, it may provide lower returns over lump-sum investing.',
             'It can eliminate any risk, less money gets invested over time.',
             'It can provide higher returns over lump-sum investing, it may lead to increased risk.',
             'It allows you to invest at a surplus, less money gets invested over time.', 'I am unsure'),
            'a',
        ),
        ChoiceQuestion(
            'What is a dividend?',
            ('The commission fee(s) for buying and selling stocks',
             'An agreement with the government to buy and own a percentage of a company',
             "The portion of a company's profits paid to its stockholders",
             'The conversion fee for buying and selling stocks in a foreign currency', 'I am unsure'),
            'c',
        ),
        ChoiceQuestion(
            'If you purchased 2 Amazon stocks in March 2022 for $150 USD each, and the price then dropped to '
            '$100 USD per share, what would be the most reasonable action(s) to take?',
            ('Hold on in hopes of long-term returns', 'Buy more shares to take advantage of the lower price',
             'Sell all 3 shares to avoid any further losses', 'Sell only 1 or 2 shares to effectively time the market',
             'Options A & B', 'Options C & D', 'I am unsure'),
            'e',
        ),
        ChoiceQuestion(
            'Which of the following statements is false?',
            ('Having a longer time horizon (a longer period of time you will have your money invested for) means '
             'you are more suitable to take on increased risk',
             'If a stock has a 5-year return of 100%, then it has increased in value by about 20% each year for '
             'the past 5 years',
             'ESG (environmental, sustainable, governance) stocks/ETFs generally underperform their non-ESG '
             'equivalents',
             'ETFs typically charge more in management fees than mutual funds', 'I am unsure'),
            'd',
        ),
    )),
    Section('credit', 'Credit Cards', (
        ChoiceQuestion(
            'If a credit card charges a $150 annual fee and offers 3% cash-back on groceries, how much would you '
            'need to spend annually on groceries to break even?',
            ('$4500', '$5000', '$500', '$450', 'I am unsure'),
            'b',
        ),
        ChoiceQuestion(
            'What is a billing cycle?',
            ('The period of time before a credit card statement is issued, with all purchases during this time '
             'appearing on the same statement',
             'The period of time between when you get your credit card statement and the payment due date, '
             'during which you can pay off your balance without getting charged any interest',
             "The period of time to pay the penalty fee when you don't pay the minimum payment",
             'None of the above', 'I am unsure'),
            'a',
        ),
        ChoiceQuestion(
            'Which of the following is not a benefit of having a credit card?',
            ('Cash-back, points, and other rewards', 'Provides a safety net for emergency expenses',
             'It can offer certain tax breaks',
             'Allows deferred payments to generate interest on the amount you pay later',
             'None of the above; all are benefits of having a credit card', 'I am unsure'),
            'c',
        ),
        ChoiceQuestion(
            "What is the purpose of a credit card's APR (annual percentage rate)?",
            ('To calculate late fees', 'To set your credit limit', 'To determine interest for unpaid balances',
             'To determine monthly minimum payments', 'I am unsure'),
            'c',
        ),
        ChoiceQuestion(
            'Which of the following does not hurt your credit rating?',
            ('Missing payments on loans or debts', 'Applying for a credit card', 'Closing an old credit card account',
             'Using your credit card too frequently', 'All of the Above; They all hurt your credit rating',
             'I am unsure'),
            'd',
        ),
    )),
    Section('taxes', 'Taxes & Account Types', (
        ChoiceQuestion(
            'How much interest can you earn in a savings account without reporting it for taxes?',
            ('$50 (the cutoff for when you get a T5)', '$100', 'You cannot be taxed for saving account interest income',
             'No cutoff; all savings account interest must be reported', 'I am unsure'),
            'd',
        ),
        ChoiceQuestion(
            "What's the main difference between an RRSP and a TFSA?",
            ('RRSPs are designed more for retirement savings', 'RRSPs generally have higher returns than TFSAs',
             'TFSAs have yearly contribution limits; RRSPs do not',
             'None of the above; there is virtually no difference between the two', 'I am unsure'),
            'a',
        ),
        ChoiceQuestion(
            'At about what income level do you need to start paying income tax in Canada?',
            ('$14,000', '$12,000', '$16,000', '$10,000', 'I am unsure'),
            'c',
        ),
        ChoiceQuestion(
            "What's the difference between a T4 and a T5 form?",
            ('A T4 reports employment income, while a T5 reports non-employment income',
             'A T4 reports employment income, while a T5 reports investment income',
             'A T4 is for self-employment income, and a T5 is for savings income',
             "There's no difference; both are for employment income", 'I am unsure'),
            'b',
        ),
        ChoiceQuestion(
            'Which of the following expenses is not tax-deductible for most Canadians?',
            ('Childcare expenses', 'Charitable donations', 'Medical expenses', 'RRSP contributions',
             'None of the above; all are tax-deductible', 'I am unsure'),
            'e',
        ),
    )),
)

STRESS_TEST = AssessmentTest(
    type=STRESS,
    version=1,
    parts=(
        Part('Sources', STRESS_SOURCE_SECTIONS),
        Part('Impacts', STRESS_IMPACT_SECTIONS),
    ),
)

LITERACY_TEST = AssessmentTest(
    type=LITERACY,
    version=1,
    parts=(
        Part('Current Habits', LITERACY_HABITS_SECTIONS),
        Part('Knowledge', LITERACY_KNOWLEDGE_SECTIONS),
    ),
)

ASSESSMENTS = {STRESS: STRESS_TEST, LITERACY: LITERACY_TEST}


def get_test(test_type: str) -> AssessmentTest:
    try:
        return ASSESSMENTS[test_type]
    except KeyError:
        raise ValidationError(f'Unknown assessment type: {test_type!r}.', code='unknown_test_type') from None
