"""Question sets: shape validation and the built-in sample set.

Every question that enters a session passes through ``parse_questions`` so
that game state only ever holds four-option questions with an in-range
correct index and non-empty text.
"""

from typing import Any, Iterable, List, Sequence

from trivia.errors import QuestionValidationError
from trivia.models import Question


OPTIONS_PER_QUESTION = 4


def parse_question(data: Any, index: int = 0) -> Question:
    """Validate one raw question mapping and build a ``Question``.

    Missing ids default to ``index + 1``.
    """
    if isinstance(data, Question):
        return data
    if not isinstance(data, dict):
        raise QuestionValidationError('expected an object', index)

    text = data.get('text')
    if not isinstance(text, str) or not text.strip():
        raise QuestionValidationError('text must be a non-empty string', index)

    options = data.get('options')
    if not isinstance(options, (list, tuple)) or len(options) != OPTIONS_PER_QUESTION:
        raise QuestionValidationError(f'exactly {OPTIONS_PER_QUESTION} options are required', index)
    if not all(isinstance(o, str) and o.strip() for o in options):
        raise QuestionValidationError('options must be non-empty strings', index)

    correct = data.get('correct_option_index')
    # bool is an int subclass; reject it explicitly
    if not isinstance(correct, int) or isinstance(correct, bool) or not 0 <= correct < OPTIONS_PER_QUESTION:
        raise QuestionValidationError('correct_option_index must be an integer in [0, 3]', index)

    qid = data.get('id')
    if not isinstance(qid, int) or isinstance(qid, bool):
        qid = index + 1

    return Question(id=qid, text=text.strip(), options=tuple(o.strip() for o in options), correct_option_index=correct)


def parse_questions(items: Any) -> List[Question]:
    """Validate a non-empty list of raw questions."""
    if not isinstance(items, (list, tuple)) or not items:
        raise QuestionValidationError('questions must be a non-empty list')
    return [parse_question(item, idx) for idx, item in enumerate(items)]


def is_valid_question_set(questions: Iterable[Question]) -> bool:
    try:
        parse_questions([q.to_dict() for q in questions])
    except QuestionValidationError:
        return False
    return True


def _q(qid: int, text: str, options: Sequence[str], correct: int) -> Question:
    return Question(id=qid, text=text, options=tuple(options), correct_option_index=correct)


SAMPLE_QUESTIONS: List[Question] = [
    _q(1, 'What is the capital of France?', ['London', 'Berlin', 'Paris', 'Madrid'], 2),
    _q(2, 'Which planet is known as the Red Planet?', ['Venus', 'Mars', 'Jupiter', 'Saturn'], 1),
    _q(3, 'What is the largest ocean on Earth?', ['Atlantic', 'Indian', 'Arctic', 'Pacific'], 3),
    _q(4, 'Who painted the Mona Lisa?', ['Van Gogh', 'Picasso', 'Da Vinci', 'Monet'], 2),
    _q(5, 'What is the smallest prime number?', ['0', '1', '2', '3'], 2),
    _q(6, "Which element has the chemical symbol 'O'?", ['Gold', 'Oxygen', 'Silver', 'Iron'], 1),
    _q(7, 'How many continents are there?', ['5', '6', '7', '8'], 2),
    _q(8, 'What is the fastest land animal?', ['Lion', 'Cheetah', 'Leopard', 'Tiger'], 1),
    _q(9, 'Which country is home to the kangaroo?', ['New Zealand', 'Australia', 'South Africa', 'Brazil'], 1),
    _q(10, 'What is the largest mammal in the world?', ['Elephant', 'Blue Whale', 'Giraffe', 'Polar Bear'], 1),
]


def default_questions() -> List[Question]:
    return list(SAMPLE_QUESTIONS)


def fallback_questions(count: int) -> List[Question]:
    """Deterministic fallback set used when generation fails or times out."""
    count = max(1, min(int(count), len(SAMPLE_QUESTIONS)))
    return list(SAMPLE_QUESTIONS[:count])
