"""Question generation boundary.

The external LLM is a black box that returns text; everything it produces is
parsed and validated here before it can reach a session. Slow or failing
calls are abandoned in favour of the deterministic fallback set.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import List, Optional

import anthropic

from trivia.errors import QuestionGenerationError, QuestionValidationError
from trivia.models import Question
from trivia.questions import fallback_questions, is_valid_question_set, parse_questions


logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a quiz question generator. Generate exactly {count} multiple-choice questions based on the given topic or content.

Each question must have:
- A clear, unambiguous question
- Exactly 4 answer options
- One correct answer
- The correct answer indicated by its index (0-3) in the options array

Return ONLY a valid JSON array with no additional text, explanation, or markdown formatting."""

USER_PROMPT = """Generate {count} multiple-choice quiz questions about: {prompt}

Return the response in this exact JSON format:
[
  {{
    "id": 1,
    "text": "Question text here?",
    "options": ["Option 1", "Option 2", "Option 3", "Option 4"],
    "correct_option_index": 0
  }}
]

Rules:
- correct_option_index must be the index (0-3) of the correct option
- Make questions challenging but fair
- Ensure answer options are plausible
- Cover different aspects of the topic
- Return ONLY the JSON array, no other text"""

DOCUMENT_PROMPT = (
    "Based on the following document content, generate {count} multiple-choice "
    "questions that test understanding of the key concepts:\n\n{document}"
)

_JSON_ARRAY = re.compile(r'\[[\s\S]*\]')


@dataclass
class GenerationResult:
    questions: List[Question]
    warning: Optional[str] = None
    used_fallback: bool = False

    def to_dict(self) -> dict:
        return {
            'questions': [q.to_dict() for q in self.questions],
            'warning': self.warning,
            'used_fallback': self.used_fallback,
        }


class QuestionSource(ABC):
    """Something that turns a prompt into raw model text."""

    @abstractmethod
    def is_available(self) -> bool:
        ...

    @abstractmethod
    def complete(self, prompt: str, count: int) -> str:
        ...


class AnthropicQuestionSource(QuestionSource):
    """Claude via the Anthropic Messages API."""

    def __init__(self, api_key: Optional[str], model: str, max_tokens: int = 4000,
                 temperature: float = 0.7, client=None):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        if client is None and api_key:
            client = anthropic.Anthropic(api_key=api_key)
        self._client = client

    def is_available(self) -> bool:
        return self._client is not None

    def complete(self, prompt: str, count: int) -> str:
        response = self._client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=SYSTEM_PROMPT.format(count=count),
            messages=[{'role': 'user', 'content': USER_PROMPT.format(count=count, prompt=prompt)}],
        )
        return ''.join(getattr(block, 'text', '') for block in response.content)


def extract_questions(text: str, count: int) -> List[Question]:
    """Parse model output into exactly ``count`` validated questions.

    Tolerates prose or markdown fences around the JSON array. Extra
    questions are dropped; too few is an error.
    """
    match = _JSON_ARRAY.search(text or '')
    if not match:
        raise QuestionValidationError('response does not contain a JSON array')
    try:
        raw = json.loads(match.group(0))
    except ValueError as exc:
        raise QuestionValidationError(f'response is not valid JSON: {exc}') from exc
    questions = parse_questions(raw)
    if len(questions) < count:
        raise QuestionValidationError(f'expected {count} questions, got {len(questions)}')
    return questions[:count]


class QuestionGenerator:
    """Runs a ``QuestionSource`` with a deadline and a fallback.

    ``generate`` never blocks longer than ``timeout_sec`` and always returns a
    valid question set unless the fallback itself is broken, in which case
    ``QuestionGenerationError`` is raised.
    """

    def __init__(self, source: Optional[QuestionSource], timeout_sec: float = 10.0,
                 document_max_chars: int = 10000, max_workers: int = 4):
        self.source = source
        self.timeout_sec = timeout_sec
        self.document_max_chars = document_max_chars
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='question-gen')

    @classmethod
    def from_config(cls, config) -> 'QuestionGenerator':
        source = AnthropicQuestionSource(
            api_key=config.get('ANTHROPIC_API_KEY'),
            model=config.get('ANTHROPIC_MODEL', 'claude-sonnet-4-5'),
            max_tokens=int(config.get('GENERATION_MAX_TOKENS', 4000)),
        )
        return cls(
            source,
            timeout_sec=float(config.get('GENERATION_TIMEOUT_SEC', 10)),
            document_max_chars=int(config.get('DOCUMENT_MAX_CHARS', 10000)),
        )

    def generate(self, prompt: str, count: int) -> GenerationResult:
        if self.source is None or not self.source.is_available():
            return self._fallback(count, 'Missing question generator credentials; using fallback questions')

        future = self._executor.submit(self._run, prompt, count)
        try:
            questions = future.result(timeout=self.timeout_sec)
        except FutureTimeoutError:
            future.cancel()
            logger.warning(f"[generate-timeout] count={count} timeout={self.timeout_sec}s")
            return self._fallback(
                count, f'Request timed out after {self.timeout_sec:g} seconds; using fallback questions'
            )
        except QuestionValidationError as exc:
            logger.warning(f"[generate-malformed] {exc}")
            return self._fallback(count, f'Generated questions were malformed ({exc}); using fallback questions')
        except Exception as exc:
            logger.exception('[generate-error] question source failed')
            return self._fallback(count, f'{exc or type(exc).__name__}; using fallback questions')

        logger.info(f"[generate-ok] count={len(questions)}")
        return GenerationResult(questions=questions)

    def generate_from_document(self, document: str, count: int) -> GenerationResult:
        if len(document) > self.document_max_chars:
            document = document[:self.document_max_chars] + '...'
        return self.generate(DOCUMENT_PROMPT.format(count=count, document=document), count)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

    def _run(self, prompt: str, count: int) -> List[Question]:
        return extract_questions(self.source.complete(prompt, count), count)

    def _fallback(self, count: int, warning: str) -> GenerationResult:
        questions = fallback_questions(count)
        if not questions or not is_valid_question_set(questions):
            raise QuestionGenerationError('Fallback question set is invalid')
        return GenerationResult(questions=questions, warning=warning, used_fallback=True)
