"""Realtime protocol: one typed model per client intent.

Inbound Socket.IO payloads are tagged with their event name and validated
through a discriminated union before any handler touches session state.
"""

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Field, StrictInt, TypeAdapter, field_validator, model_validator,
)

from trivia.models import MAX_CODE_LENGTH, GameMode, Session


# Server -> client events
SNAPSHOT = 'snapshot'
GENERATING = 'generating'
QUESTIONS_GENERATED = 'questionsGenerated'
ERROR = 'error'


def room_for(code: str) -> str:
    return f"session:{code}"


class _Intent(BaseModel):
    model_config = ConfigDict(extra='ignore', str_strip_whitespace=True)

    code: str = Field(min_length=1, max_length=MAX_CODE_LENGTH)

    @field_validator('code')
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return value.upper()


class Subscribe(_Intent):
    type: Literal['subscribe'] = 'subscribe'


class Get(_Intent):
    type: Literal['get'] = 'get'


class Create(_Intent):
    type: Literal['create'] = 'create'
    code: Optional[str] = Field(default=None, max_length=MAX_CODE_LENGTH)
    mode: GameMode = GameMode.STANDARD
    questions: Optional[List[dict]] = None
    moderator_id: Optional[str] = Field(default=None, max_length=64)
    brand: Optional[str] = Field(default=None, max_length=32)
    session_type: Optional[str] = Field(default=None, max_length=32)

    @field_validator('code')
    @classmethod
    def _upper_code(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else None


class PlayerInfo(BaseModel):
    model_config = ConfigDict(extra='ignore', str_strip_whitespace=True)

    id: Optional[str] = Field(default=None, max_length=64)
    display_name: str = Field(min_length=1, max_length=40, validation_alias=AliasChoices('display_name', 'name'))
    avatar: Optional[str] = None


class Join(_Intent):
    type: Literal['join'] = 'join'
    player: PlayerInfo


class Start(_Intent):
    type: Literal['start'] = 'start'


class SetAvatar(_Intent):
    type: Literal['setAvatar'] = 'setAvatar'
    player_id: str = Field(min_length=1)
    avatar: str = Field(min_length=1)


class SetQuestions(_Intent):
    type: Literal['setQuestions'] = 'setQuestions'
    questions: List[dict] = Field(min_length=1)


class SubmitAnswer(_Intent):
    type: Literal['submitAnswer'] = 'submitAnswer'
    player_id: str = Field(min_length=1)
    answer_index: StrictInt = Field(ge=0, le=3)


class Advance(_Intent):
    type: Literal['advance'] = 'advance'


class End(_Intent):
    type: Literal['end'] = 'end'


class SubmitPrayerRequest(_Intent):
    type: Literal['submitPrayerRequest'] = 'submitPrayerRequest'
    player_id: str = Field(min_length=1)
    text: str = Field(min_length=1, max_length=2000)
    anonymous: bool = False


class GenerateQuestions(_Intent):
    type: Literal['generateQuestions'] = 'generateQuestions'
    prompt: Optional[str] = Field(default=None, max_length=2000)
    document: Optional[str] = None
    count: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode='after')
    def _needs_input(self):
        if not (self.prompt or self.document):
            raise ValueError('prompt or document is required')
        return self


Intent = Annotated[
    Union[
        Subscribe, Get, Create, Join, Start, SetAvatar, SetQuestions,
        SubmitAnswer, Advance, End, SubmitPrayerRequest, GenerateQuestions,
    ],
    Field(discriminator='type'),
]

_intent_adapter = TypeAdapter(Intent)

INTENT_EVENTS = (
    'subscribe', 'get', 'create', 'join', 'start', 'setAvatar', 'setQuestions',
    'submitAnswer', 'advance', 'end', 'submitPrayerRequest', 'generateQuestions',
)


def parse_intent(event: str, data: Any):
    """Validate a raw payload for ``event``.

    ``subscribe`` and ``get`` also accept a bare code string. Raises
    ``pydantic.ValidationError`` for anything that does not fit the schema.
    """
    if isinstance(data, str):
        data = {'code': data}
    elif not isinstance(data, dict):
        data = {}
    return _intent_adapter.validate_python({**data, 'type': event})


# Read-only queries: these always answer with a snapshot
QUERY_EVENTS = ('subscribe', 'get')


def raw_code(data: Any) -> str:
    """Best-effort code from a payload that failed validation."""
    if isinstance(data, dict):
        data = data.get('code')
    return data.strip().upper() if isinstance(data, str) else ''


def snapshot_payload(code: str, session: Optional[Session],
                     question_time_limit_sec: Optional[int] = None) -> dict:
    if session is None:
        return {'code': code, 'session': None}
    data = session.to_dict()
    # Countdown is rendered client-side from current_question_started_at
    data['question_time_limit_sec'] = question_time_limit_sec
    return {'code': code, 'session': data}
