from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple
import random
import string
import threading
import time
import uuid


# Eight selectable avatars; emoji keep clients simple without assets
PLAYER_AVATARS: Tuple[str, ...] = ("🦊", "🐼", "🐸", "🐯", "🦄", "🐵", "🐶", "🐱")

CODE_ALPHABET = string.ascii_uppercase + string.digits
# Longest code a client may send; generated codes must fit
MAX_CODE_LENGTH = 12


class SessionState(str, Enum):
    LOBBY = 'lobby'
    QUESTION_ACTIVE = 'question_active'
    QUESTION_RESOLVED = 'question_resolved'
    ENDED = 'ended'


class GameMode(str, Enum):
    STANDARD = 'standard'
    ICE_BREAKER = 'ice_breaker'
    PRAYER_REQUEST = 'prayer_request'

    @property
    def is_trivia(self) -> bool:
        return self is not GameMode.PRAYER_REQUEST


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_session_code(length: int = 4) -> str:
    """Generate a short, human-enterable session code."""
    return ''.join(random.choices(CODE_ALPHABET, k=length))


def generate_player_id() -> str:
    return f"player-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class Question:
    id: int
    text: str
    options: Tuple[str, ...]
    correct_option_index: int

    def is_correct(self, option_index: int) -> bool:
        return option_index == self.correct_option_index

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'text': self.text,
            'options': list(self.options),
            'correct_option_index': self.correct_option_index,
        }


@dataclass
class Player:
    id: str
    display_name: str
    score: int = 0
    has_answered_current: bool = False
    last_answer_index: Optional[int] = None
    last_answer_latency_ms: Optional[int] = None
    avatar: Optional[str] = None

    def reset_for_question(self) -> None:
        self.has_answered_current = False
        self.last_answer_index = None
        self.last_answer_latency_ms = None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'display_name': self.display_name,
            'score': self.score,
            'has_answered_current': self.has_answered_current,
            'last_answer_index': self.last_answer_index,
            'last_answer_latency_ms': self.last_answer_latency_ms,
            'avatar': self.avatar,
        }


@dataclass
class PrayerRequest:
    id: str
    player_id: str
    player_name: str
    text: str
    anonymous: bool
    submitted_at: int

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'player_id': None if self.anonymous else self.player_id,
            'player_name': None if self.anonymous else self.player_name,
            'text': self.text,
            'anonymous': self.anonymous,
            'submitted_at': self.submitted_at,
        }


@dataclass
class Session:
    code: str
    moderator_id: str
    mode: GameMode = GameMode.STANDARD
    state: SessionState = SessionState.LOBBY
    # dicts keep insertion order, which is the display order
    players: Dict[str, Player] = field(default_factory=dict)
    questions: List[Question] = field(default_factory=list)
    current_question_index: int = 0
    current_question_started_at: Optional[int] = None
    prayer_requests: List[PrayerRequest] = field(default_factory=list)
    brand: Optional[str] = None
    session_type: Optional[str] = None
    created_at: int = field(default_factory=now_ms)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    def to_dict(self) -> dict:
        return {
            'code': self.code,
            'moderator_id': self.moderator_id,
            'mode': self.mode.value,
            'state': self.state.value,
            'players': [p.to_dict() for p in self.players.values()],
            'questions': [q.to_dict() for q in self.questions],
            'total_questions': len(self.questions),
            'current_question_index': self.current_question_index,
            'current_question_started_at': self.current_question_started_at,
            'prayer_requests': [r.to_dict() for r in self.prayer_requests],
            'brand': self.brand,
            'session_type': self.session_type,
            'created_at': self.created_at,
        }
