"""Session state machine.

Lobby -> QuestionActive -> QuestionResolved -> (QuestionActive | Ended)

Every transition returns ``True`` when applied and ``False`` when its
preconditions do not hold; a rejected transition leaves the session
untouched. Callers hold ``session.lock`` around a transition and the
broadcast that follows it.
"""

import logging
import random
import uuid
from typing import Iterable, Optional

from trivia.models import (
    GameMode, Player, PrayerRequest, Question, Session, SessionState,
    PLAYER_AVATARS, generate_player_id, now_ms,
)
from trivia.questions import default_questions
from .scoring import score


logger = logging.getLogger(__name__)


def create_session(code: str, mode: GameMode = GameMode.STANDARD,
                   questions: Optional[Iterable[Question]] = None,
                   moderator_id: Optional[str] = None,
                   brand: Optional[str] = None,
                   session_type: Optional[str] = None) -> Session:
    question_list = list(questions) if questions else []
    if not question_list and mode.is_trivia:
        question_list = default_questions()
    session = Session(
        code=code,
        moderator_id=moderator_id or generate_player_id(),
        mode=mode,
        questions=question_list,
        brand=brand,
        session_type=session_type,
    )
    logger.info(f"[create] session={code} mode={mode.value} questions={len(question_list)}")
    return session


def join(session: Session, player: Player) -> bool:
    if session.state is not SessionState.LOBBY:
        logger.debug(f"[join-reject] session={session.code} state={session.state.value}")
        return False
    if player.id not in session.players:
        session.players[player.id] = player
        logger.info(f"[join] session={session.code} player={player.id} name={player.display_name!r}")
    return True


def set_questions(session: Session, questions: Iterable[Question]) -> bool:
    """Replace the question list. Frozen once the game has started."""
    if session.state is not SessionState.LOBBY:
        return False
    question_list = list(questions)
    if not question_list:
        return False
    session.questions = question_list
    logger.info(f"[questions] session={session.code} count={len(question_list)}")
    return True


def set_avatar(session: Session, player_id: str, avatar: str) -> bool:
    if session.state is not SessionState.LOBBY:
        return False
    if avatar not in PLAYER_AVATARS:
        return False
    player = session.players.get(player_id)
    if not player:
        return False
    player.avatar = avatar
    return True


def can_start(session: Session) -> bool:
    if session.state is not SessionState.LOBBY or not session.players:
        return False
    return bool(session.questions) or not session.mode.is_trivia


def start(session: Session, now: Optional[int] = None) -> bool:
    if not can_start(session):
        return False

    for player in session.players.values():
        if not player.avatar:
            player.avatar = random.choice(PLAYER_AVATARS)
        player.reset_for_question()

    session.current_question_index = 0
    if not session.questions:
        # Prayer request sessions without trivia go straight to collection
        session.state = SessionState.ENDED
        session.current_question_started_at = None
    else:
        session.state = SessionState.QUESTION_ACTIVE
        session.current_question_started_at = now_ms() if now is None else now
    logger.info(
        f"[start] session={session.code} players={len(session.players)} "
        f"questions={len(session.questions)} state={session.state.value}"
    )
    return True


def submit_answer(session: Session, player_id: str, option_index: int,
                  now: Optional[int] = None) -> bool:
    """Record and score one answer. At most one per player per question."""
    if session.state is not SessionState.QUESTION_ACTIVE:
        return False
    player = session.players.get(player_id)
    if not player or player.has_answered_current:
        return False
    question = session.current_question
    if question is None or not 0 <= option_index < len(question.options):
        return False

    now = now_ms() if now is None else now
    started_at = session.current_question_started_at
    latency = max(0, now - (now if started_at is None else started_at))
    points = score(question.is_correct(option_index), latency)

    player.last_answer_index = option_index
    player.last_answer_latency_ms = latency
    player.score += points
    player.has_answered_current = True
    logger.info(
        f"[answer] session={session.code} q={session.current_question_index} "
        f"player={player_id} option={option_index} latency={latency}ms points={points}"
    )

    # Early resolution once everyone has answered
    if all(p.has_answered_current for p in session.players.values()):
        session.state = SessionState.QUESTION_RESOLVED
        logger.info(f"[resolved] session={session.code} q={session.current_question_index} all answered")
    return True


def advance(session: Session, now: Optional[int] = None) -> bool:
    if session.state not in (SessionState.QUESTION_ACTIVE, SessionState.QUESTION_RESOLVED):
        return False

    for player in session.players.values():
        player.reset_for_question()

    prev = session.current_question_index
    session.current_question_index = min(prev + 1, len(session.questions))
    if session.current_question_index >= len(session.questions):
        session.state = SessionState.ENDED
        logger.info(f"[finish] session={session.code} finished after q={prev}")
    else:
        session.state = SessionState.QUESTION_ACTIVE
        session.current_question_started_at = now_ms() if now is None else now
        logger.info(f"[next] session={session.code} q {prev} -> {session.current_question_index}")
    return True


def end(session: Session) -> bool:
    """Moderator-triggered early termination."""
    if session.state is SessionState.ENDED:
        return False
    session.state = SessionState.ENDED
    logger.info(f"[end] session={session.code} ended at q={session.current_question_index}")
    return True


def submit_prayer_request(session: Session, player_id: str, text: str,
                          anonymous: bool = False, now: Optional[int] = None) -> bool:
    """Collect one prayer request per player once a prayer session has ended."""
    if session.mode is not GameMode.PRAYER_REQUEST or session.state is not SessionState.ENDED:
        return False
    player = session.players.get(player_id)
    if not player or not text or not text.strip():
        return False
    if any(r.player_id == player_id for r in session.prayer_requests):
        return False

    session.prayer_requests.append(PrayerRequest(
        id=f"prayer-{uuid.uuid4().hex[:12]}",
        player_id=player_id,
        player_name=player.display_name,
        text=text.strip(),
        anonymous=bool(anonymous),
        submitted_at=now_ms() if now is None else now,
    ))
    logger.info(f"[prayer] session={session.code} player={player_id} anonymous={bool(anonymous)}")
    return True
