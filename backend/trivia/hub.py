from typing import Callable, Optional, Tuple

from flask import request
from flask_socketio import emit, join_room
from pydantic import ValidationError

from trivia import socketio
from trivia.errors import QuestionGenerationError, QuestionValidationError
from trivia.models import PLAYER_AVATARS, Player, Session, SessionState, generate_player_id
from trivia.protocol import (
    ERROR, GENERATING, QUESTIONS_GENERATED, SNAPSHOT,
    Advance, Create, End, GenerateQuestions, Get, Join, SetAvatar, SetQuestions,
    Start, Subscribe, SubmitAnswer, SubmitPrayerRequest,
    QUERY_EVENTS, parse_intent, raw_code, room_for, snapshot_payload,
)
from trivia.questions import parse_questions
from trivia.services.games import lifecycle
from trivia.services.games.generation import GenerationResult, QuestionGenerator
from trivia.services.games.registry import SessionRegistry


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


class SessionHub:
    """Bridges client intents to session transitions and fans out snapshots.

    Every successful mutation is followed by exactly one full snapshot to the
    session's room, emitted while the session lock is still held so that all
    subscribers see mutations in the order they were applied.
    """

    def __init__(self, app, registry: SessionRegistry, generator: QuestionGenerator,
                 namespace: str = '/ws'):
        self.app = app
        self.registry = registry
        self.generator = generator
        self.namespace = namespace
        self._handlers = {
            Subscribe: self.on_subscribe,
            Get: self.on_get,
            Create: self.on_create,
            Join: self.on_join,
            Start: self.on_start,
            SetAvatar: self.on_set_avatar,
            SetQuestions: self.on_set_questions,
            SubmitAnswer: self.on_submit_answer,
            Advance: self.on_advance,
            End: self.on_end,
            SubmitPrayerRequest: self.on_submit_prayer_request,
            GenerateQuestions: self.on_generate_questions,
        }

    @property
    def logger(self):
        return self.app.logger

    @property
    def question_time_limit_sec(self) -> int:
        return int(self.app.config.get('QUESTION_TIME_LIMIT_SEC', 15))

    # ---- outbound ----

    def snapshot(self, code: str, session: Optional[Session] = None) -> dict:
        if session is None:
            session = self.registry.get(code)
        return snapshot_payload(code, session, self.question_time_limit_sec)

    def broadcast(self, session: Session) -> None:
        socketio.emit(SNAPSHOT, self.snapshot(session.code, session),
                      to=room_for(session.code), namespace=self.namespace)

    def notify(self, event: str, payload: dict, to: str) -> None:
        socketio.emit(event, payload, to=to, namespace=self.namespace)

    # ---- transitions shared by socket and HTTP callers ----

    def mutate(self, code: str, transition: Callable[[Session], bool]) -> bool:
        """Apply ``transition`` under the session lock and broadcast on success."""
        session = self.registry.get(code)
        if session is None:
            return False
        with session.lock:
            if not transition(session):
                return False
            self.broadcast(session)
        return True

    def create_session(self, intent: Create, sid: Optional[str] = None) -> Tuple[Session, bool]:
        """Create the session if absent; an existing code is never overwritten.

        Raises ``QuestionValidationError`` for a malformed question list.
        When ``sid`` is given that client is subscribed to the room. Only a
        new session is broadcast; for an existing one the caller alone gets
        the current snapshot.
        """
        questions = parse_questions(intent.questions) if intent.questions else None
        session, created = self.registry.get_or_create(
            intent.code,
            lambda code: lifecycle.create_session(
                code, intent.mode, questions,
                moderator_id=intent.moderator_id,
                brand=intent.brand,
                session_type=intent.session_type,
            ),
        )
        if sid is not None:
            join_room(room_for(session.code), sid=sid, namespace=self.namespace)
        with session.lock:
            if created:
                self.broadcast(session)
            elif sid is not None:
                self.notify(SNAPSHOT, self.snapshot(session.code, session), to=sid)
        return session, created

    def join_player(self, intent: Join) -> Optional[Player]:
        info = intent.player
        player = Player(
            id=info.id or generate_player_id(),
            display_name=info.display_name,
            avatar=info.avatar if info.avatar in PLAYER_AVATARS else None,
        )
        joined = self.mutate(intent.code, lambda s: lifecycle.join(s, player))
        if not joined:
            return None
        session = self.registry.get(intent.code)
        return session.players.get(player.id) if session else None

    # ---- socket intents ----

    def dispatch(self, event: str, data) -> dict:
        try:
            intent = parse_intent(event, data)
        except ValidationError as exc:
            self.logger.debug(f"[intent-invalid] event={event} errors={exc.error_count()}")
            if event in QUERY_EVENTS:
                emit(SNAPSHOT, snapshot_payload(raw_code(data), None))
            return {'ok': False}
        return self._handlers[type(intent)](intent)

    def on_subscribe(self, intent: Subscribe) -> dict:
        join_room(room_for(intent.code))
        session = self.registry.get(intent.code)
        if session is None:
            emit(SNAPSHOT, self.snapshot(intent.code, None))
            return {'ok': True}
        with session.lock:
            emit(SNAPSHOT, self.snapshot(intent.code, session))
        return {'ok': True}

    def on_get(self, intent: Get) -> dict:
        emit(SNAPSHOT, self.snapshot(intent.code))
        return {'ok': True}

    def on_create(self, intent: Create) -> dict:
        try:
            session, created = self.create_session(intent, sid=_get_sid())
        except QuestionValidationError as exc:
            self.logger.info(f"[create-reject] {exc}")
            return {'ok': False}
        return {'ok': True, 'code': session.code, 'created': created, 'moderator_id': session.moderator_id}

    def on_join(self, intent: Join) -> dict:
        player = self.join_player(intent)
        if player is None:
            return {'ok': False}
        return {'ok': True, 'player_id': player.id}

    def on_start(self, intent: Start) -> dict:
        session = self.registry.get(intent.code)
        if session is None:
            return {'ok': False}
        with session.lock:
            if (session.state is SessionState.LOBBY and session.mode.is_trivia
                    and not session.questions):
                emit(ERROR, {'code': intent.code, 'message': 'Cannot start a game without questions'})
                return {'ok': False}
            if not lifecycle.start(session):
                return {'ok': False}
            self.broadcast(session)
        return {'ok': True}

    def on_set_avatar(self, intent: SetAvatar) -> dict:
        return {'ok': self.mutate(intent.code, lambda s: lifecycle.set_avatar(s, intent.player_id, intent.avatar))}

    def on_set_questions(self, intent: SetQuestions) -> dict:
        try:
            questions = parse_questions(intent.questions)
        except QuestionValidationError as exc:
            self.logger.info(f"[questions-reject] session={intent.code} {exc}")
            return {'ok': False}
        return {'ok': self.mutate(intent.code, lambda s: lifecycle.set_questions(s, questions))}

    def on_submit_answer(self, intent: SubmitAnswer) -> dict:
        return {'ok': self.mutate(
            intent.code, lambda s: lifecycle.submit_answer(s, intent.player_id, intent.answer_index),
        )}

    def on_advance(self, intent: Advance) -> dict:
        return {'ok': self.mutate(intent.code, lifecycle.advance)}

    def on_end(self, intent: End) -> dict:
        return {'ok': self.mutate(intent.code, lifecycle.end)}

    def on_submit_prayer_request(self, intent: SubmitPrayerRequest) -> dict:
        return {'ok': self.mutate(
            intent.code,
            lambda s: lifecycle.submit_prayer_request(s, intent.player_id, intent.text, intent.anonymous),
        )}

    def on_generate_questions(self, intent: GenerateQuestions) -> dict:
        session = self.registry.get(intent.code)
        if session is None or session.state is not SessionState.LOBBY:
            return {'ok': False}
        count = self.question_count(intent.count)
        self.notify(GENERATING, {'code': intent.code}, to=room_for(intent.code))
        self.logger.info(f"[generate-start] session={intent.code} count={count}")

        args = (intent.code, intent.prompt, intent.document, count, _get_sid())
        if self.app.config.get('TESTING') and not self.app.config.get('BACKGROUND_GENERATION_IN_TESTS'):
            self._generate_worker(*args)
        else:
            socketio.start_background_task(self._generate_worker, *args)
        return {'ok': True}

    # ---- generation ----

    def question_count(self, requested: Optional[int]) -> int:
        default = int(self.app.config.get('DEFAULT_QUESTION_COUNT', 5))
        maximum = int(self.app.config.get('MAX_QUESTION_COUNT', 20))
        return max(1, min(requested or default, maximum))

    def run_generation(self, prompt: Optional[str], document: Optional[str], count: int) -> GenerationResult:
        if document:
            return self.generator.generate_from_document(document, count)
        return self.generator.generate(prompt, count)

    def _generate_worker(self, code: str, prompt: Optional[str], document: Optional[str],
                         count: int, sid: str) -> None:
        room = room_for(code)
        try:
            result = self.run_generation(prompt, document, count)
        except QuestionGenerationError as exc:
            self.logger.error(f"[generate-fail] session={code} {exc}")
            self._generation_failed(code, sid, str(exc))
            return
        except Exception as exc:
            # Never let one session's generation take the hub down
            self.logger.exception(f"[generate-crash] session={code}")
            self._generation_failed(code, sid, f'Question generation failed: {exc}')
            return

        session = self.registry.get(code)
        if session is None:
            return
        with session.lock:
            if not lifecycle.set_questions(session, result.questions):
                self._generation_failed(code, sid, 'Game already started; generated questions were discarded')
                return
            self.notify(QUESTIONS_GENERATED, {
                'code': code,
                'success': True,
                'count': len(result.questions),
                'warning': result.warning,
            }, to=room)
            self.broadcast(session)
        self.logger.info(
            f"[generate-done] session={code} count={len(result.questions)} fallback={result.used_fallback}"
        )

    def _generation_failed(self, code: str, sid: str, message: str) -> None:
        self.notify(ERROR, {'code': code, 'message': message}, to=sid)
        self.notify(QUESTIONS_GENERATED, {'code': code, 'success': False, 'count': 0, 'warning': None},
                    to=room_for(code))
