import logging
import threading
from typing import Callable, Dict, Optional

from trivia.models import MAX_CODE_LENGTH, Session, generate_session_code


logger = logging.getLogger(__name__)


class SessionRegistry:
    """Process-wide store of live sessions keyed by code.

    Built once by the app factory and handed to the socket handlers and the
    HTTP blueprint. The map is guarded by its own lock; each session carries
    its own lock for transitions.
    """

    def __init__(self, code_length: int = 4, max_code_attempts: int = 100):
        if not 1 <= code_length <= MAX_CODE_LENGTH:
            raise ValueError(f"code_length must be between 1 and {MAX_CODE_LENGTH}, got {code_length}")
        self.code_length = code_length
        self.max_code_attempts = max_code_attempts
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    @staticmethod
    def normalize(code: Optional[str]) -> str:
        return (code or '').strip().upper()

    def get(self, code: Optional[str]) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(self.normalize(code))

    def __contains__(self, code) -> bool:
        return self.get(code) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _free_code(self) -> str:
        # caller holds self._lock
        for _ in range(self.max_code_attempts):
            code = generate_session_code(self.code_length)
            if code not in self._sessions:
                return code
        raise RuntimeError('Could not allocate a free session code')

    def get_or_create(self, code: Optional[str], factory: Callable[[str], Session]):
        """Return ``(session, created)``.

        An existing session under ``code`` is returned untouched; a create
        never overwrites a live session. When ``code`` is empty a fresh
        code is allocated.
        """
        with self._lock:
            code = self.normalize(code) or self._free_code()
            existing = self._sessions.get(code)
            if existing is not None:
                logger.info(f"[registry-exists] session={code}")
                return existing, False
            session = factory(code)
            self._sessions[code] = session
            return session, True

    def remove(self, code: Optional[str]) -> Optional[Session]:
        with self._lock:
            return self._sessions.pop(self.normalize(code), None)
