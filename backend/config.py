import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    CORS_ORIGINS = [o for o in os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173',
    ).split(',') if o]
    # Per-question countdown shown by clients (seconds). The server never
    # advances on its own; this is published in every snapshot.
    QUESTION_TIME_LIMIT_SEC = int(os.environ.get('QUESTION_TIME_LIMIT_SEC', '15'))
    # Short human-enterable session codes
    SESSION_CODE_LENGTH = int(os.environ.get('SESSION_CODE_LENGTH', '4'))
    # Question generation
    GENERATION_TIMEOUT_SEC = float(os.environ.get('GENERATION_TIMEOUT_SEC', '10'))
    DEFAULT_QUESTION_COUNT = int(os.environ.get('DEFAULT_QUESTION_COUNT', '5'))
    MAX_QUESTION_COUNT = int(os.environ.get('MAX_QUESTION_COUNT', '20'))
    DOCUMENT_MAX_CHARS = int(os.environ.get('DOCUMENT_MAX_CHARS', '10000'))
    ANTHROPIC_API_KEY = os.environ.get('ANTHROPIC_API_KEY')
    ANTHROPIC_MODEL = os.environ.get('ANTHROPIC_MODEL', 'claude-sonnet-4-5')
    GENERATION_MAX_TOKENS = int(os.environ.get('GENERATION_MAX_TOKENS', '4000'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
