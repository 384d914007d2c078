BASE_POINTS = 300
LATENCY_DIVISOR_MS = 100


def score(is_correct: bool, latency_ms: int) -> int:
    """Points for one answer.

    Wrong answers earn nothing. A correct answer earns ``BASE_POINTS`` minus
    one point per ``LATENCY_DIVISOR_MS`` elapsed since the question opened,
    floored at zero.
    """
    if not is_correct:
        return 0
    latency_ms = max(0, int(latency_ms))
    return max(0, BASE_POINTS - latency_ms // LATENCY_DIVISOR_MS)
