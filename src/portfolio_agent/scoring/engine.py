from __future__ import annotations

COOLDOWN_SECONDS = 3600

POSITIVE_FACTOR = 5  # +0.5% of metric magnitude
NEGATIVE_FACTOR = 3  # -0.3% of metric magnitude
SCALE = 1000

SCORE_MIN = 0
SCORE_MAX = 1000

# Unsigned arithmetic saturates at 32 bits.
U32_MAX = 2**32 - 1


def saturating_add(a: int, b: int) -> int:
    return min(a + b, U32_MAX)


def saturating_sub(a: int, b: int) -> int:
    return max(a - b, 0)


def saturating_mul(a: int, b: int) -> int:
    return min(a * b, U32_MAX)


def saturating_div(a: int, b: int) -> int:
    # Truncating divide; never rounds.
    return a // b


class ScoreEngine:
    """Pure score update.

    Positive metrics move the score up by 0.5% of their magnitude, negative
    metrics move it down by 0.3%. Both use truncating integer division, so
    small metrics (under 200 up, under 334 down) leave the score unchanged.
    The result is always within [SCORE_MIN, SCORE_MAX].
    """

    def adjust(self, score: int, metric: int) -> int:
        magnitude = min(abs(int(metric)), U32_MAX)

        if metric > 0:
            increase = saturating_div(saturating_mul(magnitude, POSITIVE_FACTOR), SCALE)
            result = min(saturating_add(score, increase), SCORE_MAX)
        elif metric < 0:
            decrease = saturating_div(saturating_mul(magnitude, NEGATIVE_FACTOR), SCALE)
            result = saturating_sub(score, decrease)
        else:
            result = score

        return min(result, SCORE_MAX)
