"""Learning-step parser: "10m,1d" -> [10, 1440] minutes."""

import math
import re
from typing import List, Optional

DEFAULT_LEARNING_STEPS = [10, 1440]

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * 60

# Leading numeric portion, the same prefix parseFloat() would accept
_LEADING_NUMBER = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:e[+-]?\d+)?')


def _leading_float(token: str) -> float:
    m = _LEADING_NUMBER.match(token)
    if not m:
        return math.nan
    return float(m.group(0))


def parse_learning_steps(steps_str: Optional[str]) -> List[float]:
    """
    Parse a comma-separated step string into minute durations.

    Suffix 'd' is days, 'h' is hours, anything else (including 'm') is
    minutes. Non-numeric, zero and negative tokens are dropped. Never
    raises; falls back to [10, 1440] when nothing usable remains.

    Args:
        steps_str: e.g. '10m,1d' or '1m, 10m, 1d'

    Returns:
        Non-empty list of minute durations, in configured order.
    """
    if not steps_str or not isinstance(steps_str, str):
        return list(DEFAULT_LEARNING_STEPS)

    steps = []
    for raw in steps_str.split(','):
        token = raw.strip().lower()
        value = _leading_float(token)
        if math.isnan(value) or math.isinf(value) or value <= 0:
            continue
        if token.endswith('d'):
            steps.append(value * MINUTES_PER_DAY)
        elif token.endswith('h'):
            steps.append(value * MINUTES_PER_HOUR)
        else:
            steps.append(value)

    return steps if steps else list(DEFAULT_LEARNING_STEPS)
