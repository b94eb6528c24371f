from __future__ import annotations

import random
import re
from typing import Any, Optional

KEY_PREFIX = "Tw3ch1k_"

# digit-like and letter-like pools, disjoint
POOL_F = "68901"
POOL_E = "oasuxclO"

MIN_KEY_LENGTH = 16
GROUP_SIZE = 4

# any digit is accepted, not only POOL_F
KEY_REGEX = re.compile(
    "^" + re.escape(KEY_PREFIX)
    + "[0-9" + re.escape(POOL_F + POOL_E) + r"\-]{" + str(MIN_KEY_LENGTH) + ",}$"
)


def generate_key(length: int = MIN_KEY_LENGTH, rng: Optional[random.Random] = None) -> str:
    """
    Build a key like Tw3ch1k_9o81-x6a0-...

    70% of the body comes from POOL_F, the rest from POOL_E, shuffled and
    grouped by four.
    """
    if length < MIN_KEY_LENGTH:
        raise ValueError(f"Key length must be at least {MIN_KEY_LENGTH}, got {length}.")

    rng = rng or random.Random()
    b = int(length * 0.7)
    g = length - b

    chars = [rng.choice(POOL_F) for _ in range(b)]
    chars += [rng.choice(POOL_E) for _ in range(g)]
    rng.shuffle(chars)

    body = "".join(chars)
    groups = [body[i:i + GROUP_SIZE] for i in range(0, len(body), GROUP_SIZE)]
    return KEY_PREFIX + "-".join(groups)


def validate_key(key: Any) -> bool:
    return isinstance(key, str) and KEY_REGEX.match(key) is not None
