import os
import random
import sys

import pytest


# Ensure the repository root (which contains `src/`) is on sys.path for `from src...` imports
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)


class FixedRandom(random.Random):
    """Random source whose ``random()`` always returns the same value."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value

    def randrange(self, *args, **kwargs) -> int:  # type: ignore[override]
        return 0


@pytest.fixture
def fixed_random():
    return FixedRandom
