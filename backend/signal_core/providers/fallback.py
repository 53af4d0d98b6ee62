"""Demo fallback policy.

Some providers can invent a randomized signal when their rules stay quiet,
which keeps a demo dashboard busy. That behavior lives behind this explicit
policy: disabled by default, and driven by its own seeded ``random.Random``
so runs are reproducible.
"""

import random
from dataclasses import dataclass, field

from signal_core.models import Side


@dataclass
class FallbackPolicy:
    """Whether and how providers may synthesize demo signals."""

    enabled: bool = False
    rng: random.Random = field(default_factory=random.Random)

    @classmethod
    def disabled(cls) -> "FallbackPolicy":
        return cls(enabled=False)

    @classmethod
    def seeded(cls, seed: int | None, enabled: bool = True) -> "FallbackPolicy":
        return cls(enabled=enabled, rng=random.Random(seed))

    def fires(self, probability: float = 1.0) -> bool:
        """Decide whether a fallback signal is produced this time."""
        if not self.enabled:
            return False
        return self.rng.random() < probability

    def pick_side(self) -> Side:
        return Side.BUY if self.rng.random() > 0.5 else Side.SELL

    def randint(self, low: int, high: int) -> int:
        return self.rng.randint(low, high)

    def uniform(self, low: float, high: float) -> float:
        return self.rng.uniform(low, high)
