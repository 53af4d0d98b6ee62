"""Sentiment sources for the sentiment provider."""

import random


class RandomSentimentSource:
    """Seeded random sentiment for demos (no real news feed attached)."""

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def get_sentiment(self, symbol: str) -> float | None:
        return (self.rng.random() - 0.5) * 2

    def get_positioning(self, symbol: str) -> float:
        return self.rng.random()
