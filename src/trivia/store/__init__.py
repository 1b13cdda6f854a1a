from trivia.store.protocol import TriviaStore
from trivia.store.sql import SqlTriviaStore, canonical_pair, is_unique_violation

__all__ = ["SqlTriviaStore", "TriviaStore", "canonical_pair", "is_unique_violation"]
