from .base import AnswerStore, ExpiredError, NotFoundError, StoreError
from .config import StoreConfig
from .store import TTLStore

__all__ = ["AnswerStore", "ExpiredError", "NotFoundError", "StoreConfig", "StoreError", "TTLStore"]
