from __future__ import annotations


class DrinkTallyError(Exception):
    pass


class ValidationError(DrinkTallyError, ValueError):
    pass


class InitializationError(DrinkTallyError):
    pass


class StoreWriteError(DrinkTallyError):
    pass


class LlmTransportError(DrinkTallyError):
    pass


class LlmResponseError(DrinkTallyError):
    pass
