from __future__ import annotations


class PreconditionError(RuntimeError):
    pass


class AccountNotFoundError(PreconditionError):
    def __init__(self, user_id: object) -> None:
        super().__init__(f"User account {user_id} was not found")
        self.user_id = user_id


class SigningConfigError(PreconditionError):
    pass


class TravelpayoutsError(RuntimeError):
    def __init__(self, message: str, *, details: object | None = None) -> None:
        super().__init__(message)
        self.details = details
