"""Errors raised by the options editor. None of them is fatal; each is scoped to one column or dialog."""


class OptionsAdminError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RepositoryError(OptionsAdminError):
    """Transport or HTTP failure from the options API."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FetchFailed(OptionsAdminError):
    pass


class ValidationFailed(OptionsAdminError):
    pass


class MutationFailed(OptionsAdminError):
    pass


class ColumnBusy(MutationFailed):
    pass


class EscalationAborted(OptionsAdminError):
    """Outcome of a cancelled confirmation; recorded, never raised to callers."""


class InvalidTransition(OptionsAdminError):
    pass
