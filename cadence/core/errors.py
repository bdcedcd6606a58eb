class CadenceError(Exception):
    pass


class NotFoundError(CadenceError):
    pass


class ValidationError(CadenceError):
    pass


class InvalidPatternError(ValidationError):
    pass


class ConflictError(CadenceError):
    pass


class StateError(CadenceError):
    pass


class AlreadyCompletedError(StateError):
    def __init__(self, occurrence_id: str):
        self.occurrence_id = occurrence_id
        super().__init__(f"occurrence '{occurrence_id}' is already completed")


class InvalidTransitionError(StateError):
    def __init__(self, occurrence_id: str, from_status: str, to_status: str):
        self.occurrence_id = occurrence_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"cannot move '{occurrence_id}' from {from_status} to {to_status}")


class PersistenceError(CadenceError):
    pass
