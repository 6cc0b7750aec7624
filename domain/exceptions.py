"""Domain Errors

Every failure a service can report derives from HotelDomainError so the API
layer can translate it without inspecting messages.
"""


class HotelDomainError(Exception):
    """Base class for errors surfaced to callers"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(HotelDomainError, ValueError):
    """Malformed or missing input, e.g. nights < 1"""


class NotFoundError(HotelDomainError):
    """Referenced booking, room, room type or client does not exist"""

    def __init__(self, entity: str, identifier):
        super().__init__(f"{entity} {identifier} not found")
        self.entity = entity
        self.identifier = identifier


class ConflictError(HotelDomainError):
    """Write rejected because it clashes with existing state"""


class InvalidStateError(HotelDomainError):
    """Operation attempted outside its legal lifecycle state"""


class StorageUnavailableError(HotelDomainError):
    """Persistence layer failed; callers decide whether to retry"""
