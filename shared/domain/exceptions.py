"""
Domain Exceptions

Error kinds raised by application services. Each kind maps to one failure
class callers can distinguish:

- NotFoundError: referenced aggregate does not exist
- InvalidStateError: operation does not apply to the target (e.g. a unit
  where a container is required)
- ConflictError: operation collides with current state (e.g. partial
  occupancy when renting a whole container)
- ValidationError: malformed or unresolvable nested payload

Raising any of them inside a unit of work rolls the transaction back.
"""


class DomainError(Exception):
    """Base class for all domain errors"""

    code = 'domain_error'

    def __init__(self, message: str = '', **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self):
        return self.message


class NotFoundError(DomainError):
    code = 'not_found'


class InvalidStateError(DomainError):
    code = 'invalid_state'


class ConflictError(DomainError):
    code = 'conflict'


class ValidationError(DomainError):
    code = 'validation_error'
