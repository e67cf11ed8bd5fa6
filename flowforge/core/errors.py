"""Error taxonomy shared by the FlowForge stores and services.

Every failure a core operation can report is one of the classes below. The
transport layer maps them to responses through ``code`` and ``status_code``
and never needs to inspect storage exceptions.
"""

from __future__ import annotations


class FlowForgeError(Exception):
    """Base class for all typed FlowForge failures."""

    code = 'error'
    status_code = 500

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.__doc__ or self.code
        super().__init__(self.message)


class ValidationError(FlowForgeError):
    """Missing or malformed input."""

    code = 'validation_error'
    status_code = 400


class DuplicateEmail(FlowForgeError):
    """A user with this email already exists."""

    code = 'duplicate_email'
    status_code = 409

    def __init__(self, email: str):
        self.email = email
        super().__init__(f'Email already in use: {email}')


class InvalidInviteCode(FlowForgeError):
    """The invite code is missing, unknown or not valid for the role."""

    code = 'invalid_invite_code'
    status_code = 400


class Unauthorized(FlowForgeError):
    """The issuer does not exist or does not hold the expected role."""

    code = 'unauthorized'
    status_code = 403


class AccessDenied(FlowForgeError):
    """The caller's relation to the resource does not grant the capability."""

    code = 'access_denied'
    status_code = 403


class NotFound(FlowForgeError):
    """The requested entity does not exist."""

    code = 'not_found'
    status_code = 404

    def __init__(self, entity: str, entity_id: object = None):
        self.entity = entity
        self.entity_id = entity_id
        if entity_id is None:
            super().__init__(f'{entity} not found')
        else:
            super().__init__(f'{entity} {entity_id} not found')


class AlreadyCompleted(FlowForgeError):
    """The project is already completed."""

    code = 'already_completed'
    status_code = 409


class AlreadyResolved(FlowForgeError):
    """The completion request has already been approved or rejected."""

    code = 'already_resolved'
    status_code = 409


class CompletionAlreadyRequested(FlowForgeError):
    """A completion request for the project is still pending."""

    code = 'completion_already_requested'
    status_code = 409


class StorageError(FlowForgeError):
    """The backing store failed; no partial state was kept."""

    code = 'storage_error'
    status_code = 503


class AuthenticationRequired(FlowForgeError):
    """No caller identity was supplied."""

    code = 'authentication_required'
    status_code = 401
