"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the accounts and chat apps. Nothing here
knows about users, chats or messages.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception rendering {statusCode, message, error}
    - BadRequestError, ValidationError, UnauthorizedError,
      PermissionDeniedError, NotFoundError, ConflictError

Handlers (import from core.handlers):
    - api_exception_handler: DRF EXCEPTION_HANDLER

Helpers (import from core.helpers):
    - generate_token: Cryptographically secure token generation
    - capitalize_words: Error message normalisation

Validators (import from core.validators):
    - validate_file_size: File size validation
    - validate_file_extension: File extension validation
"""
