"""
Core Application - Infrastructure & Base Classes

This app contains infrastructure code shared by the domain apps
(authentication, chat). It carries no domain-specific logic.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - status_for_error_code: Service error code → HTTP status

Responses (import from core.responses):
    - error_response: Failed ServiceResult → DRF Response
    - api_exception_handler: DRF exception handler

Views (import from core.views):
    - health_check: Liveness endpoint
"""
