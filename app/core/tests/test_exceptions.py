"""
Tests for the application base exception and error-code classification.
"""

import pytest

from core.exceptions import BaseApplicationError, status_for_error_code


@pytest.mark.unit
class TestErrorCodes:
    @pytest.mark.parametrize(
        "code, status_code",
        [
            ("INVALID_ARGUMENT", 400),
            ("UNAUTHENTICATED", 401),
            ("TOKEN_EXPIRED", 401),
            ("INVALID_CREDENTIAL", 401),
            ("NOT_PARTICIPANT", 403),
            ("NOT_JOINED", 403),
            ("PERMISSION_DENIED", 403),
            ("CONVERSATION_NOT_FOUND", 404),
            ("EMAIL_EXISTS", 409),
            ("SERVER_ERROR", 500),
            ("SOMETHING_ELSE", 400),
            (None, 400),
        ],
    )
    def test_status_for_error_code(self, code, status_code):
        assert status_for_error_code(code) == status_code

    def test_status_is_a_plain_int(self):
        assert type(status_for_error_code("NOT_FOUND")) is int


@pytest.mark.unit
class TestBaseApplicationError:
    def test_defaults(self):
        exc = BaseApplicationError("Something failed")

        assert exc.error_code == "APPLICATION_ERROR"
        assert exc.status_code == 400
        assert exc.details == {}

    def test_status_follows_error_code(self):
        assert BaseApplicationError("x", error_code="CONVERSATION_NOT_FOUND").status_code == 404

    def test_to_dict_and_str(self):
        exc = BaseApplicationError(
            "Conversation not found", error_code="CONVERSATION_NOT_FOUND", details={"id": 3}
        )

        assert exc.to_dict() == {
            "error": "Conversation not found",
            "error_code": "CONVERSATION_NOT_FOUND",
            "details": {"id": 3},
        }
        assert str(exc) == "[CONVERSATION_NOT_FOUND] Conversation not found"

    def test_to_dict_omits_empty_details(self):
        assert "details" not in BaseApplicationError("x").to_dict()
