# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for xAPI validation, statement builders and the statement store."""

import uuid

import pytest

from src.domains.xapi.service import XAPIDuplicateError, XAPIService, XAPIValidationError
from src.domains.xapi.statements import lesson_completed, question_answered, quiz_result
from src.domains.xapi.validation import (
    MAX_BATCH_SIZE,
    is_iri,
    is_uuid_v4,
    normalize_statement,
    validate_batch,
    validate_statement,
)
from src.domains.xapi.vocabulary import XAPI_EXTENSIONS, XAPI_VERBS


def _statement(**overrides) -> dict:
    statement = {
        "id": str(uuid.uuid4()),
        "actor": {"objectType": "Agent", "mbox": "mailto:learner@example.com"},
        "verb": {"id": "http://adlnet.gov/expapi/verbs/completed"},
        "object": {"id": "https://adaptive-lms.com/lessons/abc"},
        "timestamp": "2025-03-01T10:00:00Z",
        "context": {
            "extensions": {
                XAPI_EXTENSIONS["platform"]: "android",
                XAPI_EXTENSIONS["language"]: "th",
            }
        },
    }
    statement.update(overrides)
    return statement


def _paths(issues) -> list[str]:
    return [issue.path for issue in issues]


class TestValidateStatement:
    """Tests for validate_statement."""

    def test_valid_statement(self) -> None:
        assert validate_statement(_statement()) == []

    def test_account_actor_is_valid(self) -> None:
        actor = {"account": {"homePage": "https://adaptive-lms.com", "name": "user-1"}}

        assert validate_statement(_statement(actor=actor)) == []

    def test_actor_needs_identifier(self) -> None:
        assert _paths(validate_statement(_statement(actor={"name": "Somchai"}))) == ["actor"]

    def test_mbox_must_be_mailto(self) -> None:
        issues = validate_statement(_statement(actor={"mbox": "learner@example.com"}))

        assert _paths(issues) == ["actor.mbox"]

    def test_invalid_id_and_iris(self) -> None:
        issues = validate_statement(
            _statement(id="not-a-uuid", verb={"id": "completed"}, object={})
        )

        assert _paths(issues) == ["id", "verb.id", "object.id"]

    def test_timestamp_required_and_parsed(self) -> None:
        assert _paths(validate_statement(_statement(timestamp=None))) == ["timestamp"]
        assert _paths(validate_statement(_statement(timestamp="yesterday"))) == ["timestamp"]

    def test_extensions_required(self) -> None:
        issues = validate_statement(_statement(context={}))

        assert _paths(issues) == ["context.extensions"]

    def test_extension_values_checked(self) -> None:
        context = {
            "extensions": {
                XAPI_EXTENSIONS["platform"]: "desktop",
                XAPI_EXTENSIONS["language"]: "fr",
            }
        }

        issues = validate_statement(_statement(context=context))

        assert _paths(issues) == ["context.extensions.platform", "context.extensions.language"]

    def test_non_object(self) -> None:
        assert _paths(validate_statement(["not", "a", "statement"])) == ["root"]


class TestHelpers:
    """Tests for IRI, UUID and normalisation helpers."""

    def test_is_iri(self) -> None:
        assert is_iri("http://adlnet.gov/expapi/verbs/completed") is True
        assert is_iri("urn:uuid:1234") is True
        assert is_iri("completed") is False
        assert is_iri(None) is False

    def test_is_uuid_v4(self) -> None:
        assert is_uuid_v4(str(uuid.uuid4())) is True
        assert is_uuid_v4(str(uuid.uuid1())) is False

    def test_normalize_fills_id_and_version(self) -> None:
        normalized = normalize_statement({"actor": {}})

        assert is_uuid_v4(normalized["id"])
        assert normalized["version"] == "1.0.3"


class TestValidateBatch:
    """Tests for validate_batch."""

    def test_reports_per_index(self) -> None:
        result = validate_batch([_statement(), _statement(verb={})])

        assert result.valid is False
        assert [r.index for r in result.invalid] == [1]

    def test_empty_and_oversized(self) -> None:
        assert validate_batch([]).results[0].errors[0].message == "Batch cannot be empty"

        oversized = validate_batch([_statement() for _ in range(MAX_BATCH_SIZE + 1)])
        assert "cannot exceed" in oversized.results[0].errors[0].message

    def test_not_a_list(self) -> None:
        assert validate_batch({"id": "x"}).valid is False


class TestStatementBuilders:
    """Platform statements always pass validation."""

    def test_builders_produce_valid_statements(self) -> None:
        statements = [
            lesson_completed("user-1", "lesson-1", platform="ios", language="th"),
            question_answered("user-1", "quiz-1", "q-1", True, "b", hints_used=1),
            quiz_result("user-1", "quiz-1", passed=False, raw=3, maximum=10),
        ]

        for statement in statements:
            assert validate_statement(statement) == []

    def test_quiz_result_verb_and_scaled_score(self) -> None:
        statement = quiz_result("user-1", "quiz-1", passed=True, raw=8, maximum=10)

        assert statement["verb"] == XAPI_VERBS["passed"]
        assert statement["result"]["score"]["scaled"] == pytest.approx(0.8)


@pytest.fixture
def service(mock_db):
    return XAPIService(db=mock_db)


class TestXAPIService:
    """Tests for storing statements."""

    @pytest.mark.asyncio
    async def test_store_statement(self, service, mock_db, make_result) -> None:
        statement = _statement()
        mock_db.execute.return_value = make_result(scalar=None)

        result = await service.store_statement(statement, user_id="user-1")

        assert result.statement_id == statement["id"]
        assert result.duplicate is False
        record = mock_db.add.call_args[0][0]
        assert record.actor_mbox == "mailto:learner@example.com"
        assert record.verb_id == statement["verb"]["id"]
        assert record.user_id == "user-1"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_store_duplicate_is_reported(self, service, mock_db, make_result) -> None:
        statement = _statement()
        mock_db.execute.return_value = make_result(scalar=statement["id"])

        result = await service.store_statement(statement)

        assert result.duplicate is True
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_invalid_raises_with_details(self, service) -> None:
        with pytest.raises(XAPIValidationError) as exc_info:
            await service.store_statement(_statement(verb={}))

        assert exc_info.value.details == [{"path": "verb.id", "message": "Verb ID is required"}]

    @pytest.mark.asyncio
    async def test_batch_skips_duplicates(self, service, mock_db, make_result) -> None:
        first, second = _statement(), _statement()
        mock_db.execute.return_value = make_result(scalars=[first["id"]])

        outcome = await service.store_statements([first, second])

        assert outcome.created == [second["id"]]
        assert outcome.duplicates == [first["id"]]

    @pytest.mark.asyncio
    async def test_batch_all_duplicates_raises(self, service, mock_db, make_result) -> None:
        statement = _statement()
        mock_db.execute.return_value = make_result(scalars=[statement["id"]])

        with pytest.raises(XAPIDuplicateError):
            await service.store_statements([statement])
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_batch_with_invalid_statement_stores_nothing(self, service, mock_db) -> None:
        with pytest.raises(XAPIValidationError) as exc_info:
            await service.store_statements([_statement(), _statement(timestamp="soon")])

        assert exc_info.value.details[0]["index"] == 1
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_query_caps_limit_and_reports_more(self, service, mock_db, make_result) -> None:
        mock_db.execute.side_effect = [make_result(scalar=150), make_result(scalars=[])]

        page = await service.query_statements(actor="learner@example.com", limit=500)

        assert page["limit"] == 100
        assert page["total"] == 150
        assert page["has_more"] is True
