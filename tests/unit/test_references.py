"""Unit tests for reference parsing and resolution."""

import pytest

from fimsync.core.references import (
    ReferenceExpression,
    ReferenceResolver,
    build_filter,
    looks_like_reference,
    parse_reference,
)
from fimsync.utils.exceptions import (
    AmbiguousReferenceError,
    ReferenceNotFoundError,
    ReferenceSyntaxError,
)


class TestParseReference:
    """Test parse_reference."""

    def test_valid_expression(self):
        """Test the canonical shape."""
        expression = parse_reference("(Person|EmployeeID|757011)")

        assert expression == ReferenceExpression("Person", "EmployeeID", "757011")
        assert str(expression) == "(Person|EmployeeID|757011)"

    def test_parts_are_stripped(self):
        """Test whitespace inside and around the expression."""
        expression = parse_reference("  ( Person | DisplayName | Alice Roberts ) ")

        assert expression.value == "Alice Roberts"

    def test_custom_delimiter(self):
        """Test a configured reference delimiter."""
        expression = parse_reference("(Group#DisplayName#Admins)", delimiter="#")

        assert expression == ReferenceExpression("Group", "DisplayName", "Admins")

    @pytest.mark.parametrize(
        "raw",
        [
            "757011",
            "Person|EmployeeID|757011",
            "(Person|EmployeeID)",
            "(Person|EmployeeID|757011|extra)",
            "(Person||757011)",
            "(|EmployeeID|757011)",
            "(Person|EmployeeID|757011",
            "()",
            "",
        ],
    )
    def test_malformed(self, raw):
        """Test that anything but three non-empty parts in parentheses fails."""
        with pytest.raises(ReferenceSyntaxError):
            parse_reference(raw, attribute="Manager", line_number=4)

    def test_error_carries_location(self):
        """Test that the error names the column and line."""
        with pytest.raises(ReferenceSyntaxError) as exc_info:
            parse_reference("(Person|EmployeeID)", attribute="Manager", line_number=4)

        assert exc_info.value.attribute == "Manager"
        assert exc_info.value.line_number == 4

    def test_looks_like_reference(self):
        """Test the shape check used by offline validation."""
        assert looks_like_reference("(Person|EmployeeID|1)")
        assert looks_like_reference("(broken)")
        assert not looks_like_reference("Alice")
        assert not looks_like_reference(None)


class TestBuildFilter:
    """Test build_filter."""

    def test_equality_filter(self):
        """Test the filter shape."""
        assert build_filter("Person", "EmployeeID", "757011") == "/Person[EmployeeID='757011']"

    def test_single_quotes_doubled(self):
        """Test that quotes in the value are escaped."""
        assert build_filter("Person", "LastName", "O'Brien") == "/Person[LastName='O''Brien']"


class TestReferenceResolver:
    """Test ReferenceResolver."""

    @pytest.mark.asyncio
    async def test_resolve_single_match(self, mock_fim_client):
        """Test that exactly one match returns its ObjectID."""
        mock_fim_client.find_object_ids.return_value = ["urn:uuid:manager"]
        resolver = ReferenceResolver(mock_fim_client)

        object_id = await resolver.resolve("Person", "EmployeeID", "757011")

        assert object_id == "urn:uuid:manager"
        mock_fim_client.find_object_ids.assert_awaited_once_with("Person", "EmployeeID", "757011")

    @pytest.mark.asyncio
    async def test_resolve_no_match(self, mock_fim_client):
        """Test that zero matches raises ReferenceNotFoundError."""
        resolver = ReferenceResolver(mock_fim_client)

        with pytest.raises(ReferenceNotFoundError) as exc_info:
            await resolver.resolve("Person", "EmployeeID", "757011")

        assert exc_info.value.value == "757011"

    @pytest.mark.asyncio
    async def test_resolve_ambiguous(self, mock_fim_client):
        """Test that several matches raise AmbiguousReferenceError."""
        mock_fim_client.find_object_ids.return_value = ["urn:uuid:a", "urn:uuid:b"]
        resolver = ReferenceResolver(mock_fim_client)

        with pytest.raises(AmbiguousReferenceError) as exc_info:
            await resolver.resolve("Person", "EmployeeID", "757011")

        assert exc_info.value.matches == 2

    @pytest.mark.asyncio
    async def test_no_retry(self, mock_fim_client):
        """Test that a failed resolution queries exactly once."""
        resolver = ReferenceResolver(mock_fim_client)

        with pytest.raises(ReferenceNotFoundError):
            await resolver.resolve("Person", "EmployeeID", "757011")

        assert mock_fim_client.find_object_ids.await_count == 1

    @pytest.mark.asyncio
    async def test_lookup_returns_all(self, mock_fim_client):
        """Test that lookup does not judge the match count."""
        mock_fim_client.find_object_ids.return_value = ["urn:uuid:a", "urn:uuid:b"]

        matches = await ReferenceResolver(mock_fim_client).lookup("Person", "LastName", "Smith")

        assert matches == ["urn:uuid:a", "urn:uuid:b"]

    @pytest.mark.asyncio
    async def test_resolve_expression(self, mock_fim_client):
        """Test resolving a parsed expression."""
        mock_fim_client.find_object_ids.return_value = ["urn:uuid:admins"]
        resolver = ReferenceResolver(mock_fim_client)

        object_id = await resolver.resolve_expression(
            ReferenceExpression("Group", "DisplayName", "Admins")
        )

        assert object_id == "urn:uuid:admins"
