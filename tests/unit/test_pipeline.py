"""Unit tests for ImportPipeline."""

import pytest

from fimsync.config import (
    DefaultsConfig,
    PolicyConfig,
    ReferenceFailurePolicy,
)
from fimsync.execution.pipeline import ImportPipeline
from fimsync.models.changes import RequestKind, State
from fimsync.models.results import RowStatus
from fimsync.utils.exceptions import (
    FIMAPIError,
    FIMAuthenticationError,
    MissingMatchAttributeError,
    ReferenceNotFoundError,
    UnknownAttributeError,
    UnknownHeaderAttributeError,
    UnknownObjectTypeError,
)


class TestValidateHeader:
    """Test header validation."""

    @pytest.mark.asyncio
    async def test_valid_header(self, mock_fim_client, importer_config):
        """Test that a header of bound attributes passes."""
        pipeline = ImportPipeline(mock_fim_client, importer_config)

        await pipeline.validate_header(["EmployeeID", "FirstName", "Manager"])

    @pytest.mark.asyncio
    async def test_unknown_column(self, mock_fim_client, importer_config):
        """Test that unbound columns are listed in the error."""
        pipeline = ImportPipeline(mock_fim_client, importer_config)

        with pytest.raises(UnknownHeaderAttributeError) as exc_info:
            await pipeline.validate_header(["EmployeeID", "Nickname", "ShoeSize"])

        assert exc_info.value.attributes == ["Nickname", "ShoeSize"]

    @pytest.mark.asyncio
    async def test_unknown_default_object_type(self, mock_fim_client, importer_config):
        """Test that a default type without attributes is fatal."""
        importer_config.defaults = DefaultsConfig(object_type="Printer")
        pipeline = ImportPipeline(mock_fim_client, importer_config)

        with pytest.raises(UnknownObjectTypeError):
            await pipeline.validate_header(["Name"])

    @pytest.mark.asyncio
    async def test_object_type_column_defers_check(self, mock_fim_client, importer_config):
        """Test that mixed-type files are checked per row, not by header."""
        pipeline = ImportPipeline(mock_fim_client, importer_config)

        await pipeline.validate_header(["!ObjectType", "DisplayName", "ExplicitMember"])

        mock_fim_client.get_bound_attributes.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_match_attribute_required_for_put(self, mock_fim_client, importer_config):
        """Test the match column check when Put rows are possible."""
        importer_config.defaults = DefaultsConfig(state="Put")
        pipeline = ImportPipeline(mock_fim_client, importer_config)

        with pytest.raises(MissingMatchAttributeError):
            await pipeline.validate_header(["FirstName"])

    @pytest.mark.asyncio
    async def test_match_attribute_required_with_state_column(
        self, mock_fim_client, importer_config
    ):
        """Test the match column check when rows choose their own state."""
        pipeline = ImportPipeline(mock_fim_client, importer_config)

        with pytest.raises(MissingMatchAttributeError):
            await pipeline.validate_header(["!State", "FirstName"])

    @pytest.mark.asyncio
    async def test_create_only_file_needs_no_match_column(
        self, mock_fim_client, importer_config
    ):
        """Test that a Create-only file does not need the match column."""
        pipeline = ImportPipeline(mock_fim_client, importer_config)

        await pipeline.validate_header(["FirstName", "LastName"])


class TestProcessRow:
    """Test single-row processing."""

    HEADER = ["!State", "EmployeeID", "FirstName", "Manager"]

    @pytest.mark.asyncio
    async def test_create_submitted(self, mock_fim_client, importer_config, make_row):
        """Test a Create row end to end."""
        mock_fim_client.submit.return_value = ["urn:uuid:new"]
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        row = make_row({"!State": "Create", "EmployeeID": "1", "FirstName": "Alice"})

        outcome = await pipeline.process_row(row, self.HEADER)

        assert outcome.status == RowStatus.SUCCEEDED
        assert outcome.request_kind == RequestKind.CREATE
        assert outcome.created_identifiers == ["urn:uuid:new"]
        assert outcome.duration_ms is not None

        request = mock_fim_client.submit.await_args.args[0]
        assert [c.attribute_name for c in request.changes] == ["EmployeeID", "FirstName"]

    @pytest.mark.asyncio
    async def test_delete_skips_translation(self, mock_fim_client, importer_config, make_row):
        """Test that Delete rows need no schema and carry no changes."""
        mock_fim_client.find_object_ids.return_value = ["urn:uuid:target"]
        importer_config.defaults = DefaultsConfig(match_attribute="EmployeeID")
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        row = make_row({"!State": "Delete", "EmployeeID": "1", "FirstName": "Alice"})

        outcome = await pipeline.process_row(row, self.HEADER)

        assert outcome.status == RowStatus.SUCCEEDED
        assert outcome.target_identifier == "urn:uuid:target"
        assert mock_fim_client.submit.await_args.args[0].changes == []
        mock_fim_client.get_bound_attributes.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_target_skipped(self, mock_fim_client, importer_config, make_row):
        """Test that a Put row without a target is skipped, not submitted."""
        importer_config.defaults = DefaultsConfig(match_attribute="EmployeeID")
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        row = make_row({"!State": "Put", "EmployeeID": "404", "FirstName": "Alice"})

        outcome = await pipeline.process_row(row, self.HEADER)

        assert outcome.status == RowStatus.SKIPPED
        assert "404" in outcome.message
        mock_fim_client.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reference_failure_aborts_by_default(
        self, mock_fim_client, importer_config, make_row
    ):
        """Test that an unresolvable reference aborts the run."""
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        row = make_row({"!State": "Create", "Manager": "(Person|EmployeeID|0)"})

        with pytest.raises(ReferenceNotFoundError):
            await pipeline.process_row(row, self.HEADER)

        mock_fim_client.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reference_failure_skip_policy(
        self, mock_fim_client, importer_config, make_row
    ):
        """Test that the skip policy turns a reference failure into a skipped row."""
        importer_config.policy = PolicyConfig(reference_failure=ReferenceFailurePolicy.SKIP)
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        row = make_row({"!State": "Create", "Manager": "(Person|EmployeeID|0)"})

        outcome = await pipeline.process_row(row, self.HEADER)

        assert outcome.status == RowStatus.SKIPPED
        assert outcome.state == State.CREATE
        mock_fim_client.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_attribute_in_mixed_file(
        self, mock_fim_client, importer_config, make_row
    ):
        """Test that a column unbound to the row's own type is fatal."""
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        header = ["!ObjectType", "DisplayName", "FirstName"]
        row = make_row({"!ObjectType": "Group", "DisplayName": "Admins", "FirstName": "x"})

        with pytest.raises(UnknownAttributeError):
            await pipeline.process_row(row, header)

    @pytest.mark.asyncio
    async def test_submission_error_fails_row(self, mock_fim_client, importer_config, make_row):
        """Test that a rejected submission fails the row and the run continues."""
        mock_fim_client.submit.side_effect = FIMAPIError("Constraint violation", status_code=400)
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        row = make_row({"!State": "Create", "EmployeeID": "1"})

        outcome = await pipeline.process_row(row, self.HEADER)

        assert outcome.status == RowStatus.FAILED
        assert "Constraint violation" in outcome.message

    @pytest.mark.asyncio
    async def test_target_lookup_error_fails_row(
        self, mock_fim_client, importer_config, make_row
    ):
        """Test that a directory error while finding the target fails only that row."""
        mock_fim_client.find_object_ids.side_effect = FIMAPIError(
            "API Error 500: boom", status_code=500
        )
        importer_config.defaults = DefaultsConfig(match_attribute="EmployeeID")
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        row = make_row({"!State": "Put", "EmployeeID": "1", "FirstName": "Alice"})

        outcome = await pipeline.process_row(row, self.HEADER)

        assert outcome.status == RowStatus.FAILED
        assert "API Error 500" in outcome.message
        mock_fim_client.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reference_lookup_error_fails_row(
        self, mock_fim_client, importer_config, make_row
    ):
        """Test that a directory error while resolving a reference fails only that row."""
        mock_fim_client.find_object_ids.side_effect = FIMAPIError(
            "API Error 503: unavailable", status_code=503
        )
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        row = make_row({"!State": "Create", "Manager": "(Person|EmployeeID|2)"})

        outcome = await pipeline.process_row(row, self.HEADER)

        assert outcome.status == RowStatus.FAILED
        assert "API Error 503" in outcome.message
        mock_fim_client.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lookup_authentication_error_is_fatal(
        self, mock_fim_client, importer_config, make_row
    ):
        """Test that losing authentication during a lookup aborts the run."""
        mock_fim_client.find_object_ids.side_effect = FIMAuthenticationError()
        importer_config.defaults = DefaultsConfig(match_attribute="EmployeeID")
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        row = make_row({"!State": "Delete", "EmployeeID": "1"})

        with pytest.raises(FIMAuthenticationError):
            await pipeline.process_row(row, self.HEADER)

    @pytest.mark.asyncio
    async def test_authentication_error_is_fatal(
        self, mock_fim_client, importer_config, make_row
    ):
        """Test that losing authentication aborts the run."""
        mock_fim_client.submit.side_effect = FIMAuthenticationError()
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        row = make_row({"!State": "Create", "EmployeeID": "1"})

        with pytest.raises(FIMAuthenticationError):
            await pipeline.process_row(row, self.HEADER)

    @pytest.mark.asyncio
    async def test_dry_run_does_not_submit(self, mock_fim_client, importer_config, make_row):
        """Test that dry runs build requests without submitting them."""
        importer_config.policy = PolicyConfig(dry_run=True)
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        row = make_row({"!State": "Create", "EmployeeID": "1"})

        outcome = await pipeline.process_row(row, self.HEADER)

        assert outcome.status == RowStatus.SUCCEEDED
        assert outcome.dry_run is True
        mock_fim_client.submit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_metrics_recorded(self, mock_fim_client, importer_config, make_row):
        """Test that each row is counted by state and status."""
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        row = make_row({"!State": "Create", "EmployeeID": "1"})

        await pipeline.process_row(row, self.HEADER)

        summary = pipeline.collector.get_summary()
        assert any(name.startswith("import_row_total") for name in summary["counters"])


class TestRun:
    """Test ImportPipeline.run."""

    @pytest.mark.asyncio
    async def test_rows_processed_in_order(self, mock_fim_client, importer_config, make_row):
        """Test that outcomes follow file order and the callback sees each one."""
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        header = ["EmployeeID", "FirstName"]
        rows = [make_row({"EmployeeID": str(n), "FirstName": "A"}, line_number=n) for n in (2, 3, 4)]
        seen = []

        outcomes = await pipeline.run(rows, header, on_row=seen.append)

        assert [o.line_number for o in outcomes] == [2, 3, 4]
        assert seen == outcomes
        assert mock_fim_client.submit.await_count == 3

    @pytest.mark.asyncio
    async def test_schema_fetched_once(self, mock_fim_client, importer_config, make_row):
        """Test that the schema is cached for the whole run."""
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        rows = [make_row({"EmployeeID": str(n)}, line_number=n) for n in range(2, 7)]

        await pipeline.run(rows, ["EmployeeID"])

        mock_fim_client.get_bound_attributes.assert_awaited_once_with("Person")
        assert pipeline.registry.stats.cache_misses == 1
        assert pipeline.registry.stats.cache_hits == 5

    @pytest.mark.asyncio
    async def test_lookup_error_does_not_stop_run(
        self, mock_fim_client, importer_config, make_row
    ):
        """Test that rows after a failed target lookup are still processed."""
        mock_fim_client.find_object_ids.side_effect = FIMAPIError(
            "API Error 500: boom", status_code=500
        )
        importer_config.defaults = DefaultsConfig(match_attribute="EmployeeID")
        pipeline = ImportPipeline(mock_fim_client, importer_config)
        header = ["!State", "EmployeeID", "FirstName"]
        rows = [
            make_row({"!State": "Put", "EmployeeID": "1", "FirstName": "Alice"}, line_number=2),
            make_row({"!State": "Create", "EmployeeID": "2", "FirstName": "Bob"}, line_number=3),
        ]

        outcomes = await pipeline.run(rows, header)

        assert [o.status for o in outcomes] == [RowStatus.FAILED, RowStatus.SUCCEEDED]
        assert mock_fim_client.submit.await_count == 1
