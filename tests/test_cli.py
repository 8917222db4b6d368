"""Tests for the nzledger command line interface."""

from dateutil.relativedelta import relativedelta

from nzledger.cli.main import cli
from nzledger.domain.entities import AuditableRef, EntityKind


def test_help_needs_no_database(cli_runner):
    """Test that the group help renders without opening a database."""
    result = cli_runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "txn" in result.output
    assert "gst" in result.output


def test_db_path_option(cli_runner, temp_db, sample_org):
    """Test that --db-path opens the given database file."""
    result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, "org", "list"])

    assert result.exit_code == 0
    assert "Kiwi Traders Ltd" in result.output


def test_invalid_config_environment(cli_runner, temp_db, clock):
    """Test that a bad NZLEDGER_* override stops the command."""
    result = cli_runner.invoke(
        cli,
        ["org", "list"],
        obj={"db": temp_db, "clock": clock},
        env={"NZLEDGER_SUPPORTED_CURRENCIES": ","},
    )

    assert result.exit_code == 1
    assert "Error: NZLEDGER_SUPPORTED_CURRENCIES must list at least one currency" in result.output


class TestOrganizationCommands:
    """Tests for org commands."""

    def test_list_empty(self, cli_runner, cli_obj):
        result = cli_runner.invoke(cli, ["org", "list"], obj=cli_obj)

        assert result.exit_code == 0
        assert "No organizations found." in result.output

    def test_create(self, cli_runner, cli_obj):
        result = cli_runner.invoke(
            cli,
            ["org", "create", "Harbour Freight", "--ird", "12345678", "--email", "ops@harbour.nz", "--gst-registered"],
            obj=cli_obj,
        )

        assert result.exit_code == 0
        assert "Created organization 'Harbour Freight' (ID: 1)" in result.output

    def test_create_reports_each_invalid_field(self, cli_runner, cli_obj):
        result = cli_runner.invoke(
            cli, ["org", "create", "Bad Co", "--ird", "12", "--email", "nope"], obj=cli_obj
        )

        assert result.exit_code == 1
        assert "Error: ird_number: must be 8 or 9 digits" in result.output
        assert "Error: contact_email: is invalid" in result.output

    def test_show(self, cli_runner, cli_obj, sample_org, sample_account):
        result = cli_runner.invoke(cli, ["org", "show", str(sample_org.id)], obj=cli_obj)

        assert result.exit_code == 0
        assert "Kiwi Traders Ltd (IRD: 123456789)" in result.output
        assert "$25,000.00" in result.output

    def test_show_missing(self, cli_runner, cli_obj):
        result = cli_runner.invoke(cli, ["org", "show", "9"], obj=cli_obj)

        assert result.exit_code == 1
        assert "Error: Organization 9 not found" in result.output


class TestAccountCommands:
    """Tests for account commands."""

    def test_create_and_list(self, cli_runner, cli_obj, sample_org):
        result = cli_runner.invoke(
            cli,
            ["account", "create", str(sample_org.id), "Operating", "12-3456-7890123-00", "--balance", "1,000.00"],
            obj=cli_obj,
        )
        assert result.exit_code == 0
        assert "Created account 'Operating' (ID: 1)" in result.output

        result = cli_runner.invoke(cli, ["account", "list"], obj=cli_obj)
        assert result.exit_code == 0
        assert "12-3456-7890123-00" in result.output
        assert "NZD $1,000.00" in result.output
        assert "active" in result.output

    def test_list_empty(self, cli_runner, cli_obj):
        result = cli_runner.invoke(cli, ["account", "list"], obj=cli_obj)

        assert result.exit_code == 0
        assert "No accounts found." in result.output

    def test_duplicate_number(self, cli_runner, cli_obj, sample_account):
        result = cli_runner.invoke(
            cli,
            ["account", "create", str(sample_account.organization_id), "Again", sample_account.account_number],
            obj=cli_obj,
        )

        assert result.exit_code == 1
        assert "already exists for organization" in result.output

    def test_freeze_by_number(self, cli_runner, cli_obj, sample_account, account_service):
        result = cli_runner.invoke(cli, ["account", "freeze", "12-3456-7890123-00"], obj=cli_obj)

        assert result.exit_code == 0
        assert f"Froze account {sample_account.id}" in result.output
        assert account_service.get_account(sample_account.id).frozen

    def test_unknown_account(self, cli_runner, cli_obj):
        result = cli_runner.invoke(cli, ["account", "freeze", "00-0000-0000000-00"], obj=cli_obj)

        assert result.exit_code == 1
        assert "Error:" in result.output


class TestTransactionCommands:
    """Tests for txn commands."""

    def test_record(self, cli_runner, cli_obj, sample_account, sample_user):
        result = cli_runner.invoke(
            cli,
            [
                "txn",
                "record",
                sample_account.account_number,
                "100.00",
                "--type",
                "payment_in",
                "--user",
                str(sample_user.id),
                "-d",
                "Invoice 1042",
            ],
            obj=cli_obj,
        )

        assert result.exit_code == 0
        assert "Recorded transaction TXN-20240115-" in result.output
        assert "Status: compliant (risk 0, standard)" in result.output

    def test_record_high_value_needs_authorization(self, cli_runner, cli_obj, sample_account, sample_user):
        result = cli_runner.invoke(
            cli,
            [
                "txn",
                "record",
                str(sample_account.id),
                "15,000.00",
                "--type",
                "payment_in",
                "--user",
                str(sample_user.id),
                "-d",
                "Big invoice",
            ],
            obj=cli_obj,
        )

        assert result.exit_code == 1
        assert "Error: amount: High value transactions require authorized user approval" in result.output

    def test_record_invalid_amount(self, cli_runner, cli_obj, sample_account, sample_user):
        result = cli_runner.invoke(
            cli,
            ["txn", "record", str(sample_account.id), "lots", "--type", "deposit", "--user", str(sample_user.id), "-d", "x"],
            obj=cli_obj,
        )

        assert result.exit_code == 1
        assert "Error: Invalid amount format" in result.output

    def test_list(self, cli_runner, cli_obj, insert_transaction):
        insert_transaction(amount=250_000)

        result = cli_runner.invoke(cli, ["txn", "list", "--period", "2024-01"], obj=cli_obj)

        assert result.exit_code == 0
        assert "TXN-TEST-0001" in result.output
        assert "NZD $2,500.00" in result.output

    def test_list_flagged_only(self, cli_runner, cli_obj, insert_transaction):
        insert_transaction()

        result = cli_runner.invoke(cli, ["txn", "list", "--flagged"], obj=cli_obj)

        assert result.exit_code == 0
        assert "No transactions found." in result.output

    def test_list_rejects_mixed_date_options(self, cli_runner, cli_obj):
        result = cli_runner.invoke(
            cli, ["txn", "list", "--period", "2024-01", "--start-date", "2024-01-01"], obj=cli_obj
        )

        assert result.exit_code == 1
        assert "--period cannot be combined" in result.output

    def test_show_by_reference(self, cli_runner, cli_obj, insert_transaction):
        insert_transaction(amount=123_450)

        result = cli_runner.invoke(cli, ["txn", "show", "TXN-TEST-0001"], obj=cli_obj)

        assert result.exit_code == 0
        assert "NZD $1,234.50" in result.output
        assert "Payment in" in result.output


class TestGstCommands:
    """Tests for gst commands."""

    def test_return(self, cli_runner, cli_obj, sample_org, insert_transaction):
        insert_transaction(amount=115_000)

        result = cli_runner.invoke(cli, ["gst", "return", str(sample_org.id), "--period", "2024-01"], obj=cli_obj)

        assert result.exit_code == 0
        assert "Period: January 2024" in result.output
        assert "GST to pay:" in result.output
        assert "150.00" in result.output
        assert "Payment due:           2024-02-28" in result.output

    def test_nil_return_defaults_to_last_month(self, cli_runner, cli_obj, sample_org):
        result = cli_runner.invoke(cli, ["gst", "return", str(sample_org.id)], obj=cli_obj)

        assert result.exit_code == 0
        assert "Period: December 2023" in result.output
        assert "Nil return" in result.output

    def test_return_requires_registration(self, cli_runner, cli_obj, domestic_org):
        result = cli_runner.invoke(cli, ["gst", "return", str(domestic_org.id)], obj=cli_obj)

        assert result.exit_code == 1
        assert "Error: Organization must be GST registered" in result.output

    def test_simulated_submission(self, cli_runner, cli_obj, sample_org):
        result = cli_runner.invoke(cli, ["gst", "submit", str(sample_org.id)], obj=cli_obj)

        assert result.exit_code == 0
        assert "Simulated GST return for 2023-12-01 to 2023-12-31" in result.output
        assert "Submission ID: SIM-" in result.output

    def test_live_submission_without_gateway(self, cli_runner, cli_obj, sample_org):
        result = cli_runner.invoke(cli, ["gst", "submit", str(sample_org.id), "--live"], obj=cli_obj)

        assert result.exit_code == 1
        assert "Error: IRD gateway not configured" in result.output


class TestTaxCommands:
    """Tests for tax and filing commands."""

    def test_assess_with_overdue_filing(self, cli_runner, cli_obj, sample_org):
        result = cli_runner.invoke(
            cli,
            [
                "filing",
                "record",
                str(sample_org.id),
                "--type",
                "gst",
                "--period-start",
                "2023-11-01",
                "--period-end",
                "2023-11-30",
                "--due",
                "2023-12-28",
            ],
            obj=cli_obj,
        )
        assert result.exit_code == 0
        assert "Recorded gst filing (ID: 1)" in result.output

        result = cli_runner.invoke(cli, ["tax", "assess", str(sample_org.id)], obj=cli_obj)
        assert result.exit_code == 0
        assert "Compliant:   no" in result.output
        assert "Score:       70" in result.output
        assert "[high] outstanding_returns" in result.output

    def test_paye_not_applicable(self, cli_runner, cli_obj, sample_org):
        result = cli_runner.invoke(cli, ["tax", "paye", str(sample_org.id), "--period", "2023-12"], obj=cli_obj)

        assert result.exit_code == 0
        assert "PAYE not applicable: No employees registered" in result.output

    def test_filing_list_empty(self, cli_runner, cli_obj, sample_org):
        result = cli_runner.invoke(cli, ["filing", "list", str(sample_org.id)], obj=cli_obj)

        assert result.exit_code == 0
        assert "No filings found." in result.output


def test_calendar_status(cli_runner, cli_obj):
    result = cli_runner.invoke(cli, ["calendar", "status"], obj=cli_obj)

    assert result.exit_code == 0
    assert "11:00 NZDT" in result.output
    assert "Business time:       yes" in result.output
    assert "Waitangi Day" in result.output


class TestAuditCommands:
    """Tests for audit commands."""

    def test_purge_with_yes(self, cli_runner, cli_obj, audit_recorder, sample_org, clock):
        ref = AuditableRef(EntityKind.ORGANIZATION, sample_org.id)
        audit_recorder.record(ref, "old_action", now=clock.now() - relativedelta(years=8))
        audit_recorder.record(ref, "recent_action")

        result = cli_runner.invoke(cli, ["audit", "purge", "--yes"], obj=cli_obj)

        assert result.exit_code == 0
        assert "Deleted 1 expired audit entries" in result.output
        assert [e.action for e in audit_recorder.entries_for(ref)] == ["recent_action"]

    def test_purge_declined(self, cli_runner, cli_obj, audit_recorder, sample_org, clock):
        ref = AuditableRef(EntityKind.ORGANIZATION, sample_org.id)
        audit_recorder.record(ref, "old_action", now=clock.now() - relativedelta(years=8))

        result = cli_runner.invoke(cli, ["audit", "purge"], obj=cli_obj, input="n\n")

        assert result.exit_code == 1
        assert len(audit_recorder.entries_for(ref)) == 1

    def test_purge_nothing_expired(self, cli_runner, cli_obj):
        result = cli_runner.invoke(cli, ["audit", "purge", "--yes"], obj=cli_obj)

        assert result.exit_code == 0
        assert "No expired audit entries." in result.output

    def test_show_missing_entry(self, cli_runner, cli_obj):
        result = cli_runner.invoke(cli, ["audit", "show", "3"], obj=cli_obj)

        assert result.exit_code == 1
        assert "Error: Audit entry 3 not found" in result.output

    def test_list_after_recording(self, cli_runner, cli_obj, sample_account, sample_user):
        cli_runner.invoke(
            cli,
            ["txn", "record", str(sample_account.id), "50.00", "--type", "deposit", "--user", str(sample_user.id), "-d", "Cash"],
            obj=cli_obj,
        )

        result = cli_runner.invoke(cli, ["audit", "list", "financial_transaction", "1"], obj=cli_obj)

        assert result.exit_code == 0
        assert "financial_transaction_created" in result.output
        assert sample_user.email in result.output
