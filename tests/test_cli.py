"""Tests for CLI commands."""

from pledgeflow.cli.main import cli


def invoke(cli_runner, temp_db, *args, **kwargs):
    return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args], **kwargs)


def create_month_end(cli_runner, temp_db, *extra):
    return invoke(
        cli_runner,
        temp_db,
        "agreement",
        "create",
        "--donor",
        "D-100",
        "--amount",
        "500",
        "--frequency",
        "monthly",
        "--anchor",
        "2024-01-31",
        *extra,
    )


class TestAgreementCommands:
    """Tests for the agreement command group."""

    def test_create(self, cli_runner, temp_db):
        """Test creating an agreement."""
        result = create_month_end(cli_runner, temp_db, "--limit", "3")

        assert result.exit_code == 0
        assert "Created agreement 1 for donor 'D-100'" in result.output
        assert "First donation due: 2024-02-29" in result.output

        agreement = temp_db.get_agreement(1)
        assert agreement.occurrence_limit == 3

    def test_create_invalid_amount(self, cli_runner, temp_db):
        """Test that a bad amount is reported as an error."""
        result = invoke(
            cli_runner, temp_db, "agreement", "create",
            "--donor", "D-100", "--amount", "free", "--frequency", "monthly",
        )
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert temp_db.list_agreements() == []

    def test_create_invalid_frequency(self, cli_runner, temp_db):
        """Test that click rejects unknown frequencies."""
        result = invoke(
            cli_runner, temp_db, "agreement", "create",
            "--donor", "D-100", "--amount", "5", "--frequency", "daily",
        )
        assert result.exit_code == 2

    def test_create_end_date_before_first_due(self, cli_runner, temp_db):
        """Test end date validation through the CLI."""
        result = create_month_end(cli_runner, temp_db, "--end-date", "2024-02-01")
        assert result.exit_code == 1
        assert "before the first due date" in result.output

    def test_list(self, cli_runner, temp_db):
        """Test listing agreements."""
        result = invoke(cli_runner, temp_db, "agreement", "list")
        assert result.exit_code == 0
        assert "No agreements found." in result.output

        create_month_end(cli_runner, temp_db)
        result = invoke(cli_runner, temp_db, "agreement", "list", "--state", "active")
        assert result.exit_code == 0
        assert "D-100" in result.output
        assert "INR 500.00" in result.output

        result = invoke(cli_runner, temp_db, "agreement", "list", "--donor", "D-999")
        assert "No agreements found." in result.output

    def test_show(self, cli_runner, temp_db):
        """Test showing agreement details."""
        create_month_end(cli_runner, temp_db)
        result = invoke(cli_runner, temp_db, "agreement", "show", "1")

        assert result.exit_code == 0
        assert "Agreement 1" in result.output
        assert "Donor: D-100" in result.output
        assert "Next due date: 2024-02-29" in result.output
        assert "Version: 1" in result.output

    def test_show_missing(self, cli_runner, temp_db):
        """Test showing an agreement that does not exist."""
        result = invoke(cli_runner, temp_db, "agreement", "show", "99")
        assert result.exit_code == 1
        assert "Agreement 99 not found" in result.output

    def test_pause_resume(self, cli_runner, temp_db):
        """Test pausing and resuming."""
        create_month_end(cli_runner, temp_db)

        result = invoke(cli_runner, temp_db, "agreement", "pause", "1")
        assert result.exit_code == 0
        assert "Paused agreement 1" in result.output

        result = invoke(cli_runner, temp_db, "agreement", "pause", "1")
        assert result.exit_code == 1
        assert "Cannot pause agreement 1: agreement is paused" in result.output

        result = invoke(cli_runner, temp_db, "agreement", "resume", "1")
        assert result.exit_code == 0
        assert "Resumed agreement 1; next donation due" in result.output
        assert temp_db.get_agreement(1).state.value == "active"

    def test_cancel(self, cli_runner, temp_db):
        """Test cancelling with and without confirmation."""
        create_month_end(cli_runner, temp_db)

        result = invoke(cli_runner, temp_db, "agreement", "cancel", "1", input="n\n")
        assert result.exit_code == 0
        assert "Cancellation aborted." in result.output
        assert temp_db.get_agreement(1).state.value == "active"

        result = invoke(cli_runner, temp_db, "agreement", "cancel", "1", "--yes", "--reason", "moved")
        assert result.exit_code == 0
        assert "Cancelled agreement 1" in result.output
        assert temp_db.get_agreement(1).cancel_reason == "moved"

        result = invoke(cli_runner, temp_db, "agreement", "cancel", "1", "--yes")
        assert result.exit_code == 1
        assert "agreement is cancelled" in result.output

    def test_modify(self, cli_runner, temp_db):
        """Test modifying an agreement."""
        create_month_end(cli_runner, temp_db)

        result = invoke(cli_runner, temp_db, "agreement", "modify", "1", "--amount", "750")
        assert result.exit_code == 0
        assert "Updated agreement 1" in result.output
        assert "Amount: INR 750.00" in result.output

        result = invoke(cli_runner, temp_db, "agreement", "modify", "1")
        assert result.exit_code == 1
        assert "Nothing to modify" in result.output

    def test_schedule(self, cli_runner, temp_db):
        """Test previewing the schedule."""
        create_month_end(cli_runner, temp_db)
        result = invoke(cli_runner, temp_db, "agreement", "schedule", "1", "--count", "3")

        assert result.exit_code == 0
        assert "  1. 2024-02-29" in result.output
        assert "  2. 2024-03-31" in result.output
        assert "  3. 2024-04-30" in result.output

    def test_reactivate_requires_failed(self, cli_runner, temp_db):
        """Test that reactivating an active agreement fails."""
        create_month_end(cli_runner, temp_db)
        result = invoke(cli_runner, temp_db, "agreement", "reactivate", "1")
        assert result.exit_code == 1
        assert "Cannot reactivate agreement 1" in result.output


class TestSweepCommands:
    """Tests for sweep run."""

    def test_sweep_captures_due_agreement(self, cli_runner, temp_db):
        """Test a sweep capturing the first cycle."""
        create_month_end(cli_runner, temp_db)

        result = invoke(cli_runner, temp_db, "sweep", "run", "--now", "2024-02-29T09:00:00")
        assert result.exit_code == 0
        assert "Sweep at 2024-02-29T09:00:00+00:00" in result.output
        assert "Processed: 1" in result.output
        assert "Succeeded: 1" in result.output

        result = invoke(cli_runner, temp_db, "agreement", "history", "1")
        assert result.exit_code == 0
        assert "2024-02-29" in result.output
        assert "captured" in result.output

        result = invoke(cli_runner, temp_db, "sweep", "run", "--now", "2024-02-29T09:00:00")
        assert "Processed: 0" in result.output

    def test_sweep_decline_all(self, cli_runner, temp_db):
        """Test a sweep where the gateway declines."""
        create_month_end(cli_runner, temp_db)

        result = invoke(
            cli_runner, temp_db, "sweep", "run", "--now", "2024-02-29T09:00:00", "--decline-all"
        )
        assert result.exit_code == 0
        assert "Failed:    1" in result.output
        assert temp_db.get_agreement(1).failure_streak == 1

    def test_sweep_invalid_time(self, cli_runner, temp_db):
        """Test an unparsable sweep time."""
        result = invoke(cli_runner, temp_db, "sweep", "run", "--now", "whenever")
        assert result.exit_code == 1
        assert "Could not parse timestamp" in result.output

    def test_history_empty(self, cli_runner, temp_db):
        """Test history before any sweep."""
        create_month_end(cli_runner, temp_db)
        result = invoke(cli_runner, temp_db, "agreement", "history", "1")
        assert "No donations yet." in result.output


class TestReportCommands:
    """Tests for report commands."""

    def test_upcoming(self, cli_runner, temp_db):
        """Test the upcoming report."""
        create_month_end(cli_runner, temp_db)

        result = invoke(cli_runner, temp_db, "report", "upcoming", "--days", "30", "--today", "2024-02-01")
        assert result.exit_code == 0
        assert "2024-02-29" in result.output
        assert "D-100" in result.output

        result = invoke(cli_runner, temp_db, "report", "upcoming", "--days", "7", "--today", "2024-02-01")
        assert "No donations due in the next 7 days." in result.output

    def test_overdue(self, cli_runner, temp_db):
        """Test the overdue report."""
        result = invoke(cli_runner, temp_db, "report", "overdue", "--today", "2024-03-15")
        assert "No overdue agreements." in result.output

        create_month_end(cli_runner, temp_db)
        result = invoke(cli_runner, temp_db, "report", "overdue", "--today", "2024-03-15")
        assert result.exit_code == 0
        assert "D-100" in result.output

    def test_forecast(self, cli_runner, temp_db):
        """Test the forecast report."""
        create_month_end(cli_runner, temp_db)

        result = invoke(cli_runner, temp_db, "report", "forecast", "--months", "3", "--today", "2024-02-01")
        assert result.exit_code == 0
        assert "2024-02" in result.output
        assert "2024-04" in result.output
        assert "Total" in result.output
        assert "1,500.00" in result.output

    def test_forecast_empty(self, cli_runner, temp_db):
        """Test the forecast with nothing scheduled."""
        result = invoke(cli_runner, temp_db, "report", "forecast", "--today", "2024-02-01")
        assert "Nothing scheduled in the forecast window." in result.output

    def test_stats(self, cli_runner, temp_db):
        """Test the stats report after a sweep."""
        create_month_end(cli_runner, temp_db)
        invoke(cli_runner, temp_db, "sweep", "run", "--now", "2024-02-29T09:00:00")

        result = invoke(cli_runner, temp_db, "report", "stats")
        assert result.exit_code == 0
        assert "Captured total: 500.00" in result.output


def test_invalid_configuration(cli_runner, temp_db):
    """Test that a bad environment variable stops the CLI."""
    result = invoke(cli_runner, temp_db, "agreement", "list", env={"PLEDGEFLOW_WORKERS": "lots"})
    assert result.exit_code == 1
    assert "PLEDGEFLOW_WORKERS" in result.output


def test_help_does_not_need_database(cli_runner):
    """Test that --help works without touching a database."""
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "agreement" in result.output
    assert "sweep" in result.output
