"""Unit tests for the blobsync CLI."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from blobsync.cli import build_policy, main
from blobsync.exceptions import BlobSyncConfigError
from blobsync.sync.policy import ExponentialRetryPolicy, SpeedTimeoutPolicy


@pytest.fixture
def runner():
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def mock_config():
    """Mock the config module."""
    with patch("blobsync.cli.config") as mock:
        mock.resolve_connection_string.return_value = "UseDevelopmentStorage=true"
        yield mock


@pytest.fixture
def mock_gateway_class(gateway):
    """Route gateway construction to the in-memory gateway."""
    with patch("blobsync.cli.AzureBlobGateway") as mock:
        mock.return_value = gateway
        yield mock


@pytest.fixture
def source_dir(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "a.txt").write_text("alpha")
    (src / "b.jpg").write_text("bravo")
    return src


class TestArguments:
    """Tests for argument validation."""

    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "--backup" in result.output
        assert "--destination" in result.output

    def test_no_operation(self, runner):
        result = runner.invoke(main, [])
        assert result.exit_code == 1
        assert "Specify exactly one" in result.output
        assert "Usage:" in result.output

    def test_two_operations(self, runner):
        result = runner.invoke(main, ["-b", "-r", "-s", ".", "-d", "c"])
        assert result.exit_code == 1
        assert "Specify exactly one" in result.output

    def test_missing_destination(self, runner, mock_config, mock_gateway_class):
        result = runner.invoke(main, ["--backup", "--source", "."])
        assert result.exit_code == 1
        assert "--destination" in result.output
        assert "Usage:" in result.output
        mock_gateway_class.assert_not_called()
        mock_config.resolve_connection_string.assert_not_called()

    def test_missing_source(self, runner, mock_config, mock_gateway_class):
        result = runner.invoke(main, ["--clean", "-d", "backup"])
        assert result.exit_code == 1
        assert "--source" in result.output
        mock_gateway_class.assert_not_called()

    def test_invalid_thread_count(self, runner):
        result = runner.invoke(main, ["-b", "-s", ".", "-d", "c", "-t", "0"])
        assert result.exit_code == 2

    def test_account_error(self, runner, mock_config, mock_gateway_class, source_dir):
        mock_config.resolve_connection_string.side_effect = BlobSyncConfigError(
            "No storage account configured"
        )
        result = runner.invoke(main, ["-b", "-s", str(source_dir), "-d", "backup"])
        assert result.exit_code == 1
        assert "No storage account configured" in result.output
        mock_gateway_class.assert_not_called()

    def test_account_option_is_passed(
        self, runner, mock_config, mock_gateway_class, source_dir
    ):
        runner.invoke(main, ["-l", "-a", "dev"])
        mock_config.resolve_connection_string.assert_called_once_with("dev")
        mock_gateway_class.assert_called_once_with("UseDevelopmentStorage=true")


class TestOperations:
    """Tests for running operations through the CLI."""

    def test_backup(self, runner, mock_config, mock_gateway_class, gateway, source_dir):
        result = runner.invoke(
            main, ["-b", "-s", str(source_dir), "-d", "backup", "-t", "2"]
        )

        assert result.exit_code == 0, result.output
        assert gateway.blob_names("backup") == ["a.txt", "b.jpg"]
        assert "Using account devstoreaccount1" in result.output
        assert "with 2 files uploaded" in result.output

    def test_backup_with_filter(
        self, runner, mock_config, mock_gateway_class, gateway, source_dir
    ):
        result = runner.invoke(
            main, ["-b", "-s", str(source_dir), "-d", "backup", "-e", ".jpg"]
        )
        assert result.exit_code == 0, result.output
        assert gateway.blob_names("backup") == ["a.txt"]

    def test_quiet_backup(
        self, runner, mock_config, mock_gateway_class, gateway, source_dir
    ):
        result = runner.invoke(main, ["-b", "-q", "-s", str(source_dir), "-d", "backup"])
        assert result.exit_code == 0
        assert result.output == ""
        assert gateway.blob_names("backup") == ["a.txt", "b.jpg"]

    def test_dry_run(self, runner, mock_config, mock_gateway_class, gateway, source_dir):
        result = runner.invoke(
            main, ["-b", "--dry-run", "-s", str(source_dir), "-d", "backup"]
        )
        assert result.exit_code == 0
        assert "Dry run" in result.output
        assert gateway.containers == {}

    def test_restore(self, runner, mock_config, mock_gateway_class, gateway, tmp_path):
        gateway.add_blob("backup", "docs/a.txt", b"alpha")
        target = tmp_path / "restore"

        result = runner.invoke(main, ["-r", "-s", str(target), "-d", "backup"])

        assert result.exit_code == 0, result.output
        assert (target / "docs" / "a.txt").read_bytes() == b"alpha"

    def test_restore_missing_container(
        self, runner, mock_config, mock_gateway_class, tmp_path
    ):
        result = runner.invoke(main, ["-r", "-s", str(tmp_path), "-d", "nope"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_clean(self, runner, mock_config, mock_gateway_class, gateway, source_dir):
        gateway.add_blob("backup", "a.txt", b"alpha")
        gateway.add_blob("backup", "old.txt", b"old")

        result = runner.invoke(main, ["-c", "-s", str(source_dir), "-d", "backup"])

        assert result.exit_code == 0, result.output
        assert gateway.blob_names("backup") == ["a.txt"]
        assert "1 file(s) deleted from backup." in result.output

    def test_failed_items_exit_nonzero(
        self, runner, mock_config, mock_gateway_class, gateway, source_dir
    ):
        gateway.upload_errors = {"a.txt"}
        result = runner.invoke(
            main,
            ["-b", "-s", str(source_dir), "-d", "backup", "--max-retries", "0"],
        )
        assert result.exit_code == 1
        assert "1 of 2 item(s) failed" in result.output

    def test_list_containers(self, runner, mock_config, mock_gateway_class, gateway):
        gateway.add_container("photos")
        gateway.add_container("music")

        result = runner.invoke(main, ["--list"])

        assert result.exit_code == 0, result.output
        assert "photos" in result.output
        assert "music" in result.output
        assert "Total: 2 containers" in result.output

    def test_list_objects(self, runner, mock_config, mock_gateway_class, gateway):
        gateway.add_blob("photos", "cat.jpg", b"x" * 3072)

        result = runner.invoke(main, ["-l", "-d", "photos"])

        assert result.exit_code == 0, result.output
        assert "cat.jpg" in result.output
        assert "3 kB" in result.output
        assert "Total: 1 files" in result.output

    def test_delete_confirmed(self, runner, mock_config, mock_gateway_class, gateway):
        gateway.add_container("photos")

        result = runner.invoke(main, ["--delete", "-d", "photos"], input="yes\n")

        assert result.exit_code == 0, result.output
        assert "This will delete the entire container (photos)" in result.output
        assert "Container deleted!" in result.output
        assert "photos" not in gateway.containers

    def test_delete_cancelled(self, runner, mock_config, mock_gateway_class, gateway):
        gateway.add_container("photos")

        result = runner.invoke(main, ["--delete", "-d", "photos"], input="n\n")

        assert result.exit_code == 0
        assert "Cancelled!" in result.output
        assert "photos" in gateway.containers

    def test_keyboard_interrupt(self, runner, mock_config, mock_gateway_class):
        with patch("blobsync.cli.SyncEngine") as mock_engine_class:
            mock_engine_class.return_value.run.side_effect = KeyboardInterrupt
            result = runner.invoke(main, ["--list"])
        assert result.exit_code == 130

    def test_keep_awake_for_long_operations(
        self, runner, mock_config, mock_gateway_class, source_dir
    ):
        with patch("blobsync.cli.KeepAwake") as mock_keep_awake:
            runner.invoke(main, ["-b", "-s", str(source_dir), "-d", "backup"])
            runner.invoke(main, ["-l"])
        assert mock_keep_awake.call_count == 1


class TestBuildPolicy:
    """Tests for transfer policy selection."""

    def test_default_is_retry(self):
        policy = build_policy(3, None, None)
        assert isinstance(policy, ExponentialRetryPolicy)
        assert policy.max_retries == 3

    def test_speeds_select_timeout_policy(self):
        policy = build_policy(3, 2.0, 8.0)
        assert isinstance(policy, SpeedTimeoutPolicy)
        assert policy.upload_speed_mbps == 2.0
        assert policy.download_speed_mbps == 8.0

    def test_single_speed_used_for_both(self):
        policy = build_policy(3, None, 4.0)
        assert policy.upload_speed_mbps == 4.0
        assert policy.download_speed_mbps == 4.0

    def test_max_retries_from_environment(self, runner, mock_config, mock_gateway_class):
        with patch("blobsync.cli.build_policy", wraps=build_policy) as mock_build:
            runner.invoke(main, ["-l"], env={"BLOBSYNC_MAX_RETRIES": "7"})
        assert mock_build.call_args.args[0] == 7


class TestConsoleText:
    """Tests for object names that look like console markup."""

    def test_list_bracketed_object_names(
        self, runner, mock_config, mock_gateway_class, gateway
    ):
        gateway.add_blob("photos", "a[/b]x.jpg", b"x")

        result = runner.invoke(main, ["-l", "-d", "photos"])

        assert result.exit_code == 0, result.output
        assert "a[/b]x.jpg" in result.output
