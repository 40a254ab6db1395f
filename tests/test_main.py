"""
Tests for the main.py command-line entry point.
"""

from pathlib import Path

import pytest

import main

pytestmark = pytest.mark.integration


class TestMain:
    """End-to-end runs of main()."""

    def test_full_run(self, backup_root: Path, tmp_path: Path, capsys):
        out = tmp_path / "out"

        status = main.main(["--backup-root", str(backup_root), "--output-dir", str(out)])

        assert status == 0
        assert (out / "camera" / "IMG_0001-1.jpg").exists()
        assert (out / "sms" / "doc.pdf").exists()
        assert (out / "Contacts.csv").exists()
        assert (out / "conversation_1.csv").exists()
        assert "Backed up 6 files successfully!" in capsys.readouterr().out

    def test_default_output_under_backup_root(self, backup_root: Path):
        assert main.main(["--backup-root", str(backup_root), "--skip-messages"]) == 0
        assert (backup_root / "files" / "camera").is_dir()

    def test_missing_manifest(self, tmp_path: Path, capsys):
        status = main.main(["--backup-root", str(tmp_path)])

        assert status == 1
        assert "Manifest.db not found" in capsys.readouterr().out

    def test_skip_files(self, backup_root: Path, tmp_path: Path):
        out = tmp_path / "out"
        status = main.main(
            ["--backup-root", str(backup_root), "--output-dir", str(out), "--skip-files"]
        )

        assert status == 0
        assert not (out / "camera").exists()
        assert (out / "conversation_2.csv").exists()

    def test_skip_contacts(self, backup_root: Path, tmp_path: Path):
        out = tmp_path / "out"
        main.main(["--backup-root", str(backup_root), "--output-dir", str(out), "--skip-contacts"])
        assert not (out / "Contacts.csv").exists()

    def test_skip_messages_still_exports_contacts(self, backup_root: Path, tmp_path: Path, capsys):
        out = tmp_path / "out"

        status = main.main(
            [
                "--backup-root",
                str(backup_root),
                "--output-dir",
                str(out),
                "--skip-messages",
                "--skip-files",
            ]
        )

        assert status == 0
        assert (out / "Contacts.csv").exists()
        assert not (out / "conversation_1.csv").exists()
        assert "Exported 4 contacts." in capsys.readouterr().out

    def test_skip_messages_and_contacts(self, backup_root: Path, tmp_path: Path):
        out = tmp_path / "out"
        status = main.main(
            [
                "--backup-root",
                str(backup_root),
                "--output-dir",
                str(out),
                "--skip-messages",
                "--skip-contacts",
            ]
        )

        assert status == 0
        assert not (out / "Contacts.csv").exists()

    def test_contacts_only_without_addressbook(self, manifest_only_backup: Path, tmp_path: Path):
        status = main.main(
            [
                "--backup-root",
                str(manifest_only_backup),
                "--output-dir",
                str(tmp_path / "out"),
                "--skip-messages",
                "--skip-files",
            ]
        )

        assert status == 1

    def test_missing_sms_store_fails(self, manifest_only_backup: Path, tmp_path: Path, capsys):
        out = tmp_path / "out"

        status = main.main(["--backup-root", str(manifest_only_backup), "--output-dir", str(out)])

        assert status == 1
        # Artifacts are still copied when correlation fails
        assert (out / "camera" / "IMG_0001.JPG").exists()
        assert "Not all conversations may have been saved." in capsys.readouterr().out

    def test_report(self, backup_root: Path, tmp_path: Path):
        report = tmp_path / "report.html"

        main.main(
            [
                "--backup-root",
                str(backup_root),
                "--output-dir",
                str(tmp_path / "out"),
                "--report",
                str(report),
            ]
        )

        assert report.exists()
        assert (tmp_path / "report_messages.html").exists()

    def test_log_file(self, backup_root: Path, tmp_path: Path):
        log_file = tmp_path / "extract.log"

        main.main(
            [
                "--backup-root",
                str(backup_root),
                "--output-dir",
                str(tmp_path / "out"),
                "--skip-messages",
                "--log-file",
                str(log_file),
            ]
        )

        assert "Beginning copy of CameraRollDomain files." in log_file.read_text(encoding="utf-8")
