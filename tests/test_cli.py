"""Tests for the click CLI."""

from __future__ import annotations

from click.testing import CliRunner

from bitlocker_remediation import __version__, cli, engine
from bitlocker_remediation.models import DriveType, KeyProtectorType

TPM = KeyProtectorType.TPM
TPM_PIN = KeyProtectorType.TPM_PIN


def _use(monkeypatch, fake):
    monkeypatch.setattr(engine, "PowerShellBitLocker", lambda timeout=60: fake)
    monkeypatch.setattr(cli, "PowerShellBitLocker", lambda timeout=60: fake)


class TestCli:
    def test_version(self):
        result = CliRunner().invoke(cli.main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_detect_found(self, monkeypatch, fake):
        fake.add_volume("C:", (TPM_PIN,))
        _use(monkeypatch, fake)
        result = CliRunner().invoke(cli.main, ["detect"])
        assert result.exit_code == 1
        assert "FAIL " in result.output
        assert "= TpmPin found on C:" in result.output
        assert fake.mutations == []

    def test_detect_clean(self, monkeypatch, fake):
        fake.add_volume("C:", (TPM,))
        _use(monkeypatch, fake)
        result = CliRunner().invoke(cli.main, ["detect"])
        assert result.exit_code == 0
        assert "OK " in result.output
        assert "C: skipped: no TpmPin" in result.output

    def test_remediate(self, monkeypatch, fake):
        fake.add_volume("C:", (TPM_PIN,))
        _use(monkeypatch, fake)
        result = CliRunner().invoke(cli.main, ["remediate"])
        assert result.exit_code == 0
        assert "updated C: from TpmPin to Tpm; encryption on for C:" in result.output
        assert fake.types("C:") == [TPM]

    def test_remediate_warning_exits_zero(self, monkeypatch, fake):
        fake.add_volume("C:", (TPM_PIN,))
        fake.fail_on.add("resume_or_enable")
        _use(monkeypatch, fake)
        result = CliRunner().invoke(cli.main, ["remediate"])
        assert result.exit_code == 0
        assert "WARNING 20" in result.output

    def test_remediate_pin_target_with_secret_env(self, monkeypatch, fake):
        monkeypatch.setenv("TEST_BITLOCKER_PIN", "483920")
        fake.add_volume("C:", (TPM,))
        _use(monkeypatch, fake)
        config_file = "config.yaml"
        runner = CliRunner()
        with runner.isolated_filesystem():
            with open(config_file, "w", encoding="utf-8") as f:
                f.write("remediation:\n  noncompliant_type: Tpm\n")
            result = runner.invoke(cli.main, [
                "remediate", "--config", config_file,
                "--target", "TPMAndPIN", "--secret-env", "TEST_BITLOCKER_PIN",
            ])
        assert result.exit_code == 0
        assert fake.types("C:") == [TPM_PIN]
        assert "483920" not in result.output

    def test_remediate_target_matching_noncompliant_type(self, monkeypatch, fake):
        fake.add_volume("C:", (TPM_PIN,))
        _use(monkeypatch, fake)
        for _ in range(2):
            result = CliRunner().invoke(cli.main, ["remediate", "--target", "TPMAndPIN"])
            assert result.exit_code == 1
            assert "= invalid argument: target TpmPin is the non-compliant type" in result.output
        assert fake.mutations == []
        assert fake.types("C:") == [TPM_PIN]

    def test_detect_has_no_target_option(self, monkeypatch, fake):
        _use(monkeypatch, fake)
        result = CliRunner().invoke(cli.main, ["detect", "--target", "TPM"])
        assert result.exit_code == 2
        assert "No such option" in result.output
        assert fake.calls == []

    def test_volume_table_only_when_verbose(self, monkeypatch, fake):
        fake.add_volume("C:", (TPM,))
        _use(monkeypatch, fake)
        quiet = CliRunner().invoke(cli.main, ["detect"])
        assert "BitLocker key protectors" not in quiet.output
        assert "Volumes" not in quiet.output
        assert "OK " in quiet.output

        fake.calls.clear()
        verbose = CliRunner().invoke(cli.main, ["detect", "--verbose"])
        assert "BitLocker key protectors (detect)" in verbose.output
        assert "Volumes" in verbose.output
        assert "OK " in verbose.output

    def test_no_admin(self, monkeypatch, fake):
        fake.elevated = False
        _use(monkeypatch, fake)
        result = CliRunner().invoke(cli.main, ["remediate"])
        assert result.exit_code == 1
        assert "no admin rights" in result.output

    def test_json_report(self, monkeypatch, fake, tmp_path):
        fake.add_volume("C:", (TPM,))
        _use(monkeypatch, fake)
        result = CliRunner().invoke(cli.main, [
            "detect", "--format", "json", "--output-dir", str(tmp_path),
        ])
        assert result.exit_code == 0
        assert len(list(tmp_path.glob("*_detect_*.json"))) == 1

    def test_volumes_table(self, monkeypatch, fake):
        fake.add_volume("C:", (TPM_PIN,))
        fake.add_volume("E:", (), drive_type=DriveType.REMOVABLE, status=None)
        _use(monkeypatch, fake)
        result = CliRunner().invoke(cli.main, ["volumes"])
        assert result.exit_code == 0
        assert "TpmPin" in result.output
        assert "Removable" in result.output
        assert fake.mutations == []

    def test_volumes_requires_admin(self, monkeypatch, fake):
        fake.elevated = False
        _use(monkeypatch, fake)
        result = CliRunner().invoke(cli.main, ["volumes"])
        assert result.exit_code == 1
