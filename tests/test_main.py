import sys
import os

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from main import main

CANONICAL = '\n'.join([
    "type, client, tx, amount",
    "deposit, 1, 1, 1.0",
    "deposit, 2, 2, 2.0",
    "deposit, 1, 3, 2.0",
    "withdrawal, 1, 4, 1.5",
    "dispute, 1, 4",
    "resolve, 1, 4",
    "dispute, 1, 3",
    "withdrawal, 2, 5, 3.0",
    "chargeback, 1, 3",
])


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PAYMENTS_WORKERS", "PAYMENTS_POLICY", "PAYMENTS_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def canonical_csv(tmp_path):
    csv_file = tmp_path / "transactions.csv"
    csv_file.write_text(CANONICAL)
    return str(csv_file)


class TestMain:
    def test_reference_output(self, canonical_csv, capsys):
        assert main([canonical_csv, "--policy", "reference"]) == 0

        out = capsys.readouterr().out
        assert out == (
            "client,available,held,total,locked\n"
            "1,1,0,1,true\n"
            "2,-1,0,-1,false\n"
        )

    def test_default_output(self, canonical_csv, capsys):
        assert main([canonical_csv]) == 0

        out = capsys.readouterr().out
        assert out == (
            "client,available,held,total,locked\n"
            "1,1,0,1,true\n"
            "2,-1,0,-1,false\n"
        )

    def test_strict_output(self, canonical_csv, capsys):
        assert main([canonical_csv, "--policy", "strict"]) == 0

        out = capsys.readouterr().out
        assert out == (
            "client,available,held,total,locked\n"
            "1,-0.5,0,-0.5,true\n"
            "2,2,0,2,false\n"
        )

    def test_policy_from_env(self, canonical_csv, capsys, monkeypatch):
        monkeypatch.setenv("PAYMENTS_POLICY", "strict")
        monkeypatch.setenv("PAYMENTS_WORKERS", "3")

        assert main([canonical_csv]) == 0
        assert "2,2,0,2,false" in capsys.readouterr().out

    def test_flags_override_env(self, canonical_csv, capsys, monkeypatch):
        monkeypatch.setenv("PAYMENTS_POLICY", "strict")

        assert main([canonical_csv, "--policy", "reference", "--workers", "2"]) == 0
        assert "2,-1,0,-1,false" in capsys.readouterr().out

    def test_unreadable_input(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.csv")]) == 1
        assert capsys.readouterr().out == ""

    def test_directory_input(self, tmp_path, capsys):
        assert main([str(tmp_path)]) == 1
        assert capsys.readouterr().out == ""

    def test_missing_argument(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2
        assert "usage" in capsys.readouterr().err

    def test_too_many_arguments(self, canonical_csv):
        with pytest.raises(SystemExit) as exc_info:
            main([canonical_csv, "extra.csv"])
        assert exc_info.value.code == 2

    def test_invalid_workers(self, canonical_csv):
        with pytest.raises(SystemExit) as exc_info:
            main([canonical_csv, "--workers", "0"])
        assert exc_info.value.code == 2
