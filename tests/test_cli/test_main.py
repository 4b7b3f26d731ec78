import pytest

from signed_query.__main__ import main


SCHEMA = """
CREATE TABLE users (id INTEGER, name TEXT);
INSERT INTO users VALUES (1, 'Alice');
INSERT INTO users VALUES (2, 'Bob');
"""


@pytest.fixture
def db_args(tmp_path):
    script = tmp_path / "db.sql"
    script.write_text(SCHEMA, encoding="utf-8")
    return [
        "--db", str(tmp_path / "exchange.db"),
        "--init-script", str(script),
        "--exchange-dir", str(tmp_path / "requests"),
        "--timeout", "30",
        "--log-level", "WARNING",
    ]


def test_cli_runs_an_exchange(db_args, capsys):
    code = main(["--fields", "name", "--tables", "users", "--condition", "id=1"] + db_args)

    out = capsys.readouterr().out
    assert code == 0
    assert "received 1 rows with a valid signature" in out
    assert "Row 1: Alice" in out


def test_cli_accepts_legacy_xml_request(tmp_path, db_args, capsys):
    xml = tmp_path / "requete.xml"
    xml.write_text("<REQUETE><CHAMP>name</CHAMP><TABLE>users</TABLE></REQUETE>", encoding="utf-8")

    code = main(["--request-xml", str(xml)] + db_args)

    out = capsys.readouterr().out
    assert code == 0
    assert "Row 2: Bob" in out


def test_cli_reports_failed_run(db_args, capsys):
    code = main(["--fields", "missing_column", "--tables", "users"] + db_args)

    err = capsys.readouterr().err
    assert code == 1
    assert "responder: failed" in err
    assert "requester: aborted" in err


def test_cli_requires_a_request(db_args):
    with pytest.raises(SystemExit) as ei:
        main(["--fields", "name"] + db_args)
    assert ei.value.code == 2


def test_cli_reports_missing_request_file(tmp_path, db_args, capsys):
    code = main(["--request-xml", str(tmp_path / "missing.xml")] + db_args)

    assert code == 1
    assert "Exchange failed" in capsys.readouterr().err
