"""
End-to-end tests for import jobs: row accounting, fatal parse errors,
progress reporting, cancellation and configuration.
"""

import threading

import pytest

from bulk_import import DataImporter, ImportConfig, JobState
from bulk_import.importer import main
from crm import EntityType, Lead

from conftest import InMemoryStore


def test_mixed_success_and_validation_failure(importer, store):
    """Row 2 imports, row 3 misses its name and is reported as row 3."""
    job = importer.run("leads", "name,email\nJohn,j@x.com\n,bad-email")

    result = job.result
    assert result.success == 1
    assert result.total == 2
    assert len(result.errors) == 1
    assert "Row 3" in result.errors[0]
    assert "'name'" in result.errors[0]
    assert store.created == [Lead(name="John", email="j@x.com")]


def test_unparsable_optional_number_still_imports(importer, store):
    job = importer.run("leads", "name,email,value\nJohn,j@x.com,not-a-number")

    assert job.result.to_dict() == {"success": 1, "errors": [], "total": 1}
    assert store.created[0].value is None


def test_contract_without_value_is_rejected(importer, store):
    job = importer.run("contracts", "title,customer_name,value\nMSA,Acme,\nNDA,Beta,500")

    assert job.result.success == 1
    assert job.result.errors == ["Row 2: Missing required field 'value'"]
    assert store.created[0].title == "NDA"


def test_lead_without_value_is_accepted(importer):
    job = importer.run("leads", "name,email,value\nJohn,j@x.com,")

    assert job.result.success == 1


def test_parse_failure_is_fatal(importer, store):
    job = importer.run("leads", 'name,email\n"John,j@x.com\nSarah,s@x.com')

    assert job.state is JobState.FAILED
    assert job.result.success == 0
    assert job.result.total == 0
    assert len(job.result.errors) == 1
    assert job.result.errors[0].startswith("File parsing error:")
    assert job.result.failed
    assert job.rows == []
    assert store.calls == 0


def test_undecodable_upload_is_fatal(importer):
    job = importer.run("leads", b"name,email\n\xff\xfe,x")

    assert job.result.total == 0
    assert job.result.errors[0].startswith("Upload error:")


def test_header_only_file_is_an_empty_success(importer):
    job = importer.run("customers", "name,email,phone\n")

    assert job.state is JobState.COMPLETED
    assert job.result.to_dict() == {"success": 0, "errors": [], "total": 0}
    assert not job.result.failed


def test_nth_data_row_is_reported_as_n_plus_one(importer):
    lines = ["name,email"] + [f"Lead {i},l{i}@x.com" for i in range(1, 5)] + [",missing@x.com"]

    job = importer.run("leads", "\n".join(lines))

    assert job.result.errors == ["Row 6: Missing required field 'name'"]


def test_row_accounting_holds_with_every_failure_kind():
    store = InMemoryStore(fail_when=lambda r: r.name.startswith("Down"))
    importer = DataImporter({EntityType.LEADS: store})
    text = "\n".join([
        "name,email",
        "Ok 1,a@x.com",
        ",b@x.com",
        "Down 1,c@x.com",
        "Ok 2,d@x.com",
        "Down 2,e@x.com",
        "Ok 3,",
    ])

    result = importer.run("leads", text).result

    assert result.total == 6
    assert result.success == 2
    assert result.success + len(result.errors) == result.total
    assert [e.split(":")[0] for e in result.errors] == ["Row 3", "Row 4", "Row 6", "Row 7"]


def test_every_row_rejected(importer):
    result = importer.run("contracts", "title,customer_name,value\n,,\n,,").result

    assert result.success == 0
    assert len(result.errors) == result.total == 2


def test_reimporting_creates_duplicates(importer, store):
    """No deduplication: the same file imported twice creates every record twice."""
    text = "name,email\nJohn,j@x.com\nSarah,s@x.com"

    importer.run("leads", text)
    importer.run("leads", text)

    assert len(store.created) == 4
    assert [lead.email for lead in store.created] == ["j@x.com", "s@x.com", "j@x.com", "s@x.com"]


def test_job_keeps_rows_and_outcomes_in_order(importer):
    job = importer.run("leads", "name,email\nA,a@x.com\n,b@x.com\nC,c@x.com")

    assert job.entity_type is EntityType.LEADS
    assert job.state is JobState.COMPLETED
    assert [r.row_number for r in job.rows] == [2, 3, 4]
    assert [o.row_number for o in job.outcomes] == [2, 3, 4]
    assert job.source_text.startswith("name,email")


def test_progress_is_reported_in_stages(importer):
    seen = []
    text = "name,email\n" + "\n".join(f"L{i},l{i}@x.com" for i in range(4))

    job = importer.run("leads", text, on_progress=seen.append)

    assert seen == [10.0, 30.0, 50.0, 70.0, 90.0, 100.0]
    assert job.progress == 100.0


def test_progress_is_monotonic_with_failures(importer):
    seen = []
    text = "name,email\n" + "\n".join(f",l{i}@x.com" if i % 2 else f"L{i},l{i}@x.com" for i in range(7))

    importer.run("leads", text, on_progress=seen.append)

    assert seen == sorted(seen)
    assert seen[0] == 10.0
    assert seen[-1] == 100.0


def test_progress_for_empty_body(importer):
    seen = []

    importer.run("leads", "name,email", on_progress=seen.append)

    assert seen == [10.0, 100.0]


def test_cancellation_skips_remaining_rows(importer, store):
    cancel = threading.Event()

    def on_progress(value):
        if value > 10:
            cancel.set()

    text = "name,email\nA,a@x.com\nB,b@x.com\nC,c@x.com"
    result = importer.run("leads", text, on_progress=on_progress, cancel_event=cancel).result

    assert result.success == 1
    assert result.errors == [
        "Row 3: Skipped, import cancelled",
        "Row 4: Skipped, import cancelled",
    ]
    assert result.success + len(result.errors) == result.total
    assert len(store.created) == 1


def test_long_cell_does_not_fail_the_file(importer, store):
    notes = "x" * 200_000
    job = importer.run("leads", f"name,email,notes\nJohn,j@x.com,{notes}\nSarah,s@x.com,hi")

    assert job.state is JobState.COMPLETED
    assert job.result.to_dict() == {"success": 2, "errors": [], "total": 2}
    assert store.created[0].notes == notes


def test_concurrent_import_matches_sequential(stores):
    text = "name,email\n" + "\n".join(
        f",l{i}@x.com" if i % 3 == 0 else f"L{i},l{i}@x.com" for i in range(10)
    )

    sequential = DataImporter(stores).run("leads", text).result
    concurrent = DataImporter(stores, ImportConfig(concurrency=4)).run("leads", text).result

    assert sequential.to_dict() == concurrent.to_dict()


def test_validate_does_not_create_anything(importer, store):
    result = importer.validate("leads", "name,email\nJohn,j@x.com\n,x@x.com")

    assert result.success == 1
    assert result.errors == ["Row 3: Missing required field 'name'"]
    assert store.calls == 0


def test_validate_reports_parse_failure(importer):
    result = importer.validate("leads", "")

    assert result.failed
    assert result.errors == ["File parsing error: File has no header row"]


def test_unknown_entity_type(importer):
    with pytest.raises(ValueError, match="Unknown entity type"):
        importer.run("invoices", "name\nx")


def test_missing_store(store):
    importer = DataImporter({EntityType.LEADS: store})

    with pytest.raises(ValueError, match="contracts"):
        importer.run("contracts", "title\nx")


def test_import_file(importer, store, tmp_path):
    path = tmp_path / "leads.csv"
    path.write_bytes("\ufeffname,email\nJohn,j@x.com\n".encode("utf-8"))

    job = importer.import_file(path, EntityType.LEADS)

    assert job.result.success == 1
    assert store.created[0].name == "John"


def test_import_missing_file(importer, tmp_path):
    with pytest.raises(FileNotFoundError):
        importer.import_file(tmp_path / "nope.csv", "leads")


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("IMPORT_DELIMITER", ";")
    monkeypatch.setenv("IMPORT_CONCURRENCY", "3")
    monkeypatch.delenv("IMPORT_ENCODING", raising=False)

    config = ImportConfig.from_env()

    assert config.delimiter == ";"
    assert config.concurrency == 3
    assert config.encoding == "utf-8-sig"


@pytest.mark.parametrize("value", ["0", "-2", "many"])
def test_config_rejects_bad_concurrency(monkeypatch, value):
    monkeypatch.setenv("IMPORT_CONCURRENCY", value)

    with pytest.raises(ValueError):
        ImportConfig.from_env()


@pytest.mark.parametrize("value", ["", ";;", "\t\t"])
def test_config_rejects_bad_delimiter(monkeypatch, value):
    monkeypatch.setenv("IMPORT_DELIMITER", value)

    with pytest.raises(ValueError, match="delimiter"):
        ImportConfig.from_env()


def test_cli_reports_bad_delimiter(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("IMPORT_DELIMITER", ";;")
    monkeypatch.delenv("IMPORT_CONCURRENCY", raising=False)
    path = tmp_path / "leads.csv"
    path.write_text("name,email\nJohn,j@x.com\n", encoding="utf-8")

    assert main(["import", str(path), "--type", "leads", "--dry-run"]) == 1
    assert "delimiter must be a single character" in capsys.readouterr().out


def test_configured_delimiter_is_used(store):
    importer = DataImporter({EntityType.LEADS: store}, ImportConfig(delimiter=";"))

    result = importer.run("leads", "name;email\nJohn;j@x.com").result

    assert result.success == 1


def test_cli_writes_template(tmp_path, capsys):
    code = main(["template", "--type", "customers", "--output", str(tmp_path)])

    assert code == 0
    assert (tmp_path / "customers_template.csv").exists()
    assert "customers_template.csv" in capsys.readouterr().out


def test_cli_dry_run(tmp_path, capsys, monkeypatch):
    monkeypatch.delenv("IMPORT_CONCURRENCY", raising=False)
    path = tmp_path / "leads.csv"
    path.write_text("name,email\nJohn,j@x.com\n,x@x.com\n")

    code = main(["import", str(path), "--type", "leads", "--dry-run"])

    out = capsys.readouterr().out
    assert code == 1
    assert "1 imported" in out
    assert "Row 3: Missing required field 'name'" in out


def test_cli_dry_run_missing_file(tmp_path, capsys):
    code = main(["import", str(tmp_path / "nope.csv"), "--type", "leads", "--dry-run"])

    assert code == 1
    assert "Error:" in capsys.readouterr().out
