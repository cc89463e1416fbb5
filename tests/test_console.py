"""
Tests for the bulk-import command-line interface.
"""

from bulk_import import console
from bulk_import.domain.imports.jobs import get_import_job


def test_process_command(make_job, capsys):
    job = make_job("first_name\nAlice\n")

    assert console.main(["process", job["id"]]) == 0

    assert get_import_job(job["id"])["status"] == "completed"
    assert "1 records written" in capsys.readouterr().out


def test_process_command_reports_failure(make_job):
    job = make_job("email\na@x.com\n")

    assert console.main(["process", job["id"]]) == 1
    assert get_import_job(job["id"])["status"] == "failed"


def test_status_command(make_job, capsys):
    job = make_job("first_name\nAlice\n")

    assert console.main(["status", job["id"]]) == 0
    assert console.main(["status", "missing"]) == 1
    assert "not found" in capsys.readouterr().out


def test_submit_command(tmp_path, monkeypatch):
    from bulk_import.domain.imports.jobs import list_import_jobs
    from tests.utils.seed_data import TEST_ORG_ID, TEST_USER_ID

    uploads = {}

    def fake_upload(content, file_name, folder="uploads"):
        uploads[f"{folder}/{file_name}"] = content
        return {"file_name": file_name, "file_path": f"{folder}/{file_name}", "size": len(content)}

    monkeypatch.setattr("bulk_import.integrations.storage.upload_file", fake_upload)
    csv_file = tmp_path / "contacts.csv"
    csv_file.write_text("first_name\nAlice\n")

    args = [
        "submit", str(csv_file),
        "--org-id", TEST_ORG_ID,
        "--user-id", TEST_USER_ID,
        "--type", "contacts",
    ]
    assert console.main(args) == 0
    assert console.main(args) == 0

    # Same file name twice: two objects, neither job loses its source
    assert len(uploads) == 2
    assert all(path.startswith(f"{TEST_ORG_ID}/") and path.endswith("-contacts.csv") for path in uploads)
    assert set(uploads.values()) == {b"first_name\nAlice\n"}

    jobs, total = list_import_jobs(org_id=TEST_ORG_ID)
    assert total == 2
    assert {job["file_name"] for job in jobs} == {"contacts.csv"}
    assert {job["file_path"] for job in jobs} == set(uploads)
