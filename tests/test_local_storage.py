"""Unit tests for the SQLite store, file helpers and YAML settings."""

import sqlite3

import pytest
import yaml

import config
from local_storage import SecuryFlexDatabase, save_invoice_local, save_profile_export_local


class TestTable:
    def test_add_find_update_delete(self, db):
        table = db.table("expenses")
        table.add_rows([
            {"Expense ID": "E1", "Guard ID": "g1", "Amount": 12.5},
            {"Expense ID": "E2", "Guard ID": "g2", "Amount": 7},
        ])
        assert table.count() == 2
        assert table.find_one({"Guard ID": "g1"})["Amount"] == "12.5"
        assert table.find_one({"Guard ID": "g1"})["Category"] == ""

        assert table.update_by_fields({"Expense ID": "E2"}, {"Amount": 8}) == 1
        assert table.find_one({"Expense ID": "E2"})["Amount"] == "8"

        assert table.delete_by_fields({"Guard ID": "g1"}) == 1
        assert [r["Expense ID"] for r in table.get_all_records()] == ["E2"]

    def test_empty_filters_do_nothing(self, db):
        table = db.table("expenses")
        table.add_rows([{"Expense ID": "E1"}])
        assert table.update_by_fields({}, {"Amount": 1}) == 0
        assert table.delete_by_fields({}) == 0
        assert table.count() == 1

    def test_bools_stored_as_text(self, db):
        db.table("notifications").add_rows([{"Notification ID": "n1", "Read": True}])
        assert db.table("notifications").find_one({})["Read"] == "TRUE"

    def test_records_hide_internal_id(self, db):
        db.table("expenses").add_rows([{"Expense ID": "E1"}])
        assert "_id" in db.table("expenses").get_all_rows()[0]
        assert "_id" not in db.table("expenses").get_all_records()[0]

    def test_unknown_table(self, db):
        with pytest.raises(ValueError, match="Unknown table"):
            db.table("nope")

    def test_schema_migration_adds_columns(self, tmp_path):
        path = str(tmp_path / "m.db")
        SecuryFlexDatabase(path, tables={"jobs": ["Job ID"]})
        db = SecuryFlexDatabase(path, tables={"jobs": ["Job ID", "Job Title"]})
        db.jobs.add_jobs([{"Job ID": "J1", "Job Title": "Portier"}])
        assert db.jobs.find_one({"Job ID": "J1"})["Job Title"] == "Portier"


class TestKeyValue:
    def test_set_get_delete(self, db):
        assert db.get_value("missing", "x") == "x"
        db.set_value("k", 3)
        db.set_value("k", 4)
        assert db.get_value("k") == "4"
        assert db.delete_value("k")
        assert not db.delete_value("k")

    def test_keys_with_prefix_escapes_wildcards(self, db):
        db.set_value("profile_a", "1")
        db.set_value("profile_b", "2")
        db.set_value("profileXc", "3")
        assert db.keys_with_prefix("profile_") == ["profile_a", "profile_b"]

    def test_set_values_writes_all_keys(self, db):
        db.set_values({"a": 1, "b": True})
        assert (db.get_value("a"), db.get_value("b")) == ("1", "TRUE")

    def test_set_values_is_all_or_nothing(self, db):
        conn = sqlite3.connect(str(db.db_path))
        conn.execute(
            "CREATE TRIGGER reject_bad BEFORE INSERT ON kv_store WHEN NEW.key = 'bad' "
            "BEGIN SELECT RAISE(ABORT, 'rejected'); END"
        )
        conn.commit()
        conn.close()

        db.set_value("a", "old")
        with pytest.raises(sqlite3.DatabaseError, match="rejected"):
            db.set_values({"a": "new", "bad": "x"})
        assert db.get_value("a") == "old"
        assert db.get_value("bad") is None


class TestFileStorage:
    def test_save_invoice_and_export(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = save_invoice_local("FACTUUR", "SAL-2024-0001")
        assert (tmp_path / path).read_text(encoding="utf-8") == "FACTUUR"
        path = save_profile_export_local("{}", "guard 1")
        assert path.endswith("profile_guard_1.json")

    def test_file_names_stay_inside_local_data(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = save_profile_export_local("{}", "../../etc/passwd")
        assert path.endswith("profile_etc_passwd.json")
        assert (tmp_path / "local_data" / "exports" / "profile_etc_passwd.json").exists()

        path = save_invoice_local("X", "../SAL-2024-0002.txt")
        assert path.endswith("SAL-2024-0002.txt")
        assert (tmp_path / "local_data" / "invoices" / "SAL-2024-0002.txt").exists()


class TestSettings:
    def test_defaults_when_missing(self, tmp_path):
        settings = config._get_app_settings(str(tmp_path / "none.yaml"))
        assert settings == config.DEFAULT_SETTINGS
        assert settings is not config.DEFAULT_SETTINGS

    def test_merges_partial_file(self, tmp_path):
        path = tmp_path / "s.yaml"
        path.write_text(yaml.safe_dump({
            "search": {"debounce_ms": 500},
            "muted_companies": ["G4S", "g4s ", "Trigion"],
        }), encoding="utf-8")
        settings = config._get_app_settings(str(path))
        assert settings["search"]["debounce_ms"] == 500
        assert settings["search"]["cache_minutes"] == 5
        assert settings["btw"]["kor_threshold"] == 20000.0
        assert settings["muted_companies"] == ["G4S", "Trigion"]

    def test_invalid_yaml_falls_back(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("search: [unclosed", encoding="utf-8")
        assert config._get_app_settings(str(path)) == config.DEFAULT_SETTINGS

    def test_save_and_reload(self, tmp_path, settings):
        path = str(tmp_path / "s.yaml")
        settings["notifications"]["quiet_hours_start"] = "23:00"
        config._save_app_settings(settings, path)
        assert config._get_app_settings(path)["notifications"]["quiet_hours_start"] == "23:00"
