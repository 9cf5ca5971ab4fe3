"""Unit tests for job data sources, the source factory and job collection."""

from datetime import datetime

import pytest
import requests

from core.factory import create_data_source, create_repository
from core.sources import FeedStateManager, JsonFeedSource, StaticJobSource, to_job_row
from pipeline.collection import build_sources, collect_new_jobs


class FakeResponse:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.response


class TestStaticJobSource:
    def test_yields_seed_jobs_with_relative_dates(self):
        now = datetime(2024, 6, 1, 9, 30)
        items = list(StaticJobSource(now=now).fetch_jobs())
        assert len(items) >= 5
        first = items[0]
        assert first["job_id"] == "G4S-OBJ-001"
        assert first["postal_code"] == "3083AA"
        assert first["location"] == "Rotterdam Zuid"
        assert first["start_date"] > now
        assert first["end_date"] > first["start_date"]

    def test_always_available(self):
        assert StaticJobSource().is_available()


class TestToJobRow:
    def test_converts_item(self):
        row = to_job_row({
            "job_id": "X1",
            "job_title": " Portier ",
            "company_name": "Trigion",
            "hourly_rate": 23.0,
            "required_certificates": "WPBR, BHV",
        }, "feed", created_at=datetime(2024, 1, 2, 3, 4))
        assert row["Job Title"] == "Portier"
        assert row["Required Certificates"] == "WPBR;BHV"
        assert row["Status"] == "active"
        assert row["Source"] == "feed"
        assert row["Created At"] == "2024-01-02T03:04:00"


class TestJsonFeedSource:
    def test_normalizes_camel_case_and_html(self):
        session = FakeSession(FakeResponse({"jobs": [
            {
                "jobId": "F1",
                "jobTitle": "Nachtbeveiliger",
                "companyName": "Facilicom",
                "location": "Utrecht Centrum, 3584 cx",
                "hourlyRate": "24,75",
                "descriptionHtml": "<p>Patrouille <b>nacht</b></p>",
                "requiredCertificates": "WPBR Diploma A, EHBO Diploma",
            },
            {"jobId": "F2", "jobTitle": "Zonder bedrijf"},
            "garbage",
        ]}))
        source = JsonFeedSource("https://feed.example/jobs", session=session, timeout=5)
        items = list(source.fetch_jobs())
        assert len(items) == 1
        item = items[0]
        assert item["job_id"] == "F1"
        assert item["location"] == "Utrecht Centrum"
        assert item["postal_code"] == "3584CX"
        assert item["hourly_rate"] == 24.75
        assert "**nacht**" in item["description"]
        assert item["required_certificates"] == ["WPBR Diploma A", "EHBO Diploma"]
        assert session.calls == [("https://feed.example/jobs", 5)]

    def test_plain_list_payload(self):
        session = FakeSession(FakeResponse([{"id": "F3", "title": "Portier", "company": "ASN"}]))
        items = list(JsonFeedSource("https://feed.example", session=session).fetch_jobs())
        assert [i["job_id"] for i in items] == ["F3"]

    def test_network_error_marks_unavailable(self):
        session = FakeSession(error=requests.ConnectionError("down"))
        source = JsonFeedSource("https://feed.example", session=session)
        assert list(source.fetch_jobs()) == []
        assert not source.is_available()
        # Backing off: no second request
        assert list(source.fetch_jobs()) == []
        assert len(session.calls) == 1

    def test_invalid_json_marks_unavailable(self):
        session = FakeSession(FakeResponse(ValueError("not json")))
        source = JsonFeedSource("https://feed.example", session=session)
        assert list(source.fetch_jobs()) == []
        assert not source.is_available()

    def test_without_url_not_available(self):
        source = JsonFeedSource("", session=FakeSession())
        assert not source.is_available()
        assert list(source.fetch_jobs()) == []


class TestFeedStateManager:
    def test_retry_after_delay(self, monkeypatch):
        state = FeedStateManager(retry_delay=10)
        clock = {"t": 1000.0}
        monkeypatch.setattr("core.sources.feed_source.time.time", lambda: clock["t"])
        state.mark_unavailable()
        assert not state.is_available()
        clock["t"] = 1011.0
        assert state.is_available()


class TestFactory:
    def test_create_known_sources(self):
        assert isinstance(create_data_source("static"), StaticJobSource)
        assert isinstance(create_data_source(" FEED ", url="https://x"), JsonFeedSource)

    def test_unknown_source_raises(self):
        with pytest.raises(ValueError, match="Unknown data source"):
            create_data_source("telex")


class TestCollection:
    def test_build_sources_skips_unknown(self, settings, monkeypatch):
        monkeypatch.setattr("pipeline.collection.JOB_SOURCES", [])
        settings["search"]["job_sources"] = ["static", "bogus"]
        sources = build_sources(settings)
        assert [s.name for s in sources] == ["static"]

    def test_collect_new_jobs_dedupes(self, db):
        repo = create_repository(db)
        sources = [StaticJobSource()]
        flag = {"flag": False}
        added = collect_new_jobs(repo, sources, flag)
        assert added == len(list(StaticJobSource().fetch_jobs()))
        assert collect_new_jobs(repo, sources, flag) == 0

    def test_collect_stops_on_shutdown(self, db):
        repo = create_repository(db)
        assert collect_new_jobs(repo, [StaticJobSource()], {"flag": True}) == 0
        assert repo.get_all_records() == []
