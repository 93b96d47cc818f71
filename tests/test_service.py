from __future__ import annotations

import datetime as dt

import pytest

from template_autofill import AutofillService, Settings
from template_autofill.errors import SessionNotFoundError, TemplateLoadError
from template_autofill.profiles import AuthorityProfile, default_meta

from conftest import make_inert_pdf


@pytest.fixture
def fetched():
    return {}


@pytest.fixture
def service(fetched, inert_pdf):
    def fetch(url):
        fetched.setdefault("urls", []).append(url)
        return inert_pdf

    return AutofillService(settings=Settings(), fetch=fetch)


def test_default_meta_date_is_unpadded() -> None:
    assert default_meta(dt.date(2026, 3, 7)) == {"generatedDate": "3/7/2026"}


def test_profile_from_record() -> None:
    profile = AuthorityProfile.from_record(
        {"gizmoFormUrl": "s3://forms/a.pdf", "lastName": "Fore", "npiNumber": 123, "tags": ["x"]}
    )

    assert profile.template_url == "s3://forms/a.pdf"
    assert profile.record == {"lastName": "Fore", "npiNumber": "123"}


def test_create_session_from_bytes(service, inert_pdf) -> None:
    session = service.create_session(
        subject={"firstName": "Alice", "zipCode": 62701, "address": None},
        template_bytes=inert_pdf,
    )

    assert service.get_session(session.session_id) is session
    assert session.datasets.subject == {"firstName": "Alice", "zipCode": "62701", "address": ""}
    assert "generatedDate" in session.datasets.meta


def test_meta_overrides_default(service, inert_pdf) -> None:
    session = service.create_session(meta={"generatedDate": "1/1/2000"}, template_bytes=inert_pdf)

    date_field = next(f for f in session.fields if f.token == "{date}")
    assert date_field.value == "1/1/2000"


def test_create_session_for_profile(service, fetched) -> None:
    session = service.create_session_for_profile(
        {"templateUrl": "s3://forms/fore.pdf", "lastName": "Fore"}, subject={"firstName": "Alice"}
    )

    assert fetched["urls"] == ["s3://forms/fore.pdf"]
    assert session.datasets.authority == {"lastName": "Fore"}
    doctor = next(f for f in session.fields if f.token == "{doctorLastName}")
    assert doctor.value == "Fore"


def test_profile_without_template_is_rejected(service) -> None:
    with pytest.raises(TemplateLoadError):
        service.create_session_for_profile({"lastName": "Fore"})


def test_session_needs_a_template(service) -> None:
    with pytest.raises(TemplateLoadError):
        service.create_session(subject={"firstName": "Alice"})


def test_reload_and_close(service, inert_pdf) -> None:
    session = service.create_session(template_bytes=inert_pdf)

    assert service.reload_session(session.session_id, template_bytes=make_inert_pdf([[(72, 100, "{zip}")]]))
    assert [f.token for f in session.fields] == ["{zip}"]

    assert service.close_session(session.session_id)
    assert not service.close_session(session.session_id)
    with pytest.raises(SessionNotFoundError):
        service.get_session(session.session_id)


def test_settings_from_env(monkeypatch) -> None:
    monkeypatch.setenv("AUTOFILL_LINE_TOLERANCE", "4.5")
    monkeypatch.setenv("AUTOFILL_MARK_SHAPE", " Square ")
    monkeypatch.setenv("AUTOFILL_SESSION_TTL", "60")

    settings = Settings.from_env()

    assert settings.line_tolerance == 4.5
    assert settings.mark_shape == "square"
    assert settings.session_ttl == 60
    assert settings.field_width == 200.0


def test_settings_reject_unknown_mark_shape() -> None:
    with pytest.raises(ValueError):
        Settings(mark_shape="star")
