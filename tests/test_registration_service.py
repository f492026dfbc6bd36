from __future__ import annotations

import asyncio

import pytest

from database import STATUS_APPROVED, STATUS_PENDING
from services.registration import RegistrationService, clean_values

CV_PATH = "trainer-files/cv/abc.pdf"


@pytest.fixture
def service(db):
    return RegistrationService(db)


def test_register_stores_pending_trainer(service, db, valid_values):
    result = asyncio.run(service.register(valid_values, CV_PATH, user_id=5, username="jdupont"))

    assert result["success"] is True
    assert result["status"] == STATUS_PENDING
    trainer = asyncio.run(db.get_trainer_by_id(result["trainer_id"]))
    assert trainer.phone == "0612345678"
    assert trainer.cv_file == CV_PATH
    assert trainer.user_id == 5
    assert trainer.specialties == ["devops", "cloud"]
    # Анкета не видна в поиске до одобрения
    assert asyncio.run(db.search_approved())[0] == 0


def test_auto_approve(db, valid_values):
    service = RegistrationService(db, auto_approve=True)
    result = asyncio.run(service.register(valid_values, CV_PATH))
    assert result["status"] == STATUS_APPROVED
    assert asyncio.run(db.search_approved())[0] == 1


def test_duplicate_email(service, valid_values):
    asyncio.run(service.register(valid_values, CV_PATH))
    valid_values["email"] = "JEAN.DUPONT@example.fr"
    result = asyncio.run(service.register(valid_values, CV_PATH))
    assert result == {
        "success": False,
        "message": "Cette adresse email est déjà enregistrée",
        "code": "email_exists",
    }


def test_server_side_validation(service, valid_values):
    valid_values["experience"] = "trop court"
    result = asyncio.run(service.register(valid_values, CV_PATH))
    assert result["success"] is False
    assert result["code"] == "validation_error"
    assert result["message"].startswith("Description trop courte")


def test_missing_consent_is_refused(service, valid_values):
    valid_values["rgpd_consent"] = False
    result = asyncio.run(service.register(valid_values, CV_PATH))
    assert result["success"] is False
    assert result["message"] == "Le consentement RGPD est obligatoire"


def test_clean_values_strips_markup(valid_values):
    valid_values["first_name"] = " <b>Jean</b> "
    valid_values["bio"] = "Ligne 1\n<i>Ligne 2</i>"
    valid_values["email"] = " Jean@Example.FR "
    cleaned = clean_values(valid_values)
    assert cleaned["first_name"] == "Jean"
    assert cleaned["bio"] == "Ligne 1\nLigne 2"
    assert cleaned["email"] == "jean@example.fr"
