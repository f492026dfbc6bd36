from __future__ import annotations

import asyncio

import pytest

from database import Database, STATUS_APPROVED, STATUS_PENDING
from database.database import build_search_filter, escape_like
from services.errors import DuplicateEmailError, QueryError, SubmissionError


def test_search_returns_only_approved(db, add_trainer):
    add_trainer(first_name="Alice")
    add_trainer(first_name="Bruno")
    add_trainer(approved=False, first_name="Chloe")

    total, trainers = asyncio.run(db.search_approved())
    assert total == 2
    assert {t.first_name for t in trainers} == {"Alice", "Bruno"}
    assert all(t.status == STATUS_APPROVED for t in trainers)


def test_docker_search_counts_all_matches_and_limits_page(db, add_trainer):
    for _ in range(15):
        add_trainer(specialties=["devops", "docker"])
    add_trainer(approved=False, specialties=["docker"])
    add_trainer(specialties=["reseaux"])

    total, trainers = asyncio.run(db.search_approved("docker", "", 12, 0))
    assert total == 15
    assert len(trainers) == 12

    total, trainers = asyncio.run(db.search_approved("docker", "", 12, 12))
    assert total == 15
    assert len(trainers) == 3


def test_search_matches_text_fields_case_insensitively(db, add_trainer):
    add_trainer(company="Acme Cloud")
    add_trainer(bio="Passionné de Kubernetes")
    add_trainer(last_name="Martin")

    assert asyncio.run(db.search_approved("acme"))[0] == 1
    assert asyncio.run(db.search_approved("KUBERNETES"))[0] == 1
    assert asyncio.run(db.search_approved("martin"))[0] == 1
    assert asyncio.run(db.search_approved("cobol"))[0] == 0


def test_search_folds_accented_capitals(db, add_trainer):
    add_trainer(first_name="Élodie")
    add_trainer(company="ÉCOLE NUMÉRIQUE")
    add_trainer(first_name="Elodie")

    total, trainers = asyncio.run(db.search_approved("élodie"))
    assert total == 1
    assert trainers[0].first_name == "Élodie"
    assert asyncio.run(db.search_approved("ÉLODIE"))[0] == 1
    assert asyncio.run(db.search_approved("école numérique"))[0] == 1


def test_specialty_filter_is_combined_with_term(db, add_trainer):
    add_trainer(specialties=["cloud"], bio="Terraform et AWS")
    add_trainer(specialties=["devops"], bio="Terraform et GitLab CI")
    add_trainer(specialties=["cloud"], bio="Azure")

    total, trainers = asyncio.run(db.search_approved("terraform", "cloud"))
    assert total == 1
    assert trainers[0].bio == "Terraform et AWS"

    assert asyncio.run(db.search_approved("", "cloud"))[0] == 2


def test_like_wildcards_in_term_are_literal(db, add_trainer):
    add_trainer(bio="Disponible 100% à distance")
    add_trainer(bio="Plus de 1000 heures de formation")
    add_trainer(bio="linux_admin certifié")
    add_trainer(bio="linuxXadmin")

    total, trainers = asyncio.run(db.search_approved("100%"))
    assert total == 1
    assert "100%" in trainers[0].bio

    total, trainers = asyncio.run(db.search_approved("linux_admin"))
    assert total == 1
    assert trainers[0].bio == "linux_admin certifié"


def test_results_are_newest_first(db, add_trainer):
    ids = [add_trainer() for _ in range(4)]
    _, trainers = asyncio.run(db.search_approved())
    assert [t.id for t in trainers] == sorted(ids, reverse=True)


def test_search_without_schema_raises_query_error(tmp_path):
    broken = Database(str(tmp_path / "empty.db"))
    with pytest.raises(QueryError) as exc:
        asyncio.run(broken.search_approved("docker"))
    assert exc.value.code == "search_error"


def test_duplicate_email_is_rejected(db, make_trainer):
    asyncio.run(db.create_trainer(make_trainer(email="dup@example.fr")))
    with pytest.raises(DuplicateEmailError) as exc:
        asyncio.run(db.create_trainer(make_trainer(email="dup@example.fr")))
    assert exc.value.code == "email_exists"


def test_missing_consent_is_rejected(db, make_trainer):
    with pytest.raises(SubmissionError) as exc:
        asyncio.run(db.create_trainer(make_trainer(rgpd_consent=False)))
    assert exc.value.code == "rgpd_required"


def test_same_user_reregistration_updates_record(db, make_trainer):
    first_id = asyncio.run(db.create_trainer(make_trainer(user_id=42, first_name="Ancien")))
    second_id = asyncio.run(db.create_trainer(make_trainer(user_id=42, first_name="Nouveau")))
    assert first_id == second_id

    trainer = asyncio.run(db.get_trainer_by_user_id(42))
    assert trainer.first_name == "Nouveau"
    assert trainer.status == STATUS_PENDING


def test_lists_round_trip_through_storage(db, make_trainer):
    trainer_id = asyncio.run(db.create_trainer(make_trainer(
        specialties=["cloud", "devops"],
        intervention_regions=["bretagne", "distanciel"],
    )))
    trainer = asyncio.run(db.get_trainer_by_id(trainer_id))
    assert trainer.specialties == ["cloud", "devops"]
    assert trainer.intervention_regions == ["bretagne", "distanciel"]
    assert trainer.rgpd_consent is True


def test_get_approved_trainer_hides_pending(db, add_trainer):
    pending_id = add_trainer(approved=False)
    approved_id = add_trainer()
    assert asyncio.run(db.get_approved_trainer(pending_id)) is None
    assert asyncio.run(db.get_approved_trainer(approved_id)).id == approved_id


def test_stats(db, add_trainer):
    add_trainer(specialties=["cloud"])
    add_trainer(specialties=["cloud"])
    add_trainer(specialties=["devops"])
    add_trainer(approved=False)

    stats = asyncio.run(db.get_stats())
    assert stats == {"total": 3, "pending": 1, "specialties": 2, "this_month": 3}


def test_build_search_filter_always_restricts_to_approved():
    where, params = build_search_filter()
    assert where == "WHERE status = ?"
    assert params == [STATUS_APPROVED]

    where, params = build_search_filter("a%b", "cloud")
    assert params[0] == STATUS_APPROVED
    assert params[1] == "%a\\%b%"
    assert params[-1] == "%cloud%"
    assert "casefold(first_name) LIKE ?" in where

    _, params = build_search_filter("Élodie", "CLOUD")
    assert params[1] == "%élodie%"
    assert params[-1] == "%cloud%"


def test_escape_like():
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"
