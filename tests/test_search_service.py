from __future__ import annotations

import asyncio

import pytest

from services.errors import TrainerNotFoundError
from services.search import MAX_PAGE, TrainerSearchService, normalize_paging, to_int, total_pages

BASE_URL = "https://example.fr/uploads"


@pytest.fixture
def service(db):
    return TrainerSearchService(db, BASE_URL + "/")


def test_normalize_paging_clamps():
    assert normalize_paging(0, 500) == (1, 50)
    assert normalize_paging(-4, 0) == (1, 1)
    assert normalize_paging("3", "20") == (3, 20)
    assert normalize_paging(None, None) == (1, 12)
    assert normalize_paging(10 ** 20, 50) == (MAX_PAGE, 50)


def test_to_int_behaves_like_intval():
    assert to_int("7") == 7
    assert to_int("2.9") == 2
    assert to_int("abc") == 0
    assert to_int("", 5) == 5
    assert to_int("inf") == 0
    assert to_int("-inf") == 0
    assert to_int("nan") == 0


def test_total_pages():
    assert total_pages(0, 12) == 0
    assert total_pages(12, 12) == 1
    assert total_pages(15, 12) == 2


def test_docker_scenario_paging(service, add_trainer):
    for _ in range(15):
        add_trainer(specialties=["docker"])

    result = asyncio.run(service.search("docker", "", 1, 12))
    assert result["total"] == 15
    assert len(result["trainers"]) == 12
    assert result["total_pages"] == 2
    assert result["page"] == 1
    assert result["page_size"] == 12

    second = asyncio.run(service.search("docker", "", 2, 12))
    assert len(second["trainers"]) == 3
    first_ids = {t["id"] for t in result["trainers"]}
    assert first_ids.isdisjoint(t["id"] for t in second["trainers"])


def test_page_past_the_end_keeps_total(service, add_trainer):
    add_trainer()
    result = asyncio.run(service.search("", "", 5, 12))
    assert result["trainers"] == []
    assert result["total"] == 1
    assert result["total_pages"] == 1


def test_no_results(service, add_trainer):
    add_trainer()
    result = asyncio.run(service.search("cobol"))
    assert result["trainers"] == []
    assert result["total"] == 0
    assert result["total_pages"] == 0


def test_public_records_hide_contact_details(service, db, add_trainer):
    trainer_id = add_trainer(user_id=7, username="jdupont", photo_file="trainer-files/photos/p.jpg")
    asyncio.run(db.update_trainer_status(trainer_id, "approved", "Appelé le 12/03"))
    trainer = asyncio.run(service.list_all())["trainers"][0]

    assert "email" not in trainer
    assert "phone" not in trainer
    assert "user_id" not in trainer
    assert "username" not in trainer
    assert "admin_notes" not in trainer
    assert trainer["photo_url"] == f"{BASE_URL}/trainer-files/photos/p.jpg"
    assert trainer["cv_url"] == f"{BASE_URL}/trainer-files/cv/cv.pdf"


def test_list_all_equals_empty_search(service, add_trainer):
    for _ in range(3):
        add_trainer()
    assert asyncio.run(service.list_all(1, 2)) == asyncio.run(service.search("", "", 1, 2))


def test_search_term_is_sanitized(service, add_trainer):
    add_trainer(bio="Expert Ansible")
    result = asyncio.run(service.search("  <b>ansible</b>  "))
    assert result["search_term"] == "ansible"
    assert result["total"] == 1


def test_profile_of_approved_trainer(service, add_trainer):
    trainer_id = add_trainer(first_name="Alice")
    profile = asyncio.run(service.get_trainer_profile(str(trainer_id)))
    assert profile["first_name"] == "Alice"
    assert "email" not in profile


@pytest.mark.parametrize("trainer_id", ["abc", 0, 999])
def test_profile_not_found(service, trainer_id):
    with pytest.raises(TrainerNotFoundError):
        asyncio.run(service.get_trainer_profile(trainer_id))


def test_profile_of_pending_trainer_is_not_found(service, add_trainer):
    trainer_id = add_trainer(approved=False)
    with pytest.raises(TrainerNotFoundError):
        asyncio.run(service.get_trainer_profile(trainer_id))


@pytest.mark.parametrize("page", ["inf", "-inf", "1e400", 10 ** 20, str(10 ** 30)])
def test_out_of_range_pages_do_not_overflow(service, add_trainer, page):
    add_trainer()
    result = asyncio.run(service.search("", "", page, 12))
    assert result["total"] == 1
    assert result["page"] >= 1
    assert result["total_pages"] == 1


def test_huge_page_is_empty_past_the_end(service, add_trainer):
    add_trainer()
    result = asyncio.run(service.search("", "", 10 ** 20, 50))
    assert result["trainers"] == []
    assert result["page"] == MAX_PAGE


def test_profile_id_beyond_storage_range_is_not_found(service):
    with pytest.raises(TrainerNotFoundError):
        asyncio.run(service.get_trainer_profile(10 ** 20))
