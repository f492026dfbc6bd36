from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

import pytest


def pytest_configure():
    # Корень проекта в sys.path для импортов вида 'services.search'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    os.environ.setdefault("SECRET_KEY", "test-secret")


EXPERIENCE = (
    "Quinze ans d'administration de systèmes Linux en production, "
    "dont huit comme formateur certifié."
)


@pytest.fixture
def make_trainer():
    """Фабрика анкет с валидными значениями по умолчанию"""
    from database import Trainer

    counter = {"n": 0}

    def factory(**overrides) -> Trainer:
        counter["n"] += 1
        data = dict(
            id=None,
            first_name="Jean",
            last_name=f"Formateur{counter['n']}",
            email=f"trainer{counter['n']}@example.fr",
            phone="0612345678",
            specialties=["devops"],
            experience=EXPERIENCE,
            cv_file="trainer-files/cv/cv.pdf",
            intervention_regions=["ile-de-france"],
            rgpd_consent=True,
        )
        data.update(overrides)
        return Trainer(**data)

    return factory


@pytest.fixture
def db(tmp_path):
    from database import Database

    database = Database(str(tmp_path / "trainers.db"))
    asyncio.run(database.init_db())
    return database


@pytest.fixture
def add_trainer(db, make_trainer):
    """Создать анкету; approved=True сразу одобряет её"""
    from database import STATUS_APPROVED

    def add(approved: bool = True, **overrides) -> int:
        async def run():
            trainer_id = await db.create_trainer(make_trainer(**overrides))
            if approved:
                await db.update_trainer_status(trainer_id, STATUS_APPROVED)
            return trainer_id

        return asyncio.run(run())

    return add


@pytest.fixture
def valid_values():
    """Значения формы, проходящие все четыре шага"""
    return {
        "first_name": "Jean",
        "last_name": "Dupont",
        "email": "jean.dupont@example.fr",
        "phone": "06 12 34 56 78",
        "company": "",
        "linkedin_url": "",
        "specialties": ["devops", "cloud"],
        "intervention_regions": ["ile-de-france", "occitanie", "distanciel"],
        "availability": "flexible",
        "hourly_rate": "",
        "experience": EXPERIENCE,
        "bio": "",
        "cv_file": {"name": "cv.pdf", "size": 120_000, "mime_type": "application/pdf", "file_id": None},
        "photo_file": None,
        "rgpd_consent": True,
        "marketing_consent": False,
    }
