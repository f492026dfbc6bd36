"""Хранение загруженных файлов тренеров"""
import logging
import os
import uuid
from pathlib import Path
from typing import Tuple

logger = logging.getLogger(__name__)

ROOT_FOLDER = "trainer-files"
FOLDERS = {
    "cv": f"{ROOT_FOLDER}/cv",
    "photo": f"{ROOT_FOLDER}/photos",
}


class FileStorage:
    """Раскладка файлов по папкам: trainer-files/cv, trainer-files/photos"""

    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir)

    def init_folders(self):
        """Создать папки загрузки"""
        for folder in FOLDERS.values():
            (self.base_dir / folder).mkdir(parents=True, exist_ok=True)
        logger.info(f"Папки загрузки готовы: {self.base_dir}")

    def new_path(self, kind: str, filename: str) -> Tuple[str, Path]:
        """Новое уникальное имя файла: (относительный путь, абсолютный путь)"""
        if kind not in FOLDERS:
            raise ValueError(f"Unknown file kind: {kind}")
        extension = os.path.splitext(filename or "")[1].lower()
        relative = f"{FOLDERS[kind]}/{uuid.uuid4().hex}{extension}"
        return relative, self.absolute(relative)

    def absolute(self, relative: str) -> Path:
        return self.base_dir / relative

    def exists(self, relative: str) -> bool:
        return bool(relative) and self.absolute(relative).is_file()

    def save_bytes(self, kind: str, filename: str, data: bytes) -> str:
        """Сохранить содержимое файла, вернуть относительный путь"""
        relative, path = self.new_path(kind, filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info(f"Сохранён файл {relative} ({len(data)} байт)")
        return relative

    def delete(self, relative: str):
        """Удалить файл, если он существует"""
        if relative and self.absolute(relative).is_file():
            self.absolute(relative).unlink()
            logger.info(f"Удалён файл {relative}")
