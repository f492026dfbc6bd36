"""Дебаунс живого поиска и защита от устаревших ответов"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Откладывает вызов до паузы во вводе.

    Для каждого ключа (чата) хранится одна отложенная задача: новый вызов
    отменяет предыдущую, колбэк выполняется после delay секунд тишины.
    """

    def __init__(self, delay: float):
        self.delay = delay
        self._tasks: Dict[Hashable, asyncio.Task] = {}

    def call(self, key: Hashable, callback: Callable[[], Awaitable[None]]) -> asyncio.Task:
        self.cancel(key)
        task = asyncio.create_task(self._run(key, callback))
        self._tasks[key] = task
        return task

    async def _run(self, key: Hashable, callback: Callable[[], Awaitable[None]]):
        try:
            await asyncio.sleep(self.delay)
            await callback()
        except Exception as e:
            logger.error(f"Ошибка отложенного вызова для {key}: {e}", exc_info=True)
        finally:
            if self._tasks.get(key) is asyncio.current_task():
                del self._tasks[key]

    def cancel(self, key: Hashable) -> bool:
        task = self._tasks.pop(key, None)
        if task is not None and not task.done():
            task.cancel()
            return True
        return False

    def pending(self, key: Hashable) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()


class SearchSequencer:
    """
    Номера поисковых запросов по ключу.

    Каждый запрос получает возрастающий номер; применяется только ответ
    на последний выданный номер, даже если он пришёл раньше старого.
    """

    def __init__(self):
        self._latest: Dict[Hashable, int] = {}

    def issue(self, key: Hashable) -> int:
        seq = self._latest.get(key, 0) + 1
        self._latest[key] = seq
        return seq

    def is_current(self, key: Hashable, seq: int) -> bool:
        return self._latest.get(key) == seq
