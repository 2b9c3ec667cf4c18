"""
Хранилище объектов на локальной файловой системе
"""

import logging
import uuid
from pathlib import Path

from filedrop.core.config import settings
from filedrop.exceptions import StorageError

logger = logging.getLogger(__name__)


class LocalStorage:
    """
    Хранилище байтов файлов.

    Ключ объекта имеет вид ``<user_id>/<uuid><ext>`` и хранится в
    File.storage_path. Любая ошибка ввода-вывода превращается в StorageError.
    """

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root or settings.STORAGE_DIR)

    def build_key(self, user_id: uuid.UUID, filename: str | None) -> str:
        """Уникальный ключ объекта для пользователя"""
        suffix = Path(filename).suffix if filename else ""
        return f"{user_id}/{uuid.uuid4()}{suffix}"

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError("Недопустимый путь объекта")
        return path

    def save(self, key: str, content: bytes) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                f.write(content)
        except OSError as e:
            logger.error(f"Ошибка записи объекта {key}: {e}")
            raise StorageError() from e

    def read(self, key: str) -> bytes:
        path = self._path(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as e:
            raise StorageError("Объект не найден в хранилище") from e
        except OSError as e:
            logger.error(f"Ошибка чтения объекта {key}: {e}")
            raise StorageError() from e

    def delete(self, key: str) -> bool:
        """Удалить объект; отсутствующий объект не считается ошибкой"""
        path = self._path(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Ошибка удаления объекта {key}: {e}")
            raise StorageError() from e

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()


storage = LocalStorage()


def get_storage() -> LocalStorage:
    """Зависимость FastAPI для хранилища"""
    return storage
