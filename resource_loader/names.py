# resource_loader/names.py

"""
Классификация имён ресурсов.

Имя ресурса: непрозрачная строка ("config", "file", "media-tmpl"), которую
передаёт клиент. Класс ресурса определяется принадлежностью имени
к статическим таблицам ниже; никакого сопоставления по подстрокам нет.
"""

from enum import Enum
from typing import FrozenSet, Union


class ResourceClass(Enum):
    CONFIG = "config"
    JSON = "json"
    HTML_ROOT = "html_root"
    HTML_FS = "html_fs"
    INVALID = "invalid"


CONFIG_NAME = "config"

JSON_NAMES: FrozenSet[str] = frozenset({"config", "modules", "ext"})
HTML_FS_NAMES: FrozenSet[str] = frozenset({"file", "path", "link", "pathLink", "media"})
HTML_ROOT_NAMES: FrozenSet[str] = frozenset({"media-tmpl", "config-tmpl"})

# все имена, которые принимает set()
KNOWN_NAMES: FrozenSet[str] = JSON_NAMES | HTML_FS_NAMES | HTML_ROOT_NAMES


class ClassificationError(ValueError):
    """
    Неизвестное имя ресурса. Ошибка программиста, а не состояние выполнения:
    выбрасывается синхронно, callback при этом не вызывается.
    """

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self):
        return f"Wrong file name: {self.name}"


def classify(name: str) -> ResourceClass:
    """Тотальная функция: любое имя отображается ровно в один класс."""
    if name == CONFIG_NAME:
        return ResourceClass.CONFIG
    if name in JSON_NAMES:
        return ResourceClass.JSON
    if name in HTML_ROOT_NAMES:
        return ResourceClass.HTML_ROOT
    if name in HTML_FS_NAMES:
        return ResourceClass.HTML_FS
    return ResourceClass.INVALID


def check(name: str) -> Union[ResourceClass, ClassificationError]:
    """
    Классификация в виде результата: либо класс ресурса, либо ошибка.
    Решение бросать ли ошибку остаётся за вызывающим кодом.
    """
    if not isinstance(name, str):
        return ClassificationError(repr(name))

    cls = classify(name)
    if cls is ResourceClass.INVALID:
        return ClassificationError(name)
    return cls


def is_known(name: str) -> bool:
    return isinstance(name, str) and name in KNOWN_NAMES
