from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

import yaml

from pbapi.domain.models import ApiDescription
from pbapi.errors import DescriptionNotFound

PACKAGED_DIR = Path(__file__).resolve().parent.parent / "descriptions"

_SUFFIXES = (".yaml", ".yml")


def _candidates(name: str, search_dirs: Iterable[Path]) -> Iterable[Path]:
    for d in search_dirs:
        for suffix in _SUFFIXES:
            yield Path(d) / f"{name}{suffix}"


def find_description_file(name: str, extra_dir: Optional[Path] = None) -> Path:
    dirs = [extra_dir] if extra_dir else []
    dirs.append(PACKAGED_DIR)
    for p in _candidates(name, dirs):
        if p.is_file():
            return p
    raise DescriptionNotFound(name)


def parse_description(text: str) -> ApiDescription:
    document = yaml.safe_load(text) or {}
    if not isinstance(document, dict):
        raise ValueError("API description must be a mapping at the top level")
    return ApiDescription.from_document(document)


def load_description(name: str, extra_dir: Optional[Path] = None) -> ApiDescription:
    path = find_description_file(name, extra_dir)
    return parse_description(path.read_text(encoding="utf-8"))


class DescriptionLoader:
    """Loads descriptions by name, caching each parsed document."""

    def __init__(self, extra_dir: Optional[Path] = None):
        self.extra_dir = extra_dir
        self._cache: dict[str, ApiDescription] = {}

    def __call__(self, name: str) -> ApiDescription:
        if name not in self._cache:
            self._cache[name] = load_description(name, self.extra_dir)
        return self._cache[name]

    def source(self, name: str) -> str:
        return find_description_file(name, self.extra_dir).read_text(encoding="utf-8")

    def clear(self) -> None:
        self._cache.clear()
