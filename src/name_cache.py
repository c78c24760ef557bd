"""
List and Label Name Resolution

Godspeed addresses lists and labels by id, users type names. Known
name -> id pairs are kept in small YAML files in the data directory:

    lists.yaml:
        inbox: 3f1c...
        work: 9a7e...

Lookups are case-insensitive exact matches. On a miss the full collection
is fetched once from the API, the file is rewritten with everything that
came back, and the lookup is retried. Deleting the file forces a refresh on
the next miss.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import yaml

from godspeed_errors import ListNotFoundError


@dataclass(frozen=True)
class ListCacheEntry:
    """One name -> id pair as returned by the Godspeed API"""
    name: str
    id: str


class NameCache:
    """YAML-backed mapping of case-folded names to Godspeed ids"""

    def __init__(self, path: Path, kind: str = 'list'):
        self.path = Path(path)
        self.kind = kind
        self.logger = logging.getLogger(f"GodspeedCli.{kind.title()}s")
        self._entries: Optional[Dict[str, str]] = None

    @property
    def entries(self) -> Dict[str, str]:
        if self._entries is None:
            self._entries = self._read()
        return self._entries

    def get(self, name: str) -> Optional[str]:
        return self.entries.get(name.casefold())

    def replace(self, entries: Iterable[ListCacheEntry]) -> None:
        """Replace the whole mapping and persist it"""
        self._entries = {entry.name.casefold(): entry.id for entry in entries}
        self._write()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            self.logger.debug(f"No {self.kind} cache at {self.path}")
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            self.logger.warning(f"Ignoring unreadable {self.kind} cache {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            if data is not None:
                self.logger.warning(f"Ignoring {self.kind} cache {self.path}: not a mapping")
            return {}

        return {
            str(name).casefold(): str(value)
            for name, value in data.items()
            if value is not None
        }

    def _write(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(self._entries, f, default_flow_style=False, allow_unicode=True)
        except OSError as e:
            # The ids are still usable for this run; the next miss refetches
            self.logger.warning(f"Could not save {self.kind} cache {self.path}: {e}")


class ListResolver:
    """Resolve a list name to its Godspeed list id"""

    def __init__(self, cache: NameCache, fetch_all_lists: Callable[[], List[ListCacheEntry]]):
        """
        Args:
            cache: Local list mapping
            fetch_all_lists: ListService call returning every list; may
                raise DeliveryError
        """
        self.cache = cache
        self.fetch_all_lists = fetch_all_lists
        self.logger = logging.getLogger("GodspeedCli.Lists")

    def resolve(self, name: str) -> str:
        """
        Args:
            name: List name as typed (case is ignored)

        Returns:
            Godspeed list id

        Raises:
            ListNotFoundError: no list with that name, even after a refresh
            DeliveryError: the refresh request failed
        """
        list_id = self.cache.get(name)
        if list_id is not None:
            return list_id

        self.logger.info(f"List '{name}' not cached, refreshing lists from Godspeed...")
        self.cache.replace(self.fetch_all_lists())

        list_id = self.cache.get(name)
        if list_id is None:
            raise ListNotFoundError(name)
        return list_id


class LabelResolver:
    """Resolve label names to ids, dropping labels Godspeed does not know"""

    def __init__(self, cache: NameCache, fetch_all_labels: Callable[[], List[ListCacheEntry]]):
        self.cache = cache
        self.fetch_all_labels = fetch_all_labels
        self.logger = logging.getLogger("GodspeedCli.Labels")

    def resolve_all(self, names: Iterable[str]) -> List[str]:
        names = sorted(names)
        if not names:
            return []

        if any(self.cache.get(name) is None for name in names):
            self.logger.info("Unknown label(s), refreshing labels from Godspeed...")
            self.cache.replace(self.fetch_all_labels())

        label_ids, missing = _split_resolved(self.cache, names)
        for name in missing:
            self.logger.warning(f"Label not found in Godspeed, sending without it: {name}")
        return label_ids


def _split_resolved(cache: NameCache, names: List[str]) -> Tuple[List[str], List[str]]:
    found = []
    missing = []
    for name in names:
        label_id = cache.get(name)
        if label_id is None:
            missing.append(name)
        else:
            found.append(label_id)
    return found, missing
