"""
Shared fixtures: file-backed stores live in tmp_path, remote services are fakes
"""

from pathlib import Path

import pytest

from godspeed_cli import GodspeedCli
from name_cache import LabelResolver, ListResolver, NameCache
from task_cache import CacheStore

from fakes import FakeNameService, FakeNotifier, FakeTaskService


@pytest.fixture()
def cache(tmp_path: Path) -> CacheStore:
    return CacheStore(tmp_path / 'cache')


@pytest.fixture()
def task_service() -> FakeTaskService:
    return FakeTaskService()


@pytest.fixture()
def list_service() -> FakeNameService:
    return FakeNameService({'Work': 'list-work', 'Home': 'list-home'})


@pytest.fixture()
def label_service() -> FakeNameService:
    return FakeNameService({'Writing': 'label-writing', 'Urgent': 'label-urgent'})


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def app(tmp_path, cache, task_service, list_service, label_service, notifier) -> GodspeedCli:
    return GodspeedCli(
        task_service=task_service,
        cache=cache,
        lists=ListResolver(NameCache(tmp_path / 'lists.yaml', 'list'), list_service),
        labels=LabelResolver(NameCache(tmp_path / 'labels.yaml', 'label'), label_service),
        notifier=notifier
    )
