#!/usr/bin/env python3
"""
godspeed-cli

Capture a task with shorthand and send it to Godspeed. Tasks that cannot be
delivered are queued locally and retried, oldest first, on the next run.

Each run:
1. Parses the new input (nothing is sent or cached if it is malformed)
2. Flushes the offline cache in arrival order, stopping at the first failure
3. Resolves the list/labels of the new task and sends it
4. Queues the new task if Godspeed could not be reached
"""

import os
import sys
import enum
import yaml
import logging
from pathlib import Path
from typing import Dict, List, Any, Optional
from dataclasses import dataclass

from godspeed_errors import (
    CacheIOError,
    ConfigError,
    DeliveryError,
    GodspeedCliError,
    ListNotFoundError,
    ParseError,
)
from name_cache import LabelResolver, ListResolver, NameCache
from task_cache import CacheStore, CachedTask

__version__ = '0.1.0'

API_KEY_ENV = 'GODSPEED_API'
NOTIFICATION_MODES = ('auto', 'osascript', 'notify-send', 'none')

DEFAULT_CONFIG = {
    'api_url': 'https://api.godspeedapp.com',
    'timeout': 10,
    'data_dir': None,
    'notifications': 'auto',
}


class SyncState(enum.Enum):
    FLUSHING_CACHE = 'flushing_cache'
    IDLE = 'idle'
    SUBMITTING = 'submitting'
    DONE = 'done'
    FAILED = 'failed'


class Outcome(enum.Enum):
    DELIVERED = 'delivered'
    CACHED = 'cached'


@dataclass
class SyncReport:
    """What happened during one run"""
    flushed: int = 0
    pending: int = 0
    new_task: Optional[Outcome] = None


class GodspeedCli:
    """
    Sync orchestrator

    Owns one run: flush the offline cache, then deliver the new task. All
    collaborators are injected so tests can swap in fakes.
    """

    def __init__(
        self,
        task_service,
        cache: CacheStore,
        lists: ListResolver,
        labels: Optional[LabelResolver],
        notifier
    ):
        """
        Args:
            task_service: Object with create_task(task, list_id, label_ids)
            cache: Offline queue of undelivered tasks
            lists: List name resolver
            labels: Label name resolver (None = send without labels)
            notifier: Object with notify(message)
        """
        self.task_service = task_service
        self.cache = cache
        self.lists = lists
        self.labels = labels
        self.notifier = notifier
        self.state = SyncState.IDLE
        self.logger = logging.getLogger("GodspeedCli")

    @classmethod
    def from_config(cls, config: Dict[str, Any], notifier) -> 'GodspeedCli':
        """Wire the real Godspeed API and file stores from a loaded config"""
        from integrations import GodspeedIntegration

        data_dir = Path(config['data_dir'])
        godspeed = GodspeedIntegration(
            api_key=config['api_key'],
            api_url=config['api_url'],
            timeout=config['timeout']
        )

        return cls(
            task_service=godspeed,
            cache=CacheStore(data_dir / 'cache'),
            lists=ListResolver(NameCache(data_dir / 'lists.yaml', 'list'), godspeed.fetch_all_lists),
            labels=LabelResolver(NameCache(data_dir / 'labels.yaml', 'label'), godspeed.fetch_all_labels),
            notifier=notifier
        )

    # ==================== Core Methods ====================

    def run(self, new: Optional[CachedTask] = None) -> SyncReport:
        """
        Flush the cache, then deliver `new` (if given)

        Args:
            new: Already parsed new task

        Returns:
            SyncReport with flushed/pending counts and the new task outcome

        Raises:
            ListNotFoundError: the new task names a list Godspeed does not have
            CacheIOError: the cache could not be read or written
        """
        try:
            report = self.flush_cache()

            if new is not None:
                report.new_task = self.submit(new)
                if report.new_task is Outcome.CACHED:
                    report.pending += 1
        except GodspeedCliError:
            self.state = SyncState.FAILED
            raise

        self.state = SyncState.DONE
        return report

    def flush_cache(self) -> SyncReport:
        """
        Deliver cached tasks in arrival order

        Stops at the first failure so nothing is delivered ahead of an older
        task. The remaining queue is persisted whether or not the flush
        finished.
        """
        self.state = SyncState.FLUSHING_CACHE
        cached = self.cache.load()
        report = SyncReport()

        if not cached and not self.cache.skipped:
            self.state = SyncState.IDLE
            return report

        self.logger.info(f"Flushing {len(cached)} cached task(s)...")
        pending = list(cached)

        while pending:
            try:
                self.deliver(pending[0])
            except DeliveryError as e:
                self.logger.warning(
                    f"Cached task still undeliverable, will retry next run "
                    f"({'transient' if e.transient else 'permanent'}): {e}"
                )
                break
            except ListNotFoundError as e:
                self.logger.error(f"Cached task '{pending[0].task.title[:50]}' blocked: {e}")
                self.notifier.notify(f"Cached task blocked: {e}. Edit {self.cache.path} to fix it.")
                break
            pending.pop(0)
            report.flushed += 1

        self.cache.rewrite(pending)
        report.pending = len(pending)

        self.logger.info(
            f"Flushed {report.flushed} cached task(s), {report.pending} still pending"
        )
        self.state = SyncState.IDLE
        return report

    def submit(self, new: CachedTask) -> Outcome:
        """
        Deliver a new task, queueing it if Godspeed cannot be reached

        Raises:
            ListNotFoundError: never cached, resending would fail the same way
            CacheIOError: the task could not be queued
        """
        self.state = SyncState.SUBMITTING

        try:
            self.deliver(new)
        except DeliveryError as e:
            self.logger.warning(
                f"Failed to send task ({'transient' if e.transient else 'permanent'}): {e}"
            )
            self.cache.append(new)
            self.notifier.notify(f"Failed to send task, cached for later: {new.task.title}")
            return Outcome.CACHED

        return Outcome.DELIVERED

    def deliver(self, cached: CachedTask) -> None:
        """Resolve names and create the task; raises on any failure"""
        task = cached.task

        list_id = None
        if task.list_name is not None:
            list_id = self.lists.resolve(task.list_name)

        label_ids: List[str] = []
        if task.labels and self.labels is not None:
            label_ids = self.labels.resolve_all(task.labels)

        self.task_service.create_task(task, list_id=list_id, label_ids=label_ids)


# ==================== Configuration ====================

def setup_logging(verbose: bool = False) -> logging.Logger:
    """Setup logging for the CLI"""
    logger = logging.getLogger("GodspeedCli")

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter(
            '%(asctime)s - GodspeedCli - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    return logger


def xdg_dir(env_var: str, *fallback: str) -> Path:
    value = os.environ.get(env_var)
    if value:
        return Path(value)
    return Path.home().joinpath(*fallback)


def default_config_path() -> Path:
    return xdg_dir('XDG_CONFIG_HOME', '.config') / 'godspeed-cli' / 'config.yaml'


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file, on top of the defaults

    The default config file is optional; an explicit --config path must exist.

    Raises:
        ConfigError: file missing (explicit path), unreadable or invalid
    """
    config = dict(DEFAULT_CONFIG)

    if config_path is None:
        path = default_config_path()
        required = False
    else:
        path = Path(config_path).expanduser()
        required = True

    if path.exists():
        try:
            with open(path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        config.update({key: value for key, value in loaded.items() if value is not None})
    elif required:
        raise ConfigError(f"Config file not found: {path}")

    if not config['data_dir']:
        config['data_dir'] = xdg_dir('XDG_DATA_HOME', '.local', 'share') / 'godspeed-cli'
    config['data_dir'] = Path(config['data_dir']).expanduser()

    if config['notifications'] not in NOTIFICATION_MODES:
        raise ConfigError(
            f"notifications must be one of {', '.join(NOTIFICATION_MODES)}, "
            f"got {config['notifications']!r}"
        )

    try:
        config['timeout'] = float(config['timeout'])
    except (TypeError, ValueError):
        raise ConfigError(f"timeout must be a number, got {config['timeout']!r}") from None
    if config['timeout'] <= 0:
        raise ConfigError("timeout must be positive")

    return config


def require_api_key(config: Dict[str, Any]) -> str:
    """
    Raises:
        ConfigError: no credential in the environment or the config file
    """
    api_key = os.environ.get(API_KEY_ENV) or config.get('api_key')
    if not api_key:
        raise ConfigError(f"{API_KEY_ENV} environment variable not set")
    config['api_key'] = api_key
    return api_key


def read_input(words: List[str]) -> str:
    """Join CLI words, or read stdin when there are none"""
    if words:
        return ' '.join(words)
    return sys.stdin.read().rstrip()


# ==================== CLI Interface ====================

def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    import argparse
    from integrations import create_notifier

    parser = argparse.ArgumentParser(
        prog='godspeed-cli',
        description="Send a task to Godspeed using shorthand syntax",
        epilog=(
            "Shorthand: @list  .label  :minutes  n: notes...\n"
            "Example:   godspeed-cli Write blog post @Work .Writing :120 n: Focus on API"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        'words',
        nargs='*',
        help='Task text (read from stdin when omitted)'
    )
    parser.add_argument(
        '--config',
        help='Path to config file'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Parse and print the task without sending or caching anything'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    args = parser.parse_args(argv)
    logger = setup_logging(args.verbose)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        return _fail(e, create_notifier(), logger)

    notifier = create_notifier(config['notifications'])
    raw_text = read_input(args.words)

    new = None
    if raw_text.strip():
        try:
            new = CachedTask.from_raw(raw_text)
        except ParseError as e:
            return _fail(e, notifier, logger)

    if args.dry_run:
        if new is None:
            print("Nothing to send")
        else:
            print(yaml.safe_dump(new.task.to_dict(), sort_keys=False, allow_unicode=True), end='')
        return 0

    try:
        require_api_key(config)
        app = GodspeedCli.from_config(config, notifier)
        report = app.run(new)
    except (ConfigError, ListNotFoundError, CacheIOError) as e:
        return _fail(e, notifier, logger)

    if report.flushed:
        print(f"🔄 Sent {report.flushed} cached task(s)")
    if report.new_task is Outcome.DELIVERED:
        print(f"✅ Task sent: {new.task.title}")
    elif report.new_task is Outcome.CACHED:
        print(f"📥 Godspeed unreachable, task cached ({report.pending} pending)")
    elif report.pending:
        print(f"⚠️  {report.pending} cached task(s) still pending")

    return 0


def _fail(error: GodspeedCliError, notifier, logger: logging.Logger) -> int:
    """Report a fatal error everywhere the user might look"""
    logger.error(str(error))
    notifier.notify(f"Error: {error}")
    print(f"❌ {error}", file=sys.stderr)
    return error.exit_code


if __name__ == '__main__':
    sys.exit(main())
