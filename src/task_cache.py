"""
Offline Task Cache

Tasks that could not be delivered are queued in a plain text file and
retried on the next run.

File format:
- each record is the raw capture text, exactly as typed
- every record is terminated by a line containing only `---`
- a record line that looks like a delimiter is stored with one extra
  leading backslash, and unescaped again on load

Records are kept in arrival order. `rewrite` replaces the whole file via a
temp file + rename, so a crash leaves either the old or the new contents.
"""

import os
import re
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

from godspeed_errors import CacheIOError, ParseError
from shorthand import Task, parse

DELIMITER = '---'
_ESCAPED_DELIMITER = re.compile(r'^\\*---$')


@dataclass(frozen=True)
class CachedTask:
    """A queued task together with the text it was parsed from"""
    task: Task
    raw: str

    @classmethod
    def from_raw(cls, raw: str) -> 'CachedTask':
        return cls(task=parse(raw), raw=raw)


class CacheStore:
    """File-backed FIFO queue of undelivered tasks"""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.logger = logging.getLogger("GodspeedCli.Cache")
        self.skipped = 0

    def load(self) -> List[CachedTask]:
        """
        Read all queued tasks, oldest first

        Records that no longer parse are skipped with a warning so they
        cannot hold up the valid ones behind them. They are counted in
        `skipped` and dropped by the next rewrite.

        Returns:
            Ordered list of CachedTask

        Raises:
            CacheIOError: the file exists but cannot be read
        """
        if not self.path.exists():
            return []

        try:
            # Undecodable bytes survive as surrogates so they stay within their record
            content = self.path.read_bytes().decode('utf-8', errors='surrogateescape')
        except OSError as e:
            raise CacheIOError(f"Cannot read task cache {self.path}: {e}") from e

        cached = []
        self.skipped = 0
        for raw in _split_records(content):
            try:
                raw.encode('utf-8')
                cached.append(CachedTask.from_raw(raw))
            except UnicodeEncodeError:
                self.skipped += 1
                self.logger.warning(f"Skipping cached task with invalid UTF-8: {raw!r}")
            except ParseError as e:
                self.skipped += 1
                self.logger.warning(f"Skipping unreadable cached task ({e}): {raw!r}")

        self.logger.debug(f"Loaded {len(cached)} cached tasks from {self.path}")
        return cached

    def append(self, cached: CachedTask) -> None:
        """
        Add one task to the end of the queue

        The record is flushed and fsynced before returning. A last record
        left without its delimiter (interrupted append, hand edit) is closed
        first so the two records do not merge.

        Raises:
            CacheIOError: the record could not be durably written
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'a', encoding='utf-8') as f:
                if self._unterminated():
                    f.write('\n' + DELIMITER + '\n')
                f.write(_format_record(cached.raw))
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise CacheIOError(f"Cannot write task cache {self.path}: {e}") from e

        self.logger.info(f"Cached task for later delivery: {cached.task.title[:50]}")

    def _unterminated(self) -> bool:
        """True if the file has content that does not end with a delimiter line"""
        terminator = ('\n' + DELIMITER + '\n').encode('utf-8')
        size = self.path.stat().st_size
        if size == 0:
            return False
        with open(self.path, 'rb') as f:
            f.seek(max(0, size - len(terminator)))
            tail = f.read()
        # The delimiter must be a whole line, possibly the first one in the file
        return not (tail.endswith(terminator) or tail == terminator[1:])

    def rewrite(self, remaining: Iterable[CachedTask]) -> None:
        """
        Atomically replace the queue with exactly `remaining`

        Raises:
            CacheIOError: the new contents could not be written or renamed
        """
        content = ''.join(_format_record(cached.raw) for cached in remaining)
        tmp_name = None

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix='.tmp'
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise CacheIOError(f"Cannot rewrite task cache {self.path}: {e}") from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)


def _format_record(raw: str) -> str:
    lines = []
    for line in raw.strip().splitlines():
        if _ESCAPED_DELIMITER.match(line):
            line = '\\' + line
        lines.append(line)
    return '\n'.join(lines) + '\n' + DELIMITER + '\n'


def _split_records(content: str) -> List[str]:
    """Split file content on delimiter lines, dropping blank records"""
    records = []
    current: List[str] = []

    for line in content.splitlines():
        if line == DELIMITER:
            records.append(current)
            current = []
        elif _ESCAPED_DELIMITER.match(line):
            current.append(line[1:])
        else:
            current.append(line)

    # A trailing record without delimiter is an interrupted append; keep it
    records.append(current)

    raws = ('\n'.join(lines).strip() for lines in records)
    return [raw for raw in raws if raw]
