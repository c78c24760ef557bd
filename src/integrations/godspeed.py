"""
Godspeed Integration

Talks to the Godspeed REST API (https://api.godspeedapp.com) with a bearer
token.

Endpoints used:
- POST /tasks   create a task
- GET  /lists   every list the account has
- GET  /labels  every label the account has

Failures are raised as DeliveryError. Connection problems, timeouts and 5xx
responses are marked transient; 4xx responses and unusable payloads are not.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

import requests

from godspeed_errors import DeliveryError
from name_cache import ListCacheEntry
from shorthand import Task

DEFAULT_API_URL = 'https://api.godspeedapp.com'
DEFAULT_TIMEOUT = 10


class GodspeedIntegration:
    """TaskService / ListService backed by the Godspeed API"""

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None
    ):
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.logger = logging.getLogger("GodspeedCli.Godspeed")
        self._headers = {
            'Authorization': f'Bearer {api_key}',
            'Content-Type': 'application/json',
        }
        self._session = session or requests.Session()

    def create_task(
        self,
        task: Task,
        list_id: Optional[str] = None,
        label_ids: Iterable[str] = ()
    ) -> None:
        """
        Create a task in Godspeed

        Args:
            task: Parsed task
            list_id: Resolved destination list (None = inbox)
            label_ids: Resolved label ids

        Raises:
            DeliveryError: the task was not created
        """
        payload = build_task_payload(task, list_id, label_ids)
        self.logger.debug(f"POST /tasks {payload}")
        self._request('post', '/tasks', json=payload)
        self.logger.info(f"✅ Sent task to Godspeed: {task.title[:50]}")

    def fetch_all_lists(self) -> List[ListCacheEntry]:
        return self._fetch_named('/lists', 'lists')

    def fetch_all_labels(self) -> List[ListCacheEntry]:
        return self._fetch_named('/labels', 'labels')

    def _fetch_named(self, path: str, key: str) -> List[ListCacheEntry]:
        response = self._request('get', path)

        try:
            items = response.json()[key]
        except (ValueError, KeyError, TypeError) as e:
            raise DeliveryError(f"Unexpected response from GET {path}: {e}", transient=False) from e

        if not isinstance(items, list):
            raise DeliveryError(
                f"Unexpected response from GET {path}: '{key}' is not a list", transient=False
            )

        entries = []
        for item in items:
            if not isinstance(item, dict) or not item.get('id') or not item.get('name'):
                self.logger.debug(f"Skipping malformed {key} entry: {item!r}")
                continue
            entries.append(ListCacheEntry(name=str(item['name']), id=str(item['id'])))

        self.logger.info(f"Fetched {len(entries)} {key} from Godspeed")
        return entries

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.api_url}{path}"

        try:
            response = self._session.request(
                method.upper(), url, headers=self._headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise DeliveryError(f"{method.upper()} {path} failed: {e}", transient=True) from e

        if response.status_code >= 400:
            raise DeliveryError(
                f"API error: {response.status_code} {response.text[:200]}",
                transient=response.status_code >= 500,
                status_code=response.status_code
            )

        return response


def build_task_payload(
    task: Task,
    list_id: Optional[str] = None,
    label_ids: Iterable[str] = ()
) -> Dict[str, Any]:
    """
    Build the POST /tasks body

    Optional fields are left out when empty.
    """
    payload: Dict[str, Any] = {'title': task.title}

    if list_id:
        payload['list_id'] = list_id
    if task.duration_minutes is not None:
        payload['duration_minutes'] = task.duration_minutes

    label_ids = list(label_ids)
    if label_ids:
        payload['label_ids'] = label_ids
    if task.notes:
        payload['notes'] = task.notes

    return payload
