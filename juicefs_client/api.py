"""
Typed access to JuiceFS cloud resources (clouds, regions, volumes).

Each call goes through :meth:`JuiceFSClient.execute` and maps the returned
status code to a result or an :class:`UnexpectedStatusError`.
"""

import datetime
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .client import JuiceFSClient
from .constants import DEFAULT_POLL_INTERVAL
from .exceptions import NotFoundError, SerializationError, UnexpectedStatusError
from .polling import poll_until

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime.datetime]:
    if not value:
        return None
    return datetime.datetime.fromisoformat(value.replace('Z', '+00:00'))


@dataclass(frozen=True)
class Cloud:
    id: int
    name: str
    storage: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cloud":
        return cls(id=data['id'], name=data['name'], storage=data.get('storage', ''))


@dataclass(frozen=True)
class Region:
    id: int
    cloud: int
    name: str
    desp: str = ''
    owner: int = 0
    token: str = ''
    trashtime: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Region":
        return cls(
            id=data['id'],
            cloud=data['cloud'],
            name=data['name'],
            desp=data.get('desp', ''),
            owner=data.get('owner', 0),
            token=data.get('token', ''),
            trashtime=data.get('trashtime', 0),
        )


@dataclass(frozen=True)
class VolumeAccessRule:
    iprange: str
    token: str
    readonly: bool = False
    appendonly: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VolumeAccessRule":
        return cls(
            iprange=data['iprange'],
            token=data.get('token', ''),
            readonly=data.get('readonly', False),
            appendonly=data.get('appendonly', False),
        )


@dataclass(frozen=True)
class Volume:
    id: int
    name: str
    region: int
    uuid: str = ''
    owner: int = 0
    created: Optional[datetime.datetime] = None
    bucket: str = ''
    trashtime: int = 0
    block_size: int = 0
    compress: str = ''
    compatible: bool = False
    access_rules: List[VolumeAccessRule] = field(default_factory=list)
    size: Optional[int] = None
    inodes: Optional[int] = None
    extend: Optional[str] = None
    storage: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Volume":
        return cls(
            id=data['id'],
            name=data['name'],
            region=data['region'],
            uuid=data.get('uuid', ''),
            owner=data.get('owner', 0),
            created=_parse_timestamp(data.get('created')),
            bucket=data.get('bucket', ''),
            trashtime=data.get('trashtime', 0),
            block_size=data.get('blockSize', 0),
            compress=data.get('compress', ''),
            compatible=data.get('compatible', False),
            access_rules=[VolumeAccessRule.from_dict(r) for r in data.get('access_rules') or []],
            size=data.get('size'),
            inodes=data.get('inodes'),
            extend=data.get('extend'),
            storage=data.get('storage'),
        )


def _decode(body: bytes) -> Any:
    try:
        return json.loads(body)
    except ValueError as e:
        raise SerializationError(f"invalid JSON response: {e}") from e


def _records(body: bytes, factory: Callable[[Dict[str, Any]], Any]) -> List[Any]:
    try:
        return [factory(item) for item in _decode(body)]
    except (KeyError, TypeError, ValueError) as e:
        raise SerializationError(f"unexpected response shape: {e}") from e


def _record(body: bytes, factory: Callable[[Dict[str, Any]], Any]) -> Any:
    try:
        return factory(_decode(body))
    except (KeyError, TypeError, ValueError) as e:
        raise SerializationError(f"unexpected response shape: {e}") from e


def _name_errors(body: bytes) -> Optional[str]:
    """Extract field errors of the form {"name": ["..."]} from an error response."""
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if isinstance(data, dict) and isinstance(data.get('name'), list):
        return "\n".join(str(msg) for msg in data['name'])
    return None


class JuiceFSCloudAPI:
    """Resource-level operations on top of a signing client."""

    def __init__(self, client: JuiceFSClient):
        self.client = client

    def _expect(self, action: str, status_code: int, body: bytes, expected: int):
        if status_code != expected:
            raise UnexpectedStatusError(
                f"{action} failed, status code: {status_code}, body: {body!r}",
                status_code,
                body,
            )

    def get_clouds(self) -> List[Cloud]:
        """
        List the clouds available to the account.

        Returns:
            List of Cloud records

        Raises:
            UnexpectedStatusError: If the API does not answer 200
            SerializationError: If the response is not a list of clouds
        """
        status_code, body = self.client.execute('GET', '/clouds')
        self._expect("get clouds", status_code, body, 200)
        return _records(body, Cloud.from_dict)

    def get_regions(self) -> List[Region]:
        """
        List the regions available to the account.

        Returns:
            List of Region records

        Raises:
            UnexpectedStatusError: If the API does not answer 200
            SerializationError: If the response is not a list of regions
        """
        status_code, body = self.client.execute('GET', '/regions')
        self._expect("get regions", status_code, body, 200)
        return _records(body, Region.from_dict)

    def get_volumes(self) -> List[Volume]:
        """
        List the volumes owned by the account.

        Returns:
            List of Volume records

        Raises:
            UnexpectedStatusError: If the API does not answer 200
            SerializationError: If the response is not a list of volumes
        """
        status_code, body = self.client.execute('GET', '/volumes')
        self._expect("get volumes", status_code, body, 200)
        return _records(body, Volume.from_dict)

    def get_volume(self, volume_id: int) -> Volume:
        """
        Fetch one volume.

        Args:
            volume_id: Volume ID

        Returns:
            Volume record

        Raises:
            NotFoundError: If the volume does not exist
            UnexpectedStatusError: If the API answers any other status than 200
            SerializationError: If the response is not a volume
        """
        status_code, body = self.client.execute('GET', f'/volumes/{volume_id}')
        if status_code == 404:
            raise NotFoundError(f"volume {volume_id} not found", status_code, body)
        self._expect(f"get volume {volume_id}", status_code, body, 200)
        return _record(body, Volume.from_dict)

    def create_volume(self, name: str, region: int, bucket: Optional[str] = None,
                      trash_time: Optional[int] = None, block_size: Optional[int] = None,
                      compress: Optional[str] = None, compatible: Optional[bool] = None,
                      extend: Optional[str] = None, storage: Optional[str] = None) -> Volume:
        """
        Create a volume. Optional settings left as ``None`` are not sent, so the
        server applies its own defaults.

        Args:
            name: Volume name
            region: Region ID

        Returns:
            The created Volume record

        Raises:
            UnexpectedStatusError: If the API does not answer 201
        """
        payload = {'name': name, 'region': region}
        optional = {
            'bucket': bucket,
            'trash_time': trash_time,
            'block_size': block_size,
            'compress': compress,
            'compatible': compatible,
            'extend': extend,
            'storage': storage,
        }
        payload.update({key: value for key, value in optional.items() if value is not None})

        status_code, body = self.client.execute('POST', '/volumes', payload=payload)
        if status_code != 201:
            detail = _name_errors(body)
            if detail is not None:
                raise UnexpectedStatusError(f"failed to create volume {detail}", status_code, body)
            raise UnexpectedStatusError(
                f"failed to create volume, status code {status_code}, error {body!r}",
                status_code,
                body,
            )
        volume = _record(body, Volume.from_dict)
        logger.info("volume created: name=%s id=%d", volume.name, volume.id)
        return volume

    def delete_volume(self, volume_id: int):
        """
        Delete a volume.

        Args:
            volume_id: Volume ID

        Raises:
            UnexpectedStatusError: If the API does not answer 204
        """
        status_code, body = self.client.execute('DELETE', f'/volumes/{volume_id}')
        self._expect(f"delete volume {volume_id}", status_code, body, 204)

    def is_volume_ready(self, volume_id: int) -> bool:
        """
        Check whether a newly created volume is ready for use.

        Args:
            volume_id: Volume ID

        Returns:
            True if the volume is ready

        Raises:
            UnexpectedStatusError: If the API does not answer 200
            SerializationError: If the response is not a JSON object
        """
        status_code, body = self.client.execute('GET', f'/volumes/{volume_id}/is_ready')
        self._expect("check volume ready", status_code, body, 200)
        data = _decode(body)
        if not isinstance(data, dict):
            raise SerializationError(f"unexpected response shape: {data!r}")
        return bool(data.get('is_ready', False))

    def wait_for_volume_ready(self, volume_id: int, interval: float = DEFAULT_POLL_INTERVAL,
                              max_attempts: Optional[int] = None,
                              sleep: Callable[[float], None] = time.sleep) -> bool:
        """
        Block until the volume reports ready.

        Raises:
            PollTimeoutError: If ``max_attempts`` is reached first
        """
        return poll_until(
            lambda: self.is_volume_ready(volume_id),
            interval=interval,
            max_attempts=max_attempts,
            sleep=sleep,
        )
