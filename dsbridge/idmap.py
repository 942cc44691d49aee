import enum
import functools
import logging

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .client import call_dispatcher, Connection
from .constants import BACKEND_NAME, DSCachedMethod, NTStatus
from .utils.sid import sid_is_valid

logger = logging.getLogger(__name__)


class IdType(enum.IntEnum):
    """ enum id_type from librpc/idl/idmap.idl """
    NOT_SPECIFIED = 0
    UID = 1
    GID = 2
    BOTH = 3


class IdMapStatus(enum.IntEnum):
    UNKNOWN = 0
    MAPPED = 1
    UNMAPPED = 2


@dataclass(slots=True)
class UnixId:
    id: int
    type: IdType = IdType.NOT_SPECIFIED


@dataclass(slots=True)
class IdMap:
    """ One slot of a batch conversion, updated in place by the idmap backend """
    xid: UnixId
    sid: str | None = None
    status: IdMapStatus = IdMapStatus.UNKNOWN


class IdmapMethods(ABC):
    name = NotImplemented

    def __init__(self, config):
        self.config = config

    def init(self) -> NTStatus:
        return NTStatus.OK

    @abstractmethod
    def unixids_to_sids(self, ids: list[IdMap]) -> NTStatus:
        ...

    @abstractmethod
    def sids_to_unixids(self, ids: list[IdMap]) -> NTStatus:
        ...

    @abstractmethod
    def allocate_id(self, unixid: UnixId) -> NTStatus:
        ...


class FreenasIdmap(IdmapMethods):
    """
    Batch uid/gid <-> SID translation delegated to dscached. Results are
    index-aligned with the request; slots dscached can not resolve keep
    their UNKNOWN status instead of failing the whole batch.
    """

    name = BACKEND_NAME

    def __init__(self, config, connect=None):
        super().__init__(config)
        self._connect = connect or functools.partial(Connection, config.endpoint)

    def _call(self, method, *params):
        return call_dispatcher(method, *params, connect=self._connect)

    def unixids_to_sids(self, ids):
        request = []
        slots = []
        for entry in ids:
            entry.status = IdMapStatus.UNKNOWN
            match entry.xid.type:
                case IdType.UID:
                    request.append(['UID', entry.xid.id])
                case IdType.GID:
                    request.append(['GID', entry.xid.id])
                case _:
                    logger.warning('Unknown id type: %s', entry.xid.type)
                    continue

            slots.append(entry)

        if not request:
            return NTStatus.OK

        result = self._call(DSCachedMethod.UNIXIDS_TO_SIDS, request)
        for entry, sid in zip(slots, result or []):
            if not sid_is_valid(sid):
                continue

            entry.sid = sid
            entry.status = IdMapStatus.MAPPED

        return NTStatus.OK

    def sids_to_unixids(self, ids):
        request = []
        slots = []
        for entry in ids:
            entry.status = IdMapStatus.UNKNOWN
            if not sid_is_valid(entry.sid):
                logger.warning('%r: invalid SID', entry.sid)
                continue

            request.append(entry.sid)
            slots.append(entry)

        if not request:
            return NTStatus.OK

        result = self._call(DSCachedMethod.SIDS_TO_UNIXIDS, request)
        for entry, value in zip(slots, result or []):
            try:
                id_type, xid = value
            except (TypeError, ValueError):
                continue

            if isinstance(xid, bool) or not isinstance(xid, int):
                continue

            try:
                entry.xid = UnixId(xid, IdType[id_type])
            except (KeyError, TypeError):
                entry.xid = UnixId(xid, IdType.NOT_SPECIFIED)

            entry.status = IdMapStatus.MAPPED

        return NTStatus.OK

    def allocate_id(self, unixid):
        # Allocation is up to dscached's own backends
        return NTStatus.NOT_IMPLEMENTED
