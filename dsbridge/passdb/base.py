from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from ..constants import NTStatus


@dataclass(slots=True, frozen=True)
class LookupResult:
    """
    Outcome of a point lookup. Absent entries are reported through `status`,
    failures to reach or query dscached are raised instead.
    """
    status: NTStatus
    entry: Any = None

    @property
    def found(self):
        return self.status.is_ok


@dataclass(slots=True, frozen=True)
class GroupMemberships:
    gids: tuple[int, ...] = ()
    sids: tuple[str, ...] = ()

    def __len__(self):
        return len(self.gids)


class PassdbMethods(ABC):
    """ Operations a passdb backend offers to the SMB server """

    name = NotImplemented

    def __init__(self, config):
        self.config = config

    @abstractmethod
    def getsampwnam(self, username: str) -> LookupResult:
        ...

    @abstractmethod
    def getsampwsid(self, sid: str) -> LookupResult:
        ...

    @abstractmethod
    def getgrnam(self, name: str) -> LookupResult:
        ...

    @abstractmethod
    def getgrgid(self, gid: int) -> LookupResult:
        ...

    @abstractmethod
    def getgrsid(self, sid: str) -> LookupResult:
        ...

    @abstractmethod
    def enum_group_memberships(self, username: str) -> LookupResult:
        ...

    @abstractmethod
    def search_users(self, acct_flags: int = 0):
        """ `acct_flags` is the ACB_* filter samba passes in, backends may ignore it """
        ...

    @abstractmethod
    def search_groups(self):
        ...

    def capabilities(self) -> int:
        return 0
