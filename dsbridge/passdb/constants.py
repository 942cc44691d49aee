import enum

from ..constants import DSCachedMethod


NT_HASH_LEN = 16
LM_HASH_LEN = 16
DISABLED_UNIX_PASSWD = '*'


class AcctFlags(enum.IntFlag):
    """ ACB_* account control bits from librpc/idl/samr.idl """
    DISABLED = 0x00000001
    HOMDIRREQ = 0x00000002
    PWNOTREQ = 0x00000004
    TEMPDUP = 0x00000008
    NORMAL = 0x00000010
    MNS = 0x00000020
    DOMTRUST = 0x00000040
    WSTRUST = 0x00000080
    SVRTRUST = 0x00000100
    PWNOEXP = 0x00000200
    AUTOLOCK = 0x00000400


class SearchKind(enum.Enum):
    USERS = DSCachedMethod.ACCOUNT_QUERY
    GROUPS = DSCachedMethod.GROUP_QUERY

    @property
    def method(self):
        return self.value
