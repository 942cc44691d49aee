import enum


BACKEND_NAME = 'freenas'


class NTStatus(enum.IntEnum):
    """ Subset of libcli/util/ntstatus.h used by the passdb and idmap backends """
    OK = 0x00000000
    UNSUCCESSFUL = 0xC0000001
    NOT_IMPLEMENTED = 0xC0000002
    NO_MEMORY = 0xC0000017
    NO_SUCH_USER = 0xC0000064
    NO_SUCH_GROUP = 0xC0000066

    @property
    def is_ok(self):
        return self is NTStatus.OK


class DSCachedMethod(enum.StrEnum):
    GETPWNAM = 'dscached.account.getpwnam'
    GETPWUID = 'dscached.account.getpwuid'
    ACCOUNT_QUERY = 'dscached.account.query'
    GETGROUPMEMBERSHIP = 'dscached.account.getgroupmembership'
    GETGRNAM = 'dscached.group.getgrnam'
    GETGRGID = 'dscached.group.getgrgid'
    GROUP_QUERY = 'dscached.group.query'
    UNIXIDS_TO_SIDS = 'dscached.idmap.unixids_to_sids'
    SIDS_TO_UNIXIDS = 'dscached.idmap.sids_to_unixids'
