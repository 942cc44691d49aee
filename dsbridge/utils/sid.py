import enum
import re


DOM_SID_PREFIX = 'S-1-5-21-'
DOM_SID_SUBAUTHS = 3
MAX_VALUE_SUBAUTH = 2 ** 32
MAX_RID = MAX_VALUE_SUBAUTH - 1

# Samba's algorithmic RID scheme ("algorithmic rid base" in smb.conf)
DEFAULT_ALGORITHMIC_RID_BASE = 1000
MAX_ALGORITHMIC_RID_BASE = 0x100000
RID_MULTIPLIER = 2
RID_TYPE_MASK = 1
USER_RID_TYPE = 0
GROUP_RID_TYPE = 1

SID_RE = re.compile(r'^S-1-(\d+)((?:-\d+){1,15})$')


class DomainRid(enum.IntEnum):
    """ Defined in MS-DTYP Section 2.4.2.4
    This is subsest of well-known RID values defined in above document
    focused on ones that are of particular significance to passdb lookups
    """
    ADMINISTRATOR = 500  # local administrator account
    GUEST = 501  # guest account
    ADMINS = 512  # domain admins account (local or joined)
    USERS = 513
    GUESTS = 514


class lsa_sidtype(enum.IntEnum):
    """ librpc/idl/lsa.idl
    used for passdb and group mapping databases
    """
    USE_NONE = 0  # NOTUSED
    USER = 1  # user
    DOM_GRP = 2  # domain group
    DOMAIN = 3
    ALIAS = 4  # local group
    WKN_GRP = 5  # well-known group
    DELETED = 6  # deleted account
    INVALID = 7  # invalid account
    UNKNOWN = 8
    COMPUTER = 9
    LABEL = 10  # mandatory label


def sid_is_valid(sid: str) -> bool:
    """
    Generic syntax check for string SIDs (S-1-<authority>-<subauth>...).
    Each sub-authority must fit in 32 bits.
    """
    if not isinstance(sid, str):
        return False

    if (m := SID_RE.match(sid)) is None:
        return False

    if int(m.group(1)) >= 2 ** 48:
        return False

    return all(int(subauth) < MAX_VALUE_SUBAUTH for subauth in m.group(2)[1:].split('-'))


def domain_sid_is_valid(sid: str) -> bool:
    """ Domain SIDs we manage are S-1-5-21-X-Y-Z without a RID component """
    if not sid_is_valid(sid) or not sid.startswith(DOM_SID_PREFIX):
        return False

    return len(sid[len(DOM_SID_PREFIX):].split('-')) == DOM_SID_SUBAUTHS


def sid_compose(domain_sid: str, rid: int) -> str:
    if not isinstance(rid, int) or not 0 <= rid <= MAX_RID:
        raise ValueError(f'{rid}: not a valid RID')

    return f'{domain_sid}-{rid}'


def sid_peek_check_rid(domain_sid: str, sid: str) -> int | None:
    """
    Return the RID component of `sid` if it is a member of `domain_sid`,
    otherwise None. Malformed SIDs are treated the same as foreign ones.
    """
    if not sid_is_valid(sid):
        return None

    prefix, sep, rid = sid.rpartition('-')
    if prefix != domain_sid:
        return None

    return int(rid)


def _check_rid_base(rid_base: int) -> None:
    if not DEFAULT_ALGORITHMIC_RID_BASE <= rid_base <= MAX_ALGORITHMIC_RID_BASE:
        raise ValueError(f'{rid_base}: algorithmic rid base out of range')


def uid_to_user_rid(uid: int, rid_base: int = DEFAULT_ALGORITHMIC_RID_BASE) -> int:
    """
    Simple algorithm to convert a uid into a user RID. Must not change
    since SIDs derived from it end up in SMB ACLs.
    """
    _check_rid_base(rid_base)
    if not isinstance(uid, int) or uid < 0:
        raise ValueError(f'{uid}: not a valid uid')

    rid = uid * RID_MULTIPLIER + rid_base + USER_RID_TYPE
    if rid > MAX_RID:
        raise ValueError(f'{uid}: uid too large to map to a RID')

    return rid


def gid_to_group_rid(gid: int, rid_base: int = DEFAULT_ALGORITHMIC_RID_BASE) -> int:
    _check_rid_base(rid_base)
    if not isinstance(gid, int) or gid < 0:
        raise ValueError(f'{gid}: not a valid gid')

    rid = gid * RID_MULTIPLIER + rid_base + GROUP_RID_TYPE
    if rid > MAX_RID:
        raise ValueError(f'{gid}: gid too large to map to a RID')

    return rid


def rid_is_user(rid: int, rid_base: int = DEFAULT_ALGORITHMIC_RID_BASE) -> bool:
    if rid < rid_base:
        # Only the well-known user RIDs live below the algorithmic range
        return rid in (DomainRid.ADMINISTRATOR, DomainRid.GUEST)

    return ((rid - rid_base) & RID_TYPE_MASK) == USER_RID_TYPE


def user_rid_to_uid(rid: int, rid_base: int = DEFAULT_ALGORITHMIC_RID_BASE) -> int:
    _check_rid_base(rid_base)
    if rid < rid_base or not rid_is_user(rid, rid_base):
        raise ValueError(f'{rid}: not an algorithmic user RID')

    return (rid - rid_base - USER_RID_TYPE) // RID_MULTIPLIER


def group_rid_to_gid(rid: int, rid_base: int = DEFAULT_ALGORITHMIC_RID_BASE) -> int:
    _check_rid_base(rid_base)
    if rid < rid_base or rid_is_user(rid, rid_base):
        raise ValueError(f'{rid}: not an algorithmic group RID')

    return (rid - rid_base - GROUP_RID_TYPE) // RID_MULTIPLIER
