import logging

from dataclasses import dataclass
from datetime import datetime

from ..client.ejson import decode_date
from ..utils.sid import (
    DomainRid,
    gid_to_group_rid,
    lsa_sidtype,
    sid_compose,
    uid_to_user_rid,
)
from .constants import AcctFlags, DISABLED_UNIX_PASSWD, LM_HASH_LEN, NT_HASH_LEN

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SamAccount:
    """ The parts of samba's `struct samu` that dscached provides """
    username: str
    uid: int
    user_sid: str
    gid: int | None = None
    full_name: str | None = None
    home: str | None = None
    shell: str | None = None
    unix_passwd: str = DISABLED_UNIX_PASSWD
    nt_hash: bytes | None = None
    lm_hash: bytes | None = None
    pass_last_set_time: int | None = None
    acct_ctrl: AcctFlags = AcctFlags.NORMAL


@dataclass(slots=True, frozen=True)
class GroupMap:
    gid: int
    nt_name: str
    sid: str
    sid_name_use: lsa_sidtype = lsa_sidtype.DOM_GRP
    comment: str = ''


@dataclass(slots=True, frozen=True)
class SamrDisplayEntry:
    idx: int
    rid: int
    acct_flags: AcctFlags
    account_name: str
    fullname: str
    description: str = ''


def _get_int(record, key):
    value = record.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None

    return value


def _get_str(record, key):
    value = record.get(key)
    return value if isinstance(value, str) else None


def decode_hash(value, length):
    """
    Convert hex-encoded hash material into `length` raw bytes. dscached
    computes the hashes, we never derive them here. Returns None if the
    value can not be decoded.
    """
    if not isinstance(value, str) or len(value) % 2:
        return None

    try:
        decoded = bytes.fromhex(value)
    except ValueError:
        return None

    if len(decoded) != length:
        return None

    return decoded


def decode_timestamp(value):
    """ Seconds since EPOCH for the various ways dscached may encode a timestamp """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value

    # Naive ISO strings are UTC however they are wrapped
    try:
        if isinstance(value, dict) and '$date' in value:
            value = decode_date(value['$date'])
        elif isinstance(value, str):
            value = decode_date(value)
    except ValueError:
        return None

    if not isinstance(value, datetime):
        return None

    return int(value.timestamp())


def user_sid_for(username, uid, domain_sid, guest_account, rid_base):
    # Same special case as samba's samu_set_unix(): the guest account always has RID 501
    if guest_account and username == guest_account:
        return sid_compose(domain_sid, DomainRid.GUEST)

    return sid_compose(domain_sid, uid_to_user_rid(uid, rid_base))


def build_sam_account(user, config):
    if user is None:
        logger.debug('build_sam_account: user is None')
        return None

    uid = _get_int(user, 'uid')
    username = _get_str(user, 'username')
    if uid is None or not username:
        logger.debug('build_sam_account: record lacks uid or username: %r', user)
        return None

    try:
        user_sid = user_sid_for(
            username, uid, config.domain_sid, config.guest_account, config.algorithmic_rid_base
        )
    except ValueError:
        logger.debug('%s: uid %d can not be mapped to a RID', username, uid)
        return None

    sam = SamAccount(
        username=username,
        uid=uid,
        user_sid=user_sid,
        gid=_get_int(user, 'gid'),
        full_name=_get_str(user, 'full_name'),
        home=_get_str(user, 'home'),
        shell=_get_str(user, 'shell'),
        unix_passwd=_get_str(user, 'unixhash') or DISABLED_UNIX_PASSWD,
    )

    # Undecodable hashes and timestamps are left unset rather than failing the lookup
    if (nthash := user.get('nthash')) is not None:
        sam.nt_hash = decode_hash(nthash, NT_HASH_LEN)
        if sam.nt_hash is None:
            logger.debug('%s: ignoring malformed NT hash', username)

    if (lmhash := user.get('lmhash')) is not None:
        sam.lm_hash = decode_hash(lmhash, LM_HASH_LEN)
        if sam.lm_hash is None:
            logger.debug('%s: ignoring malformed LM hash', username)

    sam.pass_last_set_time = decode_timestamp(user.get('password_changed_at'))
    return sam


def build_group(group, config):
    if group is None:
        logger.debug('build_group: group is None')
        return None

    gid = _get_int(group, 'gid')
    name = _get_str(group, 'name')
    if gid is None or name is None:
        logger.debug('build_group: record lacks gid or name: %r', group)
        return None

    try:
        rid = gid_to_group_rid(gid, config.algorithmic_rid_base)
    except ValueError:
        logger.debug('%s: gid %d can not be mapped to a RID', name, gid)
        return None

    return GroupMap(gid=gid, nt_name=name, sid=sid_compose(config.domain_sid, rid))


def convert_user(user, idx, config):
    """ SAMR display entry for a user record. Users are never filtered out. """
    return SamrDisplayEntry(
        idx=idx,
        rid=uid_to_user_rid(_get_int(user, 'uid'), config.algorithmic_rid_base),
        acct_flags=AcctFlags.NORMAL,
        account_name=_get_str(user, 'username') or '',
        fullname=_get_str(user, 'full_name') or '',
    )


def convert_group(group, idx, config, name_collides):
    """
    SAMR display entry for a group record, or None if `name_collides` says
    a local account already owns the name.
    """
    name = _get_str(group, 'name') or ''
    if name and name_collides(name):
        return None

    return SamrDisplayEntry(
        idx=idx,
        rid=gid_to_group_rid(_get_int(group, 'gid'), config.algorithmic_rid_base),
        acct_flags=AcctFlags(0),
        account_name=name,
        fullname=name,
    )
