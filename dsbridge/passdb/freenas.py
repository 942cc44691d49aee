import functools
import logging

from ..client import call_dispatcher, Connection
from ..constants import BACKEND_NAME, DSCachedMethod, NTStatus
from ..utils.sid import (
    DomainRid,
    gid_to_group_rid,
    group_rid_to_gid,
    rid_is_user,
    sid_compose,
    sid_peek_check_rid,
    user_rid_to_uid,
)
from .base import GroupMemberships, LookupResult, PassdbMethods
from .constants import SearchKind
from .records import build_group, build_sam_account, convert_group, convert_user
from .search import local_group_exists, SearchSession

logger = logging.getLogger(__name__)


class FreenasPassdb(PassdbMethods):
    """
    Read-only passdb backend answering from the dscached directory cache.

    Every lookup uses a connection of its own. `Unreachable` and
    `RemoteError` from the client propagate to the caller unchanged.
    """

    name = BACKEND_NAME

    def __init__(self, config, connect=None, name_collides=None):
        super().__init__(config)
        self._connect = connect or functools.partial(Connection, config.endpoint)
        self._name_collides = name_collides or local_group_exists

    @property
    def rid_base(self):
        return self.config.algorithmic_rid_base

    def _call(self, method, *params):
        return call_dispatcher(method, *params, connect=self._connect)

    def _lookup_user(self, method, key):
        user = self._call(method, key, True)
        if user is None:
            return LookupResult(NTStatus.NO_SUCH_USER)

        logger.debug('%s: found %s', method, key)
        if (sam := build_sam_account(user, self.config)) is None:
            return LookupResult(NTStatus.UNSUCCESSFUL)

        return LookupResult(NTStatus.OK, sam)

    def _lookup_group(self, method, key):
        group = self._call(method, key, True)
        if group is None:
            return LookupResult(NTStatus.NO_SUCH_GROUP)

        logger.debug('%s: found %s', method, key)
        if (groupmap := build_group(group, self.config)) is None:
            return LookupResult(NTStatus.UNSUCCESSFUL)

        return LookupResult(NTStatus.OK, groupmap)

    def getsampwnam(self, username):
        logger.debug('getsampwnam (freenas): search by name: %s', username)
        return self._lookup_user(DSCachedMethod.GETPWNAM, username)

    def getsampwsid(self, sid):
        logger.debug('getsampwsid (freenas): search by sid: %s', sid)

        if (rid := sid_peek_check_rid(self.config.domain_sid, sid)) is None:
            return LookupResult(NTStatus.UNSUCCESSFUL)

        if not rid_is_user(rid, self.rid_base):
            return LookupResult(NTStatus.NO_SUCH_USER)

        if rid == DomainRid.GUEST:
            if not self.config.guest_account:
                logger.warning('Guest account not specified!')
                return LookupResult(NTStatus.UNSUCCESSFUL)

            result = self.getsampwnam(self.config.guest_account)
        else:
            try:
                uid = user_rid_to_uid(rid, self.rid_base)
            except ValueError:
                # well-known RID below the algorithmic range (e.g. administrator)
                return LookupResult(NTStatus.NO_SUCH_USER)

            result = self._lookup_user(DSCachedMethod.GETPWUID, uid)

        if not result.found:
            return result

        # The account dscached returned may not be the one we asked for,
        # e.g. the guest account resolving to a differently named user.
        if result.entry.user_sid != sid:
            logger.warning(
                'looking for user with sid %s instead returned %s for account %s!?!',
                sid, result.entry.user_sid, result.entry.username
            )
            return LookupResult(NTStatus.NO_SUCH_USER)

        return result

    def getgrnam(self, name):
        logger.debug('getgrnam (freenas): search by name: %s', name)
        return self._lookup_group(DSCachedMethod.GETGRNAM, name)

    def getgrgid(self, gid):
        logger.debug('getgrgid (freenas): search by gid: %d', gid)
        return self._lookup_group(DSCachedMethod.GETGRGID, gid)

    def getgrsid(self, sid):
        if (rid := sid_peek_check_rid(self.config.domain_sid, sid)) is None:
            return LookupResult(NTStatus.UNSUCCESSFUL)

        if rid_is_user(rid, self.rid_base):
            return LookupResult(NTStatus.NO_SUCH_GROUP)

        try:
            gid = group_rid_to_gid(rid, self.rid_base)
        except ValueError:
            return LookupResult(NTStatus.NO_SUCH_GROUP)

        return self.getgrgid(gid)

    def enum_group_memberships(self, username):
        logger.debug('enum_group_memberships (freenas): search by name: %s', username)

        result = self._call(DSCachedMethod.GETGROUPMEMBERSHIP, username, True)
        if not isinstance(result, list):
            return LookupResult(NTStatus.OK, GroupMemberships())

        gids = []
        sids = []
        for gid in result:
            if isinstance(gid, bool) or not isinstance(gid, int):
                logger.debug('%s: ignoring non-numeric gid %r', username, gid)
                continue

            try:
                sid = sid_compose(self.config.domain_sid, gid_to_group_rid(gid, self.rid_base))
            except ValueError:
                logger.debug('%s: gid %d can not be mapped to a RID', username, gid)
                continue

            if gid not in gids:
                gids.append(gid)

            if sid not in sids:
                sids.append(sid)

        return LookupResult(NTStatus.OK, GroupMemberships(tuple(gids), tuple(sids)))

    def search_users(self, acct_flags=0):
        """ Every dscached account is returned: `acct_flags` is accepted but not applied """
        return SearchSession.start(
            SearchKind.USERS,
            lambda user, idx: convert_user(user, idx, self.config),
            connect=self._connect,
        )

    def search_groups(self):
        return SearchSession.start(
            SearchKind.GROUPS,
            lambda group, idx: convert_group(group, idx, self.config, self._name_collides),
            connect=self._connect,
        )
