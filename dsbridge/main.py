import argparse
import enum
import sys

from dataclasses import asdict, is_dataclass

from .client import ClientException, Unreachable
from .client import ejson as json
from .config import load_config, SMB_CONF
from .constants import BACKEND_NAME, NTStatus
from .idmap import IdMap, IdType, UnixId
from .logger import setup_logging
from .registry import get_idmap_backend, get_passdb_backend


def _jsonable(obj):
    if is_dataclass(obj):
        obj = asdict(obj)

    if isinstance(obj, dict):
        return {k: _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    if isinstance(obj, bytes):
        return obj.hex().upper()
    if isinstance(obj, enum.Enum):
        return obj.name
    return obj


def parse_unixid(value):
    """ UID:1000 / GID:1000 """
    id_type, sep, xid = value.partition(':')
    try:
        return UnixId(int(xid), IdType[id_type.upper()])
    except (KeyError, ValueError):
        raise argparse.ArgumentTypeError(f'{value}: expected UID:<id> or GID:<id>')


def build_parser():
    parser = argparse.ArgumentParser(prog='dsbridgectl')
    parser.add_argument('-q', '--quiet', action='store_true')
    parser.add_argument('-c', '--config', default=SMB_CONF, help='smb.conf to read site configuration from')
    parser.add_argument(
        '-d', '--debug-level', default='WARNING', choices=('TRACE', 'DEBUG', 'INFO', 'WARNING', 'ERROR'),
    )

    subparsers = parser.add_subparsers(help='sub-command help', dest='name', required=True)
    subparsers.add_parser('getpwnam', help='Look up user by name').add_argument('username')
    subparsers.add_parser('getpwsid', help='Look up user by SID').add_argument('sid')
    subparsers.add_parser('getgrnam', help='Look up group by name').add_argument('groupname')
    subparsers.add_parser('getgrgid', help='Look up group by gid').add_argument('gid', type=int)
    subparsers.add_parser('getgrsid', help='Look up group by SID').add_argument('sid')
    subparsers.add_parser('groups', help='Group memberships of a user').add_argument('username')
    subparsers.add_parser('users', help='Enumerate users')
    subparsers.add_parser('grouplist', help='Enumerate groups')
    subparsers.add_parser('sids-to-ids', help='Convert SIDs to unix ids').add_argument('sid', nargs='+')
    subparsers.add_parser('ids-to-sids', help='Convert unix ids to SIDs').add_argument(
        'unixid', nargs='+', type=parse_unixid,
    )
    return parser


def run(args, config):
    """ Returns the NTStatus of the operation and the output to print """
    if args.name in ('sids-to-ids', 'ids-to-sids'):
        idmap = get_idmap_backend(BACKEND_NAME, config)
        if args.name == 'sids-to-ids':
            ids = [IdMap(UnixId(-1), sid=sid) for sid in args.sid]
            status = idmap.sids_to_unixids(ids)
        else:
            ids = [IdMap(xid) for xid in args.unixid]
            status = idmap.unixids_to_sids(ids)

        return status, ids

    passdb = get_passdb_backend(BACKEND_NAME, config)
    if args.name in ('users', 'grouplist'):
        session = passdb.search_users() if args.name == 'users' else passdb.search_groups()
        with session:
            return NTStatus.OK, list(session)

    match args.name:
        case 'getpwnam':
            result = passdb.getsampwnam(args.username)
        case 'getpwsid':
            result = passdb.getsampwsid(args.sid)
        case 'getgrnam':
            result = passdb.getgrnam(args.groupname)
        case 'getgrgid':
            result = passdb.getgrgid(args.gid)
        case 'getgrsid':
            result = passdb.getgrsid(args.sid)
        case 'groups':
            result = passdb.enum_group_memberships(args.username)

    return result.status, result.entry


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging('dsbridgectl', args.debug_level, 'console')

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as e:
        print(f'Failed to load configuration: {e}', file=sys.stderr)
        sys.exit(1)

    try:
        status, output = run(args, config)
    except Unreachable:
        print('Failed to query dscached. Daemon not running?', file=sys.stderr)
        sys.exit(1)
    except ClientException as e:
        if not args.quiet:
            print(str(e), file=sys.stderr)
        sys.exit(1)

    if not status.is_ok:
        if not args.quiet:
            print(status.name, file=sys.stderr)
        sys.exit(1)

    print(json.dumps(_jsonable(output)))


if __name__ == '__main__':
    main()
