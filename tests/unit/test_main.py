import json
import pytest

from unittest.mock import Mock

from dsbridge.constants import DSCachedMethod
from dsbridge.main import main, parse_unixid
from dsbridge.idmap import IdType, UnixId

NTHASH = '05BC65787F63B56CF6D47F16E32E3ABF'


@pytest.fixture(scope='function')
def dsbridgectl(monkeypatch, tmp_path, dscached, domain_sid):
    """ Run the CLI against the fake dscached. Returns the exit code. """
    monkeypatch.setenv('DSBRIDGE_DOMAIN_SID', domain_sid)
    monkeypatch.delenv('DSBRIDGE_GUEST_ACCOUNT', raising=False)
    monkeypatch.setattr('dsbridge.main.setup_logging', Mock())
    monkeypatch.setattr('dsbridge.passdb.freenas.Connection', lambda uri: dscached())
    monkeypatch.setattr('dsbridge.idmap.Connection', lambda uri: dscached())
    monkeypatch.setattr('dsbridge.passdb.freenas.local_group_exists', lambda name: name == 'wheel')

    def run(*argv):
        try:
            main(['-c', str(tmp_path / 'smb4.conf'), *argv])
        except SystemExit as e:
            return e.code

        return 0

    return run


def test__getpwnam(dsbridgectl, dscached, domain_sid, capsys):
    dscached.responses[DSCachedMethod.GETPWNAM] = {'uid': 3000, 'username': 'pdbuser', 'nthash': NTHASH}

    assert dsbridgectl('getpwnam', 'pdbuser') == 0
    output = json.loads(capsys.readouterr().out)
    assert output['username'] == 'pdbuser'
    assert output['user_sid'] == f'{domain_sid}-7000'
    assert output['nt_hash'] == NTHASH
    assert output['acct_ctrl'] == 'NORMAL'


def test__getpwnam_not_found(dsbridgectl, dscached, capsys):
    dscached.responses[DSCachedMethod.GETPWNAM] = None

    assert dsbridgectl('getpwnam', 'missing') == 1
    captured = capsys.readouterr()
    assert captured.out == ''
    assert 'NO_SUCH_USER' in captured.err


def test__quiet(dsbridgectl, dscached, capsys):
    dscached.responses[DSCachedMethod.GETGRGID] = None

    assert dsbridgectl('-q', 'getgrgid', '3000') == 1
    assert capsys.readouterr().err == ''


def test__unreachable(dsbridgectl, dscached, capsys):
    dscached.unreachable = True

    assert dsbridgectl('getgrnam', 'staff') == 1
    assert 'Daemon not running?' in capsys.readouterr().err


def test__groups(dsbridgectl, dscached, domain_sid, capsys):
    dscached.responses[DSCachedMethod.GETGROUPMEMBERSHIP] = [20]

    assert dsbridgectl('groups', 'pdbuser') == 0
    assert json.loads(capsys.readouterr().out) == {'gids': [20], 'sids': [f'{domain_sid}-1041']}


def test__grouplist(dsbridgectl, dscached, capsys):
    dscached.streams[DSCachedMethod.GROUP_QUERY] = [[{'gid': 0, 'name': 'wheel'}, {'gid': 20, 'name': 'staff'}]]

    assert dsbridgectl('grouplist') == 0
    output = json.loads(capsys.readouterr().out)
    assert [entry['account_name'] for entry in output] == ['staff']
    assert dscached.connections[0].close_count == 1


def test__ids_to_sids(dsbridgectl, dscached, domain_sid, capsys):
    dscached.responses[DSCachedMethod.UNIXIDS_TO_SIDS] = [f'{domain_sid}-7000']

    assert dsbridgectl('ids-to-sids', 'uid:3000') == 0
    output = json.loads(capsys.readouterr().out)
    assert output == [{'xid': {'id': 3000, 'type': 'UID'}, 'sid': f'{domain_sid}-7000', 'status': 'MAPPED'}]


def test__sids_to_ids(dsbridgectl, dscached, domain_sid, capsys):
    dscached.responses[DSCachedMethod.SIDS_TO_UNIXIDS] = [['GID', 20]]

    assert dsbridgectl('sids-to-ids', f'{domain_sid}-1041') == 0
    output = json.loads(capsys.readouterr().out)
    assert output[0]['xid'] == {'id': 20, 'type': 'GID'}


def test__missing_domain_sid(dsbridgectl, monkeypatch, capsys):
    monkeypatch.delenv('DSBRIDGE_DOMAIN_SID')

    assert dsbridgectl('getpwnam', 'pdbuser') == 1
    assert 'Failed to load configuration' in capsys.readouterr().err


def test__parse_unixid():
    assert parse_unixid('GID:20') == UnixId(20, IdType.GID)
    assert parse_unixid('uid:0') == UnixId(0, IdType.UID)


@pytest.mark.parametrize('value', ['20', 'SID:20', 'UID:root'])
def test__parse_unixid_invalid(dsbridgectl, value):
    assert dsbridgectl('ids-to-sids', value) == 2
