import logging
import pytest

from dsbridge.config import BridgeConfig, load_config, parse_rid_base, read_smb_conf

DOMAIN_SID = 'S-1-5-21-710078819-430336432-4106732522'

SMB_CONF = f"""
#
# SMB.CONF(5)		The configuration file for the Samba suite
#

[global]
    server string = TrueNAS Server
    Guest Account = smbguest
    algorithmic rid base = 5000
    dsbridge:domain sid = {DOMAIN_SID}
    ; comment inside the section
    passdb backend = freenas
    idmap config * : backend = freenas

[homes]
    path = /mnt/tank/homes/%U
    guest account = nobody
"""


@pytest.fixture(scope='function')
def smb_conf(tmp_path):
    path = tmp_path / 'smb4.conf'
    path.write_text(SMB_CONF)
    return str(path)


def test__read_smb_conf(smb_conf):
    params = read_smb_conf(smb_conf)
    assert params['guestaccount'] == 'smbguest'
    assert params['algorithmicridbase'] == '5000'
    assert params['dsbridge:domainsid'] == DOMAIN_SID
    assert params['idmapconfig*:backend'] == 'freenas'
    assert 'path' not in params


def test__load_config(smb_conf):
    config = load_config(smb_conf, environ={})
    assert config == BridgeConfig(domain_sid=DOMAIN_SID, guest_account='smbguest', algorithmic_rid_base=5000)
    assert config.endpoint == 'unix:///var/run/dscached.sock'


def test__load_config_environment_overrides(smb_conf):
    config = load_config(smb_conf, environ={
        'DSBRIDGE_DOMAIN_SID': 'S-1-5-21-1-2-3',
        'DSBRIDGE_GUEST_ACCOUNT': '',
    })
    assert config.domain_sid == 'S-1-5-21-1-2-3'
    assert config.guest_account == ''
    assert config.algorithmic_rid_base == 5000


def test__load_config_missing_file(tmp_path):
    config = load_config(str(tmp_path / 'missing.conf'), environ={'DSBRIDGE_DOMAIN_SID': DOMAIN_SID})
    assert config.guest_account == 'nobody'
    assert config.algorithmic_rid_base == 1000


def test__load_config_no_domain_sid(tmp_path):
    path = tmp_path / 'smb4.conf'
    path.write_text('[global]\n\tguest account = nobody\n')
    with pytest.raises(ValueError):
        load_config(str(path), environ={})


def test__load_config_invalid_domain_sid(tmp_path):
    with pytest.raises(ValueError):
        load_config(str(tmp_path / 'missing.conf'), environ={'DSBRIDGE_DOMAIN_SID': 'S-1-5-32-544-1'})


@pytest.mark.parametrize('value,expected', [
    ('1000', 1000),
    ('1001', 1002),
    ('0x100000', None),
    ('999', 1000),
    (str(0x100000 + 2), 1000),
])
def test__parse_rid_base(value, expected, caplog):
    if expected is None:
        with pytest.raises(ValueError):
            parse_rid_base(value)
        return

    with caplog.at_level(logging.WARNING):
        assert parse_rid_base(value) == expected

    assert bool(caplog.records) == (value != str(expected))


@pytest.mark.parametrize('kwargs', [
    {'domain_sid': 'S-1-5-21-1-2-3-1000'},
    {'domain_sid': 'garbage'},
    {'domain_sid': DOMAIN_SID, 'algorithmic_rid_base': 1001},
    {'domain_sid': DOMAIN_SID, 'algorithmic_rid_base': 998},
])
def test__bridge_config_invalid(kwargs):
    with pytest.raises(ValueError):
        BridgeConfig(**kwargs)
