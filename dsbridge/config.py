import configparser
import logging
import os

from dataclasses import dataclass

from .client.utils import DSCACHED_SOCKET
from .utils.sid import (
    DEFAULT_ALGORITHMIC_RID_BASE,
    MAX_ALGORITHMIC_RID_BASE,
    domain_sid_is_valid,
)

logger = logging.getLogger(__name__)

SMB_CONF = '/usr/local/etc/smb4.conf'
GLOBAL_SECTION = 'global'
DEFAULT_GUEST_ACCOUNT = 'nobody'

# smb.conf parameter names are case and whitespace insensitive
PARAM_GUEST_ACCOUNT = 'guestaccount'
PARAM_RID_BASE = 'algorithmicridbase'
PARAM_DOMAIN_SID = 'dsbridge:domainsid'

ENV_DOMAIN_SID = 'DSBRIDGE_DOMAIN_SID'
ENV_GUEST_ACCOUNT = 'DSBRIDGE_GUEST_ACCOUNT'


@dataclass(slots=True, frozen=True)
class BridgeConfig:
    """
    Site configuration the passdb and idmap backends depend on.

    `domain_sid` is the server's own SAM domain SID; SIDs outside of it are
    not ours to resolve. An empty `guest_account` means guest lookups fail.
    """
    domain_sid: str
    guest_account: str = DEFAULT_GUEST_ACCOUNT
    algorithmic_rid_base: int = DEFAULT_ALGORITHMIC_RID_BASE
    endpoint: str = DSCACHED_SOCKET

    def __post_init__(self):
        if not domain_sid_is_valid(self.domain_sid):
            raise ValueError(f'{self.domain_sid}: not a valid domain SID')

        if not DEFAULT_ALGORITHMIC_RID_BASE <= self.algorithmic_rid_base <= MAX_ALGORITHMIC_RID_BASE:
            raise ValueError(f'{self.algorithmic_rid_base}: algorithmic rid base out of range')

        if self.algorithmic_rid_base % 2:
            raise ValueError(f'{self.algorithmic_rid_base}: algorithmic rid base must be even')


def _normalize_param(name):
    return name.replace(' ', '').replace('_', '').lower()


def read_smb_conf(path=SMB_CONF):
    """ Return the [global] section of smb.conf as a dict keyed by normalized parameter name """
    parser = configparser.ConfigParser(
        strict=False,
        interpolation=None,
        # parametric options such as "dsbridge:domain sid" contain a colon
        delimiters=('=',),
        comment_prefixes=('#', ';'),
        default_section='__dsbridge_unused__',
    )
    parser.optionxform = _normalize_param
    with open(path) as f:
        parser.read_file(f)

    for section in parser.sections():
        if section.lower() == GLOBAL_SECTION:
            return dict(parser[section])

    return {}


def parse_rid_base(value):
    rid_base = int(value)
    if not DEFAULT_ALGORITHMIC_RID_BASE <= rid_base <= MAX_ALGORITHMIC_RID_BASE:
        logger.warning('%d: invalid algorithmic rid base, using %d', rid_base, DEFAULT_ALGORITHMIC_RID_BASE)
        return DEFAULT_ALGORITHMIC_RID_BASE

    if rid_base & 1:
        # Same correction samba applies
        logger.warning('algorithmic rid base must be even, using %d', rid_base + 1)
        rid_base += 1

    return rid_base


def load_config(path=SMB_CONF, environ=None):
    """
    Build a BridgeConfig from smb.conf. Environment variables take
    precedence over the file. A missing smb.conf is tolerated as long as the
    domain SID is supplied through the environment.
    """
    environ = os.environ if environ is None else environ

    try:
        params = read_smb_conf(path)
    except FileNotFoundError:
        logger.debug('%s: file does not exist', path)
        params = {}

    domain_sid = environ.get(ENV_DOMAIN_SID) or params.get(PARAM_DOMAIN_SID)
    if not domain_sid:
        raise ValueError(f'Domain SID not configured ({ENV_DOMAIN_SID} or "dsbridge:domain sid" in {path})')

    guest_account = environ.get(ENV_GUEST_ACCOUNT, params.get(PARAM_GUEST_ACCOUNT, DEFAULT_GUEST_ACCOUNT))

    rid_base = DEFAULT_ALGORITHMIC_RID_BASE
    if (value := params.get(PARAM_RID_BASE)) is not None:
        rid_base = parse_rid_base(value)

    return BridgeConfig(
        domain_sid=domain_sid.strip(),
        guest_account=guest_account.strip(),
        algorithmic_rid_base=rid_base,
    )
