from types import MappingProxyType

from .idmap import FreenasIdmap
from .passdb import FreenasPassdb

# Backend name -> factory. Built once at import and never modified afterwards.
PASSDB_BACKENDS = MappingProxyType({
    FreenasPassdb.name: FreenasPassdb,
})

IDMAP_BACKENDS = MappingProxyType({
    FreenasIdmap.name: FreenasIdmap,
})


def get_passdb_backend(name, config, **kwargs):
    return PASSDB_BACKENDS[name](config, **kwargs)


def get_idmap_backend(name, config, **kwargs):
    backend = IDMAP_BACKENDS[name](config, **kwargs)
    backend.init()
    return backend
