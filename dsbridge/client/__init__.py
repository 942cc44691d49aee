from .client import (  # noqa
    call_dispatcher, call_dispatcher_stream, ClientException, Connection, ProtocolError, RemoteError,
    RpcCall, RpcCallStatus, Unreachable,
)
from .utils import DSCACHED_SOCKET  # noqa
