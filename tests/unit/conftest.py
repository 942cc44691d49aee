import copy
import errno
import json
import pytest

from unittest.mock import Mock, patch
from websocket import WebSocketConnectionClosedException

from dsbridge.client import RemoteError, RpcCallStatus, Unreachable
from dsbridge.config import BridgeConfig
from dsbridge.passdb import FreenasPassdb


PDB_DOM_SID = 'S-1-5-21-710078819-430336432-4106732522'


class FakeCall:
    """ Stands in for RpcCall. The last page is followed by an explicit end of stream. """

    def __init__(self, method, pages):
        self.method = method
        self._pages = [list(page) for page in pages]
        self.result = self._pages.pop(0) if self._pages else []
        self.status = RpcCallStatus.MORE_AVAILABLE
        self.advance_count = 0

    def advance(self):
        self.advance_count += 1
        if self.status != RpcCallStatus.MORE_AVAILABLE:
            return self.status

        if self._pages:
            self.result = self._pages.pop(0)
        else:
            self.result = None
            self.status = RpcCallStatus.DONE

        return self.status


class FakeConnection:
    def __init__(self, daemon):
        self.daemon = daemon
        self.close_count = 0
        self.calls = []

    def __enter__(self):
        return self

    def __exit__(self, typ, value, traceback):
        self.close()

    def call_sync(self, method, *params):
        self.daemon.calls.append((method, params))
        handler = self.daemon.responses[method]
        value = handler(*params) if callable(handler) else handler
        if isinstance(value, Exception):
            raise value

        if value is None:
            raise RemoteError(method, errno.ENOENT, 'Entity not found')

        return copy.deepcopy(value)

    def call_sync_ex(self, method, *params):
        self.daemon.calls.append((method, params))
        call = FakeCall(method, self.daemon.streams[method])
        self.daemon.stream_calls.append(call)
        return call

    def close(self):
        self.close_count += 1


class FakeDSCached:
    """
    Connection factory answering from canned data. A handler returning None
    produces the ENOENT error frame dscached sends for missing entries.
    """

    def __init__(self):
        self.responses = {}
        self.streams = {}
        self.calls = []
        self.stream_calls = []
        self.connections = []
        self.unreachable = False

    def __call__(self):
        if self.unreachable:
            raise Unreachable('unix:///var/run/dscached.sock: cannot open connection', errno.ENOENT)

        conn = FakeConnection(self)
        self.connections.append(conn)
        return conn


@pytest.fixture(scope='function')
def dscached():
    return FakeDSCached()


@pytest.fixture(scope='function')
def domain_sid():
    return PDB_DOM_SID


@pytest.fixture(scope='function')
def bridge_config(domain_sid):
    return BridgeConfig(domain_sid=domain_sid, guest_account='nobody')


@pytest.fixture(scope='function')
def local_groups():
    return {'wheel', 'operator'}


@pytest.fixture(scope='function')
def passdb(bridge_config, dscached, local_groups):
    return FreenasPassdb(bridge_config, connect=dscached, name_collides=lambda name: name in local_groups)


class FakeWebSocket:
    """
    Replays dscached frames. `handler` receives every decoded request and
    returns the list of frames to answer it with.
    """

    def __init__(self, handler):
        self.handler = handler
        self.sent = []
        self.pending = []
        self.closed = False
        self.close_count = 0
        self.url = None

    def connect(self, url, **kwargs):
        self.url = url

    def send(self, data):
        if self.closed:
            raise WebSocketConnectionClosedException('socket is already closed.')

        request = json.loads(data)
        self.sent.append(request)
        self.pending.extend(json.dumps(frame) for frame in self.handler(request))

    def recv(self):
        if self.closed or not self.pending:
            raise WebSocketConnectionClosedException('Connection to remote host was lost.')

        return self.pending.pop(0)

    def close(self):
        self.closed = True
        self.close_count += 1

    @staticmethod
    def frame(request, name, args=None):
        return {'namespace': 'rpc', 'name': name, 'id': request['id'], 'args': args}

    @classmethod
    def error_frame(cls, request, code, message):
        return cls.frame(request, 'error', {'code': code, 'message': message, 'extra': None})

    @classmethod
    def paged(cls, pages):
        """ Handler streaming `pages` one fragment per `continue` """
        def handler(request):
            if request['name'] == 'call':
                seqno = 0
            else:
                seqno = request['args'] + 1

            if seqno >= len(pages):
                return [cls.frame(request, 'end')]

            return [cls.frame(request, 'fragment', {'seqno': seqno, 'fragment': pages[seqno]})]

        return handler


@pytest.fixture(scope='function')
def websocket():
    """ Patches the transport, set `ws.handler` to script dscached """
    ws = FakeWebSocket(lambda request: [])
    with patch('dsbridge.client.client.socket.socket'):
        with patch('dsbridge.client.client.WebSocket', Mock(return_value=ws)):
            yield ws
