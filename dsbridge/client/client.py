import enum
import errno
import logging
import socket
import uuid

from websocket import WebSocket, WebSocketConnectionClosedException, WebSocketException

from . import ejson as json
from .utils import DSCACHED_SOCKET, UNIX_SOCKET_PREFIX, WEBSOCKET_URL
from ..logger import TRACE

logger = logging.getLogger(__name__)


class ErrnoMixin:
    EPROTOCOL = 201

    @classmethod
    def _get_errname(cls, code):
        for k, v in vars(ErrnoMixin).items():
            if k.startswith("E") and v == code:
                return k

        return errno.errorcode.get(code, 'EUNKNOWN')


class ClientException(ErrnoMixin, Exception):
    def __init__(self, error, errno=errno.EFAULT, extra=None):
        self.errno = errno
        self.error = error
        self.extra = extra

    def __str__(self):
        return f'[{self._get_errname(self.errno)}] {self.error}'


class Unreachable(ClientException):
    """ The dscached socket could not be opened. Never retried. """
    pass


class ProtocolError(ClientException):
    def __init__(self, error, extra=None):
        super().__init__(error, ErrnoMixin.EPROTOCOL, extra)


class RemoteError(ClientException):
    """ dscached answered the call with an error frame """

    def __init__(self, method, code, message, extra=None):
        self.method = method
        super().__init__(message, code, extra)

    @property
    def code(self):
        return self.errno

    @property
    def message(self):
        return self.error

    def __str__(self):
        return f'{self.method}: [{self._get_errname(self.errno)}] {self.error}'


class RpcCallStatus(enum.Enum):
    IN_PROGRESS = enum.auto()
    MORE_AVAILABLE = enum.auto()
    DONE = enum.auto()
    ERROR = enum.auto()


class WSClient:
    def __init__(self, url):
        self.url = url
        self.socket = None
        self.ws = None

    def connect(self):
        if not self.url.startswith(UNIX_SOCKET_PREFIX):
            raise ValueError(f'{self.url}: only unix domain socket endpoints are supported')

        self.socket = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            self.socket.connect(self.url.removeprefix(UNIX_SOCKET_PREFIX))
            self.ws = WebSocket()
            # Calls block until dscached answers. There is deliberately no timeout.
            self.ws.connect(WEBSOCKET_URL, socket=self.socket)
        except (OSError, WebSocketException) as e:
            self.socket.close()
            self.socket = None
            self.ws = None
            raise Unreachable(
                f'{self.url}: cannot open connection: {e}',
                getattr(e, 'errno', None) or errno.ECONNREFUSED,
            )

    def send(self, data):
        logger.log(TRACE, '%s: send %r', self.url, data)
        try:
            self.ws.send(json.dumps(data))
        except (AttributeError, WebSocketConnectionClosedException):
            raise ClientException('Unexpected closure of remote connection', errno.ECONNABORTED)

    def recv(self):
        try:
            data = self.ws.recv()
        except (AttributeError, WebSocketConnectionClosedException):
            raise ClientException('Unexpected closure of remote connection', errno.ECONNABORTED)

        try:
            message = json.loads(data)
        except ValueError as e:
            raise ProtocolError(f'Invalid JSON message: {e}')

        if not isinstance(message, dict) or 'namespace' not in message or 'name' not in message:
            raise ProtocolError('Malformed message', extra=message)

        logger.log(TRACE, '%s: recv %r', self.url, message)
        return message

    def close(self):
        if self.ws is not None:
            self.ws.close()
            self.ws = None

        if self.socket is not None:
            self.socket.close()
            self.socket = None


class RpcCall:
    """
    A call in flight on a `Connection`. Streaming methods deliver their
    result one fragment (page) at a time, `result` always holds the latest
    page and `advance()` asks dscached for the next one.
    """

    def __init__(self, client, method, params):
        self.client = client
        self.id = str(uuid.uuid4())
        self.method = method
        self.params = list(params)
        self.status = RpcCallStatus.IN_PROGRESS
        self.result = None
        self.seqno = None
        self.error = None

    def __repr__(self):
        return f'<RpcCall[{self.method}] {self.status.name}>'

    def _pack(self, name, args):
        return {
            'namespace': 'rpc',
            'name': name,
            'id': self.id,
            'args': args,
        }

    def start(self):
        self.client.send(self._pack('call', {'method': self.method, 'args': self.params}))
        self._wait()
        return self

    def advance(self):
        """
        Request the next fragment and block until dscached either delivers
        it or reports the end of the stream. Never returns IN_PROGRESS.
        """
        if self.status != RpcCallStatus.MORE_AVAILABLE:
            return self.status

        self.client.send(self._pack('continue', self.seqno))
        self._wait()
        return self.status

    def _wait(self):
        while True:
            message = self.client.recv()
            if message['namespace'] != 'rpc' or message.get('id') != self.id:
                logger.log(TRACE, '%s: ignoring unrelated message %r', self.method, message)
                continue

            args = message.get('args')
            match message['name']:
                case 'response':
                    self.result = args
                    self.status = RpcCallStatus.DONE
                case 'fragment':
                    self.seqno = args['seqno']
                    self.result = args['fragment']
                    self.status = RpcCallStatus.MORE_AVAILABLE
                case 'end':
                    self.result = None
                    self.status = RpcCallStatus.DONE
                case 'error':
                    args = args or {}
                    self.result = None
                    self.error = args
                    self.status = RpcCallStatus.ERROR
                    raise RemoteError(
                        self.method,
                        args.get('code', errno.EFAULT),
                        args.get('message', ''),
                        args.get('extra'),
                    )
                case _:
                    raise ProtocolError(f'{message["name"]}: unexpected message type', extra=message)

            return


class Connection:
    def __init__(self, uri=DSCACHED_SOCKET):
        self.uri = uri
        self._ws = WSClient(uri)
        self._ws.connect()

    def __enter__(self):
        return self

    def __exit__(self, typ, value, traceback):
        self.close()

    def call_sync_ex(self, method, *params):
        """ Start `method` and return the call once its first page (or full result) is in """
        if self._ws is None:
            raise ClientException('Connection is closed', errno.ENOTCONN)

        return RpcCall(self._ws, method, params).start()

    def call_sync(self, method, *params):
        call = self.call_sync_ex(method, *params)
        if call.status == RpcCallStatus.DONE:
            return call.result

        # Streamed result, drain it into a single list
        result = list(call.result or [])
        while call.advance() == RpcCallStatus.MORE_AVAILABLE:
            result.extend(call.result or [])

        return result

    def close(self):
        if self._ws is not None:
            self._ws.close()
            self._ws = None


def call_dispatcher(method, *params, connect=Connection):
    """
    One synchronous call on a connection of its own. ENOENT from dscached
    is not an error: the entry does not exist and None is returned.
    """
    try:
        conn = connect()
    except Unreachable:
        logger.error('Cannot open unix domain socket connection.')
        raise

    with conn:
        try:
            return conn.call_sync(method, *params)
        except RemoteError as e:
            if e.errno == errno.ENOENT:
                return None

            logger.error('RPC %s error: <%d> %s', method, e.errno, e.error)
            raise
        except ClientException as e:
            logger.error('Cannot call %s: %s', method, e)
            raise


def call_dispatcher_stream(method, *params, connect=Connection):
    """
    Start a streaming call. The returned connection stays open for as long
    as the caller keeps advancing the call and must be closed by it.
    """
    conn = connect()
    try:
        call = conn.call_sync_ex(method, *params)
    except ClientException:
        conn.close()
        raise

    return conn, call
