import errno
import grp
import logging
import weakref

from ..client import call_dispatcher_stream, ClientException, Connection, RpcCallStatus

logger = logging.getLogger(__name__)


class EnumerationError(ClientException):
    def __init__(self, error):
        super().__init__(error, errno.ENOMEM)


def local_group_exists(name):
    try:
        grp.getgrnam(name)
    except KeyError:
        return False

    return True


class SearchSession:
    """
    Forward-only iterator over a dscached query stream.

    Pages are pulled from the daemon as they are consumed. `converter` turns
    a record into a display entry or returns None to skip it. The connection
    is released exactly once: when the stream is exhausted, on a fatal error,
    on `close()`, or when the session is garbage collected.
    """

    def __init__(self, conn, call, converter):
        self._call = call
        self._converter = converter
        self._page = call.result or []
        self._position = 0
        self._offset = 0
        self._finalizer = weakref.finalize(self, conn.close)

    @classmethod
    def start(cls, kind, converter, connect=Connection):
        conn, call = call_dispatcher_stream(kind.method, [], [], True, connect=connect)
        return cls(conn, call, converter)

    def __enter__(self):
        return self

    def __exit__(self, typ, value, traceback):
        self.close()

    def __iter__(self):
        return self

    def __next__(self):
        if (entry := self.next_entry()) is None:
            raise StopIteration

        return entry

    @property
    def closed(self):
        return not self._finalizer.alive

    def _next_page(self):
        try:
            status = self._call.advance()
        except ClientException:
            self.close()
            raise

        if status != RpcCallStatus.MORE_AVAILABLE:
            logger.debug('%s: end of results', self._call.method)
            self.close()
            return False

        self._offset += len(self._page)
        self._page = self._call.result or []
        self._position = 0
        return True

    def next_entry(self):
        """ Next accepted entry or None once the stream is exhausted """
        while not self.closed:
            if self._position >= len(self._page):
                if not self._next_page():
                    return None

                continue

            idx = self._offset + self._position
            item = self._page[self._position]
            self._position += 1

            try:
                entry = self._converter(item, idx)
            except (AttributeError, TypeError, ValueError) as e:
                self.close()
                raise EnumerationError(f'{self._call.method}: failed to convert entry {idx}: {e}')

            if entry is None:
                continue

            if not entry.account_name:
                self.close()
                raise EnumerationError(f'{self._call.method}: entry {idx} has no account name')

            return entry

        return None

    def close(self):
        self._page = []
        self._finalizer()
