DSCACHED_RUN_DIR = '/var/run'
DSCACHED_SOCKET = f'unix://{DSCACHED_RUN_DIR}/dscached.sock'
UNIX_SOCKET_PREFIX = 'unix://'

# dscached speaks the dispatcher protocol over a websocket on its unix socket.
# Hostname is a dummy since the socket is already connected.
WEBSOCKET_URL = 'ws://localhost/socket'
