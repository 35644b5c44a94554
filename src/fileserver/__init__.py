"""
=============================================================================
FILESERVER: A MINIMAL HTTP FILE SERVER
=============================================================================

Serves a directory over HTTP/1.1, one request per connection:

    $ fileserver 8080 /srv/www
    $ curl -i http://localhost:8080/index.html

=============================================================================
PACKAGE LAYOUT
=============================================================================

    fileserver/
    ├── __main__.py        CLI: fileserver <port> <root_path>
    ├── server.py          FileServer, wires everything together
    ├── config.py          ServerConfig (defaults, env, validation)
    ├── text.py            Native path <-> UTF-8 conversion
    ├── access_log.py      One access line per response
    │
    ├── core/              Transport and concurrency
    │   ├── socket_server.py   Bind, listen, accept loop
    │   ├── connection.py      One client socket
    │   └── thread_pool.py     Fixed worker pool
    │
    ├── http/              Protocol
    │   ├── request.py         Request line parser
    │   ├── resolver.py        Target -> filesystem location
    │   ├── response.py        Response value, builder, fixed errors
    │   ├── status_codes.py    The five statuses this server sends
    │   └── mime_types.py      Extension -> Content-Type table
    │
    └── handlers/          Per-request logic
        ├── static.py          File bodies and directory listings
        └── connection.py      The per-connection state machine

=============================================================================
WHAT IT DELIBERATELY DOES NOT DO
=============================================================================

No keep-alive, no methods besides GET, no request bodies, no TLS, no
range requests, no compression, no caching. Every connection is
independent: read one request, write one response, close.

=============================================================================
"""

__version__ = "1.0.0"

from .server import FileServer, serve
from .config import ServerConfig

__all__ = ["FileServer", "ServerConfig", "serve", "__version__"]
