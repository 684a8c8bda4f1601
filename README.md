# portrelay

Server-side pieces for a reverse proxy that makes services on private
networks reachable from the outside: allocating public ports to proxies,
keeping track of client controls and proxies, asking external HTTP plugins
to approve or rewrite operations, and carrying UDP datagrams over a
message channel.

The package uses only the standard library.

## Modules

| Module | Contents |
| --- | --- |
| `portrelay.ports` | `PortManager` and its errors `PortError`, `PortAlreadyUsed`, `PortNotAllowed`, `PortUnavailable`, `NoAvailablePort`; `PortCtx` records. |
| `portrelay.control_registry` | `ControlManager`, client controls indexed by run id. |
| `portrelay.proxy_registry` | `ProxyManager`, proxies indexed by name, and `ProxyNameInUse`. |
| `portrelay.hooks` | `Op`, `UserInfo`, `Request`, `Response`, `NewUserConnContent`, `API_VERSION`, `reqid_context`, `current_reqid`. |
| `portrelay.hook_manager` | `HTTPPluginOptions`, `HTTPPlugin`, `PluginManager`, `PluginRejected`, `PluginRequestError`. |
| `portrelay.udp` | `UDPPacket`, `new_udp_packet`, `get_content`, `forward_user_conn`, `forwarder`. |

## Ports

`PortManager(net_type, bind_addr, allow_ports=None)` hands out ports from
`allow_ports`, or from 1–65535 when none are given. Before handing a port
out it checks that the port can really be bound on `bind_addr`
(`net_type` is `"tcp"` or `"udp"`).

```python
from portrelay.ports import PortManager, PortNotAllowed

ports = PortManager("tcp", "127.0.0.1", {7000, 7001})
port = ports.acquire("web", 7000)
try:
    ports.acquire("other", 9000)
except PortNotAllowed:
    pass
ports.release(port)
```

- `acquire(name, port)` with a specific port raises `PortUnavailable` if it
  cannot be bound, `PortAlreadyUsed` if another proxy holds it, and
  `PortNotAllowed` if it is outside the allowed set.
- `acquire(name, 0)` first tries the port last held by `name`, then up to
  five random free ports, and raises `NoAvailablePort` if none can be bound.
- `release(port)` returns the port to the free set; the proxy's reservation
  is kept.
- `clean_reserved_ports(now=None)` drops reservations of released ports
  that have been unused for more than 24 hours (times are
  `time.monotonic()` seconds). `run_cleaner(stop_event)` calls it once an
  hour until the `threading.Event` is set.

## Registries

`ProxyManager` stores proxies by name: `add(name, proxy)` raises
`ProxyNameInUse` for a taken name, `get(name)` returns the proxy or `None`,
`delete(name)` forgets it. `len()` and `in` work on it.

```python
from portrelay.proxy_registry import ProxyManager, ProxyNameInUse

proxies = ProxyManager()
proxies.add("web", object())
try:
    proxies.add("web", object())
except ProxyNameInUse:
    pass
```

`ControlManager` stores one control object per client run id. A control is
any object with a `replaced(new_ctl)` method. `add(run_id, ctl)` calls
`replaced` on the control already registered under that run id and returns
it (or `None`). `delete(run_id, ctl)` removes the entry only if it still
maps to that very control, so a stale control cannot remove its successor.

## Plugin hooks

`PluginManager.register(plugin)` subscribes a plugin to each `Op` its
`is_support(op)` accepts. `login`, `new_proxy`, `ping`, `new_work_conn` and
`new_user_conn` pass the content through the subscribed plugins in order
and return the possibly rewritten content. With no subscribers the content
is returned unchanged. A plugin answer with `reject` set raises
`PluginRejected` carrying the reason; a plugin that cannot be reached or
answers badly raises `PluginRequestError`. When a plugin changes the
content and the original content's type has a `from_dict` class method,
the returned dict is decoded with it; otherwise the returned value is used
as is.

`new_work_conn` runs only when some plugin subscribes to `NewWorkConn`, but
it sends the request to the `Ping` subscribers under the `Ping` operation.

`HTTPPlugin(HTTPPluginOptions(name, addr, path, ops))` POSTs the JSON body
`{"version", "op", "content"}` to `http://<addr><path>?op=...&version=...`
with the headers `Content-Type: application/json` and `X-Frp-Reqid` set to
the current request id. Any status other than 200 is an error.
Each manager call runs under a fresh random request id, readable through
`current_reqid()`; `reqid_context(reqid)` sets one for a block.

## UDP forwarding

```python
from portrelay.udp import new_udp_packet, get_content

packet = new_udp_packet(b"hello world", None, None)
assert get_content(packet) == b"hello world"
```

`UDPPacket.content` is base64 text; `get_content` raises `ValueError` for
invalid content. The forwarding functions work on `queue.Queue` objects and
treat `None` read from a queue as its end. Packets are dropped when the
send queue is full.

- `forward_user_conn(udp_sock, read_queue, send_queue, buf_size)` wraps
  every datagram received on the socket into `send_queue`, sends packets
  from `read_queue` back to their `remote_addr`, and blocks until reading
  from the socket fails.
- `forwarder(dst_addr, read_queue, send_queue, buf_size)` sends packets from
  `read_queue` to `dst_addr` through one connected socket per remote
  address, puts replies on `send_queue`, closes a socket after 30 seconds
  without a reply, and returns the dispatching thread.

## What this package does not do

There is no command and no server to start. The package does not accept
client logins, run proxies, listen for user connections, route virtual
hosts, share a remote port among several proxies, record traffic
statistics, or provide client-side plugins. It supplies the bookkeeping and
plugin-hook pieces such a server is built from.