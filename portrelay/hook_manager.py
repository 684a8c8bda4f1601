"""Dispatch of server operations to HTTP plugins."""

import json
import secrets
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field

from .hooks import API_VERSION, Op, Request, Response, current_reqid, reqid_context


class PluginRejected(Exception):
    """A plugin rejected the operation; the message is the plugin's reason."""

    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class PluginRequestError(Exception):
    """A plugin could not be reached or answered badly."""


def _op_name(op):
    return op.value if isinstance(op, Op) else str(op)


@dataclass
class HTTPPluginOptions:
    """Where a plugin listens and which operations it handles."""

    name: str
    addr: str
    path: str
    ops: list = field(default_factory=list)


class HTTPPlugin:
    """A plugin reached by POSTing JSON requests over HTTP."""

    def __init__(self, options):
        self.options = options
        self.url = f"http://{options.addr}{options.path}"

    def name(self):
        return self.options.name

    def is_support(self, op):
        return _op_name(op) in [_op_name(o) for o in self.options.ops]

    def handle(self, op, content):
        """Send ``content`` for ``op``; return the response and its content."""
        request = Request(version=API_VERSION, op=op, content=content)
        body = json.dumps(request.to_dict()).encode("utf-8")
        query = urllib.parse.urlencode({"op": _op_name(op), "version": request.version})
        http_request = urllib.request.Request(
            f"{self.url}?{query}",
            data=body,
            method="POST",
            headers={
                "X-Frp-Reqid": current_reqid(),
                "Content-Type": "application/json",
            },
        )
        try:
            with urllib.request.urlopen(http_request) as resp:
                status = resp.status
                payload = resp.read()
        except urllib.error.HTTPError as exc:
            raise PluginRequestError(f"do http request error code: {exc.code}") from exc
        except (urllib.error.URLError, OSError) as exc:
            raise PluginRequestError(str(exc)) from exc

        if status != 200:
            raise PluginRequestError(f"do http request error code: {status}")
        try:
            data = json.loads(payload)
        except ValueError as exc:
            raise PluginRequestError(f"invalid plugin response: {exc}") from exc
        if not isinstance(data, dict):
            raise PluginRequestError("invalid plugin response: not an object")
        res = Response.from_dict(data)
        return res, res.content


def _decode(original, returned):
    from_dict = getattr(type(original), "from_dict", None)
    if callable(from_dict) and isinstance(returned, dict):
        return from_dict(returned)
    return returned


class PluginManager:
    """Holds registered plugins per operation and runs them in order."""

    def __init__(self):
        self.login_plugins = []
        self.new_proxy_plugins = []
        self.ping_plugins = []
        self.new_work_conn_plugins = []
        self.new_user_conn_plugins = []

    def register(self, plugin):
        """Subscribe ``plugin`` to every operation it supports."""
        for op, plugins in (
            (Op.LOGIN, self.login_plugins),
            (Op.NEW_PROXY, self.new_proxy_plugins),
            (Op.PING, self.ping_plugins),
            (Op.NEW_WORK_CONN, self.new_work_conn_plugins),
            (Op.NEW_USER_CONN, self.new_user_conn_plugins),
        ):
            if plugin.is_support(op):
                plugins.append(plugin)

    def _run(self, plugins, op, label, content):
        reqid = secrets.token_hex(8)
        with reqid_context(reqid):
            for plugin in plugins:
                try:
                    res, ret_content = plugin.handle(op, content)
                except (PluginRequestError, OSError, ValueError) as exc:
                    raise PluginRequestError(
                        f"send {label} request to plugin error"
                    ) from exc
                if res.reject:
                    raise PluginRejected(res.reject_reason)
                if not res.unchange:
                    content = _decode(content, ret_content)
        return content

    def login(self, content):
        if not self.login_plugins:
            return content
        return self._run(self.login_plugins, Op.LOGIN, "Login", content)

    def new_proxy(self, content):
        if not self.new_proxy_plugins:
            return content
        return self._run(self.new_proxy_plugins, Op.NEW_PROXY, "NewProxy", content)

    def ping(self, content):
        if not self.ping_plugins:
            return content
        return self._run(self.ping_plugins, Op.PING, "Ping", content)

    def new_work_conn(self, content):
        if not self.new_work_conn_plugins:
            return content
        # Dispatched to the Ping subscribers under the Ping operation.
        return self._run(self.ping_plugins, Op.PING, "NewWorkConn", content)

    def new_user_conn(self, content):
        if not self.new_user_conn_plugins:
            return content
        return self._run(
            self.new_user_conn_plugins, Op.NEW_USER_CONN, "NewUserConn", content
        )