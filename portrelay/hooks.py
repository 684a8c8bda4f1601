"""Server plugin operations, message shapes and request-id tracing."""

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

API_VERSION = "0.1.0"


class Op(str, Enum):
    """Operations a server plugin may subscribe to."""

    LOGIN = "Login"
    NEW_PROXY = "NewProxy"
    PING = "Ping"
    NEW_WORK_CONN = "NewWorkConn"
    NEW_USER_CONN = "NewUserConn"


def _encode(content):
    to_dict = getattr(content, "to_dict", None)
    return to_dict() if callable(to_dict) else content


@dataclass
class UserInfo:
    """Identity of the client a request concerns."""

    user: str = ""
    metas: dict = field(default_factory=dict)
    run_id: str = ""

    def to_dict(self):
        return {"user": self.user, "metas": dict(self.metas), "run_id": self.run_id}


@dataclass
class Request:
    """Body sent to a plugin."""

    version: str
    op: Any
    content: Any

    def to_dict(self):
        op = self.op.value if isinstance(self.op, Op) else self.op
        return {"version": self.version, "op": op, "content": _encode(self.content)}


@dataclass
class Response:
    """Answer returned by a plugin."""

    reject: bool = False
    reject_reason: str = ""
    unchange: bool = False
    content: Any = None

    @classmethod
    def from_dict(cls, data):
        return cls(
            reject=bool(data.get("reject", False)),
            reject_reason=data.get("reject_reason", "") or "",
            unchange=bool(data.get("unchange", False)),
            content=data.get("content"),
        )


@dataclass
class NewUserConnContent:
    """Content of a NewUserConn operation."""

    user: UserInfo
    proxy_name: str = ""
    proxy_type: str = ""
    remote_addr: str = ""

    def to_dict(self):
        return {
            "user": self.user.to_dict(),
            "proxy_name": self.proxy_name,
            "proxy_type": self.proxy_type,
            "remote_addr": self.remote_addr,
        }


_reqid: ContextVar[str] = ContextVar("reqid", default="")


@contextmanager
def reqid_context(reqid):
    """Make ``reqid`` the current request id for the enclosed block."""
    token = _reqid.set(reqid)
    try:
        yield reqid
    finally:
        _reqid.reset(token)


def current_reqid():
    """Return the current request id, or an empty string."""
    return _reqid.get()