"""Registry of running proxies, indexed by proxy name."""

import threading


class ProxyNameInUse(Exception):
    """A proxy with the same name is already registered."""

    def __init__(self, name):
        super().__init__(f"proxy name [{name}] is already in use")
        self.name = name


class ProxyManager:
    """Keeps every running proxy under its unique name."""

    def __init__(self):
        self._proxies = {}
        self._lock = threading.RLock()

    def add(self, name, proxy):
        """Register ``proxy`` as ``name``; raise ProxyNameInUse if taken."""
        with self._lock:
            if name in self._proxies:
                raise ProxyNameInUse(name)
            self._proxies[name] = proxy

    def delete(self, name):
        """Forget the proxy named ``name``, if any."""
        with self._lock:
            self._proxies.pop(name, None)

    def get(self, name):
        """Return the proxy named ``name``, or None."""
        with self._lock:
            return self._proxies.get(name)

    def __len__(self):
        with self._lock:
            return len(self._proxies)

    def __contains__(self, name):
        with self._lock:
            return name in self._proxies