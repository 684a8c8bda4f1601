"""Registry of live client controls, indexed by run id."""

import threading


class ControlManager:
    """Keeps the current control of each client run id.

    A control is any object with a ``replaced(new_ctl)`` method; it is called
    when a newer control registers under the same run id.
    """

    def __init__(self):
        self._ctls_by_run_id = {}
        self._lock = threading.RLock()

    def add(self, run_id, ctl):
        """Register ``ctl`` under ``run_id``; return the control it replaced, if any."""
        with self._lock:
            old_ctl = self._ctls_by_run_id.get(run_id)
            if old_ctl is not None:
                old_ctl.replaced(ctl)
            self._ctls_by_run_id[run_id] = ctl
            return old_ctl

    def delete(self, run_id, ctl):
        """Remove ``run_id`` only if it still maps to this very ``ctl``."""
        with self._lock:
            if self._ctls_by_run_id.get(run_id) is ctl:
                del self._ctls_by_run_id[run_id]

    def get(self, run_id):
        """Return the control registered under ``run_id``, or None."""
        with self._lock:
            return self._ctls_by_run_id.get(run_id)

    def __len__(self):
        with self._lock:
            return len(self._ctls_by_run_id)

    def __contains__(self, run_id):
        with self._lock:
            return run_id in self._ctls_by_run_id