import signal
import threading

from .events import report_lines


class LifecycleGuard:
    """Snapshots the policy before the daemon touches it and puts it back on exit.

    Only core 0 is sampled; the same setting is restored to every core.
    The signal handler only flags the shutdown and unwinds the main thread;
    ``restore`` runs from the daemon's ``finally`` block, outside the handler.
    """

    def __init__(self, policy, applier, stop_event=None, out=print):
        self.policy = policy
        self.applier = applier
        self.stop_event = stop_event or threading.Event()
        self.original = None
        self.report = None
        self._out = out

    def capture(self, core=0):
        if self.original is None:
            self.original = self.policy.read_setting(core)
        return self.original

    def install(self, signals=(signal.SIGINT, signal.SIGTERM)):
        if self.original is None:
            raise RuntimeError("original settings must be captured before installing handlers")
        for sig in signals:
            signal.signal(sig, self.handle_signal)

    def _say(self, line):
        # Output is best effort, it must never cost the restore
        try:
            self._out(line, flush=True)
        except (OSError, RuntimeError, ValueError):
            pass

    def restore(self):
        """Apply the snapshot once. Returns None if there is nothing left to do."""
        if self.report is not None or self.original is None:
            return None

        self._say("\nRestoring original settings...")
        report = self.applier.apply(self.original)
        self.report = report
        for line in report_lines(report):
            self._say(line)
        self._say("Settings restored. Goodbye!")
        return report

    def handle_signal(self, sig, frame):
        if self.stop_event.is_set():
            # Already shutting down, let the restore in progress finish
            return
        self.stop_event.set()
        raise SystemExit(0)
