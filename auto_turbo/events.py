import enum
from dataclasses import dataclass

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Temperature thresholds for display (°C)
TEMP_WARN = 70
TEMP_CRIT = 85


class Mode(enum.Enum):
    UNINITIALIZED = ""
    NORMAL = "normal"
    TURBO = "turbo"


@dataclass(frozen=True)
class UsageEvent:
    """Usage crossed (or stayed on one side of) the threshold while not yet switched."""

    timestamp: object
    high: bool
    usage: float
    streak: int
    needed: int

    def line(self):
        level = "HIGH" if self.high else "LOW"
        return (
            f"{level} usage detected: {self.usage:.1f}% "
            f"({self.streak}/{self.needed} sec)"
        )


@dataclass(frozen=True)
class TransitionEvent:
    timestamp: object
    old_mode: Mode
    new_mode: Mode
    usage: float
    streak: int
    setting: object
    report: object = None

    def line(self):
        s = self.setting
        return (
            f"SWITCH to {self.new_mode.value} mode: governor={s.governor} "
            f"min={s.min_mhz}MHz max={s.max_mhz}MHz "
            f"(usage={self.usage:.1f}% for {self.streak}s)"
        )


@dataclass(frozen=True)
class StatusEvent:
    timestamp: object
    usage: float
    temperature: float
    frequency_khz: int
    mode: Mode

    def line(self):
        return (
            f"STATUS: usage={self.usage:.1f}% temp={self.temperature:.1f}°C "
            f"freq={self.frequency_khz // 1000}MHz mode={self.mode.value}"
        )


@dataclass(frozen=True)
class ErrorEvent:
    timestamp: object
    error: BaseException

    def line(self):
        return f"Error in daemon loop: {self.error}"


def temperature_level(temp):
    if temp < TEMP_WARN:
        return "ok"
    if temp < TEMP_CRIT:
        return "warn"
    return "crit"


FORCED_MODE_NOTE = (
    "A running auto-turbo daemon does not see this change; "
    "it lasts until the daemon's next mode switch"
)


def forced_mode_message(mode):
    return f"✓ Applied {mode} mode (until the daemon's next switch)"


def report_lines(report):
    """Operator lines for the corrective writes and failures of an ApplyReport."""
    lines = []
    for c in report.corrections:
        lines.append(
            f"VERIFY: cpu{c.core} {c.quantity} read back {c.observed}, rewrote {c.expected}"
        )
    for f in report.failures:
        lines.append(f"WRITE FAILED: cpu{f.core} {f.quantity}: {f.error}")
    return lines


class ConsoleReporter:
    """Default event sink: one timestamped line per event on stdout."""

    def __init__(self, out=print):
        self._out = out

    def emit(self, message, timestamp):
        self._out(f"[{timestamp.strftime(TIMESTAMP_FORMAT)}] {message}", flush=True)

    def __call__(self, event):
        self.emit(event.line(), event.timestamp)
        report = getattr(event, "report", None)
        if report is not None:
            for line in report_lines(report):
                self.emit(line, event.timestamp)
