import time
from dataclasses import dataclass, field

from .config import SETTLE_DELAY


@dataclass(frozen=True)
class WriteFailure:
    core: int
    quantity: str  # "max", "min" or "governor"
    error: str


@dataclass(frozen=True)
class Correction:
    core: int
    quantity: str  # "max" or "min"
    observed: int
    expected: int


@dataclass
class ApplyReport:
    """Outcome of one apply-then-verify pass."""

    setting: object
    cores: int
    failures: list = field(default_factory=list)
    corrections: list = field(default_factory=list)

    @property
    def clean(self):
        return not self.failures and not self.corrections


class SettingsApplier:
    """Pushes a PolicySetting to every core, then verifies min/max once.

    Per core the order is max, min, governor so a stale max below the new
    min never gets rejected by the driver. After ``settle_delay`` the
    min/max of every core are read back and only the mismatching quantity
    is written again. There is no second corrective pass.
    """

    def __init__(self, policy, core_count=None, settle_delay=SETTLE_DELAY, sleep=time.sleep):
        self.policy = policy
        self._core_count = core_count or policy.core_count
        self.settle_delay = settle_delay
        self._sleep = sleep

    def _write(self, report, core, quantity, writer, value):
        try:
            writer(core, value)
        except OSError as e:
            report.failures.append(WriteFailure(core, quantity, str(e)))

    def apply(self, setting):
        cores = self._core_count()
        report = ApplyReport(setting=setting, cores=cores)
        policy = self.policy

        for core in range(cores):
            self._write(report, core, "max", policy.write_max_frequency, setting.max_khz)
            self._write(report, core, "min", policy.write_min_frequency, setting.min_khz)
            self._write(report, core, "governor", policy.write_governor, setting.governor)

        self._sleep(self.settle_delay)

        for core in range(cores):
            current_max = policy.read_max_frequency(core)
            current_min = policy.read_min_frequency(core)
            if current_max != setting.max_khz:
                report.corrections.append(
                    Correction(core, "max", current_max, setting.max_khz)
                )
                self._write(report, core, "max", policy.write_max_frequency, setting.max_khz)
            if current_min != setting.min_khz:
                report.corrections.append(
                    Correction(core, "min", current_min, setting.min_khz)
                )
                self._write(report, core, "min", policy.write_min_frequency, setting.min_khz)

        return report
