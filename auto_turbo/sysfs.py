"""
Thin readers and writers over the Linux cpufreq, procfs, hwmon and thermal
interfaces. Every root path is a constructor argument so the same code can
run against a fake tree.
"""

import os
import re
import time

from .config import (
    CPU_SYSFS_PATH,
    CPUINFO_PATH,
    HWMON_PATH,
    HWMON_SENSORS,
    PROC_STAT_PATH,
    THERMAL_PATH,
    USAGE_SAMPLE_INTERVAL,
    PolicySetting,
)

CPU_DIR_RE = re.compile(r"^cpu(\d+)$")


def _read_text(path):
    with open(path, "r") as f:
        return f.read().strip()


def _read_int(path, default=0):
    try:
        return int(_read_text(path))
    except (OSError, ValueError):
        return default


def usage_between(first, second):
    """CPU busy percentage between two ``(active, idle)`` samples."""
    active = second[0] - first[0]
    idle = second[1] - first[1]
    total = active + idle
    if total <= 0:
        return 0.0
    return max(0.0, min(100.0, 100.0 * active / total))


def count_cores(cpu_path=CPU_SYSFS_PATH):
    try:
        count = sum(1 for name in os.listdir(cpu_path) if CPU_DIR_RE.match(name))
    except OSError:
        return 1
    return count or 1


class SysfsMetrics:
    """Read-only view of utilization, temperature and clock speed."""

    def __init__(
        self,
        cpu_type="ryzen",
        cpu_path=CPU_SYSFS_PATH,
        stat_path=PROC_STAT_PATH,
        cpuinfo_path=CPUINFO_PATH,
        hwmon_path=HWMON_PATH,
        thermal_path=THERMAL_PATH,
        sample_interval=USAGE_SAMPLE_INTERVAL,
        sleep=time.sleep,
    ):
        self.cpu_type = cpu_type
        self.cpu_path = cpu_path
        self.stat_path = stat_path
        self.cpuinfo_path = cpuinfo_path
        self.hwmon_path = hwmon_path
        self.thermal_path = thermal_path
        self.sample_interval = sample_interval
        self._sleep = sleep

    def read_cpu_times(self):
        """Return ``(active, idle)`` jiffies from the aggregate cpu line."""
        with open(self.stat_path, "r") as f:
            fields = f.readline().split()
        if len(fields) < 6 or fields[0] != "cpu":
            raise ValueError(f"unexpected first line in {self.stat_path}")
        user, nice, system, idle, iowait = (int(v) for v in fields[1:6])
        return user + nice + system, idle + iowait

    def read_utilization(self):
        try:
            first = self.read_cpu_times()
            self._sleep(self.sample_interval)
            second = self.read_cpu_times()
        except (OSError, ValueError):
            return 0.0
        return usage_between(first, second)

    def read_temperature(self):
        sensor = HWMON_SENSORS.get(self.cpu_type, "coretemp")
        try:
            entries = sorted(os.listdir(self.hwmon_path))
        except OSError:
            entries = []
        for entry in entries:
            base = os.path.join(self.hwmon_path, entry)
            try:
                name = _read_text(os.path.join(base, "name"))
            except OSError:
                continue
            if name == sensor:
                try:
                    return int(_read_text(os.path.join(base, "temp1_input"))) / 1000.0
                except (OSError, ValueError):
                    continue
        return self._read_thermal_zone()

    def _read_thermal_zone(self):
        try:
            zones = sorted(
                z for z in os.listdir(self.thermal_path) if z.startswith("thermal_zone")
            )
        except OSError:
            return 0.0
        for zone in zones:
            base = os.path.join(self.thermal_path, zone)
            try:
                ztype = _read_text(os.path.join(base, "type"))
            except OSError:
                continue
            if "x86_pkg" in ztype or "cpu" in ztype.lower():
                try:
                    return int(_read_text(os.path.join(base, "temp"))) / 1000.0
                except (OSError, ValueError):
                    continue
        return 0.0

    def read_core_count(self):
        return count_cores(self.cpu_path)

    def read_average_frequency(self):
        freqs = []
        for cpu in range(self.read_core_count()):
            freq = _read_int(
                os.path.join(self.cpu_path, f"cpu{cpu}", "cpufreq", "scaling_cur_freq")
            )
            if freq > 0:
                freqs.append(freq)
        if not freqs:
            return 0
        return sum(freqs) // len(freqs)

    def read_cpu_name(self):
        try:
            with open(self.cpuinfo_path, "r") as f:
                for line in f:
                    if line.startswith("model name"):
                        return line.split(":", 1)[1].strip()
        except OSError:
            pass
        return "Unknown CPU"


class SysfsPolicy:
    """Per-core governor and frequency range under ``cpu<N>/cpufreq``.

    Writes raise ``OSError``; reads return ``0`` or ``""`` when the value
    cannot be read.
    """

    def __init__(self, cpu_path=CPU_SYSFS_PATH):
        self.cpu_path = cpu_path

    def _path(self, core, name):
        return os.path.join(self.cpu_path, f"cpu{core}", "cpufreq", name)

    def _write(self, core, name, value):
        with open(self._path(core, name), "w") as f:
            f.write(str(value))

    def core_count(self):
        return count_cores(self.cpu_path)

    def write_governor(self, core, governor):
        self._write(core, "scaling_governor", governor)

    def write_min_frequency(self, core, khz):
        self._write(core, "scaling_min_freq", khz)

    def write_max_frequency(self, core, khz):
        self._write(core, "scaling_max_freq", khz)

    def read_governor(self, core):
        try:
            return _read_text(self._path(core, "scaling_governor"))
        except OSError:
            return ""

    def read_min_frequency(self, core):
        return _read_int(self._path(core, "scaling_min_freq"))

    def read_max_frequency(self, core):
        return _read_int(self._path(core, "scaling_max_freq"))

    def read_available_governors(self, core=0):
        try:
            return _read_text(self._path(core, "scaling_available_governors")).split()
        except OSError:
            return []

    def read_setting(self, core=0):
        return PolicySetting(
            governor=self.read_governor(core),
            min_khz=self.read_min_frequency(core),
            max_khz=self.read_max_frequency(core),
        )
