import pytest

from auto_turbo.config import PolicySetting


class FakePolicy:
    """In-memory policy sink that records every write in order."""

    def __init__(self, cores=4, setting=PolicySetting("schedutil", 800000, 3000000)):
        self.cores = cores
        self.governor = {c: setting.governor for c in range(cores)}
        self.min = {c: setting.min_khz for c in range(cores)}
        self.max = {c: setting.max_khz for c in range(cores)}
        self.writes = []
        self.reads = []
        self.failing = set()  # (core, quantity) pairs whose writes raise
        self.ignored = set()  # (core, quantity) pairs whose writes silently do nothing

    def core_count(self):
        return self.cores

    def _store(self, core, quantity, table, value):
        self.writes.append((quantity, core, value))
        if (core, quantity) in self.failing:
            raise OSError(f"write to cpu{core} {quantity} rejected")
        if (core, quantity) not in self.ignored:
            table[core] = value

    def write_governor(self, core, name):
        self._store(core, "governor", self.governor, name)

    def write_min_frequency(self, core, khz):
        self._store(core, "min", self.min, khz)

    def write_max_frequency(self, core, khz):
        self._store(core, "max", self.max, khz)

    def read_governor(self, core):
        self.reads.append(("governor", core))
        return self.governor[core]

    def read_min_frequency(self, core):
        self.reads.append(("min", core))
        return self.min[core]

    def read_max_frequency(self, core):
        self.reads.append(("max", core))
        return self.max[core]

    def read_available_governors(self, core=0):
        return ["performance", "powersave", "schedutil"]

    def read_setting(self, core=0):
        return PolicySetting(self.governor[core], self.min[core], self.max[core])


class FakeMetrics:
    def __init__(self, usages, temperature=55.0, frequency=2400000, cores=4):
        self.usages = list(usages)
        self.temperature = temperature
        self.frequency = frequency
        self.cores = cores

    def read_utilization(self):
        return self.usages.pop(0)

    def read_temperature(self):
        return self.temperature

    def read_average_frequency(self):
        return self.frequency

    def read_core_count(self):
        return self.cores

    def read_cpu_name(self):
        return "Test CPU"


class FakeClock:
    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def policy():
    return FakePolicy()

