from dataclasses import dataclass

# Timing
TICK_INTERVAL = 1.0  # Seconds
USAGE_SAMPLE_INTERVAL = 0.5  # Seconds between the two /proc/stat reads
SETTLE_DELAY = 0.1  # Seconds between apply and verify
STATUS_INTERVAL = 60  # Seconds between non-verbose status lines

# Hysteresis
TURBO_VALIDATION_TICKS = 3
NORMAL_VALIDATION_TICKS = 3

# Paths
CPU_SYSFS_PATH = "/sys/devices/system/cpu"
PROC_STAT_PATH = "/proc/stat"
CPUINFO_PATH = "/proc/cpuinfo"
HWMON_PATH = "/sys/class/hwmon"
THERMAL_PATH = "/sys/class/thermal"

# Temperature sensor name per --cputype
HWMON_SENSORS = {
    "ryzen": "k10temp",
    "intel": "coretemp",
}


class InvalidPolicyError(ValueError):
    pass


@dataclass(frozen=True)
class PolicySetting:
    """Scaling configuration of one core. Frequencies are in kHz."""

    governor: str
    min_khz: int
    max_khz: int

    def __post_init__(self):
        if self.min_khz < 0 or self.max_khz < self.min_khz:
            raise InvalidPolicyError(
                f"invalid frequency range {self.min_khz}-{self.max_khz} kHz"
            )

    @property
    def min_mhz(self):
        return self.min_khz // 1000

    @property
    def max_mhz(self):
        return self.max_khz // 1000


@dataclass(frozen=True)
class Config:
    cpu_type: str = "ryzen"
    min_normal: int = 400  # MHz
    max_normal: int = 2000
    min_turbo: int = 400
    max_turbo: int = 5450
    save_governor: str = "powersave"
    turbo_governor: str = "performance"
    usage_threshold: float = 60.0
    verbose: bool = False

    @classmethod
    def from_args(cls, args):
        return cls(
            cpu_type=args.cputype,
            min_normal=args.min_normal,
            max_normal=args.max_normal,
            min_turbo=args.min_turbo,
            max_turbo=args.max_turbo,
            save_governor=args.save_governor,
            turbo_governor=args.turbo_governor,
            usage_threshold=args.cpu_usage_threshold,
            verbose=args.verbose,
        )

    def validate(self):
        """Return a list of human readable problems, empty if the config is usable."""
        problems = []
        for name, low, high in (
            ("normal", self.min_normal, self.max_normal),
            ("turbo", self.min_turbo, self.max_turbo),
        ):
            if low < 0 or high < 0:
                problems.append(f"{name} mode frequencies must not be negative")
            elif low > high:
                problems.append(
                    f"{name} mode minimum ({low} MHz) is above its maximum ({high} MHz)"
                )
        if not 0 <= self.usage_threshold <= 100:
            problems.append("CPU usage threshold must be between 0 and 100")
        return problems

    @property
    def normal_setting(self):
        return PolicySetting(
            self.save_governor, self.min_normal * 1000, self.max_normal * 1000
        )

    @property
    def turbo_setting(self):
        return PolicySetting(
            self.turbo_governor, self.min_turbo * 1000, self.max_turbo * 1000
        )

    def mode_for(self, setting):
        """Name of the profile ("normal"/"turbo") equal to ``setting``, or None."""
        if setting == self.turbo_setting:
            return "turbo"
        if setting == self.normal_setting:
            return "normal"
        return None
