import argparse
import datetime
import os
import sys

from .applier import SettingsApplier
from .config import HWMON_SENSORS, Config, InvalidPolicyError
from .controller import HysteresisController
from .events import ConsoleReporter, TIMESTAMP_FORMAT, report_lines
from .guard import LifecycleGuard
from .sysfs import SysfsMetrics, SysfsPolicy


class AutoTurboDaemon:
    def __init__(self, config, metrics=None, policy=None, reporter=None):
        self.config = config
        self.metrics = metrics or SysfsMetrics(cpu_type=config.cpu_type)
        self.policy = policy or SysfsPolicy()
        self.reporter = reporter or ConsoleReporter()
        self.applier = SettingsApplier(self.policy, core_count=self.metrics.read_core_count)
        self.guard = LifecycleGuard(self.policy, self.applier)
        self.controller = HysteresisController(
            config, self.metrics, self.applier, on_event=self.reporter
        )

    def print_banner(self):
        config = self.config
        original = self.guard.original
        print("==== Configuration ====", flush=True)
        print(f"CPU: {self.metrics.read_cpu_name()}", flush=True)
        print(f"CPU Type: {config.cpu_type}", flush=True)
        print(
            f"Normal mode: governor {config.save_governor}, "
            f"min freq: {config.min_normal} MHz, max freq: {config.max_normal} MHz",
            flush=True,
        )
        print(
            f"Turbo mode: governor {config.turbo_governor}, "
            f"min freq: {config.min_turbo} MHz, max freq: {config.max_turbo} MHz",
            flush=True,
        )
        print(f"CPU usage threshold: {config.usage_threshold:.1f}%", flush=True)
        print(
            f"Original settings: governor {original.governor}, "
            f"max freq: {original.max_mhz} MHz\n",
            flush=True,
        )

    def check_governors(self):
        available = self.policy.read_available_governors(0)
        if not available:
            return
        for governor in (self.config.save_governor, self.config.turbo_governor):
            if governor not in available:
                print(
                    f"WARNING: governor '{governor}' is not available "
                    f"(available: {' '.join(available)})",
                    flush=True,
                )

    def run(self):
        config = self.config
        self.guard.capture()
        self.print_banner()
        self.check_governors()
        try:
            self.guard.install()
            now = datetime.datetime.now()
            for name, setting in (("normal", config.normal_setting), ("turbo", config.turbo_setting)):
                self.reporter.emit(
                    f"INIT {name} mode: governor={setting.governor} "
                    f"min={setting.min_mhz}MHz max={setting.max_mhz}MHz",
                    now,
                )
            self.controller.run(self.guard.stop_event)
        finally:
            self.guard.restore()


def apply_once(config, mode, policy=None, metrics=None):
    policy = policy or SysfsPolicy()
    metrics = metrics or SysfsMetrics(cpu_type=config.cpu_type)
    setting = config.turbo_setting if mode == "turbo" else config.normal_setting
    report = SettingsApplier(policy, core_count=metrics.read_core_count).apply(setting)
    print(
        f"Applied {mode} mode: governor={setting.governor} "
        f"min={setting.min_mhz}MHz max={setting.max_mhz}MHz on {report.cores} cores",
        flush=True,
    )
    for line in report_lines(report):
        print(line, flush=True)
    return report


def print_status(config, policy=None, metrics=None):
    policy = policy or SysfsPolicy()
    metrics = metrics or SysfsMetrics(cpu_type=config.cpu_type)
    usage = metrics.read_utilization()
    temp = metrics.read_temperature()
    freq = metrics.read_average_frequency()
    timestamp = datetime.datetime.now().strftime(TIMESTAMP_FORMAT)
    print(
        f"[{timestamp}] STATUS: usage={usage:.1f}% temp={temp:.1f}°C "
        f"freq={freq // 1000}MHz governor={policy.read_governor(0)} "
        f"min={policy.read_min_frequency(0) // 1000}MHz "
        f"max={policy.read_max_frequency(0) // 1000}MHz",
        flush=True,
    )


def build_parser():
    defaults = Config()
    parser = argparse.ArgumentParser(
        prog="auto-turbo",
        description="Switch the CPU between a power-saving and a turbo frequency profile based on usage.",
    )
    parser.add_argument(
        "--cputype",
        default=defaults.cpu_type,
        help=f"CPU type for temperature sensor lookup ({', '.join(HWMON_SENSORS)}, ...)",
    )
    parser.add_argument("--min-normal", type=int, default=defaults.min_normal,
                        help="Normal mode minimum frequency (MHz)")
    parser.add_argument("--max-normal", type=int, default=defaults.max_normal,
                        help="Normal mode maximum frequency (MHz)")
    parser.add_argument("--min-turbo", type=int, default=defaults.min_turbo,
                        help="Turbo mode minimum frequency (MHz)")
    parser.add_argument("--max-turbo", type=int, default=defaults.max_turbo,
                        help="Turbo mode maximum frequency (MHz)")
    parser.add_argument("--save-governor", default=defaults.save_governor,
                        help="Normal mode governor")
    parser.add_argument("--turbo-governor", default=defaults.turbo_governor,
                        help="Turbo mode governor")
    parser.add_argument("--cpu-usage-threshold", type=float, default=defaults.usage_threshold,
                        help="CPU usage threshold for turbo mode (%%)")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    action = parser.add_mutually_exclusive_group()
    action.add_argument("--apply", choices=("normal", "turbo"),
                        help="Apply one mode once and exit")
    action.add_argument("--status", action="store_true",
                        help="Print current usage and policy and exit")
    return parser


def parse_config(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    config = Config.from_args(args)
    problems = config.validate()
    if problems:
        parser.error("; ".join(problems))
    return args, config


def main(argv=None):
    args, config = parse_config(argv)

    if args.status:
        print_status(config)
        return 0

    if os.geteuid() != 0:
        print("This program must be run as root", flush=True)
        return 1

    if args.apply:
        apply_once(config, args.apply)
        return 0

    daemon = AutoTurboDaemon(config)
    try:
        daemon.guard.capture()
    except InvalidPolicyError as e:
        print(f"Cannot read the current cpu0 policy: {e}", flush=True)
        return 1
    daemon.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
