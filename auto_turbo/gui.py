"""
Auto Turbo Monitor - GTK3 window showing live CPU usage, temperature and
clock speed, with buttons to force the Normal or Turbo profile.
"""

import shutil
import subprocess
import threading

import gi
gi.require_version('Gtk', '3.0')
from gi.repository import Gtk, GLib, Gdk

from .config import Config, InvalidPolicyError
from .events import FORCED_MODE_NOTE, forced_mode_message, temperature_level
from .sysfs import SysfsMetrics, SysfsPolicy, usage_between

CSS = b"""
    window {
        background-color: #1a1a2e;
    }
    label {
        color: #eaeaea;
    }
    .title-label {
        font-size: 24px;
        font-weight: bold;
        color: #00d9ff;
    }
    .subtitle-label {
        font-size: 12px;
        color: #888888;
    }
    .value-label {
        font-size: 32px;
        font-weight: bold;
        color: #00ff88;
    }
    .unit-label {
        font-size: 14px;
        color: #888888;
    }
    .status-box {
        background-color: #2d2d44;
        border-radius: 10px;
        padding: 15px;
    }
    .mode-button {
        padding: 12px 20px;
        font-size: 14px;
        border-radius: 8px;
        border: 1px solid #3d3d5c;
        color: #ffffff;
    }
    .mode-button.active {
        background: linear-gradient(135deg, #00d9ff 0%, #0099cc 100%);
        color: #000000;
    }
    .temp-label {
        font-size: 32px;
        font-weight: bold;
    }
    .temp-ok { color: #00ff88; }
    .temp-warn { color: #ffaa00; }
    .temp-crit { color: #ff4444; }
"""

MODE_LABELS = {
    "normal": "🔇 Normal",
    "turbo": "🚀 Turbo",
}


class TurboMonitorWindow(Gtk.Window):
    def __init__(self, config=None):
        super().__init__(title="Auto Turbo")
        self.set_default_size(380, 360)
        self.set_resizable(False)

        self.config = config or Config()
        self.metrics = SysfsMetrics(cpu_type=self.config.cpu_type)
        self.policy = SysfsPolicy()
        self.last_times = None

        Gtk.Settings.get_default().set_property("gtk-application-prefer-dark-theme", True)
        css_provider = Gtk.CssProvider()
        css_provider.load_from_data(CSS)
        Gtk.StyleContext.add_provider_for_screen(
            Gdk.Screen.get_default(),
            css_provider,
            Gtk.STYLE_PROVIDER_PRIORITY_APPLICATION
        )

        main_box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=15)
        for side in ("top", "bottom", "start", "end"):
            getattr(main_box, f"set_margin_{side}")(20)
        self.add(main_box)

        header_box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=5)
        title = Gtk.Label(label="Auto Turbo")
        title.get_style_context().add_class("title-label")
        header_box.pack_start(title, False, False, 0)
        subtitle = Gtk.Label(label=self.metrics.read_cpu_name())
        subtitle.get_style_context().add_class("subtitle-label")
        header_box.pack_start(subtitle, False, False, 0)
        main_box.pack_start(header_box, False, False, 0)

        status_frame = Gtk.Frame()
        status_frame.get_style_context().add_class("status-box")
        status_box = Gtk.Box(orientation=Gtk.Orientation.HORIZONTAL, spacing=20)
        status_box.set_halign(Gtk.Align.CENTER)
        status_box.set_margin_top(10)
        status_box.set_margin_bottom(10)
        self.usage_value = self._add_reading(status_box, "USAGE", "%", "value-label")
        self.temp_value = self._add_reading(status_box, "TEMP", "°C", "temp-label")
        self.freq_value = self._add_reading(status_box, "FREQ", "MHz", "value-label")
        status_frame.add(status_box)
        main_box.pack_start(status_frame, False, False, 0)

        self.policy_label = Gtk.Label(label="--")
        self.policy_label.get_style_context().add_class("subtitle-label")
        main_box.pack_start(self.policy_label, False, False, 0)

        modes_label = Gtk.Label(label="Force Profile")
        modes_label.set_halign(Gtk.Align.START)
        modes_label.get_style_context().add_class("subtitle-label")
        main_box.pack_start(modes_label, False, False, 5)

        modes_box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=8)
        self.mode_buttons = {}
        for mode, setting in (("normal", self.config.normal_setting),
                              ("turbo", self.config.turbo_setting)):
            btn = Gtk.Button(
                label=f"{MODE_LABELS[mode]} ({setting.governor}, "
                      f"{setting.min_mhz}-{setting.max_mhz} MHz)"
            )
            btn.get_style_context().add_class("mode-button")
            btn.set_tooltip_text(FORCED_MODE_NOTE)
            btn.connect("clicked", self.on_mode_clicked, mode)
            modes_box.pack_start(btn, False, False, 0)
            self.mode_buttons[mode] = btn
        main_box.pack_start(modes_box, False, False, 0)

        self.status_label = Gtk.Label(label="Ready")
        self.status_label.get_style_context().add_class("subtitle-label")
        main_box.pack_end(self.status_label, False, False, 0)

        self.update_status()
        GLib.timeout_add(1000, self.update_status)

    def _add_reading(self, parent, name, unit, value_class):
        box = Gtk.Box(orientation=Gtk.Orientation.VERTICAL, spacing=2)
        label = Gtk.Label(label=name)
        label.get_style_context().add_class("subtitle-label")
        value = Gtk.Label(label="--")
        value.get_style_context().add_class(value_class)
        unit_label = Gtk.Label(label=unit)
        unit_label.get_style_context().add_class("unit-label")
        box.pack_start(label, False, False, 0)
        box.pack_start(value, False, False, 0)
        box.pack_start(unit_label, False, False, 0)
        parent.pack_start(box, True, True, 0)
        return value

    def read_usage(self):
        # Delta against the previous timer tick, the GTK loop must not sleep
        try:
            times = self.metrics.read_cpu_times()
        except (OSError, ValueError):
            return 0.0
        previous, self.last_times = self.last_times, times
        if previous is None:
            return 0.0
        return usage_between(previous, times)

    def update_status(self):
        usage = self.read_usage()
        temp = self.metrics.read_temperature()
        freq = self.metrics.read_average_frequency()
        try:
            current = self.policy.read_setting(0)
        except InvalidPolicyError:
            # Half-read range, e.g. max unreadable while min is not
            current = None

        self.usage_value.set_text(f"{usage:.0f}")
        self.temp_value.set_text(f"{temp:.0f}")
        self.freq_value.set_text(str(freq // 1000))
        if current is None:
            self.policy_label.set_text("cpu0: policy unreadable")
        else:
            self.policy_label.set_text(
                f"cpu0: {current.governor or '?'} {current.min_mhz}-{current.max_mhz} MHz"
            )

        ctx = self.temp_value.get_style_context()
        for level in ("ok", "warn", "crit"):
            ctx.remove_class(f"temp-{level}")
        ctx.add_class(f"temp-{temperature_level(temp)}")

        active = self.config.mode_for(current)
        for mode, btn in self.mode_buttons.items():
            ctx = btn.get_style_context()
            if mode == active:
                ctx.add_class("active")
            else:
                ctx.remove_class("active")

        return True  # Continue timer

    def apply_command(self, mode):
        config = self.config
        program = shutil.which("auto-turbo") or "auto-turbo"
        return [
            "pkexec", program,
            "--apply", mode,
            "--min-normal", str(config.min_normal),
            "--max-normal", str(config.max_normal),
            "--min-turbo", str(config.min_turbo),
            "--max-turbo", str(config.max_turbo),
            "--save-governor", config.save_governor,
            "--turbo-governor", config.turbo_governor,
        ]

    def on_mode_clicked(self, button, mode):
        self.status_label.set_text("Applying...")
        command = self.apply_command(mode)

        def apply():
            try:
                result = subprocess.run(command, capture_output=True, text=True, timeout=30)
                if result.returncode == 0:
                    GLib.idle_add(self.status_label.set_text, forced_mode_message(mode))
                else:
                    error_msg = result.stderr.strip() if result.stderr else "Unknown error"
                    GLib.idle_add(self.status_label.set_text, f"✗ Failed: {error_msg}")
            except subprocess.TimeoutExpired:
                GLib.idle_add(self.status_label.set_text, "✗ Timeout - operation cancelled")
            except OSError as e:
                GLib.idle_add(self.status_label.set_text, f"✗ Error: {e}")

        thread = threading.Thread(target=apply, daemon=True)
        thread.start()


def main():
    win = TurboMonitorWindow()
    win.connect("destroy", Gtk.main_quit)
    win.show_all()
    Gtk.main()


if __name__ == "__main__":
    main()
