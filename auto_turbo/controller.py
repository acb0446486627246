import datetime
import threading
import time

from .config import (
    NORMAL_VALIDATION_TICKS,
    STATUS_INTERVAL,
    TICK_INTERVAL,
    TURBO_VALIDATION_TICKS,
)
from .events import ErrorEvent, Mode, StatusEvent, TransitionEvent, UsageEvent


class HysteresisController:
    """Turns per-tick usage samples into stable Normal/Turbo decisions.

    A switch needs ``TURBO_VALIDATION_TICKS`` consecutive samples at or above
    the threshold (or ``NORMAL_VALIDATION_TICKS`` below it). The first tick
    always applies a profile so the machine starts in a known mode.
    """

    def __init__(
        self,
        config,
        metrics,
        applier,
        on_event=None,
        tick_interval=TICK_INTERVAL,
        status_interval=STATUS_INTERVAL,
        clock=time.monotonic,
        now=datetime.datetime.now,
    ):
        self.config = config
        self.metrics = metrics
        self.applier = applier
        self.on_event = on_event or (lambda event: None)
        self.tick_interval = tick_interval
        self.status_interval = status_interval
        self._clock = clock
        self._now = now

        self.mode = Mode.UNINITIALIZED
        self.high_streak = 0
        self.low_streak = 0
        self.last_status = clock()

    def _switch(self, mode, setting, usage, streak):
        report = self.applier.apply(setting)
        event = TransitionEvent(
            timestamp=self._now(),
            old_mode=self.mode,
            new_mode=mode,
            usage=usage,
            streak=streak,
            setting=setting,
            report=report,
        )
        self.mode = mode
        self.on_event(event)
        return event

    def decide(self, usage):
        """Mode to switch to given the current streaks, or None to stay put."""
        first = self.mode is Mode.UNINITIALIZED
        to_turbo = self.mode is not Mode.TURBO and self.high_streak >= TURBO_VALIDATION_TICKS
        to_normal = self.mode is not Mode.NORMAL and self.low_streak >= NORMAL_VALIDATION_TICKS

        # Normal wins if both are ever eligible at once
        if to_normal or (first and usage < self.config.usage_threshold):
            return Mode.NORMAL
        if to_turbo or first:
            return Mode.TURBO
        return None

    def tick(self):
        """Run one sample/decide/apply step. Returns the TransitionEvent, if any."""
        config = self.config
        usage = self.metrics.read_utilization()
        temp = self.metrics.read_temperature()
        freq = self.metrics.read_average_frequency()

        if usage >= config.usage_threshold:
            self.high_streak += 1
            self.low_streak = 0
            if config.verbose and self.mode is not Mode.TURBO:
                self.on_event(
                    UsageEvent(self._now(), True, usage, self.high_streak, TURBO_VALIDATION_TICKS)
                )
        else:
            self.low_streak += 1
            self.high_streak = 0
            if config.verbose and self.mode is not Mode.NORMAL:
                self.on_event(
                    UsageEvent(self._now(), False, usage, self.low_streak, NORMAL_VALIDATION_TICKS)
                )

        transition = None
        target = self.decide(usage)
        if target is Mode.NORMAL:
            transition = self._switch(Mode.NORMAL, config.normal_setting, usage, self.low_streak)
        elif target is Mode.TURBO:
            transition = self._switch(Mode.TURBO, config.turbo_setting, usage, self.high_streak)

        if config.verbose or self._clock() - self.last_status >= self.status_interval:
            self.on_event(StatusEvent(self._now(), usage, temp, freq, self.mode))
            self.last_status = self._clock()

        return transition

    def run(self, stop_event=None):
        """Tick until ``stop_event`` is set. Errors inside a tick never end the loop."""
        stop_event = stop_event or threading.Event()
        while not stop_event.is_set():
            try:
                self.tick()
            except Exception as e:
                self.on_event(ErrorEvent(self._now(), e))
            stop_event.wait(self.tick_interval)
