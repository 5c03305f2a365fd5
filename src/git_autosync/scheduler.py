import asyncio
import logging
from collections.abc import Callable
from typing import Any

from .config import Config
from .constants import APP_NAME
from .engine import SyncEngine

logger = logging.getLogger(APP_NAME)

Callback = Callable[[], None]


class TimerHost:
    """Base class defining the interface for recurring timers."""

    def install(self, interval: float, callback: Callback) -> Any:
        """Starts calling `callback` every `interval` seconds.

        Returns:
            Any: An opaque handle for `cancel`.
        """
        raise NotImplementedError

    def cancel(self, handle: Any) -> None:
        raise NotImplementedError


class AsyncioTimerHost(TimerHost):
    """Recurring timers as tasks on the running event loop."""

    def install(self, interval: float, callback: Callback) -> asyncio.Task:
        return asyncio.get_running_loop().create_task(self._tick(interval, callback))

    def cancel(self, handle: asyncio.Task) -> None:
        handle.cancel()

    @staticmethod
    async def _tick(interval: float, callback: Callback) -> None:
        while True:
            await asyncio.sleep(interval)
            callback()


class SignalSource:
    """Base class for an external event the scheduler can subscribe to."""

    def subscribe(self, callback: Callback) -> None:
        raise NotImplementedError

    def unsubscribe(self, callback: Callback) -> None:
        raise NotImplementedError


class PosixSignalSource(SignalSource):
    """Delivers a POSIX signal (e.g. SIGUSR1) as an event-loop callback.

    The OS-level handler is held from `open` until `close`, whether or not
    anyone is subscribed. Between subscriptions the signal is swallowed, so
    a default action such as process termination never applies.

    Attributes:
        signum (int): The signal number listened for.
    """

    def __init__(self, signum: int):
        self.signum = signum
        self._loop: asyncio.AbstractEventLoop | None = None
        self._callback: Callback | None = None

    @property
    def is_open(self) -> bool:
        return self._loop is not None

    def open(self) -> None:
        """Installs the handler on the running loop. Idempotent."""
        if self._loop is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._loop.add_signal_handler(self.signum, self._dispatch)

    def close(self) -> None:
        """Drops any subscriber and removes the handler."""
        self._callback = None
        if self._loop is not None:
            self._loop.remove_signal_handler(self.signum)
            self._loop = None

    def subscribe(self, callback: Callback) -> None:
        self.open()
        self._callback = callback

    def unsubscribe(self, callback: Callback) -> None:
        if self._callback == callback:
            self._callback = None

    def _dispatch(self) -> None:
        if self._callback is None:
            logger.debug(f"Signal {self.signum} received with no subscriber.")
            return
        self._callback()


class TriggerScheduler:
    """Owns the automatic triggers and starts silent syncs when they fire.

    The timer and the focus-loss subscription are independent. Both are
    (re)built by `configure` and released by `shutdown`.

    Attributes:
        engine (SyncEngine): The engine every trigger runs.
        timers (TimerHost): Installs and cancels the recurring timer.
        focus_signal (SignalSource | None): Fires when the host loses focus.
    """

    def __init__(
        self,
        engine: SyncEngine,
        timers: TimerHost,
        focus_signal: SignalSource | None = None,
    ):
        self.engine = engine
        self.timers = timers
        self.focus_signal = focus_signal
        self._config: Config | None = None
        self._timer: Any = None
        self._focus_callback: Callback | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def timer_active(self) -> bool:
        return self._timer is not None

    @property
    def focus_active(self) -> bool:
        return self._focus_callback is not None

    def configure(self, config: Config) -> None:
        """Applies trigger settings. Safe to call on every settings change.

        Args:
            config (Config): The current settings. Kept for trigger firings.
        """
        self._config = config

        # 1. Timer: always rebuilt so interval changes take effect.
        self._cancel_timer()
        if config.triggers.auto_sync:
            minutes = config.triggers.interval
            self._timer = self.timers.install(minutes * 60, self._on_timer)
            logger.info(f"SCHEDULER: Auto-sync every {minutes} min.")

        # 2. Focus loss: only touched when the setting flips.
        if config.triggers.sync_on_focus_loss:
            self._subscribe_focus()
        else:
            self._unsubscribe_focus()

    def shutdown(self) -> None:
        """Cancels the timer and drops the focus-loss subscription.

        In-flight syncs are not cancelled; see `wait_idle`.
        """
        self._cancel_timer()
        self._unsubscribe_focus()

    async def wait_idle(self) -> None:
        """Waits until every sync started by a trigger has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _on_timer(self) -> None:
        self._spawn("timer")

    def _on_focus_lost(self) -> None:
        # Re-checked at fire time in case the subscription outlived the setting.
        if self._config is None or not self._config.triggers.sync_on_focus_loss:
            logger.debug("Focus loss ignored: sync_on_focus_loss is off.")
            return
        self._spawn("focus loss")

    def _spawn(self, trigger: str) -> None:
        logger.debug(f"TRIGGER: {trigger}")
        task = asyncio.get_running_loop().create_task(
            self.engine.run(self._config, silent=True)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _cancel_timer(self) -> None:
        if self._timer is None:
            return
        self.timers.cancel(self._timer)
        self._timer = None

    def _subscribe_focus(self) -> None:
        if self._focus_callback is not None:
            return
        if self.focus_signal is None:
            logger.warning("SCHEDULER: sync_on_focus_loss is set but no focus source.")
            return
        self._focus_callback = self._on_focus_lost
        self.focus_signal.subscribe(self._focus_callback)
        logger.info("SCHEDULER: Sync on focus loss enabled.")

    def _unsubscribe_focus(self) -> None:
        if self._focus_callback is None:
            return
        if self.focus_signal is not None:
            self.focus_signal.unsubscribe(self._focus_callback)
        self._focus_callback = None
