"""Empfänger-Kern für tbsk-receiver.

Usage:
    from receiver import RecordingController, ReceiverConfig, TickLoop

    controller = RecordingController(device, demodulator, ReceiverConfig.from_env())
    controller.add_listener(print)
    controller.start()
    loop = TickLoop(controller.tick, controller.config.tick_interval)
    loop.start()
"""

from .controller import RecordingController
from .loop import TickLoop
from .settings import ReceiverConfig
from .trigger import SilenceTrigger, ThresholdTrigger, create_trigger

__all__ = [
    "RecordingController",
    "ReceiverConfig",
    "TickLoop",
    "SilenceTrigger",
    "ThresholdTrigger",
    "create_trigger",
]
