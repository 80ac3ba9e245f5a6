from enum import Enum


class ReceiverState(Enum):
    IDLE = "idle"
    RECORDING = "recording"
