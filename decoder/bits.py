"""Bitfolge → Bytes → Text.

Bits kommen MSB-first, 8 Bit pro Byte. Unvollständige Bytes werden mit
Nullbits aufgefüllt. Ungültiges UTF-8 ist kein Fehler, sondern ergibt eine
Hex-Darstellung mit "[HEX] "-Präfix.
"""

from collections.abc import Iterable

import numpy as np

from config import HEX_PREFIX


def padding_for(bit_count: int) -> int:
    """Anzahl Nullbits bis zur nächsten Bytegrenze."""
    remainder = bit_count % 8
    return 0 if remainder == 0 else 8 - remainder


def pad_bits(bits: Iterable[int]) -> list[int]:
    bit_list = [int(bit) & 1 for bit in bits]
    return bit_list + [0] * padding_for(len(bit_list))


def pack_bits(bits: Iterable[int]) -> bytes:
    """Packt Bits MSB-first in Bytes (mit Nullbit-Padding am Ende)."""
    padded = np.asarray(pad_bits(bits), dtype=np.uint8)
    return np.packbits(padded, bitorder="big").tobytes()


def format_hex(data: bytes) -> str:
    return HEX_PREFIX + " ".join(f"{byte:02X}" for byte in data)


def bytes_to_message(data: bytes) -> str:
    """UTF-8 ohne abschließende NUL-Bytes, sonst Hex-Fallback."""
    try:
        return data.decode("utf-8").rstrip("\x00")
    except UnicodeDecodeError:
        return format_hex(data)


def bits_to_message(bits: Iterable[int]) -> str:
    return bytes_to_message(pack_bits(bits))


__all__ = [
    "padding_for",
    "pad_bits",
    "pack_bits",
    "format_hex",
    "bytes_to_message",
    "bits_to_message",
]
