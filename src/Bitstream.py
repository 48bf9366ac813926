# Bitstream.py
"""Побитовая запись и чтение буфера байтов.

Порядок бит: старший бит первым (MSB-first) как внутри байта, так и внутри
кода. BitWriter и BitReader используют один и тот же порядок.
"""

from __future__ import annotations
from typing import Tuple

# =================================================================================================================

class BitWriter:
    """Накопитель бит. Коды дописываются в конец, полные байты сразу уходят в буфер."""

    def __init__(self):
        self._buf = bytearray()
        self._acc = 0           # незавершённый байт
        self._acc_len = 0       # число бит в _acc (0..7)

    @property
    def bit_length(self) -> int:
        """Общее число записанных значимых бит."""
        return len(self._buf) * 8 + self._acc_len

    def append(self, bits: int, length: int) -> None:
        """Дописывает `length` младших бит числа `bits`, старшие первыми.

        Args:
            bits (int): Битовый шаблон (код).
            length (int): Количество записываемых бит.

        Raises:
            ValueError: Отрицательная длина или код не помещается в length бит.
        """
        if length < 0:
            raise ValueError("length must be non-negative")
        if bits < 0 or bits >> length:
            raise ValueError(f"code {bits:#x} does not fit into {length} bits")

        self._acc = (self._acc << length) | bits
        self._acc_len += length

        # сливаем полные байты из аккумулятора
        while self._acc_len >= 8:
            self._acc_len -= 8
            self._buf.append((self._acc >> self._acc_len) & 0xFF)
        self._acc &= (1 << self._acc_len) - 1

    def flush(self) -> Tuple[bytes, int]:
        """Дополняет последний байт нулями и возвращает результат.

        Returns:
            tuple:
            - bytes: Упакованные данные.
            - int: Число незначимых (нулевых) бит в последнем байте, 0..7.
        """
        out = bytearray(self._buf)
        padding = 0
        if self._acc_len:
            padding = 8 - self._acc_len
            out.append((self._acc << padding) & 0xFF)
        return bytes(out), padding

# =================================================================================================================

class BitReader:
    """Последовательное чтение бит из буфера.

    Значимая область заканчивается за `padding` бит до конца буфера.
    Чтение за её пределами - ошибка вызывающего кода (IndexError).
    """

    def __init__(self, data: bytes, padding: int = 0):
        if not 0 <= padding <= 7:
            raise ValueError("padding must be in range 0..7")
        if padding and not data:
            raise ValueError("padding without data")

        self._data = data
        self._total = len(data) * 8 - padding
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return self._total - self._pos

    @property
    def exhausted(self) -> bool:
        return self._pos >= self._total

    def read_bit(self) -> int:
        """Возвращает следующий бит (0/1) и сдвигает курсор."""
        if self._pos >= self._total:
            raise IndexError("read past the end of the bit stream")

        byte = self._data[self._pos >> 3]
        bit = (byte >> (7 - (self._pos & 7))) & 1
        self._pos += 1
        return bit

    def padding_is_zero(self) -> bool:
        """Проверяет, что хвостовые биты после значимой области нулевые."""
        tail = len(self._data) * 8 - self._total
        if not tail:
            return True
        return self._data[-1] & ((1 << tail) - 1) == 0
