# Container_Format.py
"""
Формат контейнера канонического кодека Хаффмана.

Структура (версия 1):
0..3     Signature (4 bytes)          ASCII "HFCN"
4        Version                      uint8
5        BytesOrder                   uint8, 0 -> LE, 1 -> BE
6        Padding                      uint8, нулевые биты в последнем байте payload (0..7)
7        Reserved                     uint8, всегда 0
8..15    OriginalSize                 uint64, число символов исходного буфера
16..23   PayloadSize                  uint64, размер payload в байтах
24..27   PayloadCrc32                 uint32
28..31   HeaderCrc32                  uint32
32..287  CodeTable (256 bytes)        байт i - длина кода символа i, 0 - символ отсутствует
288..    Payload (PayloadSize bytes)  биты кодов, старший бит первым

Примечания:
- Для пустого исходного буфера CodeTable нулевая, Payload пуст, Padding == 0.
- HeaderCrc32 считается по (header 32 bytes + code table 256 bytes) при обнулённом поле HeaderCrc32.
- OriginalSize определяет, где заканчивается декодирование: маркера конца в payload нет.
"""
# =================================================================================================================

from __future__ import annotations
import struct
import zlib
from dataclasses import dataclass
from typing import Dict

# =================================================================================================================

class DecodeError(ValueError):
    """Базовая ошибка декодирования контейнера."""

class MalformedContainer(DecodeError):
    """Поля заголовка противоречат друг другу или payload обрезан."""

class InvalidCode(DecodeError):
    """Последовательность бит не совпала ни с одним кодом в пределах максимальной длины."""

# =================================================================================================================

# lims
MAX_PADDING             = 7
MAX_CODE_LENGTH         = 0xFF      # длина кода хранится в одном байте

# Container header constants
H_SIGNATURE_SIZE        = 4
H_SIGNATURE             = b"HFCN"
VERSION                 = 1
HEADER_SIZE             = 32
CODE_TABLE_SIZE         = 256
META_SIZE               = HEADER_SIZE + CODE_TABLE_SIZE
OFF_CODETABLE           = HEADER_SIZE
OFF_PAYLOAD             = META_SIZE     # 288

# Offsets
H_OFF_SIGNATURE         = 0  # char[4]
H_OFF_VERSION           = 4  # uint8
H_OFF_BYTESORDER        = 5  # uint8
H_OFF_PADDING           = 6  # uint8
H_OFF_RESERVED          = 7  # uint8
H_OFF_ORIGINAL_SIZE     = 8  # uint64
H_OFF_PAYLOAD_SIZE      = 16 # uint64
H_OFF_PAYLOADCRC32      = 24 # uint32
H_OFF_HEADERCRC32       = 28 # uint32

# =================================================================================================================

# Helpers for endian prefix
def _endian_prefix(bytes_order_flag: int) -> str:
    return "<" if bytes_order_flag == 0 else ">"

def _unpack(format, blob, offset):
    return struct.unpack_from(format, blob, offset)[0]

def _pack(format, blob, offset, data):
    struct.pack_into(format, blob, offset, data)

def crc32(data: bytes) -> int:
    return zlib.crc32(data) & 0xFFFFFFFF

# =================================================================================================================

def lengths_to_bytes(lengths: Dict[int, int]) -> bytes:
    """Сериализует таблицу длин кодов в массив из 256 байт.

    Индекс = символ, значение = длина кода. Длина 0 означает, что символ отсутствует.

    Пример:
        Вход: {65: 3, 66: 4, 67: 2}
        Выход: байты где [65]=3, [66]=4, [67]=2, остальные 0
    """
    byte_array = bytearray(CODE_TABLE_SIZE)
    for symbol, length in lengths.items():
        if not 0 <= symbol < CODE_TABLE_SIZE:
            raise ValueError(f"symbol {symbol} is out of byte range")
        if not 0 < length <= MAX_CODE_LENGTH:
            raise ValueError(f"code length {length} of symbol {symbol} does not fit into one byte")
        byte_array[symbol] = length
    return bytes(byte_array)

def lengths_from_bytes(data: bytes) -> Dict[int, int]:
    """Обратная операция к lengths_to_bytes: {символ: длина кода} для ненулевых длин."""
    if len(data) != CODE_TABLE_SIZE:
        raise MalformedContainer(f"Code table must be exactly {CODE_TABLE_SIZE} bytes")
    return {symbol: length for symbol, length in enumerate(data) if length != 0}

# =================================================================================================================

@dataclass
class ContainerHeader:
    version: int                = VERSION
    bytes_order: int            = 0  # 0 -> LE, else BE
    padding: int                = 0
    reserved: int               = 0
    original_size: int          = 0
    payload_size: int           = 0
    payload_crc32: int          = 0
    header_crc32: int           = 0
    code_table: bytes           = b"\x00" * CODE_TABLE_SIZE     # 256 bytes

    def to_bytes(self) -> bytes:
        """Сериализует заголовок в bytes длиной HEADER_SIZE + CODE_TABLE_SIZE (288 байт)"""

        self.validate_header(RuntimeError)

        buf = bytearray(HEADER_SIZE)
        buf[H_OFF_SIGNATURE:H_OFF_SIGNATURE + H_SIGNATURE_SIZE] = H_SIGNATURE

        prefix = _endian_prefix(self.bytes_order)

        _pack("B", buf, H_OFF_VERSION, self.version)
        _pack("B", buf, H_OFF_BYTESORDER, self.bytes_order)
        _pack("B", buf, H_OFF_PADDING, self.padding)
        _pack("B", buf, H_OFF_RESERVED, self.reserved)
        _pack(f"{prefix}Q", buf, H_OFF_ORIGINAL_SIZE, self.original_size)
        _pack(f"{prefix}Q", buf, H_OFF_PAYLOAD_SIZE, self.payload_size)
        _pack(f"{prefix}I", buf, H_OFF_PAYLOADCRC32, self.payload_crc32)
        _pack(f"{prefix}I", buf, H_OFF_HEADERCRC32, self.header_crc32)

        return bytes(buf) + self.code_table

    @classmethod
    def from_bytes(cls, data: bytes) -> "ContainerHeader":
        """Парсит первые 288 байт (header + code_table) и возвращает ContainerHeader."""

        if len(data) < META_SIZE:
            raise MalformedContainer(f"Container too small to be valid {H_SIGNATURE!r} container")

        if data[H_OFF_SIGNATURE:H_SIGNATURE_SIZE] != H_SIGNATURE:
            raise MalformedContainer("Container signature differs from expected")

        header = data[:HEADER_SIZE]
        code_table = bytes(data[OFF_CODETABLE:OFF_CODETABLE + CODE_TABLE_SIZE])

        # first read bytes_order to determine endianness
        bytes_order = header[H_OFF_BYTESORDER]
        prefix = _endian_prefix(bytes_order)

        H = cls(
            version                 = header[H_OFF_VERSION],
            bytes_order             = bytes_order,
            padding                 = header[H_OFF_PADDING],
            reserved                = header[H_OFF_RESERVED],
            original_size           = _unpack(f"{prefix}Q", header, H_OFF_ORIGINAL_SIZE),
            payload_size            = _unpack(f"{prefix}Q", header, H_OFF_PAYLOAD_SIZE),
            payload_crc32           = _unpack(f"{prefix}I", header, H_OFF_PAYLOADCRC32),
            header_crc32            = _unpack(f"{prefix}I", header, H_OFF_HEADERCRC32),
            code_table              = code_table
        )
        H.validate_header(MalformedContainer)

        return H

    def validate_header(self, type):
        if self.version != VERSION:
            raise type(f"Неподдерживаемая версия: {self.version}")

        if self.bytes_order not in (0, 1):
            raise type(f"Неизвестный порядок байт: {self.bytes_order}")

        if self.padding > MAX_PADDING:
            raise type(f"Превышен максимальный padding: {MAX_PADDING}")

        if self.reserved != 0:
            raise type("Обнаружен мусор в зарезервированном поле")

        if len(self.code_table) != CODE_TABLE_SIZE:
            raise type("Неправильный размер кодовой таблицы")

        if self.payload_size == 0 and self.padding != 0:
            raise type("Padding без данных")

        lengths = [l for l in self.code_table if l]

        if self.original_size == 0:
            if lengths or self.payload_size:
                raise type("Пустой исходный буфер, но кодовая таблица или данные не пусты")
            return

        if not lengths:
            raise type("Пустая кодовая таблица при ненулевом исходном размере")

        # Каждый символ занимает от min(lengths) до max(lengths) бит
        total_bits = self.payload_size * 8 - self.padding
        if self.original_size * min(lengths) > total_bits:
            raise type(f"Заявлено {self.original_size} символов, payload вмещает не более "
                       f"{total_bits // min(lengths)}")
        if self.original_size * max(lengths) < total_bits:
            raise type(f"Payload ({total_bits} бит) длиннее, чем нужно для {self.original_size} символов")

    def compute_header_crc32(self) -> int:
        """Вычисляет CRC32 по заголовку (поле HeaderCrc32 = 0 при вычислении)."""
        b = bytearray(self.to_bytes())
        b[H_OFF_HEADERCRC32:H_OFF_HEADERCRC32 + 4] = b"\x00\x00\x00\x00"
        return crc32(bytes(b))

    def validate_crc32(self) -> bool:
        stored = self.header_crc32
        computed = self.compute_header_crc32()
        if stored != computed:
            raise MalformedContainer(f"Header CRC mismatch: stored={stored:#010x}, computed={computed:#010x}")
        return True

    def validate_payload_crc32(self, payload: bytes) -> bool:
        computed = crc32(payload)
        if computed != self.payload_crc32:
            raise MalformedContainer(
                f"Payload CRC mismatch: stored={self.payload_crc32:#010x}, computed={computed:#010x}")
        return True
