"""
Публичный интерфейс кодека:
  encode(data)        -> bytes (контейнер: заголовок + payload)
  decode(container)   -> bytes (исходные данные) или DecodeError
  read_header(blob)   -> ContainerHeader

Пример:
  blob = encode(b"AABCBAD", bytes_order="big", verbose=True)
  assert decode(blob) == b"AABCBAD"
"""

# =================================================================================================================

from typing import Union

from Huffman import *
from Container_Format import *

# =================================================================================================================

def bytes_order_to_flag(order: Union[str, int]) -> int:
    """Конвертация little/big → 0/1. Числовой флаг возвращается как есть после проверки."""
    if order in ("little", 0):
        return 0
    if order in ("big", 1):
        return 1
    raise ValueError(f"Unknown bytes order: {order!r}")

def _as_bytes(data, name: str) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like, got {type(data).__name__}")
    return bytes(data)

# =================================================================================================================

def encode(data: bytes, bytes_order: Union[str, int] = 0, verbose: bool = False) -> bytes:
    """Сжимает буфер каноническим кодом Хаффмана.

    Args:
        data (bytes): Входные данные (в том числе пустые).
        bytes_order: Порядок байт полей заголовка: "little"/0 или "big"/1.
        verbose (bool): Печатать статистику кодирования.

    Returns:
        bytes: Контейнер. Для одинаковых входных данных результат побайтно совпадает.
    """
    raw_data = _as_bytes(data, "data")

    huffman = Huffman()
    payload, lengths_codes, padding = huffman.pack(raw_data)

    header = ContainerHeader(
        bytes_order     = bytes_order_to_flag(bytes_order),
        padding         = padding,
        original_size   = len(raw_data),
        payload_size    = len(payload),
        payload_crc32   = crc32(payload),
        code_table      = lengths_codes
    )
    header.header_crc32 = header.compute_header_crc32()

    blob = header.to_bytes() + payload

    if verbose:
        print(f"[encode] {len(raw_data)} bytes -> {len(blob)} bytes "
              f"(payload {len(payload)} bytes, padding {padding} bits)")
        if huffman.lengths:
            top = ", ".join(f"{sym:#04x}:{cnt}" for sym, cnt in frequency_list(huffman.freqs)[:5])
            print(f"[encode] distinct symbols: {len(huffman.lengths)}, "
                  f"max code length: {max(huffman.lengths.values())}")
            print(f"[encode] most frequent: {top}")

    return blob

# -------------------------------------------------------------------------------------------------

def read_header(container: bytes, verify_crc: bool = True) -> ContainerHeader:
    """Парсит и проверяет заголовок контейнера без декодирования payload.

    Raises:
        MalformedContainer: Заголовок повреждён или противоречив.
    """
    blob = _as_bytes(container, "container")

    header = ContainerHeader.from_bytes(blob)
    if verify_crc:
        header.validate_crc32()
    return header

def decode(container: bytes, verify_crc: bool = True, verbose: bool = False) -> bytes:
    """Восстанавливает исходные данные из контейнера.

    Декодирование атомарно: либо возвращается весь исходный буфер, либо
    выбрасывается исключение.

    Args:
        container (bytes): Результат encode().
        verify_crc (bool): Проверять CRC32 заголовка и payload.
        verbose (bool): Печатать информацию о контейнере.

    Raises:
        MalformedContainer: Заголовок повреждён, payload обрезан или не согласуется с заголовком.
        InvalidCode: В payload встретилась последовательность бит, не являющаяся кодом.
    """
    blob = _as_bytes(container, "container")
    header = read_header(blob, verify_crc)

    payload = blob[OFF_PAYLOAD:]
    if len(payload) < header.payload_size:
        raise MalformedContainer(f"Payload truncated: {len(payload)} of {header.payload_size} bytes")
    if len(payload) > header.payload_size:
        raise MalformedContainer(f"Unexpected {len(payload) - header.payload_size} bytes after payload")

    if verify_crc:
        header.validate_payload_crc32(payload)

    if verbose:
        print(f"[decode] original size: {header.original_size}, payload: {header.payload_size} bytes, "
              f"bytes order: {'big' if header.bytes_order else 'little'}")

    huffman = Huffman()
    data = huffman.unpack(payload, header.code_table, header.padding, header.original_size)

    if verbose:
        print(f"[decode] restored {len(data)} bytes")

    return data
