
from __future__ import annotations
from dataclasses import dataclass
from fractions import Fraction
from heapq import heappush, heappop
from typing import Dict, List, Optional, Tuple
from collections import Counter

from Bitstream import BitWriter, BitReader
from Container_Format import *

"""Канонический кодек Хаффмана.

Поддерживает:
    - подсчёт частот символов входного буфера
    - построение дерева Хаффмана с детерминированным разрешением равных весов
    - вычисление длин кодов по глубине листьев
    - генерацию канонических кодов (canonical Huffman codes) по таблице длин
    - кодирование/декодирование массива байтов

Функции модуля чистые: каждая получает данные аргументами и возвращает новый результат.
Класс Huffman хранит промежуточные таблицы одного вызова pack/unpack.

API:
    - count_frequencies, build_tree, code_lengths, canonical_codes, build_decode_table
    - Huffman(): класс с методами pack/unpack.
"""

# =================================================================================================================

@dataclass
class HuffmanNode:
    """Узел дерева Хаффмана.

    Лист хранит символ и его частоту, внутренний узел - ровно двух потомков
    и суммарную частоту. У внутреннего узла symbol is None.
    """
    freq: int
    symbol: Optional[int]               = None
    left: Optional["HuffmanNode"]       = None
    right: Optional["HuffmanNode"]      = None

    @property
    def is_leaf(self) -> bool:
        return self.symbol is not None

# =================================================================================================================

def count_frequencies(data: bytes) -> Dict[int, int]:
    """Частоты символов: {символ: количество}. Отсутствующие символы не включаются."""
    return dict(Counter(data))

def frequency_list(freqs: Dict[int, int]) -> List[Tuple[int, int]]:
    """Пары (символ, частота) по убыванию частоты, при равенстве - по возрастанию символа.

    Пример:
        Вход: {66: 2, 65: 3, 68: 1, 67: 1}
        Выход: [(65, 3), (66, 2), (67, 1), (68, 1)]
    """
    return sorted(freqs.items(), key=lambda x: (-x[1], x[0]))

# -------------------------------------------------------------------------------------------------

def build_tree(freqs: Dict[int, int]) -> Optional[HuffmanNode]:
    """Строит классическое дерево Хаффмана по таблице частот.

    Элемент кучи - (вес, порядковый_номер, узел). Листья добавляются по
    возрастанию символа, каждый новый внутренний узел получает следующий номер,
    поэтому при равных весах результат не зависит от порядка обхода словаря.

    Args:
        freqs (Dict[int,int]): Частоты символов.

    Returns:
        Optional[HuffmanNode]: Корень дерева; None для пустой таблицы;
        единственный лист, если символ один.
    """

    # Входной буфер пуст
    if not freqs:
        return None

    heap = []
    uniq_id = 0

    for sym in sorted(freqs):
        heappush(heap, (freqs[sym], uniq_id, HuffmanNode(freqs[sym], sym)))
        uniq_id += 1

    while len(heap) > 1:
        w1, _, n1 = heappop(heap)
        w2, _, n2 = heappop(heap)

        heappush(heap, (w1 + w2, uniq_id, HuffmanNode(w1 + w2, None, n1, n2)))
        uniq_id += 1

    _, _, root = heap[0]
    return root

def code_lengths(root: Optional[HuffmanNode]) -> Dict[int, int]:
    """Длина кода каждого символа - глубина его листа.

    Если дерево состоит из одного листа, символ получает длину 1:
    код нулевой длины нельзя повторить заданное число раз в потоке.
    """
    if root is None:
        return {}

    if root.is_leaf:
        return {root.symbol: 1}

    lengths = {}

    def dfs(node, depth):
        '''Обход дерева в глубину'''
        if node.is_leaf:
            lengths[node.symbol] = depth
        else:
            dfs(node.left, depth + 1)
            dfs(node.right, depth + 1)

    dfs(root, 0)
    return lengths

# -------------------------------------------------------------------------------------------------

def canonical_codes(lengths: Dict[int, int]) -> Dict[int, Tuple[int, int]]:
    """Генерирует канонические коды Хаффмана по таблице длин.

    Канонический код Хаффмана:
        - символы сортируются по (длина, символ)
        - первый код самой короткой длины равен 0
        - внутри длины код увеличивается на 1, при переходе на следующую длину сдвигается влево

    Returns:
        Dict[int, Tuple[int, int]]: symbol → (code, length)
    """

    pairs = [(l, sym) for sym, l in lengths.items() if l > 0]
    if not pairs:
        return {}

    pairs.sort()
    maxbits = pairs[-1][0]

    # Подсчет кол-ва символов каждой длины
    chars_on_layers = [0] * (maxbits + 1)
    for l, _ in pairs:
        chars_on_layers[l] += 1

    # Первый код каждой длины
    code = 0
    next_code = {}
    for layer in range(1, maxbits + 1):
        code = (code + chars_on_layers[layer - 1]) << 1
        next_code[layer] = code

    codes = {}
    for l, sym in pairs:
        codes[sym] = (next_code[l], l)
        next_code[l] += 1

    return codes

def kraft_sum(lengths: Dict[int, int]) -> Fraction:
    """Сумма 2^-length по всем присутствующим символам."""
    return sum((Fraction(1, 1 << l) for l in lengths.values() if l > 0), Fraction(0))

def is_prefix_free(codes: Dict[int, Tuple[int, int]]) -> bool:
    """True, если ни один код не является префиксом другого."""
    items = sorted(codes.values(), key=lambda x: x[1])
    for i, (c1, l1) in enumerate(items):
        for c2, l2 in items[i + 1:]:
            if c2 >> (l2 - l1) == c1:
                return False
    return True

def build_decode_table(codes: Dict[int, Tuple[int, int]]) -> Dict[int, Dict[int, int]]:
    """Создаёт таблицу для быстрого декодирования канонических кодов.

    Таблица строится в формате:
        length → {code → symbol}

    Пример:
        Вход: {65: (0b00, 2), 66: (0b01, 2), 67: (0b110, 3)}
        Выход: {2: {0: 65, 1: 66}, 3: {6: 67}}
    """
    table = {}
    for sym, (code, code_length) in codes.items():
        table.setdefault(code_length, {})[code] = sym
    return table

# =================================================================================================================

class Huffman:
    """Кодирование одного буфера.

    Атрибуты:
        freqs (Dict[int,int]): Частоты символов входного буфера.
        root (Optional[HuffmanNode]): Корень дерева Хаффмана.
        lengths (Dict[int,int]): Длины кодов Хаффмана.
        canonical_codes (Dict[int, Tuple[int, int]]): Канонические коды (код, длина).
    """

    def __init__(self):
        self.freqs: Dict[int, int] = dict()
        self.root: Optional[HuffmanNode] = None
        self.lengths: Dict[int, int] = dict()
        self.canonical_codes: Dict[int, Tuple[int, int]] = dict()

# -------------------------------------------------------------------------------------------------

    def pack(self, data: bytes) -> Tuple[bytes, bytes, int]:
        """Кодирует массив байтов с помощью канонического Хаффмана.

        Args:
            data (bytes): Входные данные.

        Returns:
            tuple:
            - packed (bytes): Кодированные данные.
            - lengths_codes (bytes): Сериализованные длины кодов (256 байт).
            - padding (int): Количество незначимых бит в packed.
        """
        self.freqs = count_frequencies(data)
        self.root = build_tree(self.freqs)
        self.lengths = code_lengths(self.root)
        self.canonical_codes = canonical_codes(self.lengths)

        lengths_codes = lengths_to_bytes(self.lengths)

        packed, padding = self._encode_bytes(data)
        return packed, lengths_codes, padding

    def unpack(self, data_bytes: bytes, lengths_codes: bytes, padding: int, original_size: int) -> bytes:
        """Декодирует байты, закодированные каноническим кодом Хаффмана.

        Args:
            data_bytes (bytes): Поток с закодированными значениями.
            lengths_codes (bytes): Таблица длин кодов (256 байт).
            padding (int): Число незначимых бит в последнем байте.
            original_size (int): Число символов, которое нужно восстановить.

        Returns:
            bytes: Декодированные исходные данные.

        Raises:
            MalformedContainer: Таблица длин или поток не согласуются с original_size.
            InvalidCode: Последовательность бит не соответствует ни одному коду.
        """
        self.lengths = lengths_from_bytes(lengths_codes)

        if original_size == 0:
            if self.lengths or data_bytes or padding:
                raise MalformedContainer("Пустой исходный буфер, но таблица длин или данные не пусты")
            return b""

        if not self.lengths:
            raise MalformedContainer("Пустая таблица длин при ненулевом исходном размере")

        if kraft_sum(self.lengths) > 1:
            raise MalformedContainer("Таблица длин нарушает неравенство Крафта")

        self.canonical_codes = canonical_codes(self.lengths)
        decode_table = build_decode_table(self.canonical_codes)

        try:
            reader = BitReader(data_bytes, padding)
        except ValueError as e:
            raise MalformedContainer(str(e)) from e

        out = self._decode_bits_with_table(reader, decode_table, original_size)

        if not reader.exhausted:
            raise MalformedContainer(f"Лишние {reader.remaining} бит после последнего символа")
        if not reader.padding_is_zero():
            raise MalformedContainer("Ненулевые биты выравнивания")

        return out

# -------------------------------------------------------------------------------------------------

    def _encode_bytes(self, data: bytes) -> Tuple[bytes, int]:
        """Кодирует массив байтов, заменяя каждый символ его битовым кодом."""
        writer = BitWriter()
        for b in data:
            code, l = self.canonical_codes[b]
            writer.append(code, l)
        return writer.flush()

    def _decode_bits_with_table(self, reader: BitReader, decode_table_by_length, count: int) -> bytes:
        """Декодирование битового потока по таблице по длине.

        Args:
            reader (BitReader): Источник бит.
            decode_table_by_length: dict length -> dict(code_bits -> symbol)
            count (int): Количество символов для декодирования.

        Returns:
            bytes: раскодированный массив байт
        """
        out = bytearray()
        max_len = max(decode_table_by_length)
        cur = 0
        cur_len = 0

        while len(out) < count:
            if reader.exhausted:
                raise MalformedContainer(
                    f"Поток закончился: восстановлено {len(out)} из {count} символов")

            cur = (cur << 1) | reader.read_bit()
            cur_len += 1

            table = decode_table_by_length.get(cur_len)
            if table and cur in table:
                out.append(table[cur])
                cur = 0
                cur_len = 0
            elif cur_len >= max_len:
                raise InvalidCode(
                    f"Неизвестный код на позиции бита {reader.position - cur_len}")

        return bytes(out)
