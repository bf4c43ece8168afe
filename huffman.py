"""
Huffman tree construction and code generation.

Nodes live in a flat list (the arena) and refer to their children by index,
so building, walking and code generation never recurse.

Tie-break: merge candidates are ordered by (weight, node id). Leaves get ids
0..k-1 in the frequency table's insertion order and each merged node takes
the next free id. The first node popped becomes the left child (bit 0).
"""

from __future__ import annotations

import heapq
from typing import Dict, Iterable, List, Optional, Tuple

from loguru import logger

from frequency_table import FrequencyTable

logger.disable(__name__)


class HuffmanNode:  # Node for Huffman tree
    __slots__ = ("symbol", "frequency", "left", "right")

    def __init__(self, symbol: str, frequency: float,
                 left: Optional[int] = None, right: Optional[int] = None):
        self.symbol = symbol        # leaf: the coded symbol; internal: concatenated child labels (debug only)
        self.frequency = frequency  # leaf weight, or sum of descendant weights
        self.left = left            # arena index of left child, None for leaves
        self.right = right

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __repr__(self) -> str:
        kind = "leaf" if self.is_leaf else "internal"
        return f"HuffmanNode({kind}, {self.symbol!r}, {self.frequency})"


class HuffmanTree:
    """Immutable prefix-code tree: node arena plus the root's index."""

    __slots__ = ("_nodes", "_root")

    def __init__(self, nodes: List[HuffmanNode], root: int):
        self._nodes = tuple(nodes)
        self._root = root

    @property
    def root(self) -> int:
        return self._root

    def node(self, index: int) -> HuffmanNode:
        return self._nodes[index]

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def is_degenerate(self) -> bool:
        # a single leaf: empty table or a one-symbol alphabet
        return self._nodes[self._root].is_leaf


def build_huffman_tree(frequency_table: FrequencyTable) -> HuffmanTree:
    """Merge the two lightest nodes until one remains.

    An empty table yields a lone leaf with the empty symbol and zero weight.
    """
    nodes = [HuffmanNode(symbol, frequency) for symbol, frequency in frequency_table.items()]
    if not nodes:
        logger.debug("[Huffman] empty frequency table, returning degenerate tree")
        return HuffmanTree([HuffmanNode("", 0)], 0)

    # (weight, id) is unique per entry, so the heap never compares nodes
    priority_queue: List[Tuple[float, int]] = [(node.frequency, i) for i, node in enumerate(nodes)]
    heapq.heapify(priority_queue)

    while len(priority_queue) > 1:
        left_weight, left = heapq.heappop(priority_queue)
        right_weight, right = heapq.heappop(priority_queue)
        merged = HuffmanNode(nodes[left].symbol + nodes[right].symbol, left_weight + right_weight, left, right)
        nodes.append(merged)
        heapq.heappush(priority_queue, (merged.frequency, len(nodes) - 1))

    root = priority_queue[0][1]
    logger.debug(f"[Huffman] built tree: {len(frequency_table)} leaves, {len(nodes)} nodes")
    return HuffmanTree(nodes, root)


def generate_huffman_codes(tree: HuffmanTree) -> Dict[str, str]:
    """Symbol -> bit string ('0' = left, '1' = right), depth-first, left first.

    A single-leaf tree maps its symbol to the empty code.
    """
    codes: Dict[str, str] = {}
    stack: List[Tuple[int, str]] = [(tree.root, "")]
    while stack:
        index, code = stack.pop()
        node = tree.node(index)
        if node.is_leaf:
            codes[node.symbol] = code
            continue
        stack.append((node.right, code + "1"))
        stack.append((node.left, code + "0"))
    return codes


def huffman_encode(symbols: Iterable[str], code_map: Dict[str, str]) -> str:
    return "".join(code_map[symbol] for symbol in symbols)


def huffman_decode(bitstring: str, tree: HuffmanTree, end_of_sequence: Optional[str] = None) -> str:
    """Walk the tree bit by bit, restarting at the root after every leaf.

    Stops at the EOS leaf. A trailing partial path (padding) is ignored.
    """
    if tree.is_degenerate:
        return ""  # no bit can ever reach the only leaf

    decoded: List[str] = []
    current = tree.node(tree.root)
    for bit in bitstring:
        current = tree.node(current.left if bit == "0" else current.right)
        if current.is_leaf:
            if end_of_sequence and current.symbol == end_of_sequence:
                break
            decoded.append(current.symbol)
            current = tree.node(tree.root)  # reset to the root for the next symbol

    return "".join(decoded)
