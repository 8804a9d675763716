from .capability_trie import CapabilityTrie
from .node import TrieBranch, TrieLeaf
from .registry import CapabilityRegistry

__all__ = [
    "CapabilityRegistry",
    "CapabilityTrie",
    "TrieBranch",
    "TrieLeaf",
]
