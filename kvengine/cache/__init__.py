"""Cache module for KV-Engine: the keyspace and the typed stores over it."""

from .expiry import ExpirySweeper
from .hashes import HashStore
from .keyspace import Entry, Keyspace, ValueType
from .lists import ListStore
from .sets import SetStore
from .sorted_set import SortedSet
from .strings import StringStore
from .zsets import SortedSetStore

__all__ = [
    "Entry",
    "ExpirySweeper",
    "HashStore",
    "Keyspace",
    "ListStore",
    "SetStore",
    "SortedSet",
    "SortedSetStore",
    "StringStore",
    "ValueType",
]
